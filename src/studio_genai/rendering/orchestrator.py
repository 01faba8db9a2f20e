from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator

from studio_genai.config import StudioConfig, settings
from studio_genai.errors import classify_transport_error
from studio_genai.plans import Plan
from studio_genai.providers.base import ImageRenderer
from studio_genai.providers.placeholder_provider import PlaceholderRenderer
from studio_genai.rendering.prompts import PromptContext, References, build_prompt, static_references, style_for
from studio_genai.results import DEMO_MODE
from studio_genai.runs import DONE, ItemResult, Pattern

logger = logging.getLogger(__name__)

STARTED = "started"
ITEM_DONE = "done"
ITEM_ERROR = "error"
PATTERN_FINISHED = "pattern_finished"


@dataclass
class ItemEvent:
    kind: str
    pattern_id: str
    index: int
    result: ItemResult | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind, "pattern_id": self.pattern_id, "index": self.index}
        if self.result is not None:
            data["item"] = self.result.to_dict()
        return data


class RenderOrchestrator:
    """
    Renders a plan's items one at a time, strictly in plan order.

    When the domain chains continuity, the last successful image is passed as a
    reference to the next item. A failed item is marked and skipped; it never
    stops the run and never replaces the continuity image.
    """

    def __init__(
        self,
        renderer: ImageRenderer | None = None,
        demo_renderer: ImageRenderer | None = None,
        timeout: float | None = None,
    ) -> None:
        self.renderer = renderer
        self.demo_renderer = demo_renderer or PlaceholderRenderer()
        self.timeout = settings.render_timeout_seconds if timeout is None else timeout

    @property
    def demo(self) -> bool:
        return self.renderer is None

    async def events(
        self,
        plan: Plan,
        pattern: Pattern,
        config: StudioConfig,
        references: References | None = None,
        brief: str = "",
        extra_style: str = "",
    ) -> AsyncIterator[ItemEvent]:
        references = references or References()
        chains = style_for(plan.domain).chains
        pattern.started = True
        pattern.finished = False
        previous: str | None = None

        for index, result in enumerate(pattern.items):
            ctx = self._context(plan, index, config, references, previous, brief, extra_style)
            result.mark_generating(build_prompt(result.item, ctx))
            yield ItemEvent(STARTED, pattern.id, index, result)

            await self._render_into(result, plan.domain, index, config, references, previous, pattern.id)
            if result.status == DONE:
                if chains:
                    previous = result.image_url
                yield ItemEvent(ITEM_DONE, pattern.id, index, result)
            else:
                yield ItemEvent(ITEM_ERROR, pattern.id, index, result)

        pattern.finished = True
        logger.info(
            "pattern %s finished: %d/%d items rendered (%s)",
            pattern.id,
            pattern.done_count(),
            len(pattern.items),
            pattern.status,
        )
        yield ItemEvent(PATTERN_FINISHED, pattern.id, len(pattern.items))

    async def run(
        self,
        plan: Plan,
        pattern: Pattern,
        config: StudioConfig,
        references: References | None = None,
        brief: str = "",
        extra_style: str = "",
    ) -> Pattern:
        async for _ in self.events(plan, pattern, config, references, brief, extra_style):
            pass
        return pattern

    async def rerender_item(
        self,
        plan: Plan,
        pattern: Pattern,
        index: int,
        config: StudioConfig,
        references: References | None = None,
        brief: str = "",
        extra_style: str = "",
    ) -> ItemResult:
        """Retry one item, using the preceding item's image in the same pattern as continuity."""
        if index < 0 or index >= len(pattern.items):
            raise IndexError(f"item index {index} out of range for pattern {pattern.id}")
        references = references or References()
        previous: str | None = None
        if index > 0 and style_for(plan.domain).chains:
            before = pattern.items[index - 1]
            previous = before.image_url if before.status == DONE else None

        result = pattern.items[index]
        ctx = self._context(plan, index, config, references, previous, brief, extra_style)
        result.mark_generating(build_prompt(result.item, ctx))
        await self._render_into(result, plan.domain, index, config, references, previous, pattern.id)
        return result

    def _context(
        self,
        plan: Plan,
        index: int,
        config: StudioConfig,
        references: References,
        previous: str | None,
        brief: str,
        extra_style: str,
    ) -> PromptContext:
        return PromptContext(
            plan=plan,
            index=index,
            references=references,
            has_previous=previous is not None,
            brief=brief,
            locale=str(config.option("locale") or settings.target_locale),
            extra_style=extra_style,
        )

    async def _render_into(
        self,
        result: ItemResult,
        domain: str,
        index: int,
        config: StudioConfig,
        references: References,
        previous: str | None,
        pattern_id: str,
    ) -> None:
        style = style_for(domain)
        refs = ([previous] if previous else []) + static_references(result.item, domain, references)
        renderer = self.demo_renderer if self.demo else self.renderer
        image_size = str(config.option("image_size") or settings.default_image_size)
        try:
            image = await asyncio.wait_for(
                renderer.render(result.prompt_used, refs, style.aspect_ratio, image_size),
                timeout=self.timeout,
            )
        except Exception as exc:
            category, message = classify_transport_error(exc)
            logger.warning(
                "item %s (#%d) of pattern %s failed (%s): %s", result.id, index + 1, pattern_id, category, message
            )
            result.mark_error(message)
            return
        if not image.data:
            logger.warning("item %s of pattern %s came back without image data", result.id, pattern_id)
            result.mark_error("No image data found in response")
            return
        result.mark_done(image.data_url, degraded_reason=DEMO_MODE if self.demo else None)
