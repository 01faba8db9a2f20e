from __future__ import annotations

from typing import Any

from studio_genai.config import StudioConfig
from studio_genai.plans import Plan
from studio_genai.rendering.orchestrator import RenderOrchestrator
from studio_genai.rendering.prompts import References
from studio_genai.runs import DONE, ItemResult, Pattern


class VariantManager:
    """
    Several patterns of one plan plus a selection map (item id -> pattern id).

    Patterns are never modified by selection; adopting only rewrites the map.
    """

    def __init__(self, plan: Plan) -> None:
        self.plan = plan
        self.patterns: list[Pattern] = []
        self.selection: dict[str, str] = {}

    def new_patterns(self, count: int) -> list[Pattern]:
        start = len(self.patterns)
        created = [Pattern.for_plan(self.plan, f"Pattern {start + i + 1}") for i in range(max(0, count))]
        self.patterns.extend(created)
        return created

    def pattern(self, pattern_id: str) -> Pattern | None:
        return next((p for p in self.patterns if p.id == pattern_id), None)

    async def generate(
        self,
        count: int,
        orchestrator: RenderOrchestrator,
        config: StudioConfig,
        references: References | None = None,
        brief: str = "",
        extra_style: str = "",
    ) -> list[Pattern]:
        """Render `count` new patterns one after another; the first pattern fills the selection."""
        created = self.new_patterns(count)
        for pattern in created:
            await orchestrator.run(self.plan, pattern, config, references, brief, extra_style)
            self.apply_defaults(pattern)
        return created

    def adopt_pattern(self, pattern_id: str) -> int:
        """Select every rendered item of the pattern. Returns how many items were adopted."""
        pattern = self.pattern(pattern_id)
        if pattern is None:
            return 0
        adopted = 0
        for result in pattern.items:
            if result.status == DONE and result.image_url:
                self.selection[result.id] = pattern.id
                adopted += 1
        return adopted

    def adopt_item(self, item_id: str, pattern_id: str) -> bool:
        pattern = self.pattern(pattern_id)
        result = pattern.result(item_id) if pattern else None
        if result is None or result.status != DONE or not result.image_url:
            return False
        self.selection[item_id] = pattern_id
        return True

    def apply_defaults(self, pattern: Pattern) -> None:
        for result in pattern.items:
            if result.id not in self.selection and result.status == DONE and result.image_url:
                self.selection[result.id] = pattern.id

    def selected_results(self) -> list[ItemResult]:
        out: list[ItemResult] = []
        for item in self.plan.items:
            chosen: ItemResult | None = None
            pattern = self.pattern(self.selection.get(item.id, ""))
            if pattern is not None:
                chosen = pattern.result(item.id)
            if chosen is None or chosen.status != DONE:
                chosen = next(
                    (r for p in self.patterns if (r := p.result(item.id)) is not None and r.status == DONE),
                    None,
                )
            out.append(chosen or ItemResult(item=item))
        return out

    def selected_images(self) -> list[str]:
        return [r.image_url for r in self.selected_results() if r.status == DONE and r.image_url]

    def to_dict(self) -> dict[str, Any]:
        return {
            "patterns": [p.to_dict() for p in self.patterns],
            "selection": dict(self.selection),
            "selected_images": self.selected_images(),
        }
