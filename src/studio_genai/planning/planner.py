from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable

from studio_genai.config import StudioConfig, settings
from studio_genai.errors import classify_transport_error
from studio_genai.planning.fallbacks import (
    LP_PALETTE,
    MANGA_PHASES,
    DigestSource,
    ThumbnailRequest,
    digest_fallback,
    digest_plan,
    lp_fallback,
    manga_fallback,
    slides_fallback,
    thumbnail_base_prompt,
    thumbnail_plan,
)
from studio_genai.planning.instructions import (
    DIGEST_PROMPT,
    LP_PLAN_PROMPT,
    MANGA_STORY_PROMPT,
    SLIDE_PLAN_PROMPT,
    THUMBNAIL_SYSTEM_PROMPT,
)
from studio_genai.planning.jsonish import clean_str, first_str, parse_jsonish, to_lines
from studio_genai.planning.templates import MANGA_TEMPLATES, SLIDE_TEMPLATES, LayoutTemplate
from studio_genai.plans import Plan, PlanItem, slugify
from studio_genai.providers.base import TextPlanner
from studio_genai.results import DEMO_MODE, EMPTY_RESPONSE, PARSE_ERROR, UPSTREAM_ERROR, Fallback, Ok, Outcome

logger = logging.getLogger(__name__)


class PlanGenerator:
    """
    Turns a free-form brief into a structured plan.

    Every operation returns Ok(plan) or Fallback(plan, reason) and never raises:
    without a text planner (demo mode), on upstream failure, on an empty answer
    or on unparseable output the deterministic fallback plan is returned.
    """

    def __init__(self, text_planner: TextPlanner | None = None, locale: str | None = None) -> None:
        self.text_planner = text_planner
        self.locale = locale or settings.target_locale

    def _locale(self, config: StudioConfig) -> str:
        return str(config.option("locale") or self.locale)

    async def _ask(self, domain: str, prompt: str) -> tuple[str | None, Fallback | None]:
        """Returns (text, None) or (None, a Fallback carrying only reason/detail)."""
        if self.text_planner is None:
            return None, Fallback(None, DEMO_MODE, "no credential configured")
        try:
            text = await self.text_planner.generate_text(prompt)
        except Exception as exc:
            category, message = classify_transport_error(exc)
            logger.warning("%s plan request failed (%s): %s", domain, category, message)
            return None, Fallback(None, UPSTREAM_ERROR, message)
        if not (text or "").strip():
            logger.warning("%s plan request returned no text", domain)
            return None, Fallback(None, EMPTY_RESPONSE, None)
        return text, None

    async def _plan(
        self,
        domain: str,
        prompt: str,
        fallback: Plan,
        normalize: Callable[[Any], Plan],
        openers: str = "{[",
    ) -> Outcome[Plan]:
        text, failed = await self._ask(domain, prompt)
        if failed is not None:
            return Fallback(fallback, failed.reason, failed.detail)
        try:
            plan = normalize(parse_jsonish(text, openers))
        except (ValueError, TypeError, KeyError, AttributeError, RecursionError) as exc:
            logger.warning("%s plan output could not be parsed: %s", domain, exc)
            return Fallback(fallback, PARSE_ERROR, str(exc))
        return Ok(plan)

    async def plan_lp(self, brief: str, config: StudioConfig) -> Outcome[Plan]:
        locale = self._locale(config)
        fallback = lp_fallback(brief, locale)
        prompt = f'{LP_PLAN_PROMPT.format(locale=locale)}\n\nLP BRIEF:\n"""{brief}"""'
        return await self._plan("lp", prompt, fallback, lambda data: normalize_lp(data, fallback), "{")

    async def plan_slides(self, outline: str, config: StudioConfig, target_slides: int = 6) -> Outcome[Plan]:
        locale = self._locale(config)
        templates = SLIDE_TEMPLATES
        fallback = slides_fallback(outline, templates, target_slides)
        template_lines = "\n".join(f"- {t.id}: {t.name} / {t.structure} / {t.use_case}" for t in templates)
        prompt = (
            f"{SLIDE_PLAN_PROMPT.format(locale=locale)}\n\n"
            f"TEMPLATES:\n{template_lines}\n\n"
            f"TARGET_SLIDE_COUNT: {target_slides}\n\n"
            f'OUTLINE:\n"""{outline}"""'
        )
        return await self._plan(
            "slides", prompt, fallback, lambda data: normalize_slides(data, fallback, templates), "["
        )

    async def plan_manga(
        self,
        brief: str,
        config: StudioConfig,
        templates: tuple[LayoutTemplate, ...] | list[LayoutTemplate] = MANGA_TEMPLATES,
        art_style: str = "",
    ) -> Outcome[Plan]:
        locale = self._locale(config)
        templates = tuple(templates) or MANGA_TEMPLATES
        fallback = manga_fallback(brief, templates)
        template_lines = "\n".join(f"- {t.id}: {t.name} / {t.structure} / {t.use_case}" for t in templates)
        prompt = (
            f"{MANGA_STORY_PROMPT.format(locale=locale)}\n\n"
            f"TEMPLATES:\n{template_lines}\n\n"
            f"ART STYLE: {art_style or 'free'}\n\n"
            f'BRIEF:\n"""{brief}"""'
        )
        outcome = await self._plan(
            "manga", prompt, fallback, lambda data: normalize_manga(data, fallback, templates), "{"
        )
        if art_style:
            plan = outcome.value
            stamped = replace(plan, meta={**plan.meta, "art_style": art_style})
            if isinstance(outcome, Fallback):
                return Fallback(stamped, outcome.reason, outcome.detail)
            return Ok(stamped)
        return outcome

    async def plan_thumbnails(self, request: ThumbnailRequest, config: StudioConfig) -> Outcome[Plan]:
        """The text model writes one engineered prompt; variations are derived from it locally."""
        locale = self._locale(config)
        base = thumbnail_base_prompt(request, locale)
        notes = request.reference_notes()
        prompt = (
            f"{THUMBNAIL_SYSTEM_PROMPT.format(locale=locale)}\n\n"
            f"Template Type: {request.template.name} - {request.template.structure}\n"
            f"User Text: {request.text}\n"
            f"Color/Vibe: {request.vibe or 'free'}\n"
            f"Reference Images: {', '.join(notes) if notes else 'No reference images provided'}"
        )
        text, failed = await self._ask("thumbnail", prompt)
        if failed is not None:
            return Fallback(thumbnail_plan(request, base), failed.reason, failed.detail)
        return Ok(thumbnail_plan(request, (text or "").strip()))

    async def plan_digest(self, source: DigestSource, config: StudioConfig) -> Outcome[Plan]:
        locale = self._locale(config)
        fallback = digest_fallback(source)
        period = "this week" if source.mode == "weekly" else "the day"
        prompt = DIGEST_PROMPT.format(locale=locale, period=period, label=source.label, digest=source.digest)
        return await self._plan(
            "digest", prompt, fallback, lambda data: normalize_digest(data, fallback, source), "{"
        )


def _require_dict(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def normalize_lp(data: Any, fallback: Plan) -> Plan:
    data = _require_dict(data)
    raw_palette = data.get("palette")
    palette = tuple(p.strip() for p in raw_palette if isinstance(p, str) and p.strip())[:5] if isinstance(raw_palette, list) else ()

    sections = data.get("sections")
    items: tuple[PlanItem, ...]
    if isinstance(sections, list) and sections:
        normalized = []
        for index, raw in enumerate(sections):
            section = raw if isinstance(raw, dict) else {}
            base = fallback.items[index] if index < len(fallback.items) else fallback.items[-1]
            id_source = section.get("id") or section.get("slug") or section.get("title") or f"section-{index}"
            copy = first_str(section, "copy", "headline") or base.extra("copy")
            normalized.append(
                PlanItem(
                    id=slugify(id_source, f"section-{index + 1}"),
                    template_id="lp-section",
                    title=first_str(section, "title") or base.title,
                    body=(copy,) if copy else (),
                    cta=first_str(section, "cta") or base.cta,
                    prompt=first_str(section, "prompt", "visualPrompt") or base.prompt,
                    extras={
                        "goal": first_str(section, "goal", "purpose") or base.extra("goal"),
                        "visual_style": first_str(section, "visualStyle", "style") or base.extra("visual_style"),
                        "copy": copy,
                    },
                )
            )
        items = tuple(_dedupe_ids(normalized))
    else:
        items = fallback.items

    return Plan(
        domain="lp",
        title=fallback.title,
        theme=clean_str(data.get("theme")) or fallback.theme,
        tone=clean_str(data.get("tone")) or fallback.tone,
        palette=palette or fallback.palette or LP_PALETTE,
        items=items,
    )


def normalize_slides(data: Any, fallback: Plan, templates: tuple[LayoutTemplate, ...]) -> Plan:
    if isinstance(data, dict):
        data = data.get("slides")
    if not isinstance(data, list) or not data:
        raise ValueError("slide plan is not a non-empty JSON array")

    known = {t.id for t in templates}
    default_template = templates[0].id if templates else "intro"
    items: list[PlanItem] = []
    for index, raw in enumerate(data):
        slide = raw if isinstance(raw, dict) else {}
        template_id = first_str(slide, "templateId", "template", "layout")
        body = to_lines(slide.get("body"), 5)
        raw_id = slide.get("id")
        items.append(
            PlanItem(
                id=str(raw_id).strip() if raw_id not in (None, "") else f"slide-{index + 1}",
                template_id=template_id if template_id in known else default_template,
                title=first_str(slide, "title") or (body[0] if body else f"スライド {index + 1}"),
                body=tuple(body),
                tone=first_str(slide, "tone"),
                cta=first_str(slide, "cta"),
                extras={
                    "notes": first_str(slide, "notes"),
                    "emphasis": first_str(slide, "emphasis"),
                    "carry_over": first_str(slide, "carryOver", "carry_over"),
                    "keywords": to_lines(slide.get("keywords"), 6, r"[,、\n]"),
                },
            )
        )
    title = items[0].title if items else fallback.title
    return Plan(domain="slides", title=title, items=tuple(_dedupe_ids(items)))


def normalize_manga(data: Any, fallback: Plan, templates: tuple[LayoutTemplate, ...]) -> Plan:
    data = _require_dict(data)
    panels = data.get("panels")
    if isinstance(panels, list) and panels:
        items = tuple(_dedupe_ids(normalize_manga_panel(p, templates, i) for i, p in enumerate(panels)))
    else:
        items = fallback.items

    characters = data.get("characters") if isinstance(data.get("characters"), dict) else {}
    return Plan(
        domain="manga",
        title=clean_str(data.get("title")) or fallback.title,
        theme=clean_str(data.get("theme")) or fallback.theme,
        items=items,
        meta={
            "protagonist": clean_str(characters.get("protagonist")) or fallback.meta.get("protagonist"),
            "style": clean_str(characters.get("style")) or fallback.meta.get("style"),
        },
    )


def normalize_manga_panel(candidate: Any, templates: tuple[LayoutTemplate, ...], index: int) -> PlanItem:
    panel = candidate if isinstance(candidate, dict) else {}
    ids = [t.id for t in templates]
    fallback_template = ids[index % len(ids)] if ids else "hero-single"
    phase = panel.get("narrativePhase")
    if phase not in MANGA_PHASES:
        phase = MANGA_PHASES[index] if index < len(MANGA_PHASES) else "intro"
    template_id = panel.get("templateId")

    description = first_str(panel, "description") or "感情を大きく描写するシーン。"
    dialogue = first_str(panel, "dialogue") or "「ここから逆転する！」"
    narration = first_str(panel, "narration") or "運命が少しだけ動き始めた。"
    keywords = to_lines(panel.get("visualKeywords"), 6, r"[,、\n]") or ["dramatic lighting", "inked style", "high contrast"]
    return PlanItem(
        id=slugify(panel.get("id"), f"panel-{index + 1}"),
        template_id=template_id if template_id in ids else fallback_template,
        title=description,
        body=(dialogue, narration),
        tone=first_str(panel, "tone") or "決意",
        prompt=", ".join(keywords),
        extras={
            "narrative_phase": phase,
            "description": description,
            "dialogue": dialogue,
            "narration": narration,
            "visual_keywords": keywords,
        },
    )


def normalize_digest(data: Any, fallback: Plan, source: DigestSource) -> Plan:
    data = _require_dict(data)
    card = fallback.items[0]

    def lines(key: str) -> list[str]:
        value = data.get(key)
        if isinstance(value, list):
            return [str(v).strip() for v in value if v and str(v).strip()]
        return list(card.extra(key, []))

    return digest_plan(
        source,
        headline=clean_str(data.get("headline")) or card.title,
        summary=clean_str(data.get("summary")) or card.extra("summary", ""),
        highlights=lines("highlights"),
        lessons=lines("lessons"),
        actions=lines("actions"),
        keywords=lines("keywords"),
        image_prompt=clean_str(data.get("image_prompt")) or card.prompt,
    )


def _dedupe_ids(items) -> list[PlanItem]:
    """Item ids key the selection map, so repeated ids get a numeric suffix."""
    items = list(items)
    # Ids sent literally are reserved first so a generated suffix never shadows one.
    taken = {item.id for item in items}
    used: set[str] = set()
    out: list[PlanItem] = []
    for item in items:
        if item.id in used:
            suffix = 2
            while f"{item.id}-{suffix}" in used or f"{item.id}-{suffix}" in taken:
                suffix += 1
            item = replace(item, id=f"{item.id}-{suffix}")
        used.add(item.id)
        out.append(item)
    return out
