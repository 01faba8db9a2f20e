from __future__ import annotations

from dataclasses import dataclass

from studio_genai.planning.instructions import LOCALE_MARKER, locale_directive
from studio_genai.planning.templates import MANGA_TEMPLATES, SLIDE_TEMPLATES, find_layout
from studio_genai.plans import Plan, PlanItem


@dataclass(frozen=True)
class DomainStyle:
    aspect_ratio: str
    # Whether the previous item's image is passed on as a continuity reference.
    chains: bool
    image_size: str = "1K"


DOMAIN_STYLES: dict[str, DomainStyle] = {
    "lp": DomainStyle("9:16", chains=True),
    "slides": DomainStyle("16:9", chains=True),
    "manga": DomainStyle("3:4", chains=True),
    "thumbnail": DomainStyle("16:9", chains=False),
    "digest": DomainStyle("16:9", chains=False),
}


def style_for(domain: str) -> DomainStyle:
    return DOMAIN_STYLES.get(domain, DOMAIN_STYLES["thumbnail"])


@dataclass(frozen=True)
class References:
    """User-supplied images that stay the same for every item of a run."""

    main: str | None = None
    color: str | None = None
    face: str | None = None
    layout: str | None = None


@dataclass(frozen=True)
class PromptContext:
    plan: Plan
    index: int
    references: References
    has_previous: bool = False
    brief: str = ""
    locale: str = "Japanese"
    extra_style: str = ""

    @property
    def total(self) -> int:
        return len(self.plan.items)


def _join(chunks) -> str:
    return " | ".join(c for c in chunks if c)


def lp_section_prompt(item: PlanItem, ctx: PromptContext) -> str:
    plan = ctx.plan
    chunks = [
        f"Section: {item.title}",
        item.prompt,
        item.extra("visual_style") and f"Visual style: {item.extra('visual_style')}",
        item.extra("goal") and f"Goal: {item.extra('goal')}",
        plan.theme and f"Brand theme: {plan.theme}",
        plan.tone and f"Tone: {plan.tone}",
        item.extra("copy") and f"Key copy: {item.extra('copy')}",
        item.cta and f"CTA: {item.cta}",
        plan.palette and f"Palette: {', '.join(plan.palette)}",
        "Design a full landing page slice from top padding to bottom divider, vertical 9:16 frame, "
        "layered UI mockups, premium typography, gradients, soft shadows",
        "Show entire section composition ready to be stacked with others",
    ]
    if ctx.references.color:
        chunks.append("Respect the uploaded color palette reference for tones and gradients.")
    if ctx.references.face:
        chunks.append("Keep spokesperson/face icon consistent with uploaded reference.")
    if ctx.has_previous:
        chunks.append("Ensure seamless visual continuity with the previous section reference image.")
    if ctx.brief:
        chunks.append(f"Reference brief: {ctx.brief[:240]}")
    return _join(chunks)


def slide_prompt(item: PlanItem, ctx: PromptContext) -> str:
    template = find_layout(SLIDE_TEMPLATES, item.template_id)
    keywords = item.extra("keywords", [])
    chunks = [
        f"Slide {ctx.index + 1}/{ctx.total}: {template.name} layout ({template.structure})" if template else f"Slide {ctx.index + 1}/{ctx.total}",
        item.title and f"Headline: {item.title}",
        item.extra("emphasis") and f"Emphasize: {item.extra('emphasis')}",
        item.body and f"Body lines: {' | '.join(item.body)}",
        item.cta and f"CTA: {item.cta}",
        item.tone and f"Tone: {item.tone}",
        item.extra("notes") and f"Visual notes: {item.extra('notes')}",
        item.extra("carry_over") and f"Consistency note: {item.extra('carry_over')}",
        keywords and f"Style keywords: {', '.join(keywords)}",
        "Match palette, typography, and characters to the previous slide reference image for continuity."
        if ctx.has_previous
        else "Establish the base palette and hero look on this first slide.",
        "Use the provided template reference ONLY for layout/structure, not for colors.",
        "16:9 presentation slide, clean margins, modern typography, no watermark, export-ready.",
        locale_directive(ctx.locale),
    ]
    return _join(chunks)


def manga_panel_prompt(item: PlanItem, ctx: PromptContext) -> str:
    plan = ctx.plan
    template = find_layout(MANGA_TEMPLATES, item.template_id)
    style = plan.meta.get("style") or ""
    extra_style = ctx.extra_style or plan.meta.get("art_style") or ""
    keywords = item.extra("visual_keywords", [])
    chunks = [
        f"Manga LP panel {ctx.index + 1} of {ctx.total} ({item.extra('narrative_phase', 'intro')})",
        plan.title and f"Story: {plan.title}",
        plan.theme and f"Theme: {plan.theme}",
        plan.meta.get("protagonist") and f"Protagonist: {plan.meta['protagonist']}",
        f"Art style: {style}{', ' + extra_style if extra_style else ''}" if style or extra_style else None,
        template and f'Follow layout template "{template.name}" ({template.structure})',
        f"Scene description: {item.extra('description', item.title)}",
        item.extra("dialogue") and f"Dialogue (speech bubble): {item.extra('dialogue')}",
        item.extra("narration") and f"Narration (on-page text): {item.extra('narration')}",
        item.tone and f"Emotional tone: {item.tone}",
        keywords and f"Style keywords: {', '.join(keywords)}",
        ctx.has_previous and "Align characters, outfit, and colors with the previous panel reference.",
        "Vertical framing for scrolling LP manga, keep gutters clean and allow room for speech bubbles.",
        "Include speech bubbles, keep characters consistent through the sequence.",
        locale_directive(ctx.locale),
    ]
    return _join(chunks)


def thumbnail_prompt(item: PlanItem, ctx: PromptContext) -> str:
    return item.prompt or item.title


def digest_prompt(item: PlanItem, ctx: PromptContext) -> str:
    """Learning infographic card; falls back to a generic layout when the summary has no image prompt."""
    label = item.extra("label", "")
    daily = item.extra("mode", "daily") != "weekly"
    base = item.prompt.strip() or _join(
        [
            "Learning infographic, clean grid layout, bold headline, 4-5 concise bullet chips, icons for each bullet",
            "Color: #3181FC primary with white background, subtle glassmorphism and soft shadow cards",
            "Aspect ratio 16:9, high resolution, crisp typography, minimal clutter",
            f"Headline: {item.title}",
            f"Insert date label {label} ({'daily summary' if daily else 'weekly summary'})",
            "Readable font weight, prioritize clarity over decoration",
        ]
    )
    lessons = item.extra("lessons", []) or item.extra("highlights", [])
    return _join([base, lessons and f"Key bullets: {' / '.join(lessons[:5])}", locale_directive(ctx.locale)])


PROMPT_BUILDERS = {
    "lp": lp_section_prompt,
    "slides": slide_prompt,
    "manga": manga_panel_prompt,
    "thumbnail": thumbnail_prompt,
    "digest": digest_prompt,
}


def build_prompt(item: PlanItem, ctx: PromptContext) -> str:
    builder = PROMPT_BUILDERS.get(ctx.plan.domain, thumbnail_prompt)
    return finalize_prompt(builder(item, ctx), ctx.references, ctx.locale)


def finalize_prompt(prompt: str, references: References, locale: str) -> str:
    """Reference-image hints, then the locale directive unless the prompt already carries one."""
    if references.color:
        prompt += " | Use the color palette and color scheme from the color reference image."
    if references.face:
        prompt += " | Use the facial features and style from the face reference image."
    if references.layout:
        prompt += " | Follow the layout and composition structure from the layout reference image."
    if LOCALE_MARKER not in prompt:
        prompt += f" | {locale_directive(locale)}"
    return prompt


def static_references(item: PlanItem, domain: str, references: References) -> list[str]:
    """Per-item references other than the continuity image, most important first."""
    refs: list[str] = []
    if domain == "thumbnail":
        refs.extend(r for r in (references.main, references.color, references.face, references.layout) if r)
    elif domain == "lp":
        refs.extend(r for r in (references.color, references.face) if r)
    elif domain == "slides":
        template = find_layout(SLIDE_TEMPLATES, item.template_id)
        if template is not None:
            refs.append(template.reference_image)
    elif domain == "manga":
        template = find_layout(MANGA_TEMPLATES, item.template_id)
        if template is not None:
            refs.append(template.reference_image)
    return refs
