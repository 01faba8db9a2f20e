from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from studio_genai.planning.instructions import locale_directive
from studio_genai.planning.templates import LayoutTemplate, ThumbnailTemplate
from studio_genai.plans import Plan, PlanItem

LP_BASE_PROMPT = (
    "High fidelity landing page section mockup, layered cards, neumorphic shadows, glassmorphic highlights, "
    "premium typography, 9:16 vertical canvas, cinematic gradient background, responsive web UI"
)

LP_PALETTE = ("#0EA5E9", "#F97316", "#0F172A", "#FDE68A")

MANGA_PHASES = ("intro", "rise", "fall", "climax", "resolution")

DEFAULT_MANGA_TEMPLATE_IDS = ("hero-single", "duo-contrast", "quad-progress", "dialogue-focus", "background-mood")


@dataclass(frozen=True)
class ThumbnailRequest:
    template: ThumbnailTemplate
    text: str
    vibe: str = "おまかせ"
    count: int = 4
    has_reference: bool = False
    has_color_reference: bool = False
    has_face_reference: bool = False
    has_layout_reference: bool = False

    def reference_notes(self) -> list[str]:
        notes: list[str] = []
        if self.has_reference:
            notes.append("Main reference image provided")
        if self.has_color_reference:
            notes.append("Color reference image provided")
        if self.has_face_reference:
            notes.append("Face reference image provided")
        if self.has_layout_reference:
            notes.append("Layout reference image provided")
        return notes


@dataclass(frozen=True)
class DigestSource:
    """Digest input: rendered log text plus the topics used by the local fallback."""

    label: str
    mode: str
    digest: str
    topics: tuple[str, ...] = ()
    meta: dict[str, Any] = field(default_factory=dict)


def brief_lines(text: str) -> list[str]:
    return [ln.strip() for ln in re.split(r"\n+", text or "") if ln.strip()]


def lp_fallback(brief: str, locale: str) -> Plan:
    lines = brief_lines(brief)
    headline = lines[0] if lines else "新しいプロダクト"
    detail = " ".join(lines[1:])[:140] or headline
    directive = locale_directive(locale)

    def section(
        sid: str, title: str, goal: str, visual: str, focus: str, copy: str, cta: str | None = None
    ) -> PlanItem:
        return PlanItem(
            id=sid,
            template_id="lp-section",
            title=title,
            body=(copy,),
            cta=cta,
            prompt=f"{LP_BASE_PROMPT} | {focus} | {directive}",
            extras={"goal": goal, "visual_style": visual, "copy": copy},
        )

    items = (
        section(
            "hero",
            "ヒーローセクション",
            "ファーストビューで価値とCTAを明確に伝える",
            "Floating device mockups, strong hero typography, gradient sky, subtle grid, top navigation",
            f"HERO layout for {headline} | show oversized headline text, CTA pill buttons, product screenshot frames, ambient light",
            headline,
            "今すぐ始める",
        ),
        section(
            "problem",
            "課題提起",
            "ターゲットが抱える課題・痛みを整理し共感を得る",
            "Split cards highlighting pain points, muted background, highlighted warning tags",
            f"PROBLEM section for {headline} | stack cards describing pains, use contrasting warning colors, include caption icons",
            detail,
        ),
        section(
            "solution",
            "ソリューション & 価値訴求",
            "サービスの仕組みとベネフィットを段階的に説明する",
            "Step-by-step flow with arrows, glowing highlight behind main panel, clean white cards",
            f"SOLUTION section for {headline} | illustrate 3-step workflow with arrows, include UI overlays and benefit callouts",
            "3ステップで成果を実現",
        ),
        section(
            "proof",
            "証拠 / 社会的証明",
            "導入実績や声を示し信頼を強化する",
            "Testimonial cards, avatar chips, rating stars, press logos, soft shadows",
            f"SOCIAL PROOF section for {headline} | grid of testimonials, avatars, 5-star badges, featured logos",
            "導入企業・ユーザーの声",
        ),
        section(
            "cta",
            "クローズ / CTA",
            "最後の後押しとコンバージョン行動を促す",
            "Bold centered CTA card, contrasting gradient background, floating sparkles",
            f"CTA section for {headline} | centered big CTA card, countdown badge, supportive text, background gradient",
            "今すぐ無料で試す",
            "無料で試す",
        ),
    )
    return Plan(
        domain="lp",
        title=f"{headline} LP",
        theme=f"{headline} LP",
        tone="信頼感があり前向きなトーン",
        palette=LP_PALETTE,
        items=items,
    )


def clamp_slide_count(target: int | None) -> int:
    return min(max(target or 4, 3), 10)


def slides_fallback(outline: str, templates: tuple[LayoutTemplate, ...] | list[LayoutTemplate], target_slides: int = 6) -> Plan:
    """Chunk the outline's sentences evenly across a clamped number of slides."""
    count = clamp_slide_count(target_slides)
    sentences = [s.strip() for s in re.split(r"\n+|。", outline or "") if s.strip()]
    chunk_size = max(1, -(-len(sentences) // count))

    items: list[PlanItem] = []
    for i in range(count):
        chunk = sentences[i * chunk_size : (i + 1) * chunk_size]
        template = templates[i] if i < len(templates) else (templates[-1] if templates else None)
        items.append(
            PlanItem(
                id=f"fallback-{i + 1}",
                template_id=template.id if template else "intro",
                title=chunk[0] if chunk else f"スライド {i + 1}",
                body=tuple(chunk[1:5]),
                tone="落ち着いたトーン",
                cta="次のアクションを明示" if i == count - 1 else None,
                extras={
                    "notes": "ブランドやテーマカラーを決める冒頭スライド" if i == 0 else None,
                    "emphasis": chunk[0] if chunk else None,
                    "carry_over": "最初のスライドで決めた色味・人物・アイコンを次のスライドでも踏襲" if i == 0 else None,
                    "keywords": [],
                },
            )
        )

    title = sentences[0] if sentences else "スライド"
    return Plan(domain="slides", title=title, items=tuple(items))


_MANGA_BEATS = (
    ("intro", "極貧で苦しむ主人公が小さな希望を探す。", "絶望", "「もう後がない…」"),
    ("rise", "ある思想や出会いで光を掴み必死に挑戦を始める。", "希望", "「これが突破口になるかもしれない！」"),
    ("climax", "一度成功し、世界が一変するが慢心や外部要因で崩れ始める。", "高揚", "「やっとここまで来た…！」"),
    ("fall", "大きな挫折。仲間も去り、孤独に沈む。", "絶望", "「全部失ったのか…？」"),
    ("resolution", "傷を抱えたままもう一度立ち上がり、自分らしい成功を掴む。", "再起", "「次は嘘のない自分で勝つ」"),
)


def manga_fallback(brief: str, templates: tuple[LayoutTemplate, ...] | list[LayoutTemplate]) -> Plan:
    lines = brief_lines(brief)
    headline = lines[0] if lines else "逆転ストーリー"
    pool = [t.id for t in templates] or list(DEFAULT_MANGA_TEMPLATE_IDS)

    items = tuple(
        PlanItem(
            id=f"panel-{i + 1}",
            template_id=pool[i % len(pool)],
            title=f"{desc} ({headline})",
            body=(dialogue, desc),
            tone=tone,
            prompt="cinematic shading, emotive close up, consistent character",
            extras={
                "narrative_phase": phase,
                "description": f"{desc} ({headline})",
                "dialogue": dialogue,
                "narration": desc,
                "visual_keywords": ["cinematic shading", "emotive close up", "consistent character"],
            },
        )
        for i, (phase, desc, tone, dialogue) in enumerate(_MANGA_BEATS)
    )
    return Plan(
        domain="manga",
        title=f"{headline}の物語",
        theme="貧困からの逆転劇",
        items=items,
        meta={"protagonist": "貧しさから這い上がる主人公", "style": "劇画風で力強いタッチ"},
    )


def thumbnail_base_prompt(request: ThumbnailRequest, locale: str) -> str:
    notes = request.reference_notes()
    return " | ".join(
        [
            f"Template: {request.template.name}",
            f"Structure: {request.template.structure}",
            f"User text: {request.text}",
            f"Color/Vibe: {request.vibe or 'free'}",
            f"Reference images: {', '.join(notes)}" if notes else "No reference images provided.",
            "add: 8k, high resolution, cinematic light, bold typography, trending on artstation",
            locale_directive(locale),
        ]
    )


def thumbnail_plan(request: ThumbnailRequest, base_prompt: str) -> Plan:
    """Expand one engineered prompt into `count` variation items."""
    title = request.text.strip() or "thumbnail"
    count = max(1, int(request.count or 1))
    items = tuple(
        PlanItem(
            id=f"variation-{i + 1}",
            template_id=str(request.template.id),
            title=title,
            prompt=f"{base_prompt} | focus: {request.template.prompt_focus} | variation {i + 1}",
            extras={"vibe": request.vibe},
        )
        for i in range(count)
    )
    return Plan(domain="thumbnail", title=title, items=items, meta={"base_prompt": base_prompt})


def digest_fallback(source: DigestSource) -> Plan:
    topics = [t.strip() for t in source.topics if t and t.strip()][:6]
    daily = source.mode != "weekly"
    if topics:
        headline = f"{source.label}の{'学びハイライト' if daily else '週次学びハイライト'}"
        lessons = [f"{idx + 1}. {t[:120]}" for idx, t in enumerate(topics)]
        summary = f"{' / '.join(topics[:3])}..."
    else:
        headline = f"{source.label}の{'ログなし' if daily else '週次ログなし'}"
        lessons = ["学習ログが取得できませんでした。"]
        summary = "ライフログが取得できませんでした。"

    image_prompt = " | ".join(
        [
            "Design a Japanese learning infographic card focused on key lessons.",
            f"Date label: {source.label} (JST)",
            f"Highlights: {' / '.join(lessons)}",
            "Style: clean infographic, bold Japanese typography, icons per bullet, blue and white palette "
            "(#3181FC base), soft gradients.",
            "Ensure all on-image text is in Japanese and easy to read.",
        ]
    )
    return digest_plan(
        source,
        headline=headline,
        summary=summary,
        highlights=topics[:4],
        lessons=lessons,
        actions=[],
        keywords=[],
        image_prompt=image_prompt,
    )


def digest_plan(
    source: DigestSource,
    headline: str,
    summary: str,
    highlights: list[str],
    lessons: list[str],
    actions: list[str],
    keywords: list[str],
    image_prompt: str,
) -> Plan:
    item = PlanItem(
        id="digest-card",
        template_id="infographic",
        title=headline,
        body=tuple(lessons),
        prompt=image_prompt,
        extras={
            "summary": summary,
            "highlights": list(highlights),
            "lessons": list(lessons),
            "actions": list(actions),
            "keywords": list(keywords),
            "label": source.label,
            "mode": source.mode,
        },
    )
    return Plan(domain="digest", title=headline, items=(item,), meta=dict(source.meta))
