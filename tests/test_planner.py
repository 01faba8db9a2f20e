import asyncio
import json

import httpx

from conftest import FakePlanner
from studio_genai.config import StudioConfig
from studio_genai.planning.fallbacks import DigestSource, ThumbnailRequest, slides_fallback
from studio_genai.planning.planner import PlanGenerator
from studio_genai.planning.templates import MANGA_TEMPLATES, SLIDE_TEMPLATES, thumbnail_template
from studio_genai.results import Fallback, Ok

CONFIG = StudioConfig(credential="key", domain="lp")
BRIEF = "AIブートキャンプ\n社会人向けの短期集中講座\n3ヶ月で実務レベルへ"


def run(coro):
    return asyncio.run(coro)


def test_lp_demo_mode_uses_five_section_fallback():
    outcome = run(PlanGenerator().plan_lp(BRIEF, StudioConfig()))
    assert isinstance(outcome, Fallback)
    assert outcome.reason == "demo_mode"
    plan = outcome.value
    assert [it.id for it in plan.items] == ["hero", "problem", "solution", "proof", "cta"]
    assert plan.title == "AIブートキャンプ LP"
    assert plan.items[0].extra("copy") == "AIブートキャンプ"
    assert plan.items[1].extra("copy") == "社会人向けの短期集中講座 3ヶ月で実務レベルへ"
    assert plan.palette == ("#0EA5E9", "#F97316", "#0F172A", "#FDE68A")


def test_lp_fallback_headline_defaults_for_empty_brief():
    plan = run(PlanGenerator().plan_lp("", StudioConfig())).value
    assert plan.title == "新しいプロダクト LP"


def test_lp_normalizes_loose_output_against_fallback():
    reply = "```json\n" + json.dumps(
        {
            "theme": "未来的",
            "palette": ["#111", "#222", "#333", "#444", "#555", "#666"],
            "sections": [
                {"id": "Hero Top", "title": "ヒーロー", "purpose": "掴み", "visualPrompt": "big hero"},
                {"slug": "pain", "headline": "悩み"},
            ],
        },
        ensure_ascii=False,
    ) + "\n```"
    outcome = run(PlanGenerator(FakePlanner(reply)).plan_lp(BRIEF, CONFIG))
    assert isinstance(outcome, Ok)
    plan = outcome.value
    assert plan.theme == "未来的"
    assert plan.tone == "信頼感があり前向きなトーン"
    assert len(plan.palette) == 5
    hero, pain = plan.items
    assert hero.id == "hero-top"
    assert hero.extra("goal") == "掴み"
    assert hero.prompt == "big hero"
    assert pain.id == "pain"
    assert pain.extra("copy") == "悩み"
    # Missing fields come from the fallback section at the same index.
    assert pain.title == "課題提起"


def test_lp_parse_failure_falls_back():
    outcome = run(PlanGenerator(FakePlanner("I cannot help with that.")).plan_lp(BRIEF, CONFIG))
    assert isinstance(outcome, Fallback)
    assert outcome.reason == "parse_error"
    assert len(outcome.value.items) == 5


def test_upstream_failure_and_empty_reply_are_distinguished():
    failing = FakePlanner(error=httpx.ConnectTimeout("timed out"))
    outcome = run(PlanGenerator(failing).plan_lp(BRIEF, CONFIG))
    assert isinstance(outcome, Fallback) and outcome.reason == "upstream_error"
    assert "timeout" in (outcome.detail or "").lower()

    empty = run(PlanGenerator(FakePlanner("   ")).plan_lp(BRIEF, CONFIG))
    assert isinstance(empty, Fallback) and empty.reason == "empty_response"


def test_slides_fallback_clamps_and_chunks():
    plan = slides_fallback("一。二。三。四。五。六。七", SLIDE_TEMPLATES, target_slides=1)
    assert len(plan.items) == 3
    assert [it.title for it in plan.items] == ["一", "四", "七"]
    assert plan.items[0].body == ("二", "三")
    assert plan.items[0].extra("carry_over")
    assert plan.items[-1].cta == "次のアクションを明示"
    assert plan.items[1].cta is None

    many = slides_fallback("a\nb", SLIDE_TEMPLATES, target_slides=40)
    assert len(many.items) == 10
    assert many.items[5].title == "スライド 6"


def test_slides_three_line_outline_in_demo_mode():
    outcome = run(PlanGenerator().plan_slides("導入\n課題\nまとめ", StudioConfig(), target_slides=3))
    assert outcome.reason == "demo_mode"
    assert [it.title for it in outcome.value.items] == ["導入", "課題", "まとめ"]


def test_slides_normalization_replaces_unknown_templates():
    reply = json.dumps(
        [
            {"id": 1, "templateId": "quad-grid", "title": "A", "body": "x、y", "keywords": "k1, k2"},
            {"layout": "nope", "title": "B", "body": ["p", "q"]},
        ]
    )
    outcome = run(PlanGenerator(FakePlanner(reply)).plan_slides("outline", CONFIG))
    assert isinstance(outcome, Ok)
    first, second = outcome.value.items
    assert first.id == "1"
    assert first.template_id == "quad-grid"
    assert first.body == ("x", "y")
    assert first.extra("keywords") == ["k1", "k2"]
    assert second.id == "slide-2"
    assert second.template_id == SLIDE_TEMPLATES[0].id


def test_manga_fallback_and_panel_defaults():
    outcome = run(PlanGenerator().plan_manga("借金まみれの青年", StudioConfig(), MANGA_TEMPLATES, "劇画"))
    plan = outcome.value
    assert plan.title == "借金まみれの青年の物語"
    assert [it.extra("narrative_phase") for it in plan.items] == ["intro", "rise", "climax", "fall", "resolution"]
    assert plan.meta["art_style"] == "劇画"

    reply = json.dumps({"title": "逆転", "panels": [{"narrativePhase": "bogus", "templateId": "missing"}]})
    ok = run(PlanGenerator(FakePlanner(reply)).plan_manga("brief", CONFIG, MANGA_TEMPLATES))
    panel = ok.value.items[0]
    assert panel.id == "panel-1"
    assert panel.template_id == MANGA_TEMPLATES[0].id
    assert panel.extra("narrative_phase") == "intro"
    assert panel.extra("dialogue") == "「ここから逆転する！」"
    assert panel.extra("visual_keywords") == ["dramatic lighting", "inked style", "high contrast"]
    assert ok.value.meta["protagonist"] == "貧しさから這い上がる主人公"


def test_thumbnail_variations_derive_from_one_prompt():
    request = ThumbnailRequest(template=thumbnail_template(4), text="iPhone vs Android", count=3, has_face_reference=True)
    demo = run(PlanGenerator().plan_thumbnails(request, StudioConfig()))
    assert demo.reason == "demo_mode"
    assert len(demo.value.items) == 3
    assert "Face reference image provided" in demo.value.items[0].prompt
    assert demo.value.items[2].prompt.endswith("variation 3")

    engineered = run(PlanGenerator(FakePlanner("  crisp split screen  ")).plan_thumbnails(request, CONFIG))
    assert isinstance(engineered, Ok)
    assert engineered.value.items[0].prompt.startswith("crisp split screen | focus: ")


def test_digest_fallback_and_normalization():
    source = DigestSource(label="2024-05-01", mode="daily", digest="## logs", topics=("朝会", "設計レビュー"))
    demo = run(PlanGenerator().plan_digest(source, StudioConfig()))
    card = demo.value.items[0]
    assert card.title == "2024-05-01の学びハイライト"
    assert card.extra("lessons") == ["1. 朝会", "2. 設計レビュー"]

    reply = json.dumps({"headline": "学び", "lessons": ["A", "", "B"]})
    ok = run(PlanGenerator(FakePlanner(reply)).plan_digest(source, CONFIG))
    card = ok.value.items[0]
    assert card.title == "学び"
    assert card.extra("lessons") == ["A", "B"]
    # No image prompt in the reply: keep the locally built one.
    assert card.prompt.startswith("Design a Japanese learning infographic")


def test_empty_digest_uses_no_logs_headline():
    source = DigestSource(label="2024-04-25〜2024-05-01", mode="weekly", digest="")
    card = run(PlanGenerator().plan_digest(source, StudioConfig())).value.items[0]
    assert card.title == "2024-04-25〜2024-05-01の週次ログなし"


def test_deeply_nested_reply_is_a_parse_error():
    reply = "[" * 100000 + "]" * 100000
    outcome = run(PlanGenerator(FakePlanner(reply)).plan_slides("a\nb\nc", CONFIG, 3))
    assert isinstance(outcome, Fallback)
    assert outcome.reason == "parse_error"
    assert len(outcome.value.items) == 3


def test_repeated_panel_ids_stay_unique():
    reply = json.dumps({"panels": [{"id": "a"}, {"id": "a"}, {"id": "a-2"}]})
    plan = run(PlanGenerator(FakePlanner(reply)).plan_manga("brief", CONFIG, MANGA_TEMPLATES)).value
    ids = [it.id for it in plan.items]
    assert ids == ["a", "a-3", "a-2"]
    assert len(set(ids)) == len(ids)
