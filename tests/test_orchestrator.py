import asyncio

from conftest import FakeRenderer, png_data_url
from studio_genai.config import StudioConfig
from studio_genai.errors import TIMEOUT_MESSAGE
from studio_genai.planning.fallbacks import lp_fallback, slides_fallback
from studio_genai.planning.templates import SLIDE_TEMPLATES
from studio_genai.rendering.orchestrator import RenderOrchestrator
from studio_genai.rendering.prompts import References
from studio_genai.runs import Pattern

CONFIG = StudioConfig(credential="key", domain="lp")


def run(coro):
    return asyncio.run(coro)


def collect(orchestrator, plan, pattern, **kwargs):
    async def go():
        return [event async for event in orchestrator.events(plan, pattern, CONFIG, **kwargs)]

    return run(go())


def test_items_render_in_order_with_continuity_chaining():
    plan = lp_fallback("Brand\ndetail", "Japanese")
    renderer = FakeRenderer()
    pattern = run(RenderOrchestrator(renderer).run(plan, Pattern.for_plan(plan, "Pattern 1"), CONFIG))

    assert pattern.status == "done"
    assert [r.status for r in pattern.items] == ["done"] * 5
    assert renderer.calls[0]["references"] == []
    for i in range(1, 5):
        # The previous item's image leads the reference list.
        assert renderer.calls[i]["references"][0] == pattern.items[i - 1].image_url
        assert "continuity with the previous section" in renderer.calls[i]["prompt"]
    assert all(call["aspect_ratio"] == "9:16" for call in renderer.calls)


def test_failure_marks_item_and_keeps_previous_continuity():
    plan = lp_fallback("Brand", "Japanese")
    renderer = FakeRenderer(fail_on=(2,))
    pattern = run(RenderOrchestrator(renderer).run(plan, Pattern.for_plan(plan, "Pattern 1"), CONFIG))

    statuses = [r.status for r in pattern.items]
    assert statuses == ["done", "error", "done", "done", "done"]
    assert pattern.items[1].image_url is None
    assert pattern.items[1].error == "render 2 failed"
    assert renderer.calls[2]["references"][0] == pattern.items[0].image_url
    assert pattern.status == "error"


def test_event_stream_shape():
    plan = lp_fallback("Brand", "Japanese")
    pattern = Pattern.for_plan(plan, "Pattern 1")
    events = collect(RenderOrchestrator(FakeRenderer(fail_on=(5,))), plan, pattern)

    kinds = [e.kind for e in events]
    assert kinds == ["started", "done"] * 4 + ["started", "error", "pattern_finished"]
    assert events[-1].index == 5
    assert events[0].to_dict()["item"]["status"] in ("generating", "done")


def test_timeout_is_reported_as_error():
    plan = slides_fallback("a\nb\nc", SLIDE_TEMPLATES, 3)
    renderer = FakeRenderer(hang_on=(1,))
    orchestrator = RenderOrchestrator(renderer, timeout=0.05)
    pattern = run(orchestrator.run(plan, Pattern.for_plan(plan, "Pattern 1"), CONFIG))

    assert pattern.items[0].status == "error"
    assert pattern.items[0].error == TIMEOUT_MESSAGE
    assert [r.status for r in pattern.items[1:]] == ["done", "done"]


def test_slides_pass_template_previews_as_references():
    plan = slides_fallback("a\nb\nc", SLIDE_TEMPLATES, 3)
    renderer = FakeRenderer()
    run(RenderOrchestrator(renderer).run(plan, Pattern.for_plan(plan, "Pattern 1"), CONFIG))

    assert len(renderer.calls[0]["references"]) == 1
    assert renderer.calls[0]["references"][0].startswith("data:image/png;base64,")
    assert len(renderer.calls[1]["references"]) == 2
    assert "Establish the base palette" in renderer.calls[0]["prompt"]
    assert "previous slide reference image" in renderer.calls[1]["prompt"]
    assert renderer.calls[0]["aspect_ratio"] == "16:9"


def test_demo_mode_renders_placeholders():
    plan = lp_fallback("Brand", "Japanese")
    orchestrator = RenderOrchestrator(None)
    pattern = run(orchestrator.run(plan, Pattern.for_plan(plan, "Pattern 1"), StudioConfig()))

    assert orchestrator.demo
    assert all(r.status == "done" for r in pattern.items)
    assert all(r.degraded_reason == "demo_mode" for r in pattern.items)
    assert pattern.items[0].image_url.startswith("data:image/png;base64,")


def test_locale_directive_and_reference_hints_are_appended():
    plan = lp_fallback("Brand", "Japanese")
    renderer = FakeRenderer()
    refs = References(color=png_data_url(), face=png_data_url(color=(1, 2, 3)))
    run(RenderOrchestrator(renderer).run(plan, Pattern.for_plan(plan, "P"), CONFIG, references=refs))

    prompt = renderer.calls[0]["prompt"]
    assert "must be in Japanese" in prompt
    assert prompt.count("All text content displayed within the generated image must be in") == 1
    assert "color reference image" in prompt
    assert "face reference image" in prompt
    assert renderer.calls[0]["references"] == [refs.color, refs.face]


def test_rerender_uses_preceding_image():
    plan = lp_fallback("Brand", "Japanese")
    renderer = FakeRenderer(fail_on=(3,))
    orchestrator = RenderOrchestrator(renderer)
    pattern = run(orchestrator.run(plan, Pattern.for_plan(plan, "P"), CONFIG))
    assert pattern.items[2].status == "error"

    result = run(orchestrator.rerender_item(plan, pattern, 2, CONFIG))
    assert result.status == "done"
    assert renderer.calls[-1]["references"][0] == pattern.items[1].image_url
    assert pattern.status == "done"


def test_first_item_failure_leaves_next_item_without_continuity():
    plan = lp_fallback("Brand", "Japanese")
    renderer = FakeRenderer(fail_on=(1,))
    pattern = run(RenderOrchestrator(renderer).run(plan, Pattern.for_plan(plan, "P"), CONFIG))

    assert pattern.items[0].status == "error"
    assert pattern.items[1].status == "done"
    assert renderer.calls[1]["references"] == []
    assert "continuity with the previous section" not in renderer.calls[1]["prompt"]
    # Chaining resumes from the first successful image.
    assert renderer.calls[2]["references"][0] == pattern.items[1].image_url


def test_slides_after_failed_first_slide_carry_only_the_template_preview():
    plan = slides_fallback("a\nb\nc", SLIDE_TEMPLATES, 3)
    renderer = FakeRenderer(fail_on=(1,))
    run(RenderOrchestrator(renderer).run(plan, Pattern.for_plan(plan, "P"), CONFIG))

    assert len(renderer.calls[1]["references"]) == 1
    assert "Establish the base palette" in renderer.calls[1]["prompt"]
