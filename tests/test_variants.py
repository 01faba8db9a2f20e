import asyncio

from conftest import FakeRenderer
from studio_genai.config import StudioConfig
from studio_genai.planning.fallbacks import lp_fallback
from studio_genai.rendering.orchestrator import RenderOrchestrator
from studio_genai.variants import VariantManager

CONFIG = StudioConfig(credential="key", domain="lp")


def make_manager(fail_on=()):
    plan = lp_fallback("Brand", "Japanese")
    manager = VariantManager(plan)
    asyncio.run(manager.generate(2, RenderOrchestrator(FakeRenderer(fail_on=fail_on)), CONFIG))
    return manager


def test_generate_labels_patterns_and_fills_selection_from_first():
    manager = make_manager()
    first, second = manager.patterns
    assert [first.label, second.label] == ["Pattern 1", "Pattern 2"]
    assert set(manager.selection.values()) == {first.id}
    assert manager.new_patterns(1)[0].label == "Pattern 3"


def test_selection_defaults_fill_gaps_from_later_patterns():
    # Call 2 is the second item of the first pattern.
    manager = make_manager(fail_on=(2,))
    first, second = manager.patterns
    assert manager.selection["problem"] == second.id
    assert manager.selection["hero"] == first.id


def test_adopt_pattern_is_idempotent_and_does_not_touch_patterns():
    manager = make_manager()
    second = manager.patterns[1]
    before = [p.to_dict() for p in manager.patterns]

    assert manager.adopt_pattern(second.id) == 5
    snapshot = dict(manager.selection)
    assert manager.adopt_pattern(second.id) == 5
    assert manager.selection == snapshot
    assert set(snapshot.values()) == {second.id}
    assert [p.to_dict() for p in manager.patterns] == before


def test_adopt_item_requires_a_rendered_image():
    manager = make_manager(fail_on=(7,))
    first, second = manager.patterns
    # Call 7 is the second item of the second pattern.
    assert manager.adopt_item("problem", second.id) is False
    assert manager.selection["problem"] == first.id
    assert manager.adopt_item("hero", second.id) is True
    assert manager.selection["hero"] == second.id
    assert manager.adopt_item("hero", "missing") is False


def test_selected_images_follow_plan_order():
    manager = make_manager()
    second = manager.patterns[1]
    manager.adopt_item("proof", second.id)
    images = manager.selected_images()
    assert len(images) == 5
    assert images[3] == second.result("proof").image_url
    assert images[0] == manager.patterns[0].result("hero").image_url


def test_selected_results_use_pending_placeholder_when_nothing_rendered():
    manager = make_manager(fail_on=(1, 6))
    results = manager.selected_results()
    assert results[0].status == "pending"
    assert results[0].image_url is None
    assert manager.selected_images() == [r.image_url for r in results[1:]]
