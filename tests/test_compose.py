import pytest

from conftest import png_data_url
from studio_genai.assembly.compose import compose_vertical, scaled_heights
from studio_genai.assembly.render import data_url_to_image
from studio_genai.errors import ComposeError


def test_scaled_heights_round_to_target_width():
    assert scaled_heights([(100, 50), (50, 50), (300, 101)], 100) == [50, 100, 34]


def test_compose_uses_widest_input_and_stacks_in_order():
    red = png_data_url(size=(100, 50), color=(255, 0, 0))
    blue = png_data_url(size=(50, 50), color=(0, 0, 255))
    composed = compose_vertical([red, blue])

    assert (composed.width, composed.height) == (100, 150)
    assert composed.heights == (50, 100)
    img = data_url_to_image(composed.data_url).convert("RGB")
    assert img.size == (100, 150)
    assert img.getpixel((50, 25)) == (255, 0, 0)
    assert img.getpixel((50, 120)) == (0, 0, 255)


def test_compose_rejects_empty_input():
    with pytest.raises(ComposeError):
        compose_vertical([])


def test_compose_rejects_undecodable_image():
    with pytest.raises(ComposeError) as info:
        compose_vertical([png_data_url(), "data:image/png;base64,bm90IGFuIGltYWdl"])
    assert "image 2" in info.value.message
