from __future__ import annotations

import asyncio
import io

import pytest
from PIL import Image

from studio_genai.assembly.render import image_to_data_url
from studio_genai.config import settings
from studio_genai.errors import UpstreamError
from studio_genai.providers.base import RenderedImage


def png_bytes(size=(8, 4), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def png_data_url(size=(8, 4), color=(200, 30, 30)) -> str:
    return image_to_data_url(Image.new("RGB", size, color))


class FakePlanner:
    name = "fake"

    def __init__(self, reply: str = "", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    async def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeRenderer:
    """Records every call; fails on the listed call numbers (1-based)."""

    name = "fake"

    def __init__(self, fail_on: tuple[int, ...] = (), hang_on: tuple[int, ...] = ()) -> None:
        self.fail_on = fail_on
        self.hang_on = hang_on
        self.calls: list[dict] = []

    async def render(self, prompt, reference_images, aspect_ratio, image_size) -> RenderedImage:
        self.calls.append(
            {"prompt": prompt, "references": list(reference_images), "aspect_ratio": aspect_ratio, "image_size": image_size}
        )
        n = len(self.calls)
        if n in self.hang_on:
            await asyncio.sleep(5)
        if n in self.fail_on:
            raise UpstreamError(f"render {n} failed", category="http")
        return RenderedImage(
            data=png_bytes(color=(n * 20 % 255, 10, 10)),
            mime_type="image/png",
            prompt_used=prompt,
            provider=self.name,
            model="fake",
        )


@pytest.fixture(autouse=True)
def _no_ambient_keys(monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", None)
    monkeypatch.setattr(settings, "openai_api_key", None)
    monkeypatch.setattr(settings, "text_provider", "gemini")
