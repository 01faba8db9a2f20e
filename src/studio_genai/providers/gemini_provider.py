from __future__ import annotations

import logging
from io import BytesIO
from typing import Any

from PIL import Image

from studio_genai.assembly.render import decode_data_url
from studio_genai.config import settings
from studio_genai.errors import UpstreamError
from studio_genai.providers.base import RenderedImage

logger = logging.getLogger(__name__)

EVALUATION_PROMPT = (
    "Give a click-through prediction score (1-10) and one-sentence improvement advice for this thumbnail."
)


class GeminiProvider:
    """Text planning, image rendering and thumbnail evaluation against the Gemini API."""

    name = "gemini"

    def __init__(self, api_key: str) -> None:
        # Imported lazily so the app can start without the dependency installed.
        from google import genai  # type: ignore

        self._genai = genai
        self.client = genai.Client(api_key=api_key)

    async def generate_text(self, prompt: str) -> str:
        resp = await self.client.aio.models.generate_content(
            model=settings.gemini_text_model,
            contents=prompt,
        )
        return _collect_text(resp)

    async def evaluate(self, image_url: str) -> str:
        contents: list[Any] = [EVALUATION_PROMPT, _open_reference(image_url)]
        resp = await self.client.aio.models.generate_content(
            model=settings.gemini_vision_model,
            contents=contents,
        )
        return _collect_text(resp)

    async def render(
        self,
        prompt: str,
        reference_images: list[str],
        aspect_ratio: str,
        image_size: str,
    ) -> RenderedImage:
        """
        Multimodal image generation: reference images first, then the prompt.
        References that cannot be decoded are skipped.
        """
        from google.genai import types  # type: ignore

        model = settings.gemini_image_model
        contents: list[Any] = []
        for ref in reference_images[:8]:
            try:
                contents.append(_open_reference(ref))
            except Exception:
                logger.debug("skipping undecodable reference image")
                continue
        contents.append(prompt)

        image_config: dict[str, str] = {}
        if aspect_ratio:
            image_config["aspect_ratio"] = aspect_ratio
        if image_size:
            image_config["image_size"] = image_size

        resp = await self.client.aio.models.generate_content(
            model=model,
            contents=contents,
            config=types.GenerateContentConfig(
                response_modalities=["TEXT", "IMAGE"],
                image_config=types.ImageConfig(**image_config) if image_config else None,
            ),
        )

        extracted = _extract_images_from_generate_content(resp)
        if not extracted:
            text = _collect_text(resp)
            if text:
                logger.warning("Gemini image generation returned text only: %s", text[:200])
            raise UpstreamError("No image data found in response", category="empty")

        data, mime = extracted[0]
        return RenderedImage(
            data=data,
            mime_type=mime,
            prompt_used=prompt,
            provider=self.name,
            model=model,
            raw_metadata={"aspect_ratio": aspect_ratio, "image_size": image_size, "references": len(contents) - 1},
        )


def _open_reference(value: str) -> Image.Image:
    data, _ = decode_data_url(value)
    return Image.open(BytesIO(data))


def _collect_text(resp: Any) -> str:
    # Join every text part of every candidate; planners may split JSON across parts.
    chunks: list[str] = []
    for cand in getattr(resp, "candidates", []) or []:
        content = getattr(cand, "content", None)
        for part in getattr(content, "parts", None) or []:
            text = getattr(part, "text", None)
            if text:
                chunks.append(text)
    if chunks:
        return "\n".join(chunks)
    return getattr(resp, "text", "") or ""


def _extract_images_from_generate_content(resp: Any) -> list[tuple[bytes, str]]:
    out: list[tuple[bytes, str]] = []
    for cand in getattr(resp, "candidates", []) or []:
        content = getattr(cand, "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            inline = getattr(part, "inline_data", None)
            if not inline:
                continue
            mime = getattr(inline, "mime_type", None) or "image/png"
            data = getattr(inline, "data", None)
            if not data:
                continue
            if not mime.startswith("image/"):
                continue
            out.append((data, mime))
    return out
