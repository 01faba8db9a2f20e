from __future__ import annotations

import io

from studio_genai.assembly.render import render_placeholder
from studio_genai.providers.base import RenderedImage

_RATIO_SIZES = {
    "16:9": (1080, 608),
    "9:16": (608, 1080),
    "3:4": (768, 1024),
    "4:3": (1024, 768),
    "1:1": (1024, 1024),
}


class PlaceholderRenderer:
    """Demo-mode renderer: same prompt in, same picture out. Never calls the network."""

    name = "placeholder"

    async def render(
        self,
        prompt: str,
        reference_images: list[str],
        aspect_ratio: str,
        image_size: str,
    ) -> RenderedImage:
        size = _RATIO_SIZES.get(aspect_ratio or "16:9", _RATIO_SIZES["16:9"])
        img = render_placeholder(prompt, size=size, has_reference=bool(reference_images))
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return RenderedImage(
            data=buf.getvalue(),
            mime_type="image/png",
            prompt_used=prompt,
            provider=self.name,
            model="placeholder",
            raw_metadata={"aspect_ratio": aspect_ratio},
        )
