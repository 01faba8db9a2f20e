from __future__ import annotations

import logging
from dataclasses import dataclass

from PIL import Image

from studio_genai.assembly.render import data_url_to_image, image_to_data_url
from studio_genai.errors import ComposeError

logger = logging.getLogger(__name__)

BACKGROUND = (248, 250, 252)


@dataclass(frozen=True)
class ComposedImage:
    data_url: str
    width: int
    height: int
    heights: tuple[int, ...]


def scaled_heights(sizes: list[tuple[int, int]], target_width: int) -> list[int]:
    out: list[int] = []
    for w, h in sizes:
        w = w if w > 0 else target_width
        out.append(max(1, int(round(h * (target_width / w)))))
    return out


def compose_vertical(images: list[str]) -> ComposedImage:
    """
    Stack the selected images top to bottom.

    The canvas is as wide as the widest input; every image is scaled to that
    width keeping its aspect ratio.
    """
    if not images:
        raise ComposeError("no images to compose", error="Nothing selected")

    decoded: list[Image.Image] = []
    for idx, src in enumerate(images):
        try:
            decoded.append(data_url_to_image(src).convert("RGB"))
        except Exception as exc:
            raise ComposeError(f"image {idx + 1} could not be decoded: {exc}") from exc

    target_width = max(img.size[0] for img in decoded)
    heights = scaled_heights([img.size for img in decoded], target_width)
    total_height = sum(heights)

    try:
        canvas = Image.new("RGB", (target_width, total_height), BACKGROUND)
    except (MemoryError, ValueError) as exc:
        raise ComposeError(f"drawing surface unavailable for {target_width}x{total_height}") from exc

    cursor = 0
    for img, h in zip(decoded, heights):
        if img.size != (target_width, h):
            img = img.resize((target_width, h), Image.Resampling.LANCZOS)
        canvas.paste(img, (0, cursor))
        cursor += h

    logger.info("composed %d images into %dx%d", len(decoded), target_width, total_height)
    return ComposedImage(
        data_url=image_to_data_url(canvas),
        width=target_width,
        height=total_height,
        heights=tuple(heights),
    )
