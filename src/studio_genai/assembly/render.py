from __future__ import annotations

import base64
import hashlib
import io
import re
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

PLACEHOLDER_COLORS = ["#0EA5E9", "#3181FC", "#111827", "#7C3AED", "#F97316"]

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class Block:
    x: int
    y: int
    width: int
    height: int
    color: tuple[int, int, int, int] = (255, 255, 255, 200)
    radius: int = 14


def image_to_data_url(img: Image.Image, fmt: str = "PNG") -> str:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    mime = "image/png" if fmt.upper() == "PNG" else f"image/{fmt.lower()}"
    return bytes_to_data_url(buf.getvalue(), mime)


def bytes_to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type or 'image/png'};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(value: str) -> tuple[bytes, str]:
    """
    Decode a `data:` URL (or a bare base64 string) into (bytes, mime type).
    Raises ValueError when the payload is not valid base64.
    """
    s = (value or "").strip()
    m = _DATA_URL_RE.match(s)
    if m:
        mime = m.group("mime") or "image/png"
        payload = m.group("data")
        if not m.group("b64"):
            from urllib.parse import unquote_to_bytes

            return unquote_to_bytes(payload), mime
        return base64.b64decode(payload, validate=False), mime
    if "," in s:
        s = s.split(",", 1)[1]
    try:
        return base64.b64decode(s, validate=True), "image/png"
    except Exception as exc:
        raise ValueError("image payload is not base64") from exc


def data_url_to_image(value: str) -> Image.Image:
    data, _ = decode_data_url(value)
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def render_placeholder(
    prompt: str,
    size: tuple[int, int] = (1080, 608),
    has_reference: bool = False,
) -> Image.Image:
    """
    Deterministic stand-in render used when no credential is configured:
    a gradient card whose colors derive from the prompt, with a headline
    snippet and a reference marker.
    """
    digest = hashlib.sha256((prompt or "").encode("utf-8")).digest()
    color = _hex_to_rgb(PLACEHOLDER_COLORS[digest[0] % len(PLACEHOLDER_COLORS)])
    accent = _hex_to_rgb(PLACEHOLDER_COLORS[digest[1] % len(PLACEHOLDER_COLORS)])

    w, h = size
    base = _diagonal_gradient(size, color, accent).convert("RGBA")
    overlay = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    pad = max(12, int(min(w, h) * 0.05))
    _rounded(draw, (pad, pad, w - pad, h - pad), radius=24, fill=(255, 255, 255, 40), outline=(255, 255, 255, 140))

    r = max(24, int(min(w, h) * 0.1))
    cx, cy = w - pad * 2 - r, pad * 2 + r
    draw.ellipse([(cx - r, cy - r), (cx + r, cy + r)], fill=(255, 255, 255, 76), outline=(255, 255, 255, 255), width=4)
    badge_font = _load_font(max(14, int(r * 0.6)))
    bbox = draw.textbbox((0, 0), "NB", font=badge_font)
    draw.text((cx - (bbox[2] - bbox[0]) // 2, cy - (bbox[3] - bbox[1]) // 2), "NB", font=badge_font, fill=(15, 23, 42, 255))

    base = Image.alpha_composite(base, overlay)
    draw = ImageDraw.Draw(base)

    snippet = _drawable((prompt or "").strip().replace("\n", " ")[:26], _load_font(14))
    headline_box = (pad * 2, pad * 3, cx - r - pad, int(h * 0.55))
    font, text, spacing = _fit_text_to_box(
        draw,
        f"{snippet}...",
        headline_box,
        max_font_px=max(18, int(h * 0.085)),
        min_font_px=14,
    )
    _draw_multiline(draw, text, (headline_box[0], headline_box[1]), font=font, fill=(255, 255, 255, 255), spacing=spacing)

    label = f"{'Ref used' if has_reference else 'No reference'} · mock render"
    draw.text((pad * 2, int(h * 0.62)), label, font=_load_font(max(12, int(h * 0.043))), fill=(224, 231, 255, 255))
    return base.convert("RGB")


def render_layout_preview(
    accent_hex: str,
    secondary_hex: str,
    blocks: list[Block],
    label: str,
    size: tuple[int, int],
) -> Image.Image:
    """Schematic wireframe of a template layout, handed to the image model as a layout reference."""
    w, h = size
    base = _diagonal_gradient(size, _hex_to_rgb(accent_hex), _hex_to_rgb(secondary_hex)).convert("RGBA")
    overlay = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    _rounded(draw, (22, 22, w - 22, h - 22), radius=32, fill=(255, 255, 255, 20), outline=(255, 255, 255, 140))
    for b in blocks:
        _rounded(
            draw,
            (b.x, b.y, b.x + b.width, b.y + b.height),
            radius=b.radius,
            fill=b.color,
            outline=(255, 255, 255, 90),
        )
    draw.text((40, 46), label, font=_load_font(24), fill=(15, 23, 42, 235))
    return Image.alpha_composite(base, overlay).convert("RGB")


def _diagonal_gradient(size: tuple[int, int], start: tuple[int, int, int], end: tuple[int, int, int]) -> Image.Image:
    w, h = size
    # Build a small gradient and scale it; per-pixel loops over 1080p are slow.
    small = Image.new("RGB", (64, 64))
    px = small.load()
    for y in range(64):
        for x in range(64):
            t = (x + y) / 126
            px[x, y] = tuple(int(start[i] + (end[i] - start[i]) * t) for i in range(3))
    return small.resize((max(1, w), max(1, h)), Image.Resampling.BILINEAR)


def _rounded(draw: ImageDraw.ImageDraw, box, radius: int, fill, outline=None) -> None:
    # Pillow >= 8 supports rounded_rectangle.
    try:
        draw.rounded_rectangle(box, radius=radius, fill=fill, outline=outline, width=3)
    except Exception:
        draw.rectangle(box, fill=fill, outline=outline)


def _draw_multiline(
    draw: ImageDraw.ImageDraw,
    text: str,
    xy: tuple[int, int],
    font,
    fill,
    spacing: int,
) -> None:
    draw.multiline_text(xy, text, font=font, fill=fill, spacing=spacing)


def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """
    Prefer a TTF font (system or bundled). If we can't find one, fall back to the
    default font so placeholder rendering never crashes.
    """
    candidates: list[str] = [
        "assets/fonts/NotoSansJP-Regular.ttf",
        "assets/fonts/DejaVuSans.ttf",
        "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
        "/System/Library/Fonts/Supplemental/Arial.ttf",
        "/Library/Fonts/Arial.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "C:\\Windows\\Fonts\\arial.ttf",
    ]
    try:
        for c in candidates:
            p = Path(c)
            if p.exists():
                return ImageFont.truetype(str(p), size=size)
    except Exception:
        pass
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        # Pillow < 10.1 has no sized default font.
        return ImageFont.load_default()


def _drawable(text: str, font) -> str:
    # Bitmap fonts only cover latin-1.
    if isinstance(font, ImageFont.FreeTypeFont):
        return text
    return text.encode("latin-1", errors="replace").decode("latin-1")


def _hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    s = hex_color.strip().lstrip("#")
    if len(s) == 3:
        s = "".join([c * 2 for c in s])
    if len(s) != 6:
        return (49, 129, 252)
    try:
        return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))
    except ValueError:
        return (49, 129, 252)


def _fit_text_to_box(
    draw: ImageDraw.ImageDraw,
    text: str,
    box: tuple[int, int, int, int],
    max_font_px: int,
    min_font_px: int,
) -> tuple[ImageFont.ImageFont, str, int]:
    x1, y1, x2, y2 = box
    max_w = max(1, x2 - x1)
    max_h = max(1, y2 - y1)

    max_font_px = max(min_font_px, max_font_px)

    for px in range(max_font_px, min_font_px - 1, -2):
        font = _load_font(px)
        spacing = max(2, int(px * 0.18))
        wrapped = _wrap_to_width(draw, text, font, max_w)
        try:
            bbox = draw.multiline_textbbox((0, 0), wrapped, font=font, spacing=spacing)
            if (bbox[2] - bbox[0]) <= max_w and (bbox[3] - bbox[1]) <= max_h:
                return font, wrapped, spacing
        except Exception:
            return font, wrapped, spacing

    font = _load_font(min_font_px)
    spacing = max(2, int(min_font_px * 0.18))
    return font, _wrap_to_width(draw, text, font, max_w), spacing


def _wrap_to_width(draw: ImageDraw.ImageDraw, text: str, font, max_w: int) -> str:
    # Japanese copy has no spaces, so fall back to per-character wrapping.
    words = [w for w in (text or "").split() if w]
    if len(words) <= 1:
        words = list((text or "").strip())
        joiner = ""
    else:
        joiner = " "
    if not words:
        return ""
    lines: list[str] = []
    cur = words[0]
    for w in words[1:]:
        trial = f"{cur}{joiner}{w}"
        try:
            bbox = draw.textbbox((0, 0), trial, font=font)
            fits = (bbox[2] - bbox[0]) <= max_w
        except Exception:
            fits = len(trial) <= max(10, int(max_w / 12))
        if fits:
            cur = trial
        else:
            lines.append(cur)
            cur = w
    lines.append(cur)
    return "\n".join(lines)
