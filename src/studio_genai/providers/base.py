from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from studio_genai.assembly.render import bytes_to_data_url


@dataclass(frozen=True)
class RenderedImage:
    data: bytes
    mime_type: str
    prompt_used: str
    provider: str
    model: str
    raw_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def data_url(self) -> str:
        return bytes_to_data_url(self.data, self.mime_type)


@dataclass(frozen=True)
class Evaluation:
    score: float
    advice: str


class TextPlanner(Protocol):
    name: str

    async def generate_text(self, prompt: str) -> str: ...


class ImageRenderer(Protocol):
    name: str

    async def render(
        self,
        prompt: str,
        reference_images: list[str],
        aspect_ratio: str,
        image_size: str,
    ) -> RenderedImage: ...


class ImageEvaluator(Protocol):
    name: str

    async def evaluate(self, image_url: str) -> str: ...
