from __future__ import annotations

from studio_genai.config import Settings, StudioConfig, settings
from studio_genai.providers.base import ImageEvaluator, ImageRenderer, TextPlanner


def text_planner_for(config: StudioConfig, source: Settings | None = None) -> TextPlanner | None:
    """None means demo mode: the planner will use its deterministic fallback."""
    source = source or settings
    if not config.has_credential:
        return None
    if (source.text_provider or "").lower() == "openai":
        if not source.openai_api_key:
            return None
        from studio_genai.providers.openai_provider import OpenAITextProvider

        return OpenAITextProvider(api_key=source.openai_api_key)

    from studio_genai.providers.gemini_provider import GeminiProvider

    return GeminiProvider(api_key=(config.credential or "").strip())


def image_renderer_for(config: StudioConfig) -> ImageRenderer | None:
    if not config.has_credential:
        return None
    if config.option("renderer") == "nanobanana":
        from studio_genai.providers.nanobanana_proxy import NanoBananaProxy

        return NanoBananaProxy(api_key=(config.credential or "").strip())

    from studio_genai.providers.gemini_provider import GeminiProvider

    return GeminiProvider(api_key=(config.credential or "").strip())


def evaluator_for(config: StudioConfig) -> ImageEvaluator | None:
    if not config.has_credential:
        return None
    from studio_genai.providers.gemini_provider import GeminiProvider

    return GeminiProvider(api_key=(config.credential or "").strip())
