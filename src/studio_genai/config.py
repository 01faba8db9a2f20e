from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    data_dir: str = "data"
    log_level: str = "INFO"

    # Keys
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    lifelog_api_key: str | None = None

    # Which service plans the briefs: "gemini" or "openai".
    text_provider: str = "gemini"

    # Models
    gemini_text_model: str = "gemini-3-pro-preview"
    gemini_vision_model: str = "gemini-3-pro-preview"
    gemini_image_model: str = "gemini-3-pro-image-preview"
    openai_text_model: str = "gpt-4.1-mini"

    # Upstream endpoints
    nanobanana_endpoint: str = "https://api.nanobanana.ai/v1/generate"
    lifelog_endpoint: str = "https://api.limitless.ai/v1/lifelogs"
    lifelog_timezone: str = "Asia/Tokyo"

    # Rendering
    render_timeout_seconds: float = 60.0
    proxy_timeout_seconds: float = 60.0
    target_locale: str = "Japanese"
    default_image_size: str = "1K"

    history_limit: int = 20


settings = Settings()


@dataclass(frozen=True)
class StudioConfig:
    """
    Per-request configuration handed to the planner and the orchestrator.

    `credential` is the image/text service key for this run. When it is empty the
    pipeline runs in demo mode: fallback plans and placeholder images.
    """

    credential: str | None = None
    domain: str = "lp"
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def has_credential(self) -> bool:
        return bool((self.credential or "").strip())

    def option(self, name: str, default: Any = None) -> Any:
        return self.options.get(name, default)

    @classmethod
    def from_settings(
        cls,
        domain: str,
        credential: str | None = None,
        options: dict[str, Any] | None = None,
        source: Settings | None = None,
    ) -> "StudioConfig":
        source = source or settings
        key = (credential or "").strip() or source.gemini_api_key
        return cls(credential=key or None, domain=domain, options=dict(options or {}))


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
