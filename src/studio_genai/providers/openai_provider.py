from __future__ import annotations

from studio_genai.config import settings


class OpenAITextProvider:
    """Alternative planner backend; selected with TEXT_PROVIDER=openai."""

    name = "openai"

    def __init__(self, api_key: str) -> None:
        from openai import AsyncOpenAI  # type: ignore

        self.client = AsyncOpenAI(api_key=api_key)

    async def generate_text(self, prompt: str) -> str:
        resp = await self.client.responses.create(
            model=settings.openai_text_model,
            input=prompt,
        )

        text = ""
        try:
            text = resp.output_text
        except Exception:
            # Fallback: best-effort
            text = str(resp)
        return (text or "").strip()
