from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from studio_genai.assembly.render import decode_data_url
from studio_genai.config import settings
from studio_genai.errors import UpstreamError, classify_transport_error
from studio_genai.providers.base import RenderedImage

logger = logging.getLogger(__name__)

DEFAULT_SIZE = "1080x608"


class NanoBananaProxy:
    """
    Thin client for the hosted NanoBanana endpoint.

    The call is bounded by a fixed timeout; timeout, DNS and TLS failures are
    raised as UpstreamError with a categorized message. The endpoint may answer
    with inline base64, a JSON envelope, or an image URL that is fetched here.
    """

    name = "nanobanana"

    def __init__(
        self,
        api_key: str,
        endpoint: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.endpoint = endpoint or settings.nanobanana_endpoint
        self.timeout = settings.proxy_timeout_seconds if timeout is None else timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def forward(self, prompt: str, reference_image: str | None = None, size: str = DEFAULT_SIZE) -> dict[str, Any]:
        """POST the request upstream and return the upstream JSON (or {"base64": text})."""
        body: dict[str, Any] = {"prompt": prompt, "size": size}
        if reference_image:
            # Strip the data: prefix; upstream expects raw base64.
            body["referenceImage"] = reference_image.split(",", 1)[1] if "," in reference_image else reference_image

        logger.info(
            "sending request to NanoBanana endpoint=%s prompt_length=%d has_reference=%s",
            self.endpoint,
            len(prompt),
            bool(reference_image),
        )
        try:
            async with self._client() as client:
                resp = await client.post(
                    self.endpoint,
                    json=body,
                    headers={"x-api-key": self.api_key, "Content-Type": "application/json"},
                )
        except Exception as exc:
            category, message = classify_transport_error(exc)
            logger.error("NanoBanana request failed (%s): %s", category, exc)
            raise UpstreamError(message, category=category, error="Network error", status_code=500) from exc

        text = resp.text
        if resp.status_code >= 400:
            logger.error("NanoBanana API error: %s %s", resp.status_code, text[:500])
            raise UpstreamError(
                text[:2000],
                category="http",
                error=f"NanoBanana request failed: {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
            )
        try:
            payload = json.loads(text)
        except ValueError:
            return {"base64": text}
        return payload if isinstance(payload, dict) else {"data": payload}

    async def render(
        self,
        prompt: str,
        reference_images: list[str],
        aspect_ratio: str,
        image_size: str,
    ) -> RenderedImage:
        payload = await self.forward(prompt, reference_images[0] if reference_images else None)
        data, mime = await self._resolve_image(payload)
        return RenderedImage(
            data=data,
            mime_type=mime,
            prompt_used=prompt,
            provider=self.name,
            model="nanobanana",
            raw_metadata={"aspect_ratio": aspect_ratio},
        )

    async def _resolve_image(self, payload: dict[str, Any]) -> tuple[bytes, str]:
        for key in ("image", "base64", "data", "imageBase64"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                if value.startswith("http://") or value.startswith("https://"):
                    return await self.fetch(value)
                try:
                    return decode_data_url(value)
                except ValueError:
                    continue
        url = payload.get("url") or payload.get("imageUrl")
        if isinstance(url, str) and url:
            return await self.fetch(url)
        raise UpstreamError("NanoBanana response contained no image", category="empty")

    async def fetch(self, url: str) -> tuple[bytes, str]:
        try:
            async with self._client() as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except Exception as exc:
            category, message = classify_transport_error(exc)
            raise UpstreamError(message, category=category) from exc
        mime = resp.headers.get("content-type", "image/png").split(";")[0].strip() or "image/png"
        return resp.content, mime


