from __future__ import annotations

import asyncio
import ssl

import httpx


class StudioError(Exception):
    """Base error. `error` is the short label returned to API callers."""

    status_code = 500
    error = "Studio error"

    def __init__(self, message: str, *, error: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "message": self.message}


class InputError(StudioError):
    status_code = 400
    error = "Invalid request"


class UpstreamError(StudioError):
    """A text/image/log service failed. `category` is one of timeout|dns|tls|network|http|empty."""

    status_code = 502
    error = "Upstream error"

    def __init__(
        self,
        message: str,
        *,
        category: str = "network",
        error: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, error=error, status_code=status_code)
        self.category = category


class ComposeError(StudioError):
    status_code = 422
    error = "Compose failed"


TIMEOUT_MESSAGE = "Request timeout. The API server may be slow or unreachable."
DNS_MESSAGE = "DNS lookup failed. The API endpoint may be incorrect or unreachable."
TLS_MESSAGE = "SSL certificate error. There may be a security issue with the API endpoint."


def classify_transport_error(exc: BaseException) -> tuple[str, str]:
    """
    Map a network-level exception to (category, human message).

    Timeouts win over DNS, DNS over TLS; anything else keeps its own message.
    """
    if isinstance(exc, UpstreamError):
        return exc.category, exc.message
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return "timeout", TIMEOUT_MESSAGE

    text = str(exc) or exc.__class__.__name__
    lowered = text.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return "timeout", TIMEOUT_MESSAGE
    if "enotfound" in lowered or "getaddrinfo" in lowered or "name or service not known" in lowered:
        return "dns", DNS_MESSAGE
    if isinstance(exc, ssl.SSLError) or "certificate" in lowered or "ssl" in lowered:
        return "tls", TLS_MESSAGE
    if isinstance(exc, httpx.HTTPStatusError):
        return "http", text
    return "network", text
