import asyncio
import ssl

import httpx
import pytest

from studio_genai.errors import (
    DNS_MESSAGE,
    TIMEOUT_MESSAGE,
    TLS_MESSAGE,
    InputError,
    UpstreamError,
    classify_transport_error,
)
from studio_genai.results import Fallback, Ok, describe


@pytest.mark.parametrize(
    "exc, category, message",
    [
        (asyncio.TimeoutError(), "timeout", TIMEOUT_MESSAGE),
        (httpx.ReadTimeout("read timed out"), "timeout", TIMEOUT_MESSAGE),
        (httpx.ConnectError("getaddrinfo ENOTFOUND api.example"), "dns", DNS_MESSAGE),
        (ssl.SSLError("bad handshake"), "tls", TLS_MESSAGE),
        (httpx.ConnectError("certificate verify failed"), "tls", TLS_MESSAGE),
        (ConnectionResetError("connection reset by peer"), "network", "connection reset by peer"),
    ],
)
def test_classify_transport_error(exc, category, message):
    assert classify_transport_error(exc) == (category, message)


def test_upstream_error_keeps_its_category():
    exc = UpstreamError("nothing came back", category="empty")
    assert classify_transport_error(exc) == ("empty", "nothing came back")


def test_error_payloads():
    assert InputError("brief is required").to_dict() == {"error": "Invalid request", "message": "brief is required"}
    assert InputError("x").status_code == 400
    assert UpstreamError("x", status_code=503).status_code == 503


def test_describe_outcomes():
    assert describe(Ok(1)) == {"status": "ok", "reason": None, "detail": None}
    assert describe(Fallback(1, "demo_mode")) == {"status": "fallback", "reason": "demo_mode", "detail": None}
    assert Fallback(1, "parse_error").degraded
