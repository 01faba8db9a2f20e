import asyncio
import base64
import json

import httpx
import pytest

from conftest import png_bytes
from studio_genai.errors import DNS_MESSAGE, TIMEOUT_MESSAGE, UpstreamError
from studio_genai.providers.nanobanana_proxy import NanoBananaProxy


def proxy_with(handler) -> NanoBananaProxy:
    return NanoBananaProxy(api_key="k", endpoint="https://nb.test/generate", transport=httpx.MockTransport(handler))


def test_forward_sends_key_and_strips_data_prefix():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers["x-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"url": "https://cdn.test/a.png"})

    payload = asyncio.run(proxy_with(handler).forward("a cat", "data:image/png;base64,QUJD"))
    assert payload == {"url": "https://cdn.test/a.png"}
    assert seen["key"] == "k"
    assert seen["body"] == {"prompt": "a cat", "size": "1080x608", "referenceImage": "QUJD"}


def test_non_json_body_is_returned_as_base64():
    payload = asyncio.run(proxy_with(lambda r: httpx.Response(200, text="QUJD")).forward("p"))
    assert payload == {"base64": "QUJD"}


def test_upstream_status_is_passed_through():
    def handler(request):
        return httpx.Response(429, text="slow down")

    with pytest.raises(UpstreamError) as info:
        asyncio.run(proxy_with(handler).forward("p"))
    assert info.value.status_code == 429
    assert info.value.message == "slow down"
    assert info.value.error.startswith("NanoBanana request failed: 429")


@pytest.mark.parametrize(
    "exc, message",
    [
        (httpx.ConnectTimeout("timed out"), TIMEOUT_MESSAGE),
        (httpx.ConnectError("getaddrinfo ENOTFOUND nb.test"), DNS_MESSAGE),
    ],
)
def test_network_failures_are_categorized(exc, message):
    def handler(request):
        raise exc

    with pytest.raises(UpstreamError) as info:
        asyncio.run(proxy_with(handler).forward("p"))
    assert info.value.status_code == 500
    assert info.value.error == "Network error"
    assert info.value.message == message


def test_render_resolves_inline_and_url_images():
    image = png_bytes()

    def inline(request):
        return httpx.Response(200, json={"image": base64.b64encode(image).decode()})

    rendered = asyncio.run(proxy_with(inline).render("p", [], "16:9", "1K"))
    assert rendered.data == image

    def by_url(request):
        if request.url.host == "cdn.test":
            return httpx.Response(200, content=image, headers={"content-type": "image/png"})
        return httpx.Response(200, json={"imageUrl": "https://cdn.test/x.png"})

    rendered = asyncio.run(proxy_with(by_url).render("p", [], "16:9", "1K"))
    assert rendered.data == image
    assert rendered.mime_type == "image/png"


def test_render_without_image_raises_empty():
    with pytest.raises(UpstreamError) as info:
        asyncio.run(proxy_with(lambda r: httpx.Response(200, json={"status": "queued"})).render("p", [], "16:9", "1K"))
    assert info.value.category == "empty"
