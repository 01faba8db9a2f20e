import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from studio_genai.digest import (
    DIGEST_LIMIT,
    LifelogClient,
    build_log_digest,
    build_range,
    digest_source,
    log_to_text,
    normalize_logs,
    select_logs,
)
from studio_genai.errors import InputError, UpstreamError

LOGS = [
    {
        "id": "a1",
        "title": "朝会",
        "startedAt": "2024-05-01T09:00:00+09:00",
        "contents": [
            {"type": "heading2", "content": "進捗"},
            {"type": "blockquote", "content": "順調です", "speakerName": "佐藤"},
            {"type": "blockquote", "content": "引用"},
            {"type": "list_item", "content": "次はテスト"},
            {"type": "paragraph", "content": "  "},
        ],
    },
    {"title": "", "createdAt": "2024-05-01T12:00:00+09:00", "markdown": "  # メモ  "},
]


def test_daily_range_defaults_to_yesterday_in_jst():
    # 2024-05-01 16:00 UTC is already 2024-05-02 in JST.
    now = datetime(2024, 5, 1, 16, 0, tzinfo=timezone.utc)
    r = build_range("daily", None, now=now)
    assert (r.start, r.end, r.label, r.days) == ("2024-05-01 00:00:00", "2024-05-01 23:59:59", "2024-05-01", 1)


def test_weekly_range_spans_seven_days():
    r = build_range("weekly", "2024-05-07")
    assert r.start == "2024-05-01 00:00:00"
    assert r.label == "2024-05-01〜2024-05-07"
    assert r.days == 7


def test_log_to_text_renders_blocks():
    text = log_to_text(LOGS[0])
    assert text.splitlines() == [
        "### 朝会",
        "time: 2024-05-01T09:00:00+09:00",
        "## 進捗",
        "- 佐藤: 順調です",
        "> 引用",
        "- 次はテスト",
    ]
    assert log_to_text(LOGS[1]).splitlines()[0] == "### Untitled"


def test_normalize_logs_builds_ids_and_previews():
    first, second = normalize_logs(LOGS)
    assert first["id"] == "a1"
    assert second["id"] == "2024-05-01T12:00:00+09:00-t-1"
    assert second["title"] == "Log 2"
    assert "\n" not in first["preview"]


def test_digest_is_truncated():
    huge = [{"title": "x", "text": "y" * (DIGEST_LIMIT * 2)}]
    digest = build_log_digest(huge, build_range("daily", "2024-05-01"))
    assert digest.startswith("## Lifelogs (2024-05-01 JST)")
    assert len(digest) < DIGEST_LIMIT + 100


def test_select_logs_filters_and_rejects_empty_selection():
    assert select_logs(LOGS, ["a1"]) == [LOGS[0]]
    assert select_logs(LOGS, []) == LOGS
    with pytest.raises(InputError):
        select_logs(LOGS, ["nope"])
    with pytest.raises(InputError):
        select_logs([], None)


def test_digest_source_topics_come_from_titles():
    source = digest_source(LOGS, build_range("daily", "2024-05-01"), "daily")
    assert source.topics == ("朝会", "# メモ")
    assert source.meta["log_count"] == 2


def test_client_sends_range_and_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["key"] = request.headers["X-API-Key"]
        return httpx.Response(200, json={"data": {"lifelogs": LOGS}})

    client = LifelogClient(api_key="lk", endpoint="https://logs.test/v1/lifelogs", transport=httpx.MockTransport(handler))
    logs = asyncio.run(client.fetch(build_range("daily", "2024-05-01")))
    assert logs == LOGS
    assert seen["key"] == "lk"
    assert seen["params"]["start"] == "2024-05-01 00:00:00"
    assert seen["params"]["limit"] == "400"


def test_client_errors():
    with pytest.raises(InputError):
        asyncio.run(LifelogClient(api_key="").fetch(build_range("daily", "2024-05-01")))

    failing = LifelogClient(
        api_key="lk",
        endpoint="https://logs.test/v1/lifelogs",
        transport=httpx.MockTransport(lambda r: httpx.Response(401, text="bad key")),
    )
    with pytest.raises(UpstreamError) as info:
        asyncio.run(failing.fetch(build_range("daily", "2024-05-01")))
    assert info.value.category == "http"
