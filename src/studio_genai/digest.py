from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

import httpx

from studio_genai.config import settings
from studio_genai.errors import InputError, UpstreamError, classify_transport_error
from studio_genai.planning.fallbacks import DigestSource

logger = logging.getLogger(__name__)

DAILY = "daily"
WEEKLY = "weekly"
DIGEST_LIMIT = 20000
PREVIEW_LIMIT = 420


@dataclass(frozen=True)
class TimeRange:
    start: str
    end: str
    label: str
    days: int

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "label": self.label, "days": self.days}


def build_range(mode: str = DAILY, target: str | None = None, now: datetime | None = None) -> TimeRange:
    """Daily or weekly range ending on `target` (YYYY-MM-DD, JST); defaults to yesterday."""
    tz = ZoneInfo(settings.lifelog_timezone)
    end_day: date | None = None
    if target:
        try:
            end_day = date.fromisoformat(target)
        except ValueError:
            end_day = None
    if end_day is None:
        end_day = (now or datetime.now(tz)).astimezone(tz).date() - timedelta(days=1)

    weekly = mode == WEEKLY
    start_day = end_day - timedelta(days=6 if weekly else 0)
    start_label, end_label = start_day.isoformat(), end_day.isoformat()
    return TimeRange(
        start=f"{start_label} 00:00:00",
        end=f"{end_label} 23:59:59",
        label=f"{start_label}〜{end_label}" if weekly else end_label,
        days=7 if weekly else 1,
    )


def render_block(block: dict[str, Any] | None) -> str:
    if not block:
        return ""
    content = (block.get("content") or "").strip()
    if not content:
        return ""
    kind = block.get("type")
    if kind == "heading1":
        return f"# {content}"
    if kind == "heading2":
        return f"## {content}"
    if kind == "heading3":
        return f"### {content}"
    if kind == "blockquote":
        speaker = block.get("speakerName")
        return f"- {speaker}: {content}" if speaker else f"> {content}"
    if kind == "list_item":
        return f"- {content}"
    return content


def log_to_text(log: dict[str, Any]) -> str:
    parts = [
        f"### {(log.get('title') or '').strip() or 'Untitled'}",
        f"time: {log.get('startedAt') or log.get('createdAt') or 'Unknown time'}",
    ]
    if log.get("markdown"):
        parts.append(log["markdown"].strip())
    elif log.get("contents"):
        parts.append("\n".join(filter(None, (render_block(b) for b in log["contents"]))))
    elif log.get("text"):
        parts.append(log["text"].strip())
    return "\n".join(p for p in parts if p)


def normalize_logs(logs: list[dict[str, Any]]) -> list[dict[str, str]]:
    out = []
    for idx, log in enumerate(logs):
        when = log.get("startedAt") or log.get("createdAt")
        log_id = log.get("id") or f"{when or 'log'}-{(log.get('title') or 't')[:24]}-{idx}"
        out.append(
            {
                "id": str(log_id),
                "title": (log.get("title") or "").strip() or f"Log {idx + 1}",
                "time": when or "Unknown time",
                "preview": " ".join(log_to_text(log).split())[:PREVIEW_LIMIT],
            }
        )
    return out


def build_log_digest(logs: list[dict[str, Any]], time_range: TimeRange) -> str:
    rendered = [t for t in (log_to_text(log) for log in logs) if t]
    digest = "\n\n---\n\n".join(rendered)[:DIGEST_LIMIT]
    return f"## Lifelogs ({time_range.label} JST)\n\n{digest}"


def select_logs(logs: list[dict[str, Any]], selected_ids: list[str] | None) -> list[dict[str, Any]]:
    """Keep only the selected logs (all when nothing is selected); an empty result is an input error."""
    if selected_ids:
        wanted = {str(s) for s in selected_ids}
        normalized = normalize_logs(logs)
        logs = [log for log, norm in zip(logs, normalized) if norm["id"] in wanted]
    if not logs:
        raise InputError("No logs were selected. Pick at least one log and try again.", error="No logs selected")
    return logs


def digest_source(logs: list[dict[str, Any]], time_range: TimeRange, mode: str) -> DigestSource:
    topics = tuple(
        t for t in ((log.get("title") or log.get("text") or log.get("markdown") or "").strip() for log in logs) if t
    )
    return DigestSource(
        label=time_range.label,
        mode=mode,
        digest=build_log_digest(logs, time_range),
        topics=topics,
        meta={"range": time_range.to_dict(), "log_count": len(logs)},
    )


class LifelogClient:
    """Fetches lifelogs for a JST range from the lifelog API."""

    def __init__(
        self,
        api_key: str | None = None,
        endpoint: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.lifelog_api_key
        self.endpoint = endpoint or settings.lifelog_endpoint
        self.timeout = settings.proxy_timeout_seconds if timeout is None else timeout
        self._transport = transport

    async def fetch(self, time_range: TimeRange) -> list[dict[str, Any]]:
        if not self.api_key:
            raise InputError(
                "LIFELOG_API_KEY is not set. Add it to your .env to enable log fetching.",
                error="Lifelog key missing",
            )
        params = {
            "start": time_range.start,
            "end": time_range.end,
            "timezone": settings.lifelog_timezone,
            "includeMarkdown": "true",
            "includeHeadings": "false",
            "includeContents": "true",
            "limit": "400",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(
                    self.endpoint,
                    params=params,
                    headers={"X-API-Key": self.api_key, "Accept": "application/json"},
                )
        except Exception as exc:
            category, message = classify_transport_error(exc)
            raise UpstreamError(message, category=category, error="Lifelog request failed") from exc

        if resp.status_code >= 400:
            raise UpstreamError(
                resp.text[:500],
                category="http",
                error=f"Lifelog request failed: {resp.status_code} {resp.reason_phrase}",
            )
        try:
            payload = resp.json()
        except json.JSONDecodeError as exc:
            logger.warning("failed to parse lifelog response: %s", exc)
            return []
        if not isinstance(payload, dict):
            return []
        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        logs = data.get("lifelogs") or payload.get("lifelogs") or []
        return [log for log in logs if isinstance(log, dict)] if isinstance(logs, list) else []
