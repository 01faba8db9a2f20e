from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from studio_genai.config import settings

logger = logging.getLogger(__name__)

HISTORY_CATEGORIES = ("thumbnail", "lp", "slides", "manga", "digest")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _safe_key(key: str) -> str:
    # Keys become file names; keep them flat.
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", key).strip(".") or "_"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryKVStore:
    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str) -> Any:
        return json.loads(json.dumps(self._data[key])) if key in self._data else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.loads(json.dumps(value))


class JsonFileKVStore:
    """One JSON document per key under `<data_dir>/kv`."""

    def __init__(self, root_dir: Path | str | None = None) -> None:
        self.root_dir = Path(root_dir or Path(settings.data_dir) / "kv").resolve()
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.root_dir / f"{_safe_key(key)}.json"

    def get(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return None
        return json.loads(path.read_text("utf-8"))

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value, ensure_ascii=False, indent=2), "utf-8")
        tmp.replace(path)


@dataclass
class HistoryEntry:
    category: str
    payload: dict[str, Any]
    outputs: list[Any]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class HistoryStore:
    """
    Bounded newest-first history per category.

    Persistence is best effort: failures are logged and swallowed, and a read
    failure yields an empty list.
    """

    def __init__(self, kv: KeyValueStore, limit: int | None = None) -> None:
        self.kv = kv
        self.limit = settings.history_limit if limit is None else limit

    @staticmethod
    def key(category: str) -> str:
        return f"history-{category}"

    def append(self, category: str, entry: HistoryEntry | dict[str, Any]) -> None:
        record = entry.to_dict() if isinstance(entry, HistoryEntry) else dict(entry)
        try:
            current = self.kv.get(self.key(category)) or []
            if not isinstance(current, list):
                current = []
            self.kv.set(self.key(category), [record, *current][: self.limit])
        except Exception as exc:
            logger.warning("failed to persist %s history: %s", category, exc)

    def list(self, category: str) -> list[dict[str, Any]]:
        try:
            current = self.kv.get(self.key(category)) or []
        except Exception as exc:
            logger.warning("failed to read %s history: %s", category, exc)
            return []
        if not isinstance(current, list):
            return []
        return current[: self.limit]
