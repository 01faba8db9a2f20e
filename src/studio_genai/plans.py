from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field, replace
from typing import Any

DOMAINS = ("thumbnail", "lp", "slides", "manga", "digest")


def slugify(value: Any, fallback: str) -> str:
    if value is None:
        return fallback
    slug = re.sub(r"[^a-z0-9]+", "-", str(value).strip().lower()).strip("-")
    return slug or fallback


@dataclass(frozen=True)
class PlanItem:
    """
    One renderable unit: a thumbnail variation, LP section, slide, manga panel or
    digest card. Domain-specific copy (goal, dialogue, carry-over notes, ...) lives
    in `extras` so that the orchestrator can treat every item the same way.
    """

    id: str
    template_id: str
    title: str
    body: tuple[str, ...] = ()
    tone: str | None = None
    cta: str | None = None
    prompt: str = ""
    extras: dict[str, Any] = field(default_factory=dict)

    def extra(self, name: str, default: Any = None) -> Any:
        value = self.extras.get(name, default)
        return default if value in (None, "", [], ()) else value

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["body"] = list(self.body)
        return data


@dataclass(frozen=True)
class Plan:
    domain: str
    title: str
    items: tuple[PlanItem, ...]
    theme: str | None = None
    tone: str | None = None
    palette: tuple[str, ...] = ()
    meta: dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.items)

    def item(self, item_id: str) -> PlanItem | None:
        return next((it for it in self.items if it.id == item_id), None)

    def index_of(self, item_id: str) -> int:
        for idx, it in enumerate(self.items):
            if it.id == item_id:
                return idx
        return -1

    def replace_item(self, item_id: str, **changes: Any) -> "Plan":
        """Plans are immutable: an edit yields a new plan."""
        items = tuple(replace(it, **changes) if it.id == item_id else it for it in self.items)
        return replace(self, items=items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain,
            "title": self.title,
            "theme": self.theme,
            "tone": self.tone,
            "palette": list(self.palette),
            "meta": dict(self.meta),
            "items": [it.to_dict() for it in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Plan":
        items = tuple(
            PlanItem(
                id=str(it["id"]),
                template_id=str(it.get("template_id") or ""),
                title=str(it.get("title") or ""),
                body=tuple(it.get("body") or ()),
                tone=it.get("tone"),
                cta=it.get("cta"),
                prompt=str(it.get("prompt") or ""),
                extras=dict(it.get("extras") or {}),
            )
            for it in data.get("items", [])
        )
        domain = str(data.get("domain") or "lp")
        if domain not in DOMAINS:
            raise ValueError(f"unknown domain {domain!r}")
        return cls(
            domain=domain,
            title=str(data.get("title") or ""),
            items=items,
            theme=data.get("theme"),
            tone=data.get("tone"),
            palette=tuple(data.get("palette") or ()),
            meta=dict(data.get("meta") or {}),
        )
