from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from studio_genai.plans import Plan, PlanItem

PENDING = "pending"
GENERATING = "generating"
DONE = "done"
ERROR = "error"


@dataclass
class ItemResult:
    """
    Mutable render state of one plan item inside a pattern.

    Only the mark_* methods change status, which keeps `image_url` set exactly
    when the item is done.
    """

    item: PlanItem
    status: str = PENDING
    image_url: str | None = None
    prompt_used: str = ""
    error: str | None = None
    degraded_reason: str | None = None

    @property
    def id(self) -> str:
        return self.item.id

    def mark_generating(self, prompt: str) -> None:
        self.status = GENERATING
        self.prompt_used = prompt
        self.image_url = None
        self.error = None
        self.degraded_reason = None

    def mark_done(self, image_url: str, degraded_reason: str | None = None) -> None:
        if not image_url:
            raise ValueError("a done item needs an image")
        self.status = DONE
        self.image_url = image_url
        self.error = None
        self.degraded_reason = degraded_reason

    def mark_error(self, message: str) -> None:
        self.status = ERROR
        self.image_url = None
        self.error = message or "Image generation failed."

    def reset(self) -> None:
        self.status = PENDING
        self.image_url = None
        self.prompt_used = ""
        self.error = None
        self.degraded_reason = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.item.id,
            "item": self.item.to_dict(),
            "status": self.status,
            "image_url": self.image_url,
            "prompt_used": self.prompt_used,
            "error": self.error,
            "degraded_reason": self.degraded_reason,
        }


@dataclass
class Pattern:
    """One full pass over a plan."""

    id: str
    label: str
    items: list[ItemResult]
    created_at: float = field(default_factory=time.time)
    started: bool = False
    finished: bool = False

    @classmethod
    def for_plan(cls, plan: Plan, label: str, pattern_id: str | None = None) -> "Pattern":
        return cls(
            id=pattern_id or uuid.uuid4().hex[:12],
            label=label,
            items=[ItemResult(item=it) for it in plan.items],
        )

    @property
    def status(self) -> str:
        if not self.started:
            return PENDING
        if not self.finished:
            return GENERATING
        return ERROR if any(r.status == ERROR for r in self.items) else DONE

    def result(self, item_id: str) -> ItemResult | None:
        return next((r for r in self.items if r.id == item_id), None)

    def done_count(self) -> int:
        return sum(1 for r in self.items if r.status == DONE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "status": self.status,
            "created_at": self.created_at,
            "done": self.done_count(),
            "total": len(self.items),
            "items": [r.to_dict() for r in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], plan: Plan) -> "Pattern":
        """Rebuild a pattern sent back by a client; items follow the plan, unknown ids are dropped."""
        by_id = {str(r.get("id")): r for r in data.get("items") or [] if isinstance(r, dict)}
        items: list[ItemResult] = []
        for plan_item in plan.items:
            raw = by_id.get(plan_item.id) or {}
            result = ItemResult(item=plan_item)
            image_url = raw.get("image_url")
            if raw.get("status") == DONE and image_url:
                result.prompt_used = str(raw.get("prompt_used") or "")
                result.mark_done(str(image_url), raw.get("degraded_reason"))
            elif raw.get("status") == ERROR:
                result.prompt_used = str(raw.get("prompt_used") or "")
                result.mark_error(str(raw.get("error") or ""))
            items.append(result)
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex[:12]),
            label=str(data.get("label") or "Pattern 1"),
            items=items,
            created_at=float(data.get("created_at") or time.time()),
            started=True,
            finished=True,
        )
