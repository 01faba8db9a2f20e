from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")

# Fallback reasons.
DEMO_MODE = "demo_mode"
UPSTREAM_ERROR = "upstream_error"
PARSE_ERROR = "parse_error"
EMPTY_RESPONSE = "empty_response"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def degraded(self) -> bool:
        return False

    @property
    def status(self) -> str:
        return "ok"


@dataclass(frozen=True)
class Fallback(Generic[T]):
    """A usable value produced locally because the real one was unavailable."""

    value: T
    reason: str
    detail: str | None = None

    @property
    def degraded(self) -> bool:
        return True

    @property
    def status(self) -> str:
        return "fallback"


Outcome = Union[Ok[T], Fallback[T]]


def describe(outcome: Outcome) -> dict[str, str | None]:
    if isinstance(outcome, Fallback):
        return {"status": "fallback", "reason": outcome.reason, "detail": outcome.detail}
    return {"status": "ok", "reason": None, "detail": None}
