from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def extract_json_block(text: str | None, openers: str = "{[") -> str | None:
    """
    Return the first balanced {...} or [...] block in `text`.

    Brackets inside JSON strings are ignored. Returns None when no opener is
    found or the first block never closes.
    """
    if not text:
        return None
    s = strip_code_fences(text)
    start = -1
    for idx, ch in enumerate(s):
        if ch in openers:
            start = idx
            break
    if start == -1:
        return None

    stack: list[str] = []
    in_string = False
    escaped = False
    pairs = {"{": "}", "[": "]"}
    for idx in range(start, len(s)):
        ch = s[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in pairs:
            stack.append(pairs[ch])
        elif ch in "}]":
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return s[start : idx + 1]
    return None


def parse_jsonish(text: str | None, openers: str = "{[") -> Any:
    """Extract and decode; raises ValueError when nothing parseable is present."""
    block = extract_json_block(text, openers)
    if block is None:
        raise ValueError("no JSON block found in model output")
    return json.loads(block)


def clean_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def first_str(candidate: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = clean_str(candidate.get(key))
        if value:
            return value
    return None


def to_lines(value: Any, limit: int, split_pattern: str = r"[\n、。]") -> list[str]:
    if isinstance(value, list):
        return [s for s in (str(v).strip() if not isinstance(v, str) else v.strip() for v in value) if s][:limit]
    if isinstance(value, str) and value.strip():
        return [s.strip() for s in re.split(split_pattern, value) if s.strip()][:limit]
    return []
