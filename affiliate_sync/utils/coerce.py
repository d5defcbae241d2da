"""
Coerce-to-default helpers for backend payloads.

Backend responses are inconsistent across endpoints, so every numeric or
structural read of a payload goes through these helpers. None of them raise:
missing, null, or malformed values degrade to the supplied default (zero,
empty list, empty dict) instead of surfacing an error.
"""

import math
import re
from collections.abc import Mapping
from typing import Any

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def is_number(value: Any) -> bool:
    """True for real ints/floats (bools excluded), NaN and infinities excluded."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def to_float(value: Any, default: float = 0.0) -> float:
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return default
        return parsed if math.isfinite(parsed) else default
    return default


def to_int(value: Any, default: int = 0) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    parsed = to_float(value, default=math.nan)
    if math.isnan(parsed):
        return default
    return int(parsed)


def to_count(value: Any) -> int:
    """Non-negative integer count; anything else becomes 0."""
    return max(0, to_int(value))


def parse_level(value: Any) -> int | None:
    """
    Parse a server-supplied level hint.

    Accepts ints and strings with a leading integer ("3", "3rd"). Returns None
    when the hint is absent, non-numeric, or not a positive level, so the
    caller falls back to the traversal depth.
    """
    if value is None or isinstance(value, bool):
        return None
    if is_number(value):
        level = int(value)
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        if not match:
            return None
        level = int(match.group(1))
    else:
        return None
    return level if level > 0 else None


def as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def dig(payload: Any, *path: str) -> Any:
    """Walk nested mappings, returning None as soon as a level is missing."""
    current = payload
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def first_truthy(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value:
            return value
    return default
