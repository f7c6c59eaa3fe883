"""Utility functions for knowledge graph operations."""

import math
import re
from typing import Any

from .constants import MAX_SLUG_CHARS

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")
_WHITESPACE_RUN = re.compile(r"\s+")


def slug(text: str) -> str:
    """Lowercase id fragment; callers still dedup against existing ids."""
    value = _NON_ALNUM_RUN.sub("-", str(text).lower()).strip("-")
    return value[:MAX_SLUG_CHARS] or "item"


def sanitize_text(value: Any, fallback: str = "") -> str:
    """Collapse whitespace in a string; anything else (or blank) becomes fallback."""
    if not isinstance(value, str):
        return fallback
    cleaned = _WHITESPACE_RUN.sub(" ", value).strip()
    return cleaned or fallback


def truncate(text: str, limit: int) -> str:
    """Cut text to limit chars, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return f"{text[:limit - 3].rstrip()}..."


def clamp01(value: Any, fallback: float) -> float:
    """Coerce to a float in [0, 1] rounded to two places."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return round(min(1.0, max(0.0, number)), 2)


def finite_or(value: Any, fallback: float) -> float:
    """Return value as float if it is a finite number, else fallback."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    return float(value) if math.isfinite(value) else fallback


def unique_id(base: str, taken: set[str]) -> str:
    """Reserve base in taken, suffixing -2, -3, ... on collision."""
    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}-{suffix}"
        suffix += 1
    taken.add(candidate)
    return candidate
