"""Text canonicalization used to decide whether two mentions are the same thing."""

import re

from .constants import DEFAULT_TOPIC, MAX_CANONICAL_FACT_CHARS, MAX_TOPIC_CHARS
from .utils import sanitize_text

# Order matters: images before links, bold before italics.
_INLINE_PATTERNS = (
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"!\[([^\]]*)\]\(([^)]+)\)"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\(([^)]+)\)"), r"\1"),
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"__([^_]+)__"), r"\1"),
    (re.compile(r"_([^_]+)_"), r"\1"),
)

_STOP_WORDS = re.compile(r"\b(a|an|the|to|for|and|or|of|in|on|at|by|with)\b")
_NON_ALNUM_SPACE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RUN = re.compile(r"\s+")
_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}\s*[-–]?\s*")


def clean_inline(text: str) -> str:
    """Strip inline markdown (code, emphasis, links, images) and collapse whitespace."""
    value = sanitize_text(text)
    for pattern, replacement in _INLINE_PATTERNS:
        value = pattern.sub(replacement, value)
    return _WHITESPACE_RUN.sub(" ", value).strip()


def normalize_topic(raw: str) -> str:
    """Heading text as a topic label, without a leading journal date."""
    topic = _DATE_PREFIX.sub("", clean_inline(raw))
    if not topic:
        return DEFAULT_TOPIC
    if len(topic) > MAX_TOPIC_CHARS:
        return f"{topic[:MAX_TOPIC_CHARS - 3]}..."
    return topic


def canonicalize_fact(text: str) -> str:
    """Dedup key for a fact statement. Never displayed."""
    value = clean_inline(text).lower()
    value = _STOP_WORDS.sub(" ", value)
    value = _NON_ALNUM_SPACE.sub(" ", value)
    value = _WHITESPACE_RUN.sub(" ", value).strip()
    return value[:MAX_CANONICAL_FACT_CHARS]


def canonical_entity_name(name: str) -> str:
    """Merge key for entity mentions that differ only in case or punctuation."""
    value = _NON_ALNUM_SPACE.sub(" ", str(name).lower())
    return _WHITESPACE_RUN.sub(" ", value).strip()
