"""Tests for text canonicalization"""

from memory_graph.core.canonical import (
    canonical_entity_name,
    canonicalize_fact,
    clean_inline,
    normalize_topic,
)
from memory_graph.core.utils import clamp01, sanitize_text, slug, truncate, unique_id


def test_clean_inline_strips_markdown():
    text = "Use **FastAPI** with `uv`, see [docs](https://example.com) and ![logo](a.png)"
    assert clean_inline(text) == "Use FastAPI with uv, see docs and logo"


def test_clean_inline_collapses_whitespace():
    assert clean_inline("  a \t _b_   c  ") == "a b c"


def test_normalize_topic_strips_journal_date():
    assert normalize_topic("2024-05-01 - Standup") == "Standup"
    assert normalize_topic("2024-05-01 Retro") == "Retro"


def test_normalize_topic_defaults_and_truncates():
    assert normalize_topic("") == "General"
    topic = normalize_topic("x" * 60)
    assert len(topic) == 48
    assert topic.endswith("...")


def test_canonicalize_fact_drops_stop_words_and_punctuation():
    assert canonicalize_fact("The invoice is due on the 1st!") == "invoice is due 1st"
    assert canonicalize_fact("**Invoice** due on the 1st") == canonicalize_fact("invoice due the 1st")


def test_canonical_entity_name_ignores_case_and_punctuation():
    assert canonical_entity_name("OpenAI!!") == canonical_entity_name("openai") == "openai"
    assert canonical_entity_name("  Notes-App ") == "notes app"


def test_slug():
    assert slug("Hello, World!") == "hello-world"
    assert slug("!!!") == "item"
    assert len(slug("a" * 100)) == 48


def test_sanitize_text_fallback():
    assert sanitize_text(None, "x") == "x"
    assert sanitize_text("   ", "x") == "x"
    assert sanitize_text(" a  b ") == "a b"


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("abcdefghij", 8) == "abcde..."


def test_clamp01():
    assert clamp01(5, 0.5) == 1.0
    assert clamp01(-1, 0.5) == 0.0
    assert clamp01("0.333", 0.5) == 0.33
    assert clamp01("abc", 0.5) == 0.5
    assert clamp01(float("nan"), 0.5) == 0.5


def test_unique_id_suffixes_from_base():
    taken = set()
    assert [unique_id("a", taken) for _ in range(3)] == ["a", "a-2", "a-3"]
