"""Tests for markdown evidence extraction"""

from memory_graph.core.evidence import extract_evidence_from_markdown


def test_duplicate_bullets_yield_one_fact():
    content = "## Billing\n- Invoice due on the 1st\n- Invoice due on the 1st\n"
    chunks, facts = extract_evidence_from_markdown(content)

    assert len(chunks) == 3
    assert [c["kind"] for c in chunks] == ["heading", "bullet", "bullet"]
    assert len(facts) == 1
    fact = facts[0]
    assert fact["topic"] == "Billing"
    assert fact["statement"] == "Invoice due on the 1st"
    assert fact["line"] == 2
    assert fact["confidenceHint"] == 0.72


def test_key_value_lines_are_facts_with_higher_hint():
    chunks, facts = extract_evidence_from_markdown("Timezone: Europe/Berlin\nJust some prose here.")

    assert [c["kind"] for c in chunks] == ["bullet", "paragraph"]
    assert len(facts) == 1
    assert facts[0]["statement"] == "Timezone: Europe/Berlin"
    assert facts[0]["confidenceHint"] == 0.8
    assert facts[0]["topic"] == "General"


def test_same_fact_under_different_topics_is_kept():
    content = "# Work\n- Ship weekly\n# Home\n- Ship weekly\n"
    _, facts = extract_evidence_from_markdown(content)
    assert [f["topic"] for f in facts] == ["Work", "Home"]


def test_chunk_cap_does_not_stop_fact_scanning():
    content = "\n".join(f"- distinct fact number {n}" for n in ("one", "two", "three", "four", "five"))
    chunks, facts = extract_evidence_from_markdown(content, max_chunks=2)
    assert len(chunks) == 2
    assert len(facts) == 5


def test_heading_date_prefix_and_line_numbers():
    content = "# 2024-03-02 - Planning\r\n\r\n1. Pick a database\r\n"
    chunks, facts = extract_evidence_from_markdown(content)

    assert chunks[0]["topic"] == "Planning"
    assert chunks[1]["startLine"] == 3
    assert facts[0]["statement"] == "Pick a database"


def test_empty_document():
    assert extract_evidence_from_markdown("") == ([], [])
