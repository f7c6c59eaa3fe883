"""Tests for markdown projections of the graph"""

from memory_graph.core.constants import SNAPSHOT_END, SNAPSHOT_START
from memory_graph.core.normalizer import normalize_graph
from memory_graph.core.synthesizer import build_snapshot_section, graph_to_markdown, upsert_snapshot

META = {"workspace": "/ws", "materializedPath": "/ws/memory/kg.md", "jsonPath": "/ws/memory/kg.json"}


def sample_graph():
    return normalize_graph(
        {
            "nodes": [
                {"id": "root", "label": "Root", "kind": "system", "confidence": 1},
                {"id": "py", "label": "Python", "kind": "tool", "summary": "Language", "tags": ["lang"], "confidence": 0.4},
            ],
            "edges": [{"source": "root", "target": "py", "relation": "uses", "weight": 0.875, "evidence": "MEMORY.md"}],
        },
        META,
    )


def test_graph_to_markdown_lists_entities_relations_and_triples():
    md = graph_to_markdown(sample_graph())

    assert md.startswith("# Knowledge Graph Memory\n")
    assert "- **Python** (`tool`) - Language | tags: lang" in md
    assert "- **Root** --`uses`--> **Python** (88%) | evidence: MEMORY.md" in md
    assert "- Root | uses | Python" in md


def test_graph_to_markdown_empty_graph():
    md = graph_to_markdown(normalize_graph({}, META))
    assert "- _No entities yet_" in md
    assert "- _No relations yet_" in md
    assert "- _No triples yet_" in md


def test_snapshot_orders_by_confidence():
    section = build_snapshot_section(sample_graph())
    assert section.index("**Root**") < section.index("**Python**")
    assert "- Root --uses--> Python" in section


def test_upsert_appends_to_document():
    doc = "# Memory\n\nhello\n"
    updated = upsert_snapshot(doc, "SECTION")
    assert updated == f"{doc}\n{SNAPSHOT_START}\nSECTION\n{SNAPSHOT_END}\n"


def test_upsert_separates_unterminated_document():
    updated = upsert_snapshot("hello", "SECTION")
    assert updated.startswith(f"hello\n\n{SNAPSHOT_START}")


def test_upsert_on_empty_document():
    assert upsert_snapshot("", "S") == f"{SNAPSHOT_START}\nS\n{SNAPSHOT_END}\n"


def test_upsert_twice_keeps_one_block_and_surrounding_text():
    doc = "# Memory\n\nbefore\n"
    first = upsert_snapshot(doc, "OLD")
    first += "\nafter the block\n"
    second = upsert_snapshot(first, "NEW")

    assert second.count(SNAPSHOT_START) == 1
    assert second.count(SNAPSHOT_END) == 1
    assert "OLD" not in second
    assert "NEW" in second
    assert second.startswith(doc)
    assert second.endswith(f"{SNAPSHOT_END}\n\nafter the block\n")


def test_upsert_keeps_text_after_unmatched_start_marker():
    doc = f"# Memory\n{SNAPSHOT_START}\nIMPORTANT user note\n"
    first = upsert_snapshot(doc, "ONE")
    second = upsert_snapshot(first, "TWO")

    assert "IMPORTANT user note" in second
    assert second == f"{doc}\n{SNAPSHOT_START}\nTWO\n{SNAPSHOT_END}\n"
