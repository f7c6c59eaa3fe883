"""Tests for graph persistence"""

import json

from memory_graph.core.normalizer import normalize_graph
from memory_graph.core.persistence import GraphPersistence, content_hash, write_text_atomic


def make_store(tmp_path) -> GraphPersistence:
    return GraphPersistence(tmp_path / "memory" / "kg.json", tmp_path / "memory" / "kg.md")


def test_save_writes_json_and_markdown(tmp_path):
    store = make_store(tmp_path)
    graph = normalize_graph({"nodes": [{"id": "a", "label": "Alpha"}]}, {})

    digest = store.save(graph)

    assert store.load_raw() == graph
    assert "**Alpha**" in store.markdown_path.read_text()
    assert digest == store.current_hash()
    assert json.loads(store.json_path.read_text())["version"] == 1


def test_missing_or_corrupt_file_loads_as_none(tmp_path):
    store = make_store(tmp_path)
    assert store.load_raw() is None
    assert store.current_hash() == ""

    store.json_path.parent.mkdir(parents=True)
    store.json_path.write_text("{broken")
    assert store.load_raw() is None
    assert store.current_hash() == content_hash("{broken")


def test_atomic_write_leaves_no_temp_file(tmp_path):
    path = tmp_path / "nested" / "MEMORY.md"
    write_text_atomic(path, "one")
    write_text_atomic(path, "two")

    assert path.read_text() == "two"
    assert sorted(p.name for p in path.parent.iterdir()) == ["MEMORY.md"]
