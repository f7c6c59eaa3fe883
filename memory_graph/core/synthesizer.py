"""Markdown projections of a knowledge graph."""

from .constants import SNAPSHOT_END, SNAPSHOT_START, SNAPSHOT_TOP_EDGES, SNAPSHOT_TOP_NODES
from .types import GraphEdge, KnowledgeGraph


def _labeler(graph: KnowledgeGraph):
    labels = {node["id"]: node["label"] for node in graph["nodes"]}
    return lambda node_id: labels.get(node_id) or node_id


def _percent(weight: float) -> int:
    return int(weight * 100 + 0.5)


def graph_to_markdown(graph: KnowledgeGraph) -> str:
    """Full mirror document. A pure function of the graph."""
    label = _labeler(graph)

    entity_lines = []
    for node in graph["nodes"]:
        summary = f" - {node['summary']}" if node["summary"] else ""
        tags = f" | tags: {', '.join(node['tags'])}" if node["tags"] else ""
        entity_lines.append(f"- **{node['label']}** (`{node['kind']}`){summary}{tags}")

    relation_lines = []
    triple_lines = []
    for edge in graph["edges"]:
        source, target = label(edge["source"]), label(edge["target"])
        evidence = f" | evidence: {edge['evidence']}" if edge["evidence"] else ""
        relation_lines.append(
            f"- **{source}** --`{edge['relation']}`--> **{target}** ({_percent(edge['weight'])}%){evidence}"
        )
        triple_lines.append(f"- {source} | {edge['relation']} | {target}")

    return "\n".join([
        "# Knowledge Graph Memory",
        "",
        f"Generated: {graph['updatedAt']}",
        "",
        "This file is generated from the knowledge graph editor. Manual edits are overwritten on save.",
        "",
        "## Entities",
        "\n".join(entity_lines) or "- _No entities yet_",
        "",
        "## Relations",
        "\n".join(relation_lines) or "- _No relations yet_",
        "",
        "## Retrieval Triples",
        "\n".join(triple_lines) or "- _No triples yet_",
        "",
    ])


def _top_edges(edges: list[GraphEdge]) -> list[GraphEdge]:
    return sorted(edges, key=lambda e: e["weight"], reverse=True)[:SNAPSHOT_TOP_EDGES]


def build_snapshot_section(graph: KnowledgeGraph) -> str:
    """High-signal summary: top nodes by confidence, top edges by weight."""
    label = _labeler(graph)
    top_nodes = sorted(graph["nodes"], key=lambda n: n["confidence"], reverse=True)[:SNAPSHOT_TOP_NODES]

    node_lines = [
        f"- **{node['label']}** (`{node['kind']}`)" + (f" - {node['summary']}" if node["summary"] else "")
        for node in top_nodes
    ]
    edge_lines = [
        f"- {label(edge['source'])} --{edge['relation']}--> {label(edge['target'])}"
        for edge in _top_edges(graph["edges"])
    ]

    return "\n".join([
        "## Knowledge Graph Snapshot",
        "",
        f"_Generated: {graph['updatedAt']}_",
        "",
        "### High-Signal Entities",
        "\n".join(node_lines) or "- _None_",
        "",
        "### High-Signal Relations",
        "\n".join(edge_lines) or "- _None_",
        "",
    ])


def upsert_snapshot(raw: str, section: str) -> str:
    """
    Place section between the snapshot markers of a document.

    The first END marker and the nearest START before it have their
    contents replaced in place; everything outside them is kept byte for
    byte, including a stray START with no END. Without markers the block
    is appended after a blank line.
    """
    block = f"{SNAPSHOT_START}\n{section}\n{SNAPSHOT_END}"
    end = raw.find(SNAPSHOT_END)
    start = raw.rfind(SNAPSHOT_START, 0, end) if end != -1 else -1
    if start != -1:
        return f"{raw[:start]}{block}{raw[end + len(SNAPSHOT_END):]}"

    if not raw:
        return f"{block}\n"
    separator = "\n" if raw.endswith("\n") else "\n\n"
    return f"{raw}{separator}{block}\n"
