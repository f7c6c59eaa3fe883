"""
Graph normalization and agent reconciliation.

normalize_graph() is the only way an untrusted graph (client-submitted,
loaded from disk, or freshly built) becomes a KnowledgeGraph. It repairs
rather than rejects: duplicate ids are suffixed, dangling edges dropped,
numbers clamped, strings truncated.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from .constants import (
    DEFAULT_EDGE_WEIGHT,
    DEFAULT_NODE_CONFIDENCE,
    DEFAULT_NODE_KIND,
    DEFAULT_NODE_SOURCE,
    DEFAULT_RELATION,
    GRAPH_VERSION,
    LAYOUT_COLUMNS,
    LAYOUT_X_STEP,
    LAYOUT_Y_STEP,
    MAX_FACT_CHARS,
    MAX_LABEL_CHARS,
    MAX_SUMMARY_CHARS,
    MAX_TAGS,
    ROOT_NODE_ID,
)
from .types import AgentRow, GraphEdge, GraphMeta, GraphNode, KnowledgeGraph
from .utils import clamp01, finite_or, sanitize_text, slug, truncate, unique_id

_ANNOTATION = re.compile(r"\s*_\(.*?\)_?\s*")
_WHITESPACE_RUN = re.compile(r"\s+")


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_mapping(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _sanitize_tags(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    tags = (sanitize_text(tag) for tag in value)
    return list(dict.fromkeys(tag for tag in tags if tag))[:MAX_TAGS]


def build_graph_node(partial: Mapping, index: int, id_set: set[str]) -> GraphNode:
    """
    Build a valid node from a partial description.

    The id is reserved in id_set, suffixed on collision. Missing
    coordinates fall on a grid derived from index.
    """
    label_text = sanitize_text(partial.get("label"))
    base_id = sanitize_text(partial.get("id"))
    if not base_id:
        base_id = f"node-{slug(label_text)}" if label_text else f"node-{index + 1}"

    return {
        "id": unique_id(base_id, id_set),
        "label": truncate(label_text or f"Untitled {index + 1}", MAX_LABEL_CHARS),
        "kind": sanitize_text(partial.get("kind"), DEFAULT_NODE_KIND),
        "summary": truncate(sanitize_text(partial.get("summary")), MAX_SUMMARY_CHARS),
        "confidence": clamp01(partial.get("confidence"), DEFAULT_NODE_CONFIDENCE),
        "source": sanitize_text(partial.get("source"), DEFAULT_NODE_SOURCE),
        "tags": _sanitize_tags(partial.get("tags")),
        "x": finite_or(partial.get("x"), float((index % LAYOUT_COLUMNS) * LAYOUT_X_STEP)),
        "y": finite_or(partial.get("y"), float((index // LAYOUT_COLUMNS) * LAYOUT_Y_STEP)),
    }


def _build_graph_edge(
    partial: Mapping,
    index: int,
    node_ids: set[str],
    edge_ids: set[str],
) -> GraphEdge | None:
    """Build a valid edge, or None when an endpoint is missing."""
    source = sanitize_text(partial.get("source"))
    target = sanitize_text(partial.get("target"))
    if source not in node_ids or target not in node_ids:
        return None

    base_id = sanitize_text(partial.get("id"), f"edge-{slug(source)}-{slug(target)}-{index + 1}")
    edge: GraphEdge = {
        "id": unique_id(base_id, edge_ids),
        "source": source,
        "target": target,
        "relation": sanitize_text(partial.get("relation"), DEFAULT_RELATION),
        "weight": clamp01(partial.get("weight"), DEFAULT_EDGE_WEIGHT),
        "evidence": sanitize_text(partial.get("evidence")),
    }
    fact = sanitize_text(partial.get("fact"))[:MAX_FACT_CHARS].rstrip()
    if fact:
        edge["fact"] = fact
    return edge


def normalize_graph(raw: Any, meta: GraphMeta) -> KnowledgeGraph:
    """
    Validate and repair an arbitrary graph-shaped value.

    Always stamps a fresh updatedAt and the configured meta paths.
    Node count is preserved; only edges can be dropped.
    """
    data = _as_mapping(raw)
    id_set: set[str] = set()
    nodes = [
        build_graph_node(_as_mapping(partial), idx, id_set)
        for idx, partial in enumerate(_as_list(data.get("nodes")))
    ]

    node_ids = {node["id"] for node in nodes}
    edge_ids: set[str] = set()
    edges: list[GraphEdge] = []
    for idx, partial in enumerate(_as_list(data.get("edges"))):
        edge = _build_graph_edge(_as_mapping(partial), idx, node_ids, edge_ids)
        if edge is not None:
            edges.append(edge)

    return {
        "version": GRAPH_VERSION,
        "updatedAt": utc_now_iso(),
        "nodes": nodes,
        "edges": edges,
        "meta": dict(meta),
    }


# ============================================================================
# Agent roster
# ============================================================================

def safe_agent_name(agent: AgentRow) -> str:
    """Display name for an agent, without `_(...)_` annotations."""
    raw = str(agent.get("identityName") or agent.get("name") or agent.get("id") or "agent")
    return _WHITESPACE_RUN.sub(" ", _ANNOTATION.sub(" ", raw)).strip() or "agent"


def agent_key(agent: AgentRow, index: int) -> str:
    """Roster identifier, falling back to position."""
    return str(agent.get("id") or f"agent-{index}")


def agent_node_id(agent: AgentRow, index: int) -> str:
    return f"agent-{slug(agent_key(agent, index))}"


def agent_edge_id(node_id: str) -> str:
    return f"edge-{ROOT_NODE_ID}-{node_id}"


def agent_node_partial(agent: AgentRow, index: int) -> dict:
    """Node fields for one roster entry."""
    key = agent_key(agent, index)
    is_default = bool(agent.get("isDefault"))
    return {
        "id": agent_node_id(agent, index),
        "label": safe_agent_name(agent),
        "kind": "agent",
        "summary": "Default agent." if is_default else f"Agent: {key}",
        "confidence": 0.95,
        "source": "agents",
        "tags": ["agent", "default"] if is_default else ["agent"],
        "x": 40,
        "y": 260 + index * 120,
    }


def agent_edge_partial(agent: AgentRow, index: int, root_id: str = ROOT_NODE_ID) -> dict:
    """managed_by edge from the root to one roster entry."""
    node_id = agent_node_id(agent, index)
    return {
        "id": agent_edge_id(node_id),
        "source": root_id,
        "target": node_id,
        "relation": "managed_by",
        "weight": 0.9,
        "evidence": str(agent.get("id") or ""),
    }


def reconcile_agents(
    graph: KnowledgeGraph,
    agents: Iterable[AgentRow],
    meta: GraphMeta,
) -> KnowledgeGraph:
    """
    Add roster agents missing from a persisted graph.

    Additive only: existing nodes and edges are never modified or removed,
    even when their agent has left the roster. Returns the input graph
    untouched when nothing is missing.
    """
    node_ids = {node["id"] for node in graph["nodes"]}
    edge_ids = {edge["id"] for edge in graph["edges"]}
    inject_nodes: list[dict] = []
    inject_edges: list[dict] = []

    for idx, agent in enumerate(agents):
        node = agent_node_partial(agent, idx)
        if node["id"] not in node_ids:
            node_ids.add(node["id"])
            inject_nodes.append(node)
        edge = agent_edge_partial(agent, idx)
        if edge["id"] not in edge_ids and ROOT_NODE_ID in node_ids:
            edge_ids.add(edge["id"])
            inject_edges.append(edge)

    if not inject_nodes and not inject_edges:
        return graph

    return normalize_graph(
        {
            "nodes": [*graph["nodes"], *inject_nodes],
            "edges": [*graph["edges"], *inject_edges],
        },
        meta,
    )
