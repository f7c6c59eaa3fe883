"""Bootstrap graph construction from extracted entities and the agent roster."""

import logging
from dataclasses import dataclass, field

from .canonical import canonical_entity_name
from .constants import ENTITY_NODE_CONFIDENCE, MAX_ENTITY_SUMMARY_CHARS, ROOT_NODE_ID
from .extractor import API_KEY_ENV, EntityExtractor
from .normalizer import (
    agent_edge_id,
    agent_edge_partial,
    agent_node_partial,
    build_graph_node,
    normalize_graph,
)
from .types import AgentRow, BootstrapFile, GraphMeta, GraphNode, KnowledgeGraph
from .utils import clamp01, slug, unique_id

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = f"{API_KEY_ENV} not configured. Set it to enable LLM knowledge extraction."


@dataclass
class BuildResult:
    """Freshly built graph plus what went wrong while building it."""
    graph: KnowledgeGraph
    extraction_error: str | None = None
    document_errors: list[dict] = field(default_factory=list)


class GraphBuilder:
    """
    Accumulates nodes and edges for one bootstrap run.

    Entities are keyed by canonical name so repeated mentions across
    documents collapse onto one node.
    """

    def __init__(self):
        self.nodes: list[GraphNode] = []
        self.edges: list[dict] = []
        self._node_ids: set[str] = set()
        self._edge_ids: set[str] = set()
        self._entities: dict[str, str] = {}

    def add_node(self, partial: dict) -> GraphNode:
        node = build_graph_node(partial, len(self.nodes), self._node_ids)
        self.nodes.append(node)
        return node

    def add_edge(self, partial: dict, id_hint: str):
        self.edges.append({**partial, "id": unique_id(id_hint, self._edge_ids)})

    def ensure_entity(self, name: str, kind: str, summary: str, source_file: str) -> str | None:
        """Node id for an entity, creating the node on first mention."""
        canon = canonical_entity_name(name)
        if not canon:
            return None
        if canon in self._entities:
            return self._entities[canon]

        count = len(self.nodes)
        node = self.add_node({
            "id": f"entity-{slug(name)}",
            "label": name,
            "kind": kind,
            "summary": summary[:MAX_ENTITY_SUMMARY_CHARS],
            "confidence": ENTITY_NODE_CONFIDENCE,
            "source": source_file,
            "tags": [kind],
            "x": 400 + (count % 5) * 240,
            "y": 80 + (count // 5) * 120,
        })
        self._entities[canon] = node["id"]
        return node["id"]

    def entity_id(self, name: str) -> str | None:
        return self._entities.get(canonical_entity_name(name))


def _add_template(builder: GraphBuilder, root_id: str):
    """Illustrative nodes so a graph is never empty before notes or a key exist."""
    preferences = builder.add_node({
        "id": "entity-user-preferences",
        "label": "User Preferences",
        "kind": "preference",
        "summary": "Store stable preferences, style, constraints, and important context.",
        "source": "template",
        "confidence": 0.9,
        "x": 360,
        "y": 120,
    })
    context = builder.add_node({
        "id": "entity-project-context",
        "label": "Project Context",
        "kind": "project",
        "summary": "Active tasks, architecture notes, and key decisions.",
        "source": "template",
        "confidence": 0.85,
        "x": 680,
        "y": 260,
    })
    for target, hint in ((preferences, "edge-root-sample-a"), (context, "edge-root-sample-b")):
        builder.add_edge(
            {"source": root_id, "target": target["id"], "relation": "tracks", "weight": 0.8, "evidence": ""},
            hint,
        )


async def build_llm_graph(
    files: list[BootstrapFile],
    agents: list[AgentRow],
    extractor: EntityExtractor,
    meta: GraphMeta,
) -> BuildResult:
    """
    Build a fresh graph from seed documents and the agent roster.

    Extraction runs only when an API key is configured. If nothing beyond
    the root and agent nodes comes out of it, two template nodes are
    appended.
    """
    builder = GraphBuilder()
    root = builder.add_node({
        "id": ROOT_NODE_ID,
        "label": "Agent Memory Core",
        "kind": "system",
        "summary": "Knowledge graph extracted from memory files via LLM.",
        "confidence": 1,
        "source": "bootstrap",
        "tags": ["memory", "core"],
        "x": 40,
        "y": 80,
    })

    extraction_error = None
    document_errors = []

    if not extractor.enabled:
        extraction_error = MISSING_KEY_MESSAGE
    else:
        for outcome in await extractor.extract_all(files):
            if not outcome.ok:
                document_errors.append({"document": outcome.document, "error": outcome.error})
                continue

            for entity in outcome.entities:
                builder.ensure_entity(entity["name"], entity["type"], entity["summary"], outcome.document)

            for rel in outcome.relations:
                source_id = builder.entity_id(rel["subject"])
                target_id = builder.entity_id(rel["object"])
                if not source_id or not target_id or source_id == target_id:
                    continue
                builder.add_edge(
                    {
                        "source": source_id,
                        "target": target_id,
                        "relation": rel["predicate"],
                        "weight": clamp01(rel["confidence"], 0.75),
                        "evidence": outcome.document,
                        "fact": rel["fact"],
                    },
                    f"edge-{slug(rel['subject'])}-{slug(rel['predicate'])}-{slug(rel['object'])}",
                )

    for idx, agent in enumerate(agents):
        node = builder.add_node(agent_node_partial(agent, idx))
        edge = agent_edge_partial(agent, idx, root["id"])
        edge.pop("id")
        builder.add_edge({**edge, "target": node["id"]}, agent_edge_id(node["id"]))

    if len(builder.nodes) <= 1 + len(agents):
        _add_template(builder, root["id"])

    graph = normalize_graph({"nodes": builder.nodes, "edges": builder.edges}, meta)
    logger.info(
        f"Built graph from {len(files)} documents: {len(graph['nodes'])} nodes, "
        f"{len(graph['edges'])} edges, {len(document_errors)} extraction failures"
    )
    return BuildResult(graph, extraction_error, document_errors)
