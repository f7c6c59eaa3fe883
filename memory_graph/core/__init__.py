"""Core knowledge graph components."""

from .types import (
    AgentRow,
    BootstrapFile,
    GraphEdge,
    GraphMeta,
    GraphNode,
    GraphTelemetry,
    KnowledgeGraph,
    RecentChatMessage,
    SourceChunk,
    SourceDocument,
    SourceFact,
)
from .constants import *
from .exceptions import *
from .canonical import canonical_entity_name, canonicalize_fact, clean_inline, normalize_topic
from .config import GraphConfig
from .evidence import extract_evidence_from_markdown
from .extractor import EntityExtractor, ExtractionOutcome, resolve_api_key, validate_extraction_result
from .builder import BuildResult, build_llm_graph
from .normalizer import normalize_graph, reconcile_agents, safe_agent_name
from .persistence import GraphPersistence, content_hash, read_text_optional, write_text_atomic
from .synthesizer import build_snapshot_section, graph_to_markdown, upsert_snapshot
from .utils import clamp01, sanitize_text, slug, unique_id

__all__ = [
    # Types
    "AgentRow",
    "BootstrapFile",
    "GraphEdge",
    "GraphMeta",
    "GraphNode",
    "GraphTelemetry",
    "KnowledgeGraph",
    "RecentChatMessage",
    "SourceChunk",
    "SourceDocument",
    "SourceFact",
    # Exceptions
    "KGError",
    "GatewayError",
    "ExtractionError",
    "GraphConflictError",
    "UnknownActionError",
    # Classes
    "GraphConfig",
    "EntityExtractor",
    "ExtractionOutcome",
    "BuildResult",
    "GraphPersistence",
    # Functions
    "canonical_entity_name",
    "canonicalize_fact",
    "clean_inline",
    "normalize_topic",
    "extract_evidence_from_markdown",
    "resolve_api_key",
    "validate_extraction_result",
    "build_llm_graph",
    "normalize_graph",
    "reconcile_agents",
    "safe_agent_name",
    "content_hash",
    "read_text_optional",
    "write_text_atomic",
    "build_snapshot_section",
    "graph_to_markdown",
    "upsert_snapshot",
    "clamp01",
    "sanitize_text",
    "slug",
    "unique_id",
]
