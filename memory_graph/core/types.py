"""Type definitions for the knowledge graph and its telemetry."""

from typing import Literal, NotRequired, TypedDict


class GraphNode(TypedDict):
    """Entity node in the knowledge graph."""
    id: str
    label: str
    kind: str
    summary: str
    confidence: float
    source: str
    tags: list[str]
    x: float
    y: float


class GraphEdge(TypedDict):
    """Relation edge between two nodes of the same graph."""
    id: str
    source: str
    target: str
    relation: str
    weight: float
    evidence: str
    fact: NotRequired[str]


class GraphMeta(TypedDict):
    """Where the graph lives on disk."""
    workspace: str
    materializedPath: str
    jsonPath: str


class KnowledgeGraph(TypedDict):
    """Complete graph structure, as persisted to knowledge-graph.json."""
    version: int
    updatedAt: str
    nodes: list[GraphNode]
    edges: list[GraphEdge]
    meta: GraphMeta


class AgentRow(TypedDict, total=False):
    """One row of `agents list --json`."""
    id: str
    name: str
    identityName: str
    workspace: str
    isDefault: bool


class BootstrapFile(TypedDict):
    """Seed document handed to the extractor."""
    name: str
    content: str
    source: Literal["indexed", "filesystem"]


class SourceChunk(TypedDict):
    """Heading, bullet or paragraph unit of a markdown document."""
    id: str
    topic: str
    kind: Literal["heading", "bullet", "paragraph"]
    text: str
    startLine: int
    endLine: int


class SourceFact(TypedDict):
    """Bullet or key-value line promoted to a fact."""
    id: str
    topic: str
    statement: str
    canonical: str
    line: int
    confidenceHint: float


class SourceDocument(TypedDict):
    """Discovered markdown file with its derived evidence."""
    id: str
    name: str
    path: str
    source: Literal["workspace", "memory"]
    mtimeMs: float
    size: int
    chunks: list[SourceChunk]
    facts: list[SourceFact]


class RecentChatMessage(TypedDict):
    """Chat message shown next to the graph; never persisted."""
    sessionKey: str
    role: str
    timestampMs: int
    text: str


class GraphTelemetry(TypedDict):
    """Read-only evidence block returned with every graph read."""
    generatedAt: str
    sourceDocuments: list[SourceDocument]
    recentChatMessages: list[RecentChatMessage]


class ExtractedEntity(TypedDict):
    """Entity as returned by the extraction model, after validation."""
    name: str
    type: str
    summary: str


class ExtractedRelation(TypedDict):
    """Subject-predicate-object triple, after validation."""
    subject: str
    predicate: str
    object: str
    fact: str
    confidence: float
