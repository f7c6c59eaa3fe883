"""Constants for knowledge graph synthesis."""

# Graph format
GRAPH_VERSION = 1
ROOT_NODE_ID = "memory-core"

# Node/edge field limits
MAX_LABEL_CHARS = 64
MAX_SUMMARY_CHARS = 240
MAX_FACT_CHARS = 300
MAX_TAGS = 8
MAX_SLUG_CHARS = 48

# Defaults applied by the normalizer
DEFAULT_NODE_CONFIDENCE = 0.75
DEFAULT_EDGE_WEIGHT = 0.7
DEFAULT_NODE_KIND = "fact"
DEFAULT_NODE_SOURCE = "manual"
DEFAULT_RELATION = "related_to"

# Layout grid for nodes without coordinates
LAYOUT_COLUMNS = 4
LAYOUT_X_STEP = 280
LAYOUT_Y_STEP = 150

# Markdown evidence
DEFAULT_TOPIC = "General"
MAX_TOPIC_CHARS = 48
MAX_CHUNK_CHARS = 280
MAX_STATEMENT_CHARS = 360
MAX_CANONICAL_FACT_CHARS = 120
DEFAULT_MAX_CHUNKS = 120
TELEMETRY_MAX_CHUNKS = 140
KV_CONFIDENCE_HINT = 0.8
BULLET_CONFIDENCE_HINT = 0.72

# LLM extraction
VALID_ENTITY_TYPES = ("person", "project", "tool", "concept", "preference")
FALLBACK_ENTITY_TYPE = "concept"
DEFAULT_RELATION_CONFIDENCE = 0.75
EXTRACTION_INPUT_CHARS = 8000
MAX_ENTITY_SUMMARY_CHARS = 200
ENTITY_NODE_CONFIDENCE = 0.85

# Document harvesting
INDEXED_FILE_CHAR_BUDGET = 11000
JOURNAL_FILE_CHARS = 9000
WORKSPACE_FILE_CHARS = 11000
MEMORY_DOCUMENT_NAME = "MEMORY.md"

# Snapshot section
SNAPSHOT_START = "<!-- KNOWLEDGE_GRAPH:START -->"
SNAPSHOT_END = "<!-- KNOWLEDGE_GRAPH:END -->"
SNAPSHOT_TOP_NODES = 12
SNAPSHOT_TOP_EDGES = 20

# Node sources that never point at a file
NON_FILE_SOURCES = ("bootstrap", "manual", "template", "filesystem", "agents")

# External command timeouts (seconds)
AGENTS_LIST_TIMEOUT = 12.0
MEMORY_STATUS_TIMEOUT = 12.0
SQLITE_QUERY_TIMEOUT = 15.0
READ_REINDEX_TIMEOUT = 45.0
SAVE_REINDEX_TIMEOUT = 20.0
GATEWAY_RPC_TIMEOUT = 10.0
