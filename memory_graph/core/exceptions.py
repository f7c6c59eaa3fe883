"""Custom exceptions for knowledge graph operations."""


class KGError(Exception):
    """Base exception for knowledge graph operations."""
    pass


class GatewayError(KGError):
    """Raised when the agent CLI or gateway call fails."""
    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"{command} failed: {reason}")


class ExtractionError(KGError):
    """Raised when LLM extraction fails for a single document."""
    def __init__(self, document: str, reason: str):
        self.document = document
        self.reason = reason
        super().__init__(f"Extraction failed for {document}: {reason}")


class GraphConflictError(KGError):
    """Raised when a save is based on a stale copy of the graph file."""
    def __init__(self, base_hash: str, current_hash: str):
        self.base_hash = base_hash
        self.current_hash = current_hash
        super().__init__(
            f"Graph changed on disk (base {base_hash[:12] or 'none'}, current {current_hash[:12] or 'none'})"
        )


class UnknownActionError(KGError):
    """Raised for an unsupported write action."""
    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown action: {action}")
