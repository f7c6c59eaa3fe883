"""Runtime configuration, resolved once at startup."""

import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .constants import MEMORY_DOCUMENT_NAME
from .types import GraphMeta

logger = logging.getLogger(__name__)


def resolve_openclaw_home() -> Path:
    """OPENCLAW_HOME, then OPENCLAW_STATE_DIR, then ~/.openclaw."""
    home = os.getenv("OPENCLAW_HOME") or os.getenv("OPENCLAW_STATE_DIR")
    return Path(home).expanduser() if home else Path.home() / ".openclaw"


def resolve_workspace(openclaw_home: Path) -> Path:
    """
    Default agent workspace.

    Priority: OPENCLAW_WORKSPACE, then agents.defaults.workspace from
    openclaw.json, then <home>/workspace.
    """
    env_workspace = os.getenv("OPENCLAW_WORKSPACE")
    if env_workspace:
        return Path(env_workspace).expanduser()

    config_path = openclaw_home / "openclaw.json"
    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
        workspace = data.get("agents", {}).get("defaults", {}).get("workspace")
        if isinstance(workspace, str) and workspace:
            return Path(workspace).expanduser()
    except FileNotFoundError:
        pass
    except (OSError, ValueError, AttributeError) as e:
        logger.warning(f"Ignoring unreadable {config_path}: {e}")

    return openclaw_home / "workspace"


def resolve_openclaw_bin() -> str:
    """OPENCLAW_BIN, then PATH lookup, then the bare command name."""
    return os.getenv("OPENCLAW_BIN") or shutil.which("openclaw") or "openclaw"


@dataclass(frozen=True)
class GraphConfig:
    """Knowledge graph configuration."""
    workspace: Path
    openclaw_home: Path = field(default_factory=resolve_openclaw_home)
    openclaw_bin: str = "openclaw"
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    llm_timeout: float = 25.0
    llm_max_tokens: int = 4000
    indexed_file_limit: int = 30
    journal_file_limit: int = 10
    telemetry_document_limit: int = 24
    chat_session_limit: int = 8
    chat_messages_per_session: int = 50

    @property
    def memory_dir(self) -> Path:
        return self.workspace / "memory"

    @property
    def graph_json_path(self) -> Path:
        return self.memory_dir / "knowledge-graph.json"

    @property
    def graph_md_path(self) -> Path:
        return self.memory_dir / "knowledge-graph.md"

    @property
    def memory_md_path(self) -> Path:
        return self.workspace / MEMORY_DOCUMENT_NAME

    @property
    def meta(self) -> GraphMeta:
        return {
            "workspace": str(self.workspace),
            "materializedPath": str(self.graph_md_path),
            "jsonPath": str(self.graph_json_path),
        }

    @classmethod
    def from_env(cls) -> "GraphConfig":
        """Create configuration from environment variables."""
        home = resolve_openclaw_home()
        return cls(
            workspace=resolve_workspace(home),
            openclaw_home=home,
            openclaw_bin=resolve_openclaw_bin(),
            llm_base_url=os.getenv("KG_LLM_BASE_URL", "https://api.openai.com/v1"),
            llm_model=os.getenv("KG_LLM_MODEL", "gpt-4o-mini"),
            llm_timeout=float(os.getenv("KG_LLM_TIMEOUT", "25")),
            llm_max_tokens=int(os.getenv("KG_LLM_MAX_TOKENS", "4000")),
            indexed_file_limit=int(os.getenv("KG_INDEXED_FILE_LIMIT", "30")),
            journal_file_limit=int(os.getenv("KG_JOURNAL_FILE_LIMIT", "10")),
            telemetry_document_limit=int(os.getenv("KG_TELEMETRY_DOCUMENT_LIMIT", "24")),
            chat_session_limit=int(os.getenv("KG_CHAT_SESSION_LIMIT", "8")),
            chat_messages_per_session=int(os.getenv("KG_CHAT_MESSAGES_PER_SESSION", "50")),
        )
