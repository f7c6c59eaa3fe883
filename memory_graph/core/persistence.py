"""Graph persistence with atomic writes."""

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from .synthesizer import graph_to_markdown
from .types import KnowledgeGraph

logger = logging.getLogger(__name__)


def read_text_optional(path: Path) -> str | None:
    """File contents, or None when the file is missing or unreadable."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return None


def write_text_atomic(path: Path, text: str):
    """Write via a temp file and rename so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f".{path.name}.tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(path)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def content_hash(text: str | None) -> str:
    """SHA-256 of file contents; empty string for a missing file."""
    if text is None:
        return ""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class GraphPersistence:
    """Reads and writes knowledge-graph.json and its markdown mirror."""

    def __init__(self, json_path: Path, markdown_path: Path):
        self.json_path = json_path
        self.markdown_path = markdown_path

    def load_raw(self) -> Any | None:
        """
        Parsed JSON as stored on disk, not yet validated.
        Returns None when the file is missing or not valid JSON.
        """
        raw = read_text_optional(self.json_path)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error(f"Failed to parse graph from {self.json_path}: {e}")
            return None

        logger.debug(f"Loaded graph from {self.json_path}")
        return data

    def current_hash(self) -> str:
        return content_hash(read_text_optional(self.json_path))

    def save(self, graph: KnowledgeGraph) -> str:
        """
        Write the JSON graph and regenerate the markdown mirror.
        Returns the hash of the written JSON.
        """
        serialized = json.dumps(graph, indent=2, ensure_ascii=False)
        write_text_atomic(self.json_path, serialized)
        write_text_atomic(self.markdown_path, graph_to_markdown(graph))

        logger.info(
            f"Saved graph to {self.json_path}: {len(graph['nodes'])} nodes, {len(graph['edges'])} edges"
        )
        return content_hash(serialized)
