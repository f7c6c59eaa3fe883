"""Discovery and loading of seed documents for graph bootstrap."""

import asyncio
import logging
import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..core.config import GraphConfig
from ..core.constants import (
    AGENTS_LIST_TIMEOUT,
    INDEXED_FILE_CHAR_BUDGET,
    JOURNAL_FILE_CHARS,
    MEMORY_DOCUMENT_NAME,
    MEMORY_STATUS_TIMEOUT,
    SQLITE_QUERY_TIMEOUT,
    WORKSPACE_FILE_CHARS,
)
from ..core.exceptions import GatewayError
from ..core.persistence import read_text_optional
from ..core.types import AgentRow, BootstrapFile
from ..core.utils import sanitize_text
from .gateway import AgentGateway

logger = logging.getLogger(__name__)

JOURNAL_NAME = re.compile(r"^\d{4}-\d{2}-\d{2}.*\.md$", re.IGNORECASE)

INDEXED_CHUNKS_SQL = (
    "select c.path as path, c.start_line as start_line, c.text as text, f.mtime as mtime "
    "from chunks c "
    "join files f on c.path = f.path and c.source = f.source "
    "order by f.mtime desc, c.path asc, c.start_line asc"
)


@dataclass
class HarvestResult:
    """Seed documents for one bootstrap run, MEMORY.md first."""
    files: list[BootstrapFile]
    source: str

    @property
    def names(self) -> list[str]:
        return [f["name"] for f in self.files]


def _same_path(a: str, b: Path) -> bool:
    try:
        return Path(a).expanduser().resolve() == b.expanduser().resolve()
    except (OSError, RuntimeError):
        return a == str(b)


def query_index_chunks(db_path: str) -> list[dict[str, Any]]:
    """Read every indexed chunk from the memory index database, read-only."""
    uri = f"{Path(db_path).resolve().as_uri()}?mode=ro"
    conn = sqlite3.connect(uri, uri=True, timeout=SQLITE_QUERY_TIMEOUT)
    try:
        conn.row_factory = sqlite3.Row
        return [dict(row) for row in conn.execute(INDEXED_CHUNKS_SQL)]
    finally:
        conn.close()


def group_chunks_by_file(rows: list[dict[str, Any]], limit: int) -> list[BootstrapFile]:
    """
    Concatenate chunk text per markdown file.

    Files beyond limit are skipped; a file stops taking chunks once it
    exceeds the character budget.
    """
    grouped: dict[str, dict] = {}
    for row in rows:
        path = sanitize_text(row.get("path"))
        if not path.endswith(".md"):
            continue
        if path not in grouped:
            if len(grouped) >= limit:
                continue
            grouped[path] = {"name": Path(path).name, "parts": [], "chars": 0}
        entry = grouped[path]

        text = row.get("text")
        chunk = text.replace("\r\n", "\n").replace("\r", "\n").strip() if isinstance(text, str) else ""
        if not chunk or entry["chars"] > INDEXED_FILE_CHAR_BUDGET:
            continue
        entry["parts"].append(chunk)
        entry["chars"] += len(chunk)

    return [
        {"name": entry["name"], "content": "\n\n".join(entry["parts"]), "source": "indexed"}
        for entry in grouped.values()
        if entry["parts"]
    ]


class DocumentHarvester:
    """Finds the documents a bootstrap extraction should read."""

    def __init__(self, config: GraphConfig, gateway: AgentGateway):
        self.config = config
        self.gateway = gateway

    async def list_agents(self) -> list[AgentRow]:
        """Agent roster from the CLI; empty when the CLI is unavailable."""
        try:
            rows = await self.gateway.run_cli_json(["agents", "list"], AGENTS_LIST_TIMEOUT)
        except GatewayError as e:
            logger.warning(f"Could not list agents: {e}")
            return []
        if not isinstance(rows, list):
            return []
        return [row for row in rows if isinstance(row, dict)]

    def read_workspace_root_files(self) -> list[BootstrapFile]:
        """Root-level .md files of the workspace, except the memory document."""
        workspace = self.config.workspace
        try:
            names = sorted(
                p.name for p in workspace.iterdir()
                if p.is_file() and p.name.endswith(".md")
                and p.name.lower() != MEMORY_DOCUMENT_NAME.lower()
            )
        except OSError as e:
            logger.debug(f"Workspace {workspace} unreadable: {e}")
            return []

        files: list[BootstrapFile] = []
        for name in names:
            content = read_text_optional(workspace / name)
            if content is not None:
                files.append({"name": name, "content": content[:WORKSPACE_FILE_CHARS], "source": "filesystem"})
        return files

    def read_recent_journal_files(self, limit: int) -> list[BootstrapFile]:
        """Newest dated journal entries from the memory directory."""
        memory_dir = self.config.memory_dir
        try:
            names = sorted(
                (p.name for p in memory_dir.iterdir() if p.is_file() and JOURNAL_NAME.match(p.name)),
                reverse=True,
            )[:limit]
        except OSError as e:
            logger.debug(f"Memory directory {memory_dir} unreadable: {e}")
            return []

        files: list[BootstrapFile] = []
        for name in names:
            content = read_text_optional(memory_dir / name)
            if content is not None:
                files.append({"name": name, "content": content[:JOURNAL_FILE_CHARS], "source": "filesystem"})
        return files

    async def read_indexed_memory_files(self, limit: int) -> list[BootstrapFile]:
        """Markdown files reassembled from the external memory index."""
        try:
            statuses = await self.gateway.run_cli_json(["memory", "status"], MEMORY_STATUS_TIMEOUT)
        except GatewayError as e:
            logger.warning(f"Memory status unavailable: {e}")
            return []

        db_path = None
        for row in statuses if isinstance(statuses, list) else []:
            status = row.get("status") if isinstance(row, dict) else None
            if not isinstance(status, dict):
                continue
            workspace_dir = status.get("workspaceDir")
            if isinstance(workspace_dir, str) and _same_path(workspace_dir, self.config.workspace):
                db_path = status.get("dbPath")
                break
        if not isinstance(db_path, str) or not db_path:
            return []

        try:
            rows = await asyncio.to_thread(query_index_chunks, db_path)
        except sqlite3.Error as e:
            logger.warning(f"Could not read memory index {db_path}: {e}")
            return []

        files = group_chunks_by_file(rows, limit)
        logger.debug(f"Read {len(files)} files from memory index {db_path}")
        return files

    async def harvest(self) -> HarvestResult:
        """
        Seed documents for bootstrap.

        Order: MEMORY.md (when non-empty), then indexed files or, if the
        index yields nothing, recent journal files, then workspace root
        files. Deduplicated by file name.
        """
        indexed = await self.read_indexed_memory_files(self.config.indexed_file_limit)
        fallback = [] if indexed else await asyncio.to_thread(
            self.read_recent_journal_files, self.config.journal_file_limit
        )
        memory_md, root_files = await asyncio.gather(
            asyncio.to_thread(read_text_optional, self.config.memory_md_path),
            asyncio.to_thread(self.read_workspace_root_files),
        )

        seeds: list[BootstrapFile] = []
        memory_md = memory_md or ""
        if memory_md.strip():
            seeds.append({"name": MEMORY_DOCUMENT_NAME, "content": memory_md, "source": "filesystem"})

        seen = {f["name"] for f in seeds}
        for f in [*(indexed or fallback), *root_files]:
            if f["name"] not in seen:
                seeds.append(f)
                seen.add(f["name"])

        source = "indexed" if indexed else "filesystem"
        logger.info(f"Harvested {len(seeds)} seed documents ({source})")
        return HarvestResult(seeds, source)
