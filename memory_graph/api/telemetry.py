"""Read-only evidence shown beside the graph: source documents and recent chat."""

import asyncio
import logging
import math
from pathlib import Path
from typing import Any, Literal

from ..core.config import GraphConfig
from ..core.constants import GATEWAY_RPC_TIMEOUT, MEMORY_DOCUMENT_NAME, NON_FILE_SOURCES, TELEMETRY_MAX_CHUNKS
from ..core.evidence import extract_evidence_from_markdown
from ..core.exceptions import GatewayError
from ..core.normalizer import utc_now_iso
from ..core.types import GraphTelemetry, KnowledgeGraph, RecentChatMessage, SourceDocument
from ..core.utils import sanitize_text, slug
from .gateway import AgentGateway

logger = logging.getLogger(__name__)


def to_epoch_ms(value: Any) -> int:
    """Epoch milliseconds from seconds or milliseconds; 0 when unusable."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number <= 0:
        return 0
    return int(number * 1000) if number < 1_000_000_000_000 else int(number)


def extract_message_text(message: dict) -> str:
    """Join the text parts of a gateway chat message."""
    parts = message.get("content")
    if not isinstance(parts, list):
        return ""
    texts = [
        part["text"] for part in parts
        if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
    ]
    return "\n".join(texts).strip()


def collect_graph_source_hints(graph: KnowledgeGraph) -> set[str]:
    """Lowercased file names the graph refers to, plus memory.md."""
    hints = {MEMORY_DOCUMENT_NAME.lower()}
    for node in graph["nodes"]:
        source = sanitize_text(node["source"]).lower()
        if source and source not in NON_FILE_SOURCES:
            hints.add(source)
        for tag in node["tags"]:
            if tag.startswith("file:"):
                hint = sanitize_text(tag[len("file:"):]).lower()
                if hint:
                    hints.add(hint)
    for edge in graph["edges"]:
        evidence = sanitize_text(edge["evidence"]).lower()
        if evidence.endswith(".md"):
            hints.add(evidence)
    return hints


def rank_source_documents(
    docs: list[SourceDocument],
    graph: KnowledgeGraph,
    limit: int,
) -> list[SourceDocument]:
    """Documents the graph cites first, then newest first."""
    hints = collect_graph_source_hints(graph)
    ranked = sorted(docs, key=lambda d: (d["name"].lower() not in hints, -d["mtimeMs"]))
    return ranked[:limit]


class TelemetryAssembler:
    """Gathers telemetry without touching the graph or any file."""

    def __init__(self, config: GraphConfig, gateway: AgentGateway):
        self.config = config
        self.gateway = gateway

    def _load_document(
        self,
        name: str,
        path: Path,
        source: Literal["workspace", "memory"],
    ) -> SourceDocument | None:
        try:
            stat = path.stat()
            if not path.is_file():
                return None
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Skipping {path}: {e}")
            return None

        chunks, facts = extract_evidence_from_markdown(content, TELEMETRY_MAX_CHUNKS)
        return {
            "id": f"doc-{slug(name)}",
            "name": name,
            "path": str(path),
            "source": source,
            "mtimeMs": stat.st_mtime * 1000,
            "size": stat.st_size,
            "chunks": chunks,
            "facts": facts,
        }

    def scan_source_documents(self) -> list[SourceDocument]:
        """
        MEMORY.md, workspace root .md files and memory/*.md, each parsed
        into chunks and facts. Unranked; first file name wins.
        """
        candidates: list[tuple[str, Path, Literal["workspace", "memory"]]] = [
            (MEMORY_DOCUMENT_NAME, self.config.memory_md_path, "workspace"),
        ]
        try:
            candidates += [
                (p.name, p, "workspace")
                for p in sorted(self.config.workspace.iterdir())
                if p.name.endswith(".md") and p.name.lower() != MEMORY_DOCUMENT_NAME.lower()
            ]
        except OSError:
            logger.debug(f"Workspace {self.config.workspace} missing")
        try:
            candidates += [
                (p.name, p, "memory")
                for p in sorted(self.config.memory_dir.iterdir())
                if p.name.lower().endswith(".md")
            ]
        except OSError:
            logger.debug(f"Memory directory {self.config.memory_dir} missing")

        docs: list[SourceDocument] = []
        seen: set[str] = set()
        for name, path, source in candidates:
            if not name.endswith(".md") or name.lower() in seen:
                continue
            doc = self._load_document(name, path, source)
            if doc is not None:
                docs.append(doc)
                seen.add(name.lower())
        return docs

    async def _session_history(self, session_key: str, limit: int) -> list[RecentChatMessage]:
        try:
            history = await self.gateway.gateway_call(
                "chat.history",
                {"sessionKey": session_key, "limit": limit},
                GATEWAY_RPC_TIMEOUT,
            )
        except GatewayError as e:
            logger.debug(f"No history for {session_key}: {e}")
            return []

        rows = history.get("messages") if isinstance(history, dict) else None
        messages: list[RecentChatMessage] = []
        for msg in rows if isinstance(rows, list) else []:
            if not isinstance(msg, dict):
                continue
            text = extract_message_text(msg)
            if text:
                messages.append({
                    "sessionKey": session_key,
                    "role": sanitize_text(msg.get("role"), "unknown"),
                    "timestampMs": to_epoch_ms(msg.get("timestamp")),
                    "text": text,
                })
        return messages

    async def read_recent_chat_messages(self) -> list[RecentChatMessage]:
        """Newest messages across the most recently active agent sessions."""
        limit_sessions = self.config.chat_session_limit
        per_session = self.config.chat_messages_per_session
        try:
            result = await self.gateway.gateway_call("sessions.list", None, GATEWAY_RPC_TIMEOUT)
        except GatewayError as e:
            logger.warning(f"Could not list sessions: {e}")
            return []

        sessions = result.get("sessions") if isinstance(result, dict) else None
        ranked = sorted(
            (
                (sanitize_text(s.get("key")), to_epoch_ms(s.get("updatedAt")))
                for s in (sessions if isinstance(sessions, list) else [])
                if isinstance(s, dict)
            ),
            key=lambda pair: pair[1],
            reverse=True,
        )
        keys = [key for key, _ in ranked if key.startswith("agent:")][:limit_sessions]

        histories = await asyncio.gather(*(self._session_history(key, per_session) for key in keys))
        messages = [msg for history in histories for msg in history]
        messages.sort(key=lambda m: m["timestampMs"], reverse=True)
        return messages[:limit_sessions * per_session]

    async def collect(self) -> tuple[list[SourceDocument], list[RecentChatMessage]]:
        """Scan documents and chat history concurrently. Ranking needs the graph, see build_telemetry."""
        docs, messages = await asyncio.gather(
            asyncio.to_thread(self.scan_source_documents),
            self.read_recent_chat_messages(),
        )
        return docs, messages


def build_telemetry(
    docs: list[SourceDocument],
    messages: list[RecentChatMessage],
    graph: KnowledgeGraph,
    limit: int,
) -> GraphTelemetry:
    return {
        "generatedAt": utc_now_iso(),
        "sourceDocuments": rank_source_documents(docs, graph, limit),
        "recentChatMessages": messages,
    }
