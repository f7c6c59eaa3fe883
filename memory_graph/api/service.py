"""Request orchestration for reading and writing the knowledge graph."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from ..core.builder import build_llm_graph
from ..core.config import GraphConfig
from ..core.constants import READ_REINDEX_TIMEOUT, SAVE_REINDEX_TIMEOUT
from ..core.exceptions import GraphConflictError, UnknownActionError
from ..core.extractor import EntityExtractor, resolve_api_key
from ..core.normalizer import normalize_graph, reconcile_agents
from ..core.persistence import GraphPersistence, read_text_optional, write_text_atomic
from ..core.synthesizer import build_snapshot_section, upsert_snapshot
from ..core.types import KnowledgeGraph
from .gateway import AgentGateway
from .harvester import DocumentHarvester, HarvestResult
from .tasks import ReindexScheduler
from .telemetry import TelemetryAssembler, build_telemetry

logger = logging.getLogger(__name__)

WRITE_ACTIONS = ("save", "publish-memory-md")


class MemoryGraphService:
    """
    Knowledge graph reads and writes for one workspace.

    Reads either load the persisted graph and add missing agents, or
    bootstrap a new graph from the agent's notes. Writes normalize the
    submitted graph before anything touches disk.
    """

    def __init__(
        self,
        config: GraphConfig,
        gateway: AgentGateway,
        extractor_factory: Callable[[], EntityExtractor] | None = None,
    ):
        self.config = config
        self.gateway = gateway
        self.persistence = GraphPersistence(config.graph_json_path, config.graph_md_path)
        self.harvester = DocumentHarvester(config, gateway)
        self.telemetry = TelemetryAssembler(config, gateway)
        self.reindexer = ReindexScheduler(gateway)
        self._extractor_factory = extractor_factory or self._default_extractor

        logger.info(f"Knowledge graph service initialized for workspace {config.workspace}")

    def _default_extractor(self) -> EntityExtractor:
        # Resolved per bootstrap so a key added to .env is picked up without restart
        return EntityExtractor(
            api_key=resolve_api_key(self.config.openclaw_home),
            base_url=self.config.llm_base_url,
            model=self.config.llm_model,
            timeout=self.config.llm_timeout,
            max_tokens=self.config.llm_max_tokens,
        )

    def paths(self) -> dict:
        return {
            "json": str(self.config.graph_json_path),
            "markdown": str(self.config.graph_md_path),
            "memory": str(self.config.memory_md_path),
        }

    def load_graph(self) -> KnowledgeGraph | None:
        raw = self.persistence.load_raw()
        return None if raw is None else normalize_graph(raw, self.config.meta)

    # ========================================================================
    # Read
    # ========================================================================

    async def read_graph(self, mode: str | None = None) -> dict:
        """
        Graph plus bootstrap provenance and telemetry.

        mode="bootstrap" forces a fresh extraction even when a graph is
        persisted.
        """
        persisted = None if mode == "bootstrap" else self.load_graph()
        self.reindexer.schedule(READ_REINDEX_TIMEOUT, trigger="read")

        async def no_harvest() -> None:
            return None

        agents, harvest, (docs, messages) = await asyncio.gather(
            self.harvester.list_agents(),
            self.harvester.harvest() if persisted is None else no_harvest(),
            self.telemetry.collect(),
        )

        bootstrap = None
        if persisted is not None:
            graph = reconcile_agents(persisted, agents, self.config.meta)
        else:
            graph, bootstrap = await self._bootstrap(harvest, agents)

        return {
            "graph": graph,
            "bootstrap": bootstrap,
            "telemetry": build_telemetry(docs, messages, graph, self.config.telemetry_document_limit),
            "workspace": str(self.config.workspace),
            "paths": self.paths(),
            "hash": self.persistence.current_hash(),
        }

    async def _bootstrap(self, harvest: HarvestResult, agents: list) -> tuple[KnowledgeGraph, dict]:
        result = await build_llm_graph(harvest.files, agents, self._extractor_factory(), self.config.meta)
        info = {"source": harvest.source, "files": harvest.names}
        if result.extraction_error:
            info["error"] = result.extraction_error
        if result.document_errors:
            info["errors"] = result.document_errors
        return result.graph, info

    # ========================================================================
    # Write
    # ========================================================================

    def _schedule_reindex(self, reindex: bool, trigger: str) -> dict:
        previous = self.reindexer.last_result
        scheduled = self.reindexer.schedule(SAVE_REINDEX_TIMEOUT, trigger) if reindex else False
        return {"reindexScheduled": scheduled, "lastReindex": previous}

    async def save_graph(self, raw_graph: Any, reindex: bool = True, base_hash: str | None = None) -> dict:
        """
        Normalize and persist a client-edited graph.

        base_hash, when given, must match the file currently on disk.
        """
        graph = normalize_graph(raw_graph, self.config.meta)
        if base_hash is not None:
            current = self.persistence.current_hash()
            if base_hash != current:
                raise GraphConflictError(base_hash, current)

        new_hash = self.persistence.save(graph)
        return {
            "ok": True,
            "action": "save",
            "graph": graph,
            "materialized": str(self.config.graph_md_path),
            "hash": new_hash,
            **self._schedule_reindex(reindex, "save"),
        }

    async def publish_memory_md(self, raw_graph: Any = None, reindex: bool = True) -> dict:
        """
        Fold a snapshot of the persisted graph into MEMORY.md.

        Falls back to the submitted graph when nothing is persisted yet.
        Only the marker-delimited region of the document changes.
        """
        graph = self.load_graph() or normalize_graph(raw_graph, self.config.meta)
        path = self.config.memory_md_path
        current = read_text_optional(path) or ""
        write_text_atomic(path, upsert_snapshot(current, build_snapshot_section(graph)))
        logger.info(f"Published graph snapshot to {path}")

        return {
            "ok": True,
            "action": "publish-memory-md",
            "published": str(path),
            **self._schedule_reindex(reindex, "publish-memory-md"),
        }

    async def write(self, action: str, raw_graph: Any, reindex: bool = True, base_hash: str | None = None) -> dict:
        if action == "save":
            return await self.save_graph(raw_graph, reindex, base_hash)
        if action == "publish-memory-md":
            return await self.publish_memory_md(raw_graph, reindex)
        raise UnknownActionError(action)

    def diagnostics(self) -> dict:
        return {"reindex": self.reindexer.diagnostics()}

    async def shutdown(self):
        await self.reindexer.shutdown()
        logger.info("Knowledge graph service shutdown complete")
