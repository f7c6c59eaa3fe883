"""Best-effort background reindexing of the agent's memory."""

import asyncio
import logging

from ..core.normalizer import utc_now_iso
from .gateway import AgentGateway

logger = logging.getLogger(__name__)


class ReindexScheduler:
    """
    Fires `memory index` without making the caller wait.

    At most one reindex runs at a time; a request while one is in flight
    is coalesced into it. The outcome of the last run is kept in
    last_result for diagnostics.
    """

    def __init__(self, gateway: AgentGateway):
        self.gateway = gateway
        self.last_result: dict | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, timeout: float, trigger: str) -> bool:
        """Start a reindex in the background. Returns False if one is already running."""
        if self.running:
            logger.debug(f"Reindex already running, coalescing {trigger} trigger")
            return False
        self._task = asyncio.create_task(self._run(timeout, trigger))
        return True

    async def _run(self, timeout: float, trigger: str):
        try:
            await self.gateway.run_cli(["memory", "index"], timeout)
            result = {"indexed": True, "error": None}
            logger.info(f"Memory reindex finished ({trigger})")
        except Exception as e:
            result = {"indexed": False, "error": str(e)}
            logger.warning(f"Memory reindex failed ({trigger}): {e}")
        self.last_result = {**result, "trigger": trigger, "finishedAt": utc_now_iso()}

    async def wait(self):
        """Wait for the in-flight reindex, if any."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def shutdown(self):
        if self.running:
            self._task.cancel()
        await self.wait()

    def diagnostics(self) -> dict:
        return {"running": self.running, "last": self.last_result}
