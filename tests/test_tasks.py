"""Tests for background reindexing"""

import asyncio

from memory_graph.api.tasks import ReindexScheduler
from tests.conftest import FakeGateway


class BlockingGateway(FakeGateway):
    """Holds `memory index` open until released."""

    def __init__(self):
        super().__init__({"memory index": ""})
        self.release = asyncio.Event()

    async def run_cli(self, args, timeout=15.0):
        await self.release.wait()
        return await super().run_cli(args, timeout)


async def test_success_is_recorded():
    gateway = FakeGateway({"memory index": "ok"})
    scheduler = ReindexScheduler(gateway)

    assert scheduler.schedule(20, trigger="save") is True
    await scheduler.wait()

    assert gateway.calls == [["memory", "index"]]
    assert scheduler.last_result["indexed"] is True
    assert scheduler.last_result["error"] is None
    assert scheduler.last_result["trigger"] == "save"
    assert scheduler.last_result["finishedAt"].endswith("Z")


async def test_failure_is_captured_not_raised():
    scheduler = ReindexScheduler(FakeGateway())
    scheduler.schedule(20, trigger="read")
    await scheduler.wait()

    assert scheduler.last_result["indexed"] is False
    assert "command not available" in scheduler.last_result["error"]
    assert scheduler.diagnostics() == {"running": False, "last": scheduler.last_result}


async def test_requests_coalesce_while_running():
    gateway = BlockingGateway()
    scheduler = ReindexScheduler(gateway)

    assert scheduler.schedule(20, trigger="save") is True
    assert scheduler.schedule(20, trigger="save") is False
    assert scheduler.running

    gateway.release.set()
    await scheduler.wait()
    assert len(gateway.calls) == 1
    assert scheduler.schedule(20, trigger="save") is True
    await scheduler.wait()


async def test_shutdown_cancels_in_flight():
    scheduler = ReindexScheduler(BlockingGateway())
    scheduler.schedule(20, trigger="read")

    await scheduler.shutdown()

    assert not scheduler.running
    assert scheduler.last_result is None
