"""HTTP surface and the agent-facing collaborators behind it."""

from .gateway import AgentGateway, parse_json_from_cli_output, strip_ansi
from .harvester import DocumentHarvester, HarvestResult
from .service import MemoryGraphService
from .tasks import ReindexScheduler
from .telemetry import TelemetryAssembler, build_telemetry

__all__ = [
    "AgentGateway",
    "DocumentHarvester",
    "HarvestResult",
    "MemoryGraphService",
    "ReindexScheduler",
    "TelemetryAssembler",
    "build_telemetry",
    "parse_json_from_cli_output",
    "strip_ansi",
]
