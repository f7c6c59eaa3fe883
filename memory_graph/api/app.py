"""FastAPI HTTP server for the agent memory knowledge graph."""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .. import __version__
from ..core.config import GraphConfig
from ..core.exceptions import GraphConflictError, UnknownActionError
from .gateway import AgentGateway
from .service import MemoryGraphService

# Configure logging
log_level = os.getenv("KG_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================

class GraphWriteRequest(BaseModel):
    """Request to save the graph or publish it into MEMORY.md."""
    model_config = ConfigDict(populate_by_name=True)

    action: str = Field("save", description="'save' or 'publish-memory-md'")
    graph: Any = Field(None, description="Client-edited graph, normalized before use")
    reindex: Any = Field(True, description="Anything but false triggers a background memory reindex")
    base_hash: str | None = Field(
        None, alias="baseHash", description="Hash of the graph file the edit started from"
    )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    workspace: str
    graph_exists: bool


# ============================================================================
# Global State
# ============================================================================

service: MemoryGraphService | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    global service

    logger.info("Starting Knowledge Graph HTTP Server...")

    # Tests may install their own service before startup
    if service is None:
        config = GraphConfig.from_env()
        service = MemoryGraphService(config, AgentGateway(config.openclaw_bin))

    logger.info("Server ready")

    yield

    if service:
        await service.shutdown()

    logger.info("Server stopped")


app = FastAPI(
    title="Agent Memory Knowledge Graph",
    description="Knowledge graph synthesis over agent memory notes",
    version=__version__,
    lifespan=lifespan
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """An unparsable request body fails like any other handler error."""
    logger.error(f"Error parsing request to {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


def _require_service() -> MemoryGraphService:
    if not service:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return service


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    svc = _require_service()
    return {
        "status": "ok",
        "version": __version__,
        "workspace": str(svc.config.workspace),
        "graph_exists": svc.config.graph_json_path.exists(),
    }


@app.get("/api/memory/graph")
async def read_graph(mode: str | None = None):
    """
    Read the knowledge graph with telemetry.
    mode=bootstrap rebuilds it from the agent's notes.
    """
    svc = _require_service()
    try:
        return await svc.read_graph(mode)
    except Exception as e:
        logger.error(f"Error reading graph: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/memory/graph")
async def write_graph(request: GraphWriteRequest):
    """Save the graph or publish its snapshot into MEMORY.md."""
    svc = _require_service()
    try:
        return await svc.write(request.action, request.graph, request.reindex is not False, request.base_hash)
    except UnknownActionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GraphConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Error writing graph: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/memory/graph/diagnostics")
async def diagnostics():
    """Outcome of the most recent background reindex."""
    return _require_service().diagnostics()


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("KG_HTTP_PORT", "8765"))
    host = os.getenv("KG_HTTP_HOST", "127.0.0.1")

    logger.info(f"Starting server on {host}:{port}")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=log_level.lower(),
    )
