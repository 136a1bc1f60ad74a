"""
Labeled Argumentation Framework: API Server
===========================================

HTTP surface over the argumentation backend.

Endpoints:
- GET  /health             -> Liveness
- POST /api/program        -> Load facts and rules into the app's program
- POST /api/operations     -> Load the label operations
- GET  /api/graph          -> Build the graph of the loaded program
- POST /api/graph          -> Stateless build from {facts, rules, operations}
- GET  /api/graph/metrics  -> Structural metrics of the loaded program's graph

The loaded program lives on ``app.state.context``; two applications never
share one.

Usage:
    uvicorn laf.api.server:app --reload
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..contracts.base import LafError
from ..contracts.knowledge import ProgramContext
from ..core import InferenceConfig
from ..core.topology import GraphTopology
from ..engine import ArgumentationBackend, BackendConfig
from .mapper import (
    GraphRequest,
    OperationInputRequest,
    ProgramInputRequest,
    map_facts,
    map_graph_to_dto,
    map_operations,
    map_rules,
)

logger = logging.getLogger(__name__)


# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

def config_from_env() -> BackendConfig:
    """Backend configuration, with LAF_MAX_PASSES as an optional override."""
    inference = InferenceConfig()
    max_passes = os.environ.get("LAF_MAX_PASSES")
    if max_passes:
        inference = InferenceConfig(max_passes=int(max_passes))
    return BackendConfig(inference=inference)


def _backend(request: Request) -> ArgumentationBackend:
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise HTTPException(status_code=503, detail="Backend not initialized")
    return backend


def _context(request: Request) -> ProgramContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=503, detail="Backend not initialized")
    return context


def create_app(config: Optional[BackendConfig] = None) -> FastAPI:
    """Build the application; config defaults to config_from_env()."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        backend_config = config or config_from_env()
        logger.info(
            "Initializing argumentation backend (max_passes=%d)",
            backend_config.inference.max_passes
        )
        app.state.backend = ArgumentationBackend(backend_config)
        app.state.context = ProgramContext()

        yield

        logger.info("Shutting down argumentation backend")
        app.state.backend = None
        app.state.context = None

    app = FastAPI(
        title="Labeled Argumentation Framework API",
        version=__version__,
        description="Builds labeled argumentation graphs from facts, rules and label operations",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(LafError)
    async def laf_error_handler(request: Request, exc: LafError):
        logger.warning("Build rejected [%s]: %s", exc.code.name, exc)
        return JSONResponse(
            status_code=400,
            content={"code": exc.code.name, "message": str(exc)}
        )

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    @app.get("/health")
    async def health_check(request: Request):
        """System status."""
        _backend(request)
        return {"status": "online"}

    @app.post("/api/program", status_code=204)
    async def upload_program(body: ProgramInputRequest, request: Request):
        """Replace the loaded facts and rules."""
        context = _context(request)
        context.load_program(map_facts(body.facts), map_rules(body.rules))
        logger.info("Loaded program: %d facts, %d rules", len(body.facts), len(body.rules))
        return Response(status_code=204)

    @app.post("/api/operations", status_code=204)
    async def upload_operations(body: OperationInputRequest, request: Request):
        """Replace the loaded label operations."""
        context = _context(request)
        context.load_operations(map_operations(body))
        logger.info("Loaded operations for %d labels", len(body.labels))
        return Response(status_code=204)

    @app.get("/api/graph")
    async def get_graph(request: Request):
        """Build the graph of the loaded program."""
        graph = _backend(request).build_context(_context(request))
        return map_graph_to_dto(graph)

    @app.post("/api/graph")
    async def build_graph(body: GraphRequest, request: Request):
        """Build a graph without touching the loaded program."""
        graph = _backend(request).build(
            map_facts(body.facts),
            map_rules(body.rules),
            map_operations(body.operations)
        )
        return map_graph_to_dto(graph)

    @app.get("/api/graph/metrics")
    async def get_graph_metrics(request: Request):
        """Structural metrics of the loaded program's graph."""
        graph = _backend(request).build_context(_context(request))
        return GraphTopology(graph).compute_metrics().to_dict()

    return app


app = create_app()
