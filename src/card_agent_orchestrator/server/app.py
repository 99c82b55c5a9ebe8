"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the orchestrator services.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from card_agent_orchestrator import __version__
from card_agent_orchestrator.core.orchestrator import Orchestrator
from card_agent_orchestrator.server.agents_router import router as agents_router
from card_agent_orchestrator.server.cache_router import router as cache_router
from card_agent_orchestrator.server.config import ServerSettings
from card_agent_orchestrator.server.errors import install_error_handlers
from card_agent_orchestrator.server.models import health_json
from card_agent_orchestrator.server.workflow_router import router as workflow_router

logger = logging.getLogger(__name__)


def create_app(
    orchestrator: Orchestrator | None = None, settings: ServerSettings | None = None
) -> FastAPI:
    settings = settings or ServerSettings()
    orchestrator = orchestrator or Orchestrator()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await orchestrator.start()
        logger.info("API started", extra={"workflows": len(orchestrator.registry)})
        try:
            yield
        finally:
            await orchestrator.stop()

    app = FastAPI(
        title="Card Agent Orchestrator",
        version=__version__,
        description="Cached workflow execution for the AI card reading agents.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    # Expose shared objects for request handlers.
    app.state.settings = settings
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    # Cache admin first so `/api/agents/cache` is not shadowed by agent routes.
    app.include_router(cache_router, prefix="/api/agents/cache")
    app.include_router(agents_router, prefix="/api/agents")
    app.include_router(workflow_router, prefix="/api/workflows")

    @app.get("/api/health")
    def health() -> dict[str, object]:
        cache_health = orchestrator.cache.health_check()
        return {
            "status": "ok" if cache_health.status == "healthy" else "degraded",
            "version": __version__,
            "runs": orchestrator.engine.stats(),
            "cache": health_json(cache_health),
        }

    return app
