"""Request-scoped accessors for objects stored on ``app.state``."""

from __future__ import annotations

from fastapi import HTTPException, Request

from card_agent_orchestrator.core.orchestrator import Orchestrator


def get_orchestrator(request: Request) -> Orchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if not isinstance(orchestrator, Orchestrator):
        # This should never happen for the real app, but keeps the API fail-fast.
        raise HTTPException(status_code=500, detail="Orchestrator not configured")
    return orchestrator
