"""Workflow management endpoints, mounted under `/api/workflows`.

Runs started here are fire-and-forget: the caller gets a snapshot back
immediately and polls `GET /runs/{id}` for progress. Results are not cached.
"""

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, Query

from card_agent_orchestrator.core.orchestrator import Orchestrator
from card_agent_orchestrator.errors import RunNotFound
from card_agent_orchestrator.server.deps import get_orchestrator
from card_agent_orchestrator.server.models import (
    ApiRun,
    CleanupRequest,
    CleanupResponse,
    StartRunRequest,
    TemplateInfo,
)
from card_agent_orchestrator.workflow.state_machine import RunStatus

router = APIRouter()


def _snapshot_or_404(orchestrator: Orchestrator, run_id: str) -> ApiRun:
    snapshot = orchestrator.engine.get_status(run_id)
    if snapshot is None:
        raise RunNotFound(run_id)
    return ApiRun.from_snapshot(snapshot)


@router.get("", response_model=list[TemplateInfo])
def list_templates(orchestrator: Orchestrator = Depends(get_orchestrator)) -> list[TemplateInfo]:
    return [TemplateInfo.from_template(t) for t in orchestrator.engine.templates()]


@router.post("/runs", status_code=202, response_model=ApiRun)
async def start_run(
    body: StartRunRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> ApiRun:
    run_id = orchestrator.engine.start(body.workflow_id, body.input)
    return _snapshot_or_404(orchestrator, run_id)


@router.get("/runs", response_model=list[ApiRun])
def list_runs(
    status: RunStatus | None = Query(default=None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> list[ApiRun]:
    return [ApiRun.from_snapshot(s) for s in orchestrator.engine.list_runs(status=status)]


@router.get("/runs/{run_id}", response_model=ApiRun)
def get_run(run_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> ApiRun:
    return _snapshot_or_404(orchestrator, run_id)


@router.post("/runs/{run_id}/stop", response_model=ApiRun)
def stop_run(run_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> ApiRun:
    if orchestrator.engine.get_status(run_id) is None:
        raise RunNotFound(run_id)
    orchestrator.engine.cancel(run_id)
    return _snapshot_or_404(orchestrator, run_id)


@router.post("/cleanup", response_model=CleanupResponse)
def cleanup_runs(
    body: CleanupRequest | None = None, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> CleanupResponse:
    max_age_hours = body.max_age_hours if body is not None else 24.0
    removed = orchestrator.cleanup_runs(timedelta(hours=max_age_hours))
    return CleanupResponse(removed=removed, remaining=len(orchestrator.engine))
