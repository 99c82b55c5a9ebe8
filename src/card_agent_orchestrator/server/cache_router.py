"""Cache administration endpoints, mounted under `/api/agents/cache`."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from card_agent_orchestrator.core.orchestrator import Orchestrator
from card_agent_orchestrator.server.deps import get_orchestrator
from card_agent_orchestrator.server.models import CacheActionRequest, health_json, stats_json
from card_agent_orchestrator.workflow.service import WarmupRequest

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_ACTIONS = ("clear_all", "clear_workflow", "clear_user", "warmup", "cleanup")


def _ttl_table_json(orchestrator: Orchestrator) -> dict[str, float]:
    table = {wid: ttl.total_seconds() for wid, ttl in orchestrator.cache.ttl_table.items()}
    table["default"] = orchestrator.cache.default_ttl.total_seconds()
    return table


@router.get("")
def cache_overview(
    action: str | None = Query(default=None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    cache = orchestrator.cache
    if action == "stats":
        return {"success": True, "stats": stats_json(cache.stats())}
    if action == "health":
        return {"success": True, "health": health_json(cache.health_check())}
    if action is not None:
        raise HTTPException(status_code=400, detail=f"Unsupported action: {action}")

    return {
        "success": True,
        "stats": stats_json(cache.stats()),
        "health": health_json(cache.health_check()),
        "ttlSeconds": _ttl_table_json(orchestrator),
        "actions": list(CACHE_ACTIONS),
    }


@router.post("")
async def cache_action(
    body: CacheActionRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> dict[str, Any]:
    cache = orchestrator.cache

    if body.action == "clear_all":
        cleared = cache.clear()
        return {"success": True, "message": f"Cleared {cleared} cache entries", "cleared": cleared}

    if body.action == "clear_workflow":
        if not body.workflow_id:
            raise HTTPException(status_code=400, detail="workflowId is required")
        cleared = cache.clear_workflow(body.workflow_id)
        return {
            "success": True,
            "message": f"Cleared cache for workflow {body.workflow_id}",
            "cleared": cleared,
        }

    if body.action == "clear_user":
        if not body.user_id:
            raise HTTPException(status_code=400, detail="userId is required")
        cleared = cache.clear_user(body.user_id)
        return {
            "success": True,
            "message": f"Cleared cache for user {body.user_id}",
            "cleared": cleared,
        }

    if body.action == "warmup":
        if not body.queries:
            raise HTTPException(status_code=400, detail="queries are required for warmup")
        report = await orchestrator.service.warmup(
            [WarmupRequest(workflow_id=q.workflow_id, input=q.input) for q in body.queries]
        )
        return {
            "success": True,
            "message": f"Warmed {report.warmed} of {report.total} queries",
            "warmed": report.warmed,
            "alreadyCached": report.cached,
            "failed": report.failed,
        }

    if body.action == "cleanup":
        before = len(cache)
        cleaned = cache.sweep()
        after = len(cache)
        logger.info("Manual cache cleanup", extra={"before": before, "after": after})
        return {"success": True, "before": before, "after": after, "cleaned": cleaned}

    raise HTTPException(status_code=400, detail=f"Unsupported action: {body.action}")


@router.delete("")
def cache_delete(
    workflow_id: str | None = Query(default=None, alias="workflowId"),
    user_id: str | None = Query(default=None, alias="userId"),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    if workflow_id:
        cleared = orchestrator.cache.clear_workflow(workflow_id)
        return {"success": True, "message": f"Cleared cache for workflow {workflow_id}", "cleared": cleared}
    if user_id:
        cleared = orchestrator.cache.clear_user(user_id)
        return {"success": True, "message": f"Cleared cache for user {user_id}", "cleared": cleared}
    raise HTTPException(status_code=400, detail="workflowId or userId is required")
