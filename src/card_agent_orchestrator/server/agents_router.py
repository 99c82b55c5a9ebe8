"""Agent endpoints.

Each route validates its body, then hands it to the cache-first workflow
service. All routes are mounted under `/api/agents`.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from card_agent_orchestrator.core.orchestrator import Orchestrator
from card_agent_orchestrator.server.deps import get_orchestrator
from card_agent_orchestrator.server.models import (
    AchievementRequest,
    AgentResponse,
    AnalyticsRequest,
    ApiModel,
    CardRequest,
    EngagementRequest,
    RecommendationRequest,
    SearchRequest,
    TemplateInfo,
    TrendsRequest,
    health_json,
)
from card_agent_orchestrator.workflow.cards import CARD_WORKFLOW_ID

logger = logging.getLogger(__name__)

router = APIRouter()


async def _run(orchestrator: Orchestrator, workflow_id: str, body: ApiModel) -> AgentResponse:
    outcome = await orchestrator.service.execute(workflow_id, body.workflow_input())
    logger.debug(
        "Agent request served",
        extra={"workflow_id": workflow_id, "cached": outcome.cached, "run_id": outcome.run_id},
    )
    return AgentResponse(
        workflow_id=outcome.workflow_id,
        cached=outcome.cached,
        shared=outcome.shared,
        run_id=outcome.run_id,
        data=outcome.result,
    )


@router.post("/recommendation", response_model=AgentResponse)
async def recommendation(
    body: RecommendationRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> AgentResponse:
    return await _run(orchestrator, "content-recommendation", body)


@router.post("/search", response_model=AgentResponse)
async def search(
    body: SearchRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> AgentResponse:
    return await _run(orchestrator, "content-search", body)


@router.post("/achievements", response_model=AgentResponse)
async def achievements(
    body: AchievementRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> AgentResponse:
    return await _run(orchestrator, "user-achievement", body)


@router.post("/analytics", response_model=AgentResponse)
async def analytics(
    body: AnalyticsRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> AgentResponse:
    return await _run(orchestrator, "user-analytics", body)


@router.post("/engagement", response_model=AgentResponse)
async def engagement(
    body: EngagementRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> AgentResponse:
    return await _run(orchestrator, "user-engagement", body)


@router.post("/trends", response_model=AgentResponse)
async def trends(
    body: TrendsRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> AgentResponse:
    return await _run(orchestrator, "trend-analysis", body)


@router.post("/generate-card", response_model=AgentResponse)
async def generate_card(
    body: CardRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> AgentResponse:
    return await _run(orchestrator, CARD_WORKFLOW_ID, body)


@router.get("/status")
def status(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    templates = [
        TemplateInfo.from_template(t).model_dump(by_alias=True)
        for t in orchestrator.engine.templates()
    ]
    return {
        "success": True,
        "workflows": templates,
        "runs": orchestrator.engine.stats(),
        "inflight": orchestrator.service.inflight_count,
        "llm": orchestrator.llm is not None,
        "cache": health_json(orchestrator.cache.health_check()),
    }
