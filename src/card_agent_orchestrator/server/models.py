"""Pydantic models for the REST server.

Wire format is camelCase (``workflowId``, ``userId``); Python attributes stay
snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from card_agent_orchestrator.cache.store import CacheHealth, CacheStats
from card_agent_orchestrator.workflow.engine import RunSnapshot
from card_agent_orchestrator.workflow.state_machine import RunStatus
from card_agent_orchestrator.workflow.templates import WorkflowTemplate


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def workflow_input(self) -> dict[str, Any]:
        """The body as a workflow input, keyed the way clients send it."""
        return self.model_dump(by_alias=True)


class RecommendationRequest(ApiModel):
    user_id: str = Field(min_length=1)
    preferences: dict[str, Any] = Field(default_factory=dict)


class SearchRequest(ApiModel):
    query: str = Field(min_length=1)
    filters: dict[str, Any] = Field(default_factory=dict)


class AchievementRequest(ApiModel):
    user_id: str = Field(min_length=1)


class AnalyticsRequest(ApiModel):
    user_id: str = Field(min_length=1)
    time_range: str = "30d"


class EngagementRequest(ApiModel):
    user_id: str = Field(min_length=1)
    action: str = "update_streak"


class TrendsRequest(ApiModel):
    limit: int = Field(default=20, ge=1, le=100)
    time_range: str = "7d"


class CardRequest(ApiModel):
    url: str = Field(min_length=1)
    image_mode: Literal["standard", "premium"] = "standard"


class AgentResponse(ApiModel):
    success: bool = True
    workflow_id: str
    cached: bool
    shared: bool = False
    run_id: str | None = None
    data: Any = None


class WarmupQuery(ApiModel):
    workflow_id: str = Field(min_length=1)
    input: Any = Field(default_factory=dict)


class CacheActionRequest(ApiModel):
    action: str
    workflow_id: str | None = None
    user_id: str | None = None
    queries: list[WarmupQuery] | None = None


class StartRunRequest(ApiModel):
    workflow_id: str = Field(min_length=1)
    input: Any = Field(default_factory=dict)


class CleanupRequest(ApiModel):
    max_age_hours: float = Field(default=24.0, gt=0)


class CleanupResponse(ApiModel):
    removed: int
    remaining: int


class TemplateInfo(ApiModel):
    id: str
    name: str
    description: str
    step_count: int
    steps: list[str]

    @classmethod
    def from_template(cls, template: WorkflowTemplate) -> TemplateInfo:
        return cls(
            id=template.id,
            name=template.name,
            description=template.description,
            step_count=len(template.steps),
            steps=template.step_names,
        )


class ApiRun(ApiModel):
    id: str
    workflow_id: str
    status: RunStatus
    input: Any = None
    result: Any = None
    error: str | None = None
    error_code: str | None = None
    failed_step: str | None = None
    current_step: str | None = None
    completed_steps: list[str] = Field(default_factory=list)
    total_steps: int
    progress: int
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @classmethod
    def from_snapshot(cls, snapshot: RunSnapshot) -> ApiRun:
        return cls.model_validate(snapshot.model_dump())


def health_json(health: CacheHealth) -> dict[str, Any]:
    return {
        "status": health.status,
        "totalEntries": health.total_entries,
        "expiredRatio": round(health.expired_ratio, 4),
        "totalSizeBytes": health.total_size_bytes,
        "issues": list(health.issues),
    }


def stats_json(stats: CacheStats) -> dict[str, Any]:
    return {
        "totalEntries": stats.total_entries,
        "totalSizeBytes": stats.total_size_bytes,
        "expiredEntries": stats.expired_entries,
        "byWorkflow": {
            workflow_id: {
                "count": s.count,
                "expired": s.expired,
                "avgAgeSeconds": round(s.avg_age_seconds, 3),
            }
            for workflow_id, s in stats.by_workflow.items()
        },
    }
