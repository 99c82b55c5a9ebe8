"""Workflow templates, the execution engine and the cache-first service.

- templates: named, ordered step lists
- engine: runs templates as polled asyncio tasks
- service: the cache -> execute -> poll -> cache contract used by routes
"""

from card_agent_orchestrator.workflow.catalog import build_default_registry
from card_agent_orchestrator.workflow.engine import RunSnapshot, WorkflowEngine
from card_agent_orchestrator.workflow.service import (
    ExecutionOutcome,
    WarmupReport,
    WarmupRequest,
    WorkflowService,
    poll_until_terminal,
)
from card_agent_orchestrator.workflow.state_machine import RunStatus
from card_agent_orchestrator.workflow.templates import (
    StepContext,
    TemplateRegistry,
    WorkflowStep,
    WorkflowTemplate,
)

__all__ = [
    "ExecutionOutcome",
    "RunSnapshot",
    "RunStatus",
    "StepContext",
    "TemplateRegistry",
    "WarmupReport",
    "WarmupRequest",
    "WorkflowEngine",
    "WorkflowService",
    "WorkflowStep",
    "WorkflowTemplate",
    "build_default_registry",
    "poll_until_terminal",
]
