"""Asynchronous execution of workflow runs.

Each run is an ``asyncio.Task`` that walks its template's steps in order.
Callers never block on a run; they poll :meth:`WorkflowEngine.get_status`.

Run table mutations happen only in synchronous code between awaits, so a
poller never sees a run half-updated.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from card_agent_orchestrator.cache.store import Clock, utc_now
from card_agent_orchestrator.errors import Cancelled, StepExecutionError, UnknownWorkflow
from card_agent_orchestrator.workflow.state_machine import RunStatus, transition
from card_agent_orchestrator.workflow.templates import (
    StepContext,
    TemplateRegistry,
    WorkflowTemplate,
)

logger = logging.getLogger(__name__)


class RunSnapshot(BaseModel):
    """Immutable view of a run at the moment it was read.

    ``input`` and ``result`` are copies, so callers may modify them freely.
    """

    model_config = ConfigDict(frozen=True)

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


@dataclass(slots=True)
class WorkflowRun:
    id: str
    workflow_id: str
    input: Any
    total_steps: int
    created_at: datetime
    status: RunStatus = RunStatus.PENDING
    result: Any = None
    error: str | None = None
    error_code: str | None = None
    failed_step: str | None = None
    current_step: str | None = None
    completed_steps: list[str] = field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    task: asyncio.Task[None] | None = field(default=None, repr=False)

    def snapshot(self) -> RunSnapshot:
        progress = round(100 * len(self.completed_steps) / self.total_steps) if self.total_steps else 0
        return RunSnapshot(
            id=self.id,
            workflow_id=self.workflow_id,
            status=self.status,
            input=copy.deepcopy(self.input),
            result=copy.deepcopy(self.result),
            error=self.error,
            error_code=self.error_code,
            failed_step=self.failed_step,
            current_step=self.current_step,
            completed_steps=list(self.completed_steps),
            total_steps=self.total_steps,
            progress=progress,
            created_at=self.created_at,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )


class WorkflowEngine:
    """Starts, tracks, cancels and garbage-collects workflow runs."""

    def __init__(self, registry: TemplateRegistry, *, clock: Clock = utc_now) -> None:
        self._registry = registry
        self._clock = clock
        self._runs: dict[str, WorkflowRun] = {}

    @property
    def registry(self) -> TemplateRegistry:
        return self._registry

    def templates(self) -> list[WorkflowTemplate]:
        return list(self._registry)

    def template(self, workflow_id: str) -> WorkflowTemplate:
        template = self._registry.get(workflow_id)
        if template is None:
            raise UnknownWorkflow(workflow_id)
        return template

    def start(self, workflow_id: str, input: Any) -> str:
        """Create a run in ``pending`` and schedule it. Must be called inside a running loop."""

        template = self.template(workflow_id)
        run = WorkflowRun(
            id=uuid.uuid4().hex,
            workflow_id=workflow_id,
            input=input,
            total_steps=len(template.steps),
            created_at=self._clock(),
        )
        self._runs[run.id] = run
        run.task = asyncio.create_task(self._execute(run, template), name=f"run-{run.id}")

        logger.info("Workflow run created", extra={"run_id": run.id, "workflow_id": workflow_id})
        return run.id

    def get_status(self, run_id: str) -> RunSnapshot | None:
        run = self._runs.get(run_id)
        return None if run is None else run.snapshot()

    def list_runs(self, *, status: RunStatus | None = None) -> list[RunSnapshot]:
        return [r.snapshot() for r in self._runs.values() if status is None or r.status == status]

    def cancel(self, run_id: str) -> bool:
        """Fail a non-terminal run with ``Cancelled``.

        Returns True when the run changed state. Unknown or terminal runs are a no-op.
        """

        run = self._runs.get(run_id)
        if run is None or run.status.is_terminal:
            return False

        self._finish(run, RunStatus.FAILED, error=Cancelled(run_id=run.id))
        if run.task is not None and not run.task.done():
            run.task.cancel()
        logger.info("Workflow run cancelled", extra={"run_id": run.id, "workflow_id": run.workflow_id})
        return True

    def cleanup(self, older_than: datetime) -> int:
        """Remove terminal runs that finished before ``older_than``.

        Pending and running runs are never removed.
        """

        stale = [
            run_id
            for run_id, run in self._runs.items()
            if run.status.is_terminal
            and run.finished_at is not None
            and run.finished_at < older_than
        ]
        for run_id in stale:
            del self._runs[run_id]
        if stale:
            logger.info("Cleaned up workflow runs", extra={"count": len(stale)})
        return len(stale)

    def stats(self) -> dict[str, int]:
        counts = {status.value: 0 for status in RunStatus}
        for run in self._runs.values():
            counts[run.status.value] += 1
        counts["total"] = len(self._runs)
        return counts

    def __len__(self) -> int:
        return len(self._runs)

    async def shutdown(self) -> None:
        """Cancel every in-flight run and wait for their tasks to unwind."""

        tasks = []
        for run in list(self._runs.values()):
            if not run.status.is_terminal:
                self.cancel(run.id)
            if run.task is not None and not run.task.done():
                tasks.append(run.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _execute(self, run: WorkflowRun, template: WorkflowTemplate) -> None:
        if run.status.is_terminal:
            return
        run.status = transition(current=run.status, to=RunStatus.RUNNING)
        run.started_at = self._clock()
        logger.info("Workflow run started", extra={"run_id": run.id, "workflow_id": run.workflow_id})

        outputs: dict[str, Any] = {}
        for step in template.steps:
            if run.status.is_terminal:
                return
            run.current_step = step.name
            context = StepContext(
                run_id=run.id,
                workflow_id=run.workflow_id,
                input=run.input,
                outputs=MappingProxyType(dict(outputs)),
            )
            try:
                output = await step.handler(context)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if run.status.is_terminal:
                    return
                message = str(e) or type(e).__name__
                logger.warning(
                    "Workflow step failed",
                    extra={"run_id": run.id, "workflow_id": run.workflow_id, "step": step.name},
                    exc_info=True,
                )
                self._finish(
                    run,
                    RunStatus.FAILED,
                    error=StepExecutionError(message, run_id=run.id, step=step.name),
                )
                return

            # Cancelled while the step was in flight: its output is discarded.
            if run.status.is_terminal:
                return
            outputs[step.name] = output
            run.completed_steps.append(step.name)
            logger.debug("Workflow step completed", extra={"run_id": run.id, "step": step.name})

        try:
            result = template.assemble(run.workflow_id, run.input, outputs)
        except Exception as e:
            self._finish(
                run,
                RunStatus.FAILED,
                error=StepExecutionError(str(e) or type(e).__name__, run_id=run.id),
            )
            return

        self._finish(run, RunStatus.COMPLETED, result=result)

    def _finish(
        self,
        run: WorkflowRun,
        to: RunStatus,
        *,
        result: Any = None,
        error: Exception | None = None,
    ) -> None:
        run.status = transition(current=run.status, to=to)
        run.finished_at = self._clock()
        run.current_step = None
        if to is RunStatus.COMPLETED:
            run.result = result
        elif error is not None:
            run.result = None
            run.error = str(error)
            run.error_code = getattr(error, "code", None)
            run.failed_step = getattr(error, "step", None)

        logger.info(
            "Workflow run finished",
            extra={
                "run_id": run.id,
                "workflow_id": run.workflow_id,
                "status": run.status.value,
                "error": run.error,
            },
        )
