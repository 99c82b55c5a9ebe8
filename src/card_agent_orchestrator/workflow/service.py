"""Cache-first workflow execution.

Every workflow-backed route goes through :meth:`WorkflowService.execute`:

1. derive the cache key (input that can't be canonicalized fails here);
2. return a fresh cached result without starting anything;
3. otherwise join an identical in-flight computation, or start a run and poll
   it until it reaches a terminal state or the timeout elapses;
4. cache a completed result before handing it back. Failures are never cached.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from card_agent_orchestrator.cache.keys import derive_cache_key
from card_agent_orchestrator.cache.store import WorkflowResultCache
from card_agent_orchestrator.errors import (
    Cancelled,
    RunNotFound,
    StepExecutionError,
    Timeout,
    WorkflowError,
)
from card_agent_orchestrator.workflow.engine import RunSnapshot, WorkflowEngine
from card_agent_orchestrator.workflow.state_machine import RunStatus

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


async def poll_until_terminal(
    engine: WorkflowEngine,
    run_id: str,
    *,
    poll_interval_seconds: float,
    timeout_seconds: float,
    sleep: Sleep = asyncio.sleep,
    monotonic: Callable[[], float] = time.monotonic,
) -> RunSnapshot:
    """Poll a run on a fixed interval until it is terminal.

    On timeout the run is cancelled and :class:`Timeout` is raised.
    """

    if poll_interval_seconds <= 0:
        raise ValueError("poll_interval_seconds must be > 0")
    if timeout_seconds <= 0:
        raise ValueError("timeout_seconds must be > 0")

    started = monotonic()
    while True:
        snapshot = engine.get_status(run_id)
        if snapshot is None:
            raise RunNotFound(run_id)
        if snapshot.status.is_terminal:
            return snapshot
        if monotonic() - started >= timeout_seconds:
            engine.cancel(run_id)
            logger.warning(
                "Workflow run timed out",
                extra={"run_id": run_id, "timeout_seconds": timeout_seconds},
            )
            raise Timeout(run_id, timeout_seconds)
        await sleep(poll_interval_seconds)


def raise_for_failure(snapshot: RunSnapshot) -> None:
    if snapshot.status is not RunStatus.FAILED:
        return
    if snapshot.error_code == Cancelled.code:
        raise Cancelled(snapshot.error or "Cancelled", run_id=snapshot.id)
    raise StepExecutionError(
        snapshot.error or "Workflow failed", run_id=snapshot.id, step=snapshot.failed_step
    )


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    workflow_id: str
    result: Any
    cached: bool
    run_id: str | None = None
    shared: bool = False


@dataclass(frozen=True, slots=True)
class WarmupRequest:
    workflow_id: str
    input: Any


@dataclass(slots=True)
class WarmupReport:
    warmed: int = 0
    cached: int = 0
    failed: list[dict[str, object]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.warmed + self.cached + len(self.failed)


class WorkflowService:
    """Couples the result cache to the execution engine."""

    def __init__(
        self,
        *,
        cache: WorkflowResultCache,
        engine: WorkflowEngine,
        poll_interval_seconds: float = 0.25,
        timeout_seconds: float = 120.0,
    ) -> None:
        self.cache = cache
        self.engine = engine
        self.poll_interval_seconds = poll_interval_seconds
        self.timeout_seconds = timeout_seconds
        self._inflight: dict[str, asyncio.Task[ExecutionOutcome]] = {}

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def execute(
        self, workflow_id: str, input: Any, *, timeout_seconds: float | None = None
    ) -> ExecutionOutcome:
        key = derive_cache_key(workflow_id, input)
        self.engine.template(workflow_id)

        entry = self.cache.lookup(workflow_id, input)
        if entry is not None:
            return ExecutionOutcome(workflow_id=workflow_id, result=entry.value, cached=True)

        budget = timeout_seconds or self.timeout_seconds
        task = self._inflight.get(key)
        shared = task is not None
        if task is None:
            task = asyncio.create_task(
                self._compute(workflow_id, input, budget),
                name=f"compute-{workflow_id}",
            )
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            logger.info("Joining in-flight workflow execution", extra={"workflow_id": workflow_id})

        # A caller that goes away must not cancel the computation others are waiting on.
        if not shared:
            return await asyncio.shield(task)

        # A joining caller waits with its own budget; giving up leaves the shared run alone.
        try:
            outcome = await asyncio.wait_for(asyncio.shield(task), timeout=budget)
        except TimeoutError:
            logger.warning(
                "Gave up waiting for in-flight workflow execution",
                extra={"workflow_id": workflow_id, "timeout_seconds": budget},
            )
            raise Timeout(None, budget) from None
        return ExecutionOutcome(
            workflow_id=outcome.workflow_id,
            result=copy.deepcopy(outcome.result),
            cached=outcome.cached,
            run_id=outcome.run_id,
            shared=True,
        )

    async def warmup(self, requests: Sequence[WarmupRequest]) -> WarmupReport:
        """Execute and cache each request. One failure never stops the rest."""

        report = WarmupReport()
        for request in requests:
            try:
                outcome = await self.execute(request.workflow_id, request.input)
            except WorkflowError as e:
                logger.warning(
                    "Warmup request failed",
                    extra={"workflow_id": request.workflow_id, "error": str(e)},
                )
                report.failed.append(
                    {"workflowId": request.workflow_id, **e.to_json()}
                )
                continue
            if outcome.cached:
                report.cached += 1
            else:
                report.warmed += 1

        logger.info(
            "Cache warmup finished",
            extra={"warmed": report.warmed, "cached": report.cached, "failed": len(report.failed)},
        )
        return report

    async def _compute(self, workflow_id: str, input: Any, timeout_seconds: float) -> ExecutionOutcome:
        run_id = self.engine.start(workflow_id, input)
        snapshot = await poll_until_terminal(
            self.engine,
            run_id,
            poll_interval_seconds=self.poll_interval_seconds,
            timeout_seconds=timeout_seconds,
        )
        raise_for_failure(snapshot)

        self.cache.put(workflow_id, input, snapshot.result)
        return ExecutionOutcome(
            workflow_id=workflow_id, result=snapshot.result, cached=False, run_id=run_id
        )

    def _forget(self, key: str, task: asyncio.Task[ExecutionOutcome]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled():
            return
        # Retrieve the exception so an abandoned computation doesn't log as unhandled.
        error = task.exception()
        if error is not None and not isinstance(error, WorkflowError):
            logger.error("Workflow computation crashed", exc_info=error)
