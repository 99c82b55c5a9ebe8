"""Error taxonomy shared by the cache, the execution engine and the API.

Every error carries a stable ``code`` and a ``retryable`` flag so callers can
tell a transient failure (worth starting a new run) from a request that will
never succeed as written.
"""

from __future__ import annotations

from typing import ClassVar


class WorkflowError(Exception):
    """Base class for workflow cache and execution errors."""

    code: ClassVar[str] = "workflow_error"
    retryable: ClassVar[bool] = False

    def to_json(self) -> dict[str, object]:
        return {"error": self.code, "message": str(self), "retryable": self.retryable}


class UnknownWorkflow(WorkflowError):
    code = "unknown_workflow"

    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Unknown workflow: {workflow_id!r}")
        self.workflow_id = workflow_id


class KeySerializationError(WorkflowError):
    """Raised when a workflow input cannot be canonicalized into a cache key."""

    code = "key_serialization"


class StepExecutionError(WorkflowError):
    """A workflow step raised; the run ended in ``failed``."""

    code = "step_failed"
    retryable = True

    def __init__(
        self, message: str, *, run_id: str | None = None, step: str | None = None
    ) -> None:
        super().__init__(message)
        self.run_id = run_id
        self.step = step


class Cancelled(WorkflowError):
    code = "cancelled"
    retryable = True

    def __init__(self, message: str = "Cancelled", *, run_id: str | None = None) -> None:
        super().__init__(message)
        self.run_id = run_id


class Timeout(WorkflowError):
    """Polling exceeded the caller's wall-clock budget."""

    code = "timeout"
    retryable = True

    def __init__(self, run_id: str | None, timeout_seconds: float) -> None:
        subject = f"Run {run_id}" if run_id else "Workflow execution"
        super().__init__(f"{subject} did not finish within {timeout_seconds:g}s")
        self.run_id = run_id
        self.timeout_seconds = timeout_seconds


class RunNotFound(WorkflowError):
    code = "run_not_found"

    def __init__(self, run_id: str) -> None:
        super().__init__(f"Run not found: {run_id}")
        self.run_id = run_id
