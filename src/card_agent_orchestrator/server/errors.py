"""Map workflow errors to structured JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from card_agent_orchestrator.errors import (
    Cancelled,
    KeySerializationError,
    RunNotFound,
    StepExecutionError,
    Timeout,
    UnknownWorkflow,
    WorkflowError,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[WorkflowError], int] = {
    UnknownWorkflow: 404,
    RunNotFound: 404,
    KeySerializationError: 400,
    Cancelled: 409,
    StepExecutionError: 502,
    Timeout: 504,
}


def status_code_for(error: WorkflowError) -> int:
    for cls in type(error).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.warning(
        "Workflow request failed",
        extra={"path": request.url.path, "error_code": exc.code, "status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content={"success": False, **exc.to_json()})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WorkflowError, workflow_error_handler)  # type: ignore[arg-type]
