"""Workflow templates: named, ordered step lists.

A template is pure data plus step callables. The engine owns execution; steps
only read their :class:`StepContext` and return a JSON-compatible output.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class StepContext:
    """Everything a step may look at.

    ``outputs`` holds the results of the steps that already ran, keyed by step
    name, in declared order.
    """

    run_id: str
    workflow_id: str
    input: Any
    outputs: Mapping[str, Any]


StepHandler = Callable[[StepContext], Awaitable[Any]]
Assembler = Callable[[str, Any, Mapping[str, Any]], Any]


def default_assemble(workflow_id: str, _input: Any, outputs: Mapping[str, Any]) -> Any:
    return {"workflowId": workflow_id, "results": dict(outputs)}


@dataclass(frozen=True, slots=True)
class WorkflowStep:
    name: str
    handler: StepHandler
    description: str = ""


@dataclass(frozen=True, slots=True)
class WorkflowTemplate:
    id: str
    name: str
    steps: tuple[WorkflowStep, ...]
    description: str = ""
    assemble: Assembler = field(default=default_assemble)

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError(f"Workflow {self.id!r} must declare at least one step")
        names = [s.name for s in self.steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Workflow {self.id!r} has duplicate step names")

    @property
    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]


class TemplateRegistry:
    """Known workflow templates by id."""

    def __init__(self, templates: list[WorkflowTemplate] | None = None) -> None:
        self._templates: dict[str, WorkflowTemplate] = {}
        for template in templates or []:
            self.register(template)

    def register(self, template: WorkflowTemplate) -> None:
        if template.id in self._templates:
            raise ValueError(f"Workflow already registered: {template.id}")
        self._templates[template.id] = template

    def get(self, workflow_id: str) -> WorkflowTemplate | None:
        return self._templates.get(workflow_id)

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._templates

    def __iter__(self) -> Iterator[WorkflowTemplate]:
        return iter(list(self._templates.values()))

    def __len__(self) -> int:
        return len(self._templates)
