"""Unit tests for the run status state machine.

These tests assert that illegal transitions fail loudly.
"""

from __future__ import annotations

import pytest

from card_agent_orchestrator.workflow.state_machine import (
    IllegalTransitionError,
    RunStatus,
    transition,
)


@pytest.mark.parametrize(
    ("current", "to"),
    [
        (RunStatus.PENDING, RunStatus.RUNNING),
        (RunStatus.PENDING, RunStatus.FAILED),
        (RunStatus.RUNNING, RunStatus.COMPLETED),
        (RunStatus.RUNNING, RunStatus.FAILED),
    ],
)
def test_forward_transitions_are_allowed(current: RunStatus, to: RunStatus) -> None:
    assert transition(current=current, to=to) is to


@pytest.mark.parametrize(
    ("current", "to"),
    [
        (RunStatus.PENDING, RunStatus.COMPLETED),
        (RunStatus.RUNNING, RunStatus.PENDING),
        (RunStatus.COMPLETED, RunStatus.FAILED),
        (RunStatus.FAILED, RunStatus.RUNNING),
        (RunStatus.COMPLETED, RunStatus.COMPLETED),
    ],
)
def test_transition_rejects_illegal_transitions(current: RunStatus, to: RunStatus) -> None:
    with pytest.raises(IllegalTransitionError):
        transition(current=current, to=to)


def test_terminal_statuses() -> None:
    assert RunStatus.COMPLETED.is_terminal
    assert RunStatus.FAILED.is_terminal
    assert not RunStatus.PENDING.is_terminal
    assert not RunStatus.RUNNING.is_terminal
