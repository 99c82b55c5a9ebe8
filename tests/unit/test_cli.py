"""Unit tests for the command line entrypoint."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from card_agent_orchestrator.orchestrator.main import main


@pytest.fixture(autouse=True)
def quiet_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ORCHESTRATOR_LOG_LEVEL", "CRITICAL")
    monkeypatch.setenv("ORCHESTRATOR_ENGINE_POLL_INTERVAL_SECONDS", "0.01")
    monkeypatch.delenv("ORCHESTRATOR_DEBUG", raising=False)
    monkeypatch.delenv("ORCHESTRATOR_LLM_PROVIDER", raising=False)

    root = logging.getLogger()
    saved = list(root.handlers), root.level
    yield
    root.handlers[:] = saved[0]
    root.setLevel(saved[1])


def test_templates_lists_catalogue(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["templates"]) == 0

    templates = json.loads(capsys.readouterr().out)
    assert {t["id"] for t in templates} >= {"trend-analysis", "card-generation"}
    assert all(t["stepCount"] == len(t["steps"]) for t in templates)


def test_run_prints_result(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["run", "trend-analysis", "--input", '{"limit": 3}']) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["workflowId"] == "trend-analysis"
    assert payload["cached"] is False
    assert "predict-future-trends" in payload["data"]["results"]


def test_run_unknown_workflow_exits_1(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["run", "no-such-workflow"]) == 1

    error = json.loads(capsys.readouterr().err)
    assert error["error"] == "unknown_workflow"
    assert error["retryable"] is False


def test_invalid_configuration_exits_2(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("ORCHESTRATOR_ENGINE_TIMEOUT_SECONDS", "-1")

    assert main(["templates"]) == 2
    assert "Configuration error" in capsys.readouterr().err


def test_invalid_input_json_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["run", "trend-analysis", "--input", "{not json"])
    assert excinfo.value.code == 2
