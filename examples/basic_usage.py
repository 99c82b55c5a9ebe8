#!/usr/bin/env python3
"""Programmatic workflow execution example.

This demonstrates using the orchestrator components directly:

* load configuration from `.env`
* execute a workflow through the result cache
* execute it again and observe the cache hit
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Sequence

from card_agent_orchestrator.core.config import OrchestratorConfig
from card_agent_orchestrator.core.orchestrator import Orchestrator
from card_agent_orchestrator.errors import WorkflowError


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a workflow twice (programmatic example).")
    parser.add_argument("--workflow", default="trend-analysis", help="Workflow template id")
    parser.add_argument(
        "--input",
        default='{"limit": 20, "timeRange": "7d"}',
        help="Workflow input as JSON",
    )
    return parser.parse_args(argv)


async def _run(workflow_id: str, payload: dict) -> None:
    config = OrchestratorConfig()
    config.setup_logging()

    orchestrator = Orchestrator(config)
    await orchestrator.start()
    try:
        first = await orchestrator.service.execute(workflow_id, payload)
        print(f"First call: cached={first.cached} run={first.run_id}")
        print(json.dumps(first.result, indent=2, default=str))

        second = await orchestrator.service.execute(workflow_id, payload)
        print(f"Second call: cached={second.cached}")
    finally:
        await orchestrator.stop()


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        asyncio.run(_run(args.workflow, json.loads(args.input)))
    except WorkflowError as exc:
        print(f"{exc.code}: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
