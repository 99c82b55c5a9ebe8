"""CLI entrypoint for the card agent orchestrator.

Serves the REST API, lists workflow templates, or executes one workflow
through the cache-first service and prints its result.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from card_agent_orchestrator import __version__
from card_agent_orchestrator.core.config import OrchestratorConfig
from card_agent_orchestrator.core.orchestrator import Orchestrator
from card_agent_orchestrator.errors import WorkflowError

logger = logging.getLogger(__name__)


def _parse_input(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"--input must be valid JSON: {e}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="card-orchestrator",
        description="Cached workflow execution for the AI card reading agents",
    )
    parser.add_argument(
        "--version", action="version", version=f"card-agent-orchestrator {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the REST API with uvicorn")
    serve.add_argument("--host", default=None, help="Bind address (default: ORCHESTRATOR_HOST)")
    serve.add_argument(
        "--port", type=int, default=None, help="Bind port (default: ORCHESTRATOR_PORT)"
    )

    subparsers.add_parser("templates", help="Print the registered workflow templates as JSON")

    run = subparsers.add_parser(
        "run", help="Execute one workflow through the result cache and print the result"
    )
    run.add_argument("workflow_id", help="Workflow template id, e.g. 'trend-analysis'")
    run.add_argument(
        "--input",
        dest="input",
        type=_parse_input,
        default={},
        help="Workflow input as a JSON document (default: {})",
    )
    run.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the run before giving up (default: ORCHESTRATOR_ENGINE_TIMEOUT_SECONDS)",
    )

    return parser


async def _run_once(
    orchestrator: Orchestrator, workflow_id: str, input: Any, timeout: float | None
) -> dict[str, Any]:
    await orchestrator.start()
    try:
        outcome = await orchestrator.service.execute(workflow_id, input, timeout_seconds=timeout)
    finally:
        await orchestrator.stop()
    return {
        "workflowId": outcome.workflow_id,
        "cached": outcome.cached,
        "runId": outcome.run_id,
        "data": outcome.result,
    }


def _serve(config: OrchestratorConfig, host: str | None, port: int | None) -> int:
    import uvicorn

    from card_agent_orchestrator.server.app import create_app
    from card_agent_orchestrator.server.config import ServerSettings

    settings = ServerSettings()
    app = create_app(Orchestrator(config), settings)
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        log_level=config.log_level.lower(),
        log_config=None,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = OrchestratorConfig()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    config.setup_logging()

    try:
        if args.command == "serve":
            return _serve(config, args.host, args.port)

        orchestrator = Orchestrator(config)

        if args.command == "templates":
            templates = [
                {
                    "id": t.id,
                    "name": t.name,
                    "description": t.description,
                    "stepCount": len(t.steps),
                    "steps": t.step_names,
                }
                for t in orchestrator.engine.templates()
            ]
            print(json.dumps(templates, indent=2))
            return 0

        if args.command == "run":
            try:
                payload = asyncio.run(
                    _run_once(orchestrator, args.workflow_id, args.input, args.timeout)
                )
            except WorkflowError as e:
                logger.warning(str(e), extra={"workflow_id": args.workflow_id, "error_code": e.code})
                print(json.dumps(e.to_json()), file=sys.stderr)
                return 1
            print(json.dumps(payload, indent=2, default=str))
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except ValueError as e:
        # Raised by providers constructed from an incomplete configuration.
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
