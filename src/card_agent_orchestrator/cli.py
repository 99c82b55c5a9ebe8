"""Module entrypoint: ``python -m card_agent_orchestrator.cli``.

The CLI itself lives in `card_agent_orchestrator.orchestrator.main`.
"""

from __future__ import annotations

from card_agent_orchestrator.orchestrator.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
