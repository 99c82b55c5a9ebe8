"""FastAPI server adapter for card-agent-orchestrator.

Design intent:
- Keep business logic in `card_agent_orchestrator.workflow` and `.cache`
- Keep server-specific concerns (routing, CORS, error mapping) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from card_agent_orchestrator.server.app import create_app
