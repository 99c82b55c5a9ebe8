"""Card Agent Orchestrator.

Runs the agent workflows behind the card reading platform:
- a TTL result cache keyed by workflow id and canonical input
- an asyncio engine that executes multi-step workflows as polled runs
- a FastAPI surface for agent routes, cache administration and run management
"""

__version__ = "0.1.0"

from card_agent_orchestrator.core.config import OrchestratorConfig

__all__ = ["__version__", "OrchestratorConfig"]
