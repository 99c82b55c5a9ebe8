"""Core package initialization.

`Orchestrator` lives in `card_agent_orchestrator.core.orchestrator`; it is not
re-exported here so that importing the configuration stays lightweight.
"""

from card_agent_orchestrator.core.config import (
    CacheConfig,
    EngineConfig,
    LLMConfig,
    OrchestratorConfig,
)

__all__ = [
    "CacheConfig",
    "EngineConfig",
    "LLMConfig",
    "OrchestratorConfig",
]
