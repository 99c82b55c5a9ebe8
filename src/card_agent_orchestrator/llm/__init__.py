"""LLM package initialization."""

from card_agent_orchestrator.llm.factory import LLMFactory
from card_agent_orchestrator.llm.provider import LLMProvider

__all__ = [
    "LLMFactory",
    "LLMProvider",
]
