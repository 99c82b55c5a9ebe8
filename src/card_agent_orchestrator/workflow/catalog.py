"""The built-in workflow catalogue."""

from __future__ import annotations

from card_agent_orchestrator.llm.provider import LLMProvider
from card_agent_orchestrator.workflow.agents import build_agent_templates
from card_agent_orchestrator.workflow.cards import build_card_template
from card_agent_orchestrator.workflow.fetcher import ContentFetcher
from card_agent_orchestrator.workflow.templates import TemplateRegistry


def build_default_registry(
    *, fetcher: ContentFetcher, llm: LLMProvider | None = None
) -> TemplateRegistry:
    registry = TemplateRegistry(build_agent_templates(llm))
    registry.register(build_card_template(fetcher=fetcher, llm=llm))
    return registry
