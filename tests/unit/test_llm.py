"""Unit tests for LLM providers."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from card_agent_orchestrator.core.config import LLMConfig
from card_agent_orchestrator.llm.factory import LLMFactory
from card_agent_orchestrator.llm.openai_provider import OpenAIProvider


def test_factory_returns_none_without_provider() -> None:
    assert LLMFactory.create(LLMConfig(provider="none")) is None


def test_openai_provider_requires_api_key() -> None:
    with pytest.raises(ValueError, match="API key"):
        OpenAIProvider(LLMConfig(provider="openai", openai_api_key=None))


def test_openai_provider_chat(llm_config: LLMConfig) -> None:
    client = Mock()
    client.chat.completions.create.return_value.choices = [
        Mock(message=Mock(content="A concise summary."))
    ]
    provider = OpenAIProvider(llm_config, client=client)

    text = provider.generate("Summarize", system="You are terse.")

    assert text == "A concise summary."
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4"
    assert kwargs["max_tokens"] == llm_config.max_tokens
    assert kwargs["messages"] == [
        {"role": "system", "content": "You are terse."},
        {"role": "user", "content": "Summarize"},
    ]


def test_openai_provider_handles_empty_content(llm_config: LLMConfig) -> None:
    client = Mock()
    client.chat.completions.create.return_value.choices = [Mock(message=Mock(content=None))]

    assert OpenAIProvider(llm_config, client=client).chat([{"role": "user", "content": "hi"}]) == ""


@pytest.fixture
def llm_config() -> LLMConfig:
    """Provide a test LLM configuration."""
    return LLMConfig(
        provider="openai",
        openai_api_key="test-key",
        openai_model="gpt-4",
    )
