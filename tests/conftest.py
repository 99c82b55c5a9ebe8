"""Test configuration and fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest

from card_agent_orchestrator.core.config import (
    CacheConfig,
    EngineConfig,
    LLMConfig,
    OrchestratorConfig,
)
from card_agent_orchestrator.core.orchestrator import Orchestrator
from card_agent_orchestrator.workflow.fetcher import ContentFetcher, ScrapedContent

ARTICLE_TEXT = (
    "Spaced repetition schedules reviews at growing intervals so memories stay fresh. "
    "Learners who review flashcards just before forgetting retain knowledge far longer. "
    "Modern reading apps combine spaced repetition with short knowledge cards."
)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def fake_fetcher() -> Mock:
    """Provide a fetcher that never touches the network."""
    fetcher = Mock(spec=ContentFetcher)
    fetcher.fetch.side_effect = lambda url: ScrapedContent(
        url=url,
        title="Why spaced repetition works",
        content=ARTICLE_TEXT,
        author="A. Reader",
        description="A short primer on spaced repetition.",
    )
    return fetcher


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    """Provide a test orchestrator configuration with fast polling."""
    return OrchestratorConfig(
        log_level="DEBUG",
        debug=True,
        llm=LLMConfig(provider="none"),
        cache=CacheConfig(sweep_interval_seconds=60.0),
        engine=EngineConfig(poll_interval_seconds=0.01, timeout_seconds=5.0),
    )


@pytest.fixture
def orchestrator(orchestrator_config: OrchestratorConfig, fake_fetcher: Mock) -> Orchestrator:
    """Provide an orchestrator wired to the fake fetcher and no LLM."""
    return Orchestrator(orchestrator_config, fetcher=fake_fetcher)
