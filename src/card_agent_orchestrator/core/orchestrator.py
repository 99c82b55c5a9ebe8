"""Main orchestrator implementation."""

import logging
from datetime import timedelta

from card_agent_orchestrator.cache.store import Clock, WorkflowResultCache, utc_now
from card_agent_orchestrator.cache.sweeper import CacheSweeper
from card_agent_orchestrator.core.config import OrchestratorConfig
from card_agent_orchestrator.llm.factory import LLMFactory
from card_agent_orchestrator.llm.provider import LLMProvider
from card_agent_orchestrator.workflow.catalog import build_default_registry
from card_agent_orchestrator.workflow.engine import WorkflowEngine
from card_agent_orchestrator.workflow.fetcher import ContentFetcher
from card_agent_orchestrator.workflow.service import WorkflowService
from card_agent_orchestrator.workflow.templates import TemplateRegistry

logger = logging.getLogger(__name__)


class Orchestrator:
    """Process-wide owner of the result cache, the run engine and the sweeper.

    Construct one per process (or per test) and hand it to whatever needs it;
    nothing here is a module-level singleton.
    """

    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        *,
        llm: LLMProvider | None = None,
        fetcher: ContentFetcher | None = None,
        registry: TemplateRegistry | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Configuration object. If None, loads from environment.
            llm: Provider override; defaults to the one described by ``config.llm``.
            fetcher: Article fetcher override (tests inject a fake).
            registry: Template registry override; defaults to the built-in catalogue.
            clock: Time source shared by the cache and the engine.
        """
        self.config = config or OrchestratorConfig()
        self._clock = clock

        self.llm: LLMProvider | None = llm if llm is not None else LLMFactory.create(self.config.llm)
        self.fetcher = fetcher or ContentFetcher(
            timeout_seconds=self.config.engine.fetch_timeout_seconds
        )
        self.registry = registry or build_default_registry(fetcher=self.fetcher, llm=self.llm)

        cache_cfg = self.config.cache
        self.cache = WorkflowResultCache(
            ttl_overrides=cache_cfg.ttl_override_deltas(),
            default_ttl=timedelta(seconds=cache_cfg.default_ttl_seconds),
            degraded_ratio=cache_cfg.degraded_expired_ratio,
            max_size_bytes=cache_cfg.max_size_bytes,
            clock=clock,
        )
        self.engine = WorkflowEngine(self.registry, clock=clock)
        self.service = WorkflowService(
            cache=self.cache,
            engine=self.engine,
            poll_interval_seconds=self.config.engine.poll_interval_seconds,
            timeout_seconds=self.config.engine.timeout_seconds,
        )
        self.sweeper = CacheSweeper(self.cache, interval_seconds=cache_cfg.sweep_interval_seconds)

        logger.info(
            "Orchestrator initialized",
            extra={"workflows": len(self.registry), "llm": self.llm is not None},
        )

    async def start(self) -> None:
        """Start background maintenance. Requires a running event loop."""
        self.sweeper.start()

    async def stop(self) -> None:
        """Stop the sweeper, cancel in-flight runs and release the HTTP session."""
        await self.sweeper.stop()
        await self.engine.shutdown()
        self.fetcher.close()
        logger.info("Orchestrator stopped")

    def cleanup_runs(self, max_age: timedelta | None = None) -> int:
        """Drop finished runs older than ``max_age`` (default: configured retention)."""
        if max_age is None:
            max_age = timedelta(hours=self.config.engine.run_retention_hours)
        return self.engine.cleanup(self._clock() - max_age)
