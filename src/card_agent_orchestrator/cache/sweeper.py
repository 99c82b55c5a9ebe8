"""Periodic physical removal of expired cache entries."""

from __future__ import annotations

import asyncio
import logging

from card_agent_orchestrator.cache.store import WorkflowResultCache

logger = logging.getLogger(__name__)


class CacheSweeper:
    """Background task that calls :meth:`WorkflowResultCache.sweep` on an interval.

    Purely a memory-reclamation optimization; reads never rely on it.
    """

    def __init__(self, cache: WorkflowResultCache, *, interval_seconds: float = 300.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._cache = cache
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            logger.warning("Cache sweeper already running")
            return
        self._task = asyncio.create_task(self._loop(), name="cache-sweeper")
        logger.info("Cache sweeper started", extra={"interval_seconds": self._interval})

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Cache sweeper stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._cache.sweep()
            except Exception:
                logger.exception("Cache sweep iteration failed")
