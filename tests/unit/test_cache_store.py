"""Unit tests for the TTL result cache."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from card_agent_orchestrator.cache.store import WorkflowResultCache
from card_agent_orchestrator.cache.sweeper import CacheSweeper


def test_entries_expire_by_workflow_ttl(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    rec_input = {"userId": "u1", "preferences": {}}
    analytics_input = {"userId": "u1", "timeRange": "30d"}
    cache.put("content-recommendation", rec_input, {"items": [1, 2]})
    cache.put("user-analytics", analytics_input, {"score": 7})

    clock.advance(minutes=9)
    assert cache.get("content-recommendation", rec_input) == {"items": [1, 2]}

    clock.advance(minutes=22)
    assert cache.get("content-recommendation", rec_input) is None
    assert cache.get("user-analytics", analytics_input) == {"score": 7}


def test_entry_is_absent_exactly_at_expiry(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    cache.put("content-search", {"query": "q"}, ["hit"])

    clock.advance(minutes=5)
    assert cache.lookup("content-search", {"query": "q"}) is None
    # Still physically stored until a sweep runs.
    assert len(cache) == 1


def test_unknown_workflow_uses_default_ttl(clock) -> None:
    cache = WorkflowResultCache(clock=clock, default_ttl=timedelta(minutes=15))
    entry = cache.put("something-new", {}, "v")
    assert entry.expires_at - entry.created_at == timedelta(minutes=15)


def test_ttl_overrides_merge_over_table(clock) -> None:
    cache = WorkflowResultCache(clock=clock, ttl_overrides={"content-search": timedelta(seconds=30)})
    assert cache.ttl_for("content-search") == timedelta(seconds=30)
    assert cache.ttl_for("content-recommendation") == timedelta(minutes=10)


def test_cached_null_is_a_hit(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    cache.put("trend-analysis", {"limit": 5}, None)

    entry = cache.lookup("trend-analysis", {"limit": 5})
    assert entry is not None
    assert entry.value is None


def test_put_overwrites_and_restarts_ttl(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    cache.put("content-search", {"query": "q"}, "old")
    clock.advance(minutes=4)
    cache.put("content-search", {"query": "q"}, "new")
    clock.advance(minutes=4)

    assert cache.get("content-search", {"query": "q"}) == "new"
    assert len(cache) == 1


def test_clear_workflow_only_touches_that_workflow(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    for i in range(3):
        cache.put("content-recommendation", {"userId": f"u{i}"}, i)
    cache.put("content-search", {"query": "a"}, "a")
    cache.put("content-search", {"query": "b"}, "b")

    assert cache.clear_workflow("content-recommendation") == 3
    assert cache.get("content-recommendation", {"userId": "u0"}) is None
    assert cache.get("content-search", {"query": "a"}) == "a"
    assert len(cache) == 2
    assert cache.clear_workflow("content-recommendation") == 0


def test_clear_user_removes_entries_across_workflows(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    cache.put("content-recommendation", {"userId": "u1"}, "r1")
    cache.put("user-analytics", {"userId": "u1", "timeRange": "30d"}, "a1")
    cache.put("content-recommendation", {"userId": "u2"}, "r2")
    cache.put("trend-analysis", {"limit": 20}, "t")

    assert cache.clear_user("u1") == 2
    assert cache.get("content-recommendation", {"userId": "u1"}) is None
    assert cache.get("content-recommendation", {"userId": "u2"}) == "r2"
    assert cache.get("trend-analysis", {"limit": 20}) == "t"
    assert cache.clear_user("u1") == 0


def test_clear_user_after_workflow_clear_does_not_double_count(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    cache.put("content-recommendation", {"userId": "u1"}, "r1")
    cache.put("user-analytics", {"userId": "u1"}, "a1")

    cache.clear_workflow("content-recommendation")
    assert cache.clear_user("u1") == 1
    assert len(cache) == 0


def test_clear_all(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    cache.put("content-search", {"query": "a"}, "a")
    cache.put("content-recommendation", {"userId": "u1"}, "r1")

    assert cache.clear() == 2
    assert len(cache) == 0
    assert cache.clear_user("u1") == 0


def test_stats_and_health_track_expired_entries(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    cache.put("content-search", {"query": "a"}, "a")
    cache.put("content-search", {"query": "b"}, "b")
    cache.put("user-analytics", {"userId": "u1"}, {"score": 1})

    clock.advance(minutes=6)
    stats = cache.stats()
    assert stats.total_entries == 3
    assert stats.expired_entries == 2
    assert stats.by_workflow["content-search"].count == 2
    assert stats.by_workflow["content-search"].expired == 2
    assert stats.by_workflow["user-analytics"].avg_age_seconds == pytest.approx(360.0)
    assert stats.total_size_bytes > 0

    health = cache.health_check()
    assert health.status == "degraded"
    assert health.expired_ratio == pytest.approx(0.6667, abs=1e-4)
    assert health.issues


def test_sweep_is_idempotent(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    cache.put("content-search", {"query": "a"}, "a")
    cache.put("content-recommendation", {"userId": "u1"}, "r1")

    clock.advance(minutes=6)
    assert cache.sweep() == 1
    assert cache.sweep() == 0
    assert len(cache) == 1
    assert cache.health_check().status == "healthy"


def test_oversized_cache_reports_degraded(clock) -> None:
    cache = WorkflowResultCache(clock=clock, max_size_bytes=64)
    cache.put("trend-analysis", {}, "x" * 200)

    health = cache.health_check()
    assert health.status == "degraded"
    assert health.expired_ratio == 0.0


def test_empty_cache_is_healthy(clock) -> None:
    health = WorkflowResultCache(clock=clock).health_check()
    assert health.status == "healthy"
    assert health.total_entries == 0


def test_default_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        WorkflowResultCache(default_ttl=timedelta(0))


async def test_sweeper_runs_in_background(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    cache.put("content-search", {"query": "a"}, "a")
    clock.advance(minutes=6)

    sweeper = CacheSweeper(cache, interval_seconds=0.01)
    sweeper.start()
    assert sweeper.running
    for _ in range(100):
        if len(cache) == 0:
            break
        await asyncio.sleep(0.01)
    await sweeper.stop()

    assert len(cache) == 0
    assert not sweeper.running


def test_sweeper_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        CacheSweeper(WorkflowResultCache(), interval_seconds=0)


def test_returned_values_do_not_alias_the_cache(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    stored = {"results": {"a": [1, 2]}}
    entry = cache.put("trend-analysis", {"limit": 20}, stored)

    stored["results"].clear()
    entry.value["results"]["b"] = []
    cache.get("trend-analysis", {"limit": 20})["results"]["a"].append(3)
    cache.lookup("trend-analysis", {"limit": 20}).value.clear()

    assert cache.get("trend-analysis", {"limit": 20}) == {"results": {"a": [1, 2]}}


def test_clear_user_normalises_the_user_id(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    cache.put("content-recommendation", {"userId": " u1 "}, "r1")

    assert cache.clear_user(" u1 ") == 1
    assert len(cache) == 0


def test_size_accounting_tolerates_lone_surrogates(clock) -> None:
    cache = WorkflowResultCache(clock=clock)
    entry = cache.put("content-search", {"query": "q"}, {"echo": "\ud800"})
    assert entry.size_bytes > 0
