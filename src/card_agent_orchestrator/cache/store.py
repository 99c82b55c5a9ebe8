"""In-memory TTL cache for workflow results.

Expiry is lazy: :func:`is_expired` is the only check used by reads, so an
expired entry is absent from ``lookup`` the instant its TTL passes even if it
is still physically stored. :meth:`WorkflowResultCache.sweep` reclaims memory
and nothing else depends on it having run.

All methods are synchronous. Under a single asyncio event loop that means no
mutation can be observed half-applied by another task.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from card_agent_orchestrator.cache.keys import derive_cache_key, extract_user_id

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=15)

DEFAULT_WORKFLOW_TTLS: dict[str, timedelta] = {
    "content-recommendation": timedelta(minutes=10),
    "content-search": timedelta(minutes=5),
    "user-achievement": timedelta(minutes=30),
    "user-analytics": timedelta(minutes=60),
    "user-engagement": timedelta(minutes=15),
    "trend-analysis": timedelta(minutes=30),
    "card-generation": timedelta(minutes=60),
}

DEFAULT_DEGRADED_RATIO = 0.5
DEFAULT_MAX_SIZE_BYTES = 10 * 1024 * 1024

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(slots=True)
class CacheEntry:
    key: str
    workflow_id: str
    value: Any
    created_at: datetime
    expires_at: datetime
    size_bytes: int
    user_id: str | None = None


def is_expired(entry: CacheEntry, now: datetime) -> bool:
    return now >= entry.expires_at


@dataclass(frozen=True, slots=True)
class WorkflowCacheStats:
    count: int
    expired: int
    avg_age_seconds: float


@dataclass(frozen=True, slots=True)
class CacheStats:
    total_entries: int
    total_size_bytes: int
    expired_entries: int
    by_workflow: dict[str, WorkflowCacheStats] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CacheHealth:
    status: Literal["healthy", "degraded"]
    total_entries: int
    expired_ratio: float
    total_size_bytes: int
    issues: list[str] = field(default_factory=list)


def _serialized_size(value: Any) -> int:
    # Reporting only; anything json can't encode natively is sized by its str().
    text = json.dumps(value, ensure_ascii=False, default=str)
    return len(text.encode("utf-8", errors="replace"))


def _detached(entry: CacheEntry) -> CacheEntry:
    # Callers get their own copy of the value; the stored one is never handed out.
    return replace(entry, value=copy.deepcopy(entry.value))


class WorkflowResultCache:
    """Maps ``(workflow_id, input)`` to the last completed result for that pair."""

    def __init__(
        self,
        *,
        ttl_overrides: Mapping[str, timedelta] | None = None,
        default_ttl: timedelta = DEFAULT_TTL,
        degraded_ratio: float = DEFAULT_DEGRADED_RATIO,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        clock: Clock = utc_now,
    ) -> None:
        if default_ttl <= timedelta(0):
            raise ValueError("default_ttl must be positive")
        self._ttls: dict[str, timedelta] = {**DEFAULT_WORKFLOW_TTLS, **(ttl_overrides or {})}
        self._default_ttl = default_ttl
        self._degraded_ratio = degraded_ratio
        self._max_size_bytes = max_size_bytes
        self._clock = clock

        self._entries: dict[str, CacheEntry] = {}
        self._user_index: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def ttl_table(self) -> dict[str, timedelta]:
        return dict(self._ttls)

    @property
    def default_ttl(self) -> timedelta:
        return self._default_ttl

    def ttl_for(self, workflow_id: str) -> timedelta:
        return self._ttls.get(workflow_id, self._default_ttl)

    def lookup(self, workflow_id: str, input: Any) -> CacheEntry | None:
        key = derive_cache_key(workflow_id, input)
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache miss", extra={"workflow_id": workflow_id})
            return None
        if is_expired(entry, self._clock()):
            logger.debug("Cache entry expired", extra={"workflow_id": workflow_id})
            return None
        logger.info("Cache hit", extra={"workflow_id": workflow_id})
        return _detached(entry)

    def get(self, workflow_id: str, input: Any) -> Any | None:
        entry = self.lookup(workflow_id, input)
        return None if entry is None else entry.value

    def put(self, workflow_id: str, input: Any, value: Any) -> CacheEntry:
        key = derive_cache_key(workflow_id, input)
        now = self._clock()
        ttl = self.ttl_for(workflow_id)
        entry = CacheEntry(
            key=key,
            workflow_id=workflow_id,
            value=copy.deepcopy(value),
            created_at=now,
            expires_at=now + ttl,
            size_bytes=_serialized_size(value),
            user_id=extract_user_id(input),
        )

        self._discard(key)
        self._entries[key] = entry
        if entry.user_id is not None:
            self._user_index.setdefault(entry.user_id, set()).add(key)

        logger.info(
            "Cached workflow result",
            extra={"workflow_id": workflow_id, "ttl_seconds": ttl.total_seconds()},
        )
        return _detached(entry)

    def clear_workflow(self, workflow_id: str) -> int:
        keys = [k for k, e in self._entries.items() if e.workflow_id == workflow_id]
        for key in keys:
            self._discard(key)
        logger.info("Cleared workflow cache", extra={"workflow_id": workflow_id, "count": len(keys)})
        return len(keys)

    def clear_user(self, user_id: str) -> int:
        # Same normalisation as the index uses at put time.
        user_id = user_id.strip()
        keys = self._user_index.pop(user_id, set())
        removed = 0
        for key in keys:
            if self._entries.pop(key, None) is not None:
                removed += 1
        logger.info("Cleared user cache", extra={"user_id": user_id, "count": removed})
        return removed

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self._user_index.clear()
        logger.info("Cleared all cache entries", extra={"count": count})
        return count

    def sweep(self) -> int:
        """Physically remove expired entries. Returns the number removed."""

        now = self._clock()
        expired = [k for k, e in self._entries.items() if is_expired(e, now)]
        for key in expired:
            self._discard(key)
        if expired:
            logger.info("Swept expired cache entries", extra={"count": len(expired)})
        return len(expired)

    def stats(self) -> CacheStats:
        now = self._clock()
        total_size = 0
        expired_total = 0
        grouped: dict[str, list[CacheEntry]] = {}
        for entry in self._entries.values():
            total_size += entry.size_bytes
            if is_expired(entry, now):
                expired_total += 1
            grouped.setdefault(entry.workflow_id, []).append(entry)

        by_workflow: dict[str, WorkflowCacheStats] = {}
        for workflow_id, entries in grouped.items():
            ages = [(now - e.created_at).total_seconds() for e in entries]
            by_workflow[workflow_id] = WorkflowCacheStats(
                count=len(entries),
                expired=sum(1 for e in entries if is_expired(e, now)),
                avg_age_seconds=round(sum(ages) / len(ages), 3),
            )

        return CacheStats(
            total_entries=len(self._entries),
            total_size_bytes=total_size,
            expired_entries=expired_total,
            by_workflow=by_workflow,
        )

    def health_check(self) -> CacheHealth:
        stats = self.stats()
        ratio = stats.expired_entries / stats.total_entries if stats.total_entries else 0.0

        issues: list[str] = []
        if ratio > self._degraded_ratio:
            issues.append("Expired entry ratio is high; the sweep is falling behind")
        if stats.total_size_bytes > self._max_size_bytes:
            issues.append("Cached results exceed the configured size budget")

        return CacheHealth(
            status="degraded" if issues else "healthy",
            total_entries=stats.total_entries,
            expired_ratio=round(ratio, 4),
            total_size_bytes=stats.total_size_bytes,
            issues=issues,
        )

    def _discard(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None or entry.user_id is None:
            return
        keys = self._user_index.get(entry.user_id)
        if keys is None:
            return
        keys.discard(key)
        if not keys:
            del self._user_index[entry.user_id]
