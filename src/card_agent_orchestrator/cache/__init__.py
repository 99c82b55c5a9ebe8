"""TTL result cache for workflow outputs."""

from card_agent_orchestrator.cache.keys import canonicalize, derive_cache_key, extract_user_id
from card_agent_orchestrator.cache.store import (
    DEFAULT_TTL,
    DEFAULT_WORKFLOW_TTLS,
    CacheEntry,
    CacheHealth,
    CacheStats,
    WorkflowResultCache,
    is_expired,
)
from card_agent_orchestrator.cache.sweeper import CacheSweeper

__all__ = [
    "DEFAULT_TTL",
    "DEFAULT_WORKFLOW_TTLS",
    "CacheEntry",
    "CacheHealth",
    "CacheStats",
    "CacheSweeper",
    "WorkflowResultCache",
    "canonicalize",
    "derive_cache_key",
    "extract_user_id",
    "is_expired",
]
