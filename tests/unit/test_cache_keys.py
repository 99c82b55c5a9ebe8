"""Unit tests for cache key derivation."""

from __future__ import annotations

import pytest

from card_agent_orchestrator.cache.keys import canonicalize, derive_cache_key, extract_user_id
from card_agent_orchestrator.errors import KeySerializationError


def test_key_ignores_object_key_order_at_every_depth() -> None:
    a = {"userId": "u1", "preferences": {"tags": ["ai"], "level": 2}}
    b = {"preferences": {"level": 2, "tags": ["ai"]}, "userId": "u1"}
    assert derive_cache_key("content-recommendation", a) == derive_cache_key(
        "content-recommendation", b
    )


def test_key_is_scoped_by_workflow_and_input() -> None:
    key = derive_cache_key("content-search", {"query": "memory"})
    assert key.startswith("content-search:")
    assert key != derive_cache_key("content-recommendation", {"query": "memory"})
    assert key != derive_cache_key("content-search", {"query": "Memory"})


def test_list_order_is_significant() -> None:
    assert derive_cache_key("w", [1, 2]) != derive_cache_key("w", [2, 1])


def test_canonical_form_is_compact_and_sorted() -> None:
    assert canonicalize({"b": 1, "a": [True, None]}) == '{"a":[true,null],"b":1}'


@pytest.mark.parametrize(
    "value", [{"x": object()}, {"x": float("nan")}, {1, 2}, {"query": "\ud800"}]
)
def test_unserializable_input_is_rejected(value: object) -> None:
    with pytest.raises(KeySerializationError):
        derive_cache_key("w", value)


def test_extract_user_id() -> None:
    assert extract_user_id({"userId": " u1 "}) == "u1"
    assert extract_user_id({"user_id": 42}) == "42"
    assert extract_user_id({"userId": True}) is None
    assert extract_user_id({"profile": {"userId": "nested"}}) is None
    assert extract_user_id(["userId"]) is None
