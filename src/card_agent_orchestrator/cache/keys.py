"""Cache key derivation.

A key is ``"<workflow_id>:<sha256 of canonical JSON input>"``. Canonical JSON
sorts object keys at every depth and uses compact separators, so two inputs
with the same logical content produce the same key regardless of insertion
order.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from card_agent_orchestrator.errors import KeySerializationError

# Input fields recognised as the owning user of a cached result.
USER_ID_FIELDS: tuple[str, ...] = ("userId", "user_id")


def _canonical_bytes(value: Any) -> bytes:
    try:
        text = json.dumps(
            value,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
        # Lone surrogates survive json.dumps but not UTF-8 (UnicodeEncodeError is a ValueError).
        return text.encode("utf-8")
    except (TypeError, ValueError) as e:
        raise KeySerializationError(f"Input is not JSON-serializable: {e}") from e


def canonicalize(value: Any) -> str:
    return _canonical_bytes(value).decode("utf-8")


def derive_cache_key(workflow_id: str, input: Any) -> str:
    digest = hashlib.sha256(_canonical_bytes(input)).hexdigest()
    return f"{workflow_id}:{digest}"


def extract_user_id(input: Any) -> str | None:
    """Return the user id a workflow input belongs to, if it names one.

    Only top-level ``userId``/``user_id`` fields count. Booleans are ignored even
    though they are ints in Python.
    """

    if not isinstance(input, Mapping):
        return None
    for field in USER_ID_FIELDS:
        raw = input.get(field)
        if isinstance(raw, bool):
            continue
        if isinstance(raw, str) and raw.strip():
            return raw.strip()
        if isinstance(raw, int):
            return str(raw)
    return None
