"""Deterministic hashing utilities for stored tool results.

Provides canonical JSON serialization and SHA-256 hashing. All hashing is
deterministic: same input always produces same output, regardless of dict
key ordering.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json(data: Any) -> bytes:
    """Serialize data to canonical JSON bytes.

    Uses sorted keys, compact separators, and UTF-8 encoding
    to ensure deterministic output.

    Args:
        data: Any JSON-serializable Python object (dict, list, str, int, etc.).
            Values that are not JSON-serializable are stringified.

    Returns:
        UTF-8 encoded bytes of the canonical JSON string.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    ).encode("utf-8")


def result_id(tool_name: str, args: dict, result: str) -> str:
    """Compute the storage pointer for one tool invocation.

    The pointer is a SHA-256 hex digest over the tool name, its arguments
    and the raw result text, so saving the same call twice yields the
    same id.

    Args:
        tool_name: Name of the tool that produced the result.
        args: Arguments the tool was invoked with.
        result: Raw result text.

    Returns:
        Hex digest of SHA-256 hash.
    """
    payload = {"tool_name": tool_name, "args": args, "result": result}
    return hashlib.sha256(canonical_json(payload)).hexdigest()
