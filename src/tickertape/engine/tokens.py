"""Approximate token counting and per-model token budgets.

Token counts are estimated from character length rather than a real
tokenizer:

- ~4 characters per token for English text
- ~3.5 characters per token for JSON/code (due to punctuation)
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Literal

ContentKind = Literal["text", "json", "code"]

CHARS_PER_TOKEN: dict[str, float] = {
    "text": 4,
    "json": 3.5,
    "code": 3.5,
}


def estimate_tokens(text: str, kind: ContentKind = "text") -> int:
    """Estimate the token count of a string.

    Args:
        text: The text to measure.
        kind: Content kind; JSON and code use a denser ratio than prose.

    Returns:
        Estimated token count. Returns 0 for empty string.
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN[kind])


def estimate_json_tokens(data: Any) -> int:
    """Estimate the token count of JSON data (a string is measured as-is)."""
    json_str = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
    return estimate_tokens(json_str, "json")


def exceeds_token_budget(text: str, budget: int, kind: ContentKind = "text") -> bool:
    """Return True when the estimated token count of *text* is over *budget*."""
    return estimate_tokens(text, kind) > budget


@dataclass(frozen=True)
class TokenBudget:
    """Token allocation for one model's prompt segments.

    Attributes:
        max_input: Total input tokens, leaving room for output and overhead.
        tool_results: Max tokens for all tool results in the final answer.
        per_tool_result: Max tokens for one tool result.
        chat_history: Max tokens for chat history context.
    """

    max_input: int
    tool_results: int
    per_tool_result: int
    chat_history: int


TOKEN_BUDGETS: dict[str, TokenBudget] = {
    # 256k+ context windows
    "large": TokenBudget(
        max_input=200_000,
        tool_results=150_000,
        per_tool_result=40_000,
        chat_history=10_000,
    ),
    # Legacy low-context models
    "small": TokenBudget(
        max_input=12_000,
        tool_results=8_000,
        per_tool_result=3_000,
        chat_history=2_000,
    ),
}

_SMALL_CONTEXT_MODELS = ("gpt-3.5-turbo", "gpt-3.5")


def get_token_budget(model: str) -> TokenBudget:
    """Select the token budget preset for a model identifier.

    Models whose name contains a known legacy/low-context substring get the
    ``small`` preset; everything else gets ``large``.
    """
    lowered = model.lower()
    if any(name in lowered for name in _SMALL_CONTEXT_MODELS):
        return TOKEN_BUDGETS["small"]
    return TOKEN_BUDGETS["large"]
