"""Compaction of large JSON tool results to fit token budgets.

Passes, applied in order on the parsed structure:

1. Query-aware filtering: keep array items whose date is relevant to the query
2. Array truncation to the most recent N items (detecting date ordering)
3. Removal of verbose/redundant fields
4. Truncation of URLs and long text fields
5. Serialization (minified by default)

If the result is still over budget the array cap is shrunk and the passes
re-run from the original data; as a last resort the string is hard truncated.
Compaction never raises.
"""

from __future__ import annotations

import enum
import json
import logging
import math
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from tickertape.engine.query import (
    QueryContext,
    analyze_query,
    is_date_relevant,
    looks_like_date,
    parse_date,
)
from tickertape.engine.tokens import CHARS_PER_TOKEN, estimate_json_tokens

logger = logging.getLogger(__name__)

# Often verbose and less critical for analysis
VERBOSE_FIELDS: frozenset[str] = frozenset({
    "reportedCurrency",
    "acceptedDate",
    "fillingDate",
    "link",
    "finalLink",
    "cik",
})

# Fields holding URLs or long text that can be shortened
TRUNCATABLE_TEXT_FIELDS: frozenset[str] = frozenset({
    "banner_image",
    "source_url",
    "article_url",
    "image",
})

DATE_FIELDS: tuple[str, ...] = (
    "date",
    "timestamp",
    "time",
    "period",
    "fiscalDateEnding",
    "reportDate",
    "publishedDate",
)

TRUNCATION_MARKER = "...[truncated]"

_MIN_ARRAY_CAP = 5
_SHRINK_FACTOR = 0.7
_FILTER_FALLBACK_ITEMS = 20
_URL_TRUNCATE_THRESHOLD = 50
_TEXT_PREFIX_CHARS = 100
_SUMMARY_SCALAR_CHARS = 200
_SUMMARY_MAX_KEYS = 10


class DateOrdering(str, enum.Enum):
    """Chronological ordering of a date-keyed array."""

    NEWEST_FIRST = "newest-first"
    OLDEST_FIRST = "oldest-first"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CompactOptions:
    """Options controlling :func:`compact_json`.

    Attributes:
        max_tokens: Token budget for the serialized result.
        max_array_length: Maximum items kept in any array.
        remove_verbose_fields: Drop fields listed in ``VERBOSE_FIELDS``.
        truncate_urls: Shorten URLs and long text in ``TRUNCATABLE_TEXT_FIELDS``.
        minify: Serialize without whitespace; otherwise indent by 2 spaces.
        query: Original query, analyzed for date-aware filtering.
        query_context: Pre-analyzed query context; takes precedence over ``query``.
    """

    max_tokens: int = 25_000
    max_array_length: int = 50
    remove_verbose_fields: bool = True
    truncate_urls: bool = True
    minify: bool = True
    query: str | None = None
    query_context: QueryContext | None = None


def compact_json(data: Any, options: CompactOptions | None = None) -> str:
    """Compact JSON data (or a JSON string) to fit within a token budget.

    Args:
        data: Parsed JSON data, or a string holding JSON.
        options: Compaction options; defaults to ``CompactOptions()``.

    Returns:
        The compacted JSON string. Invalid JSON strings are returned as-is,
        hard truncated when over budget.
    """
    opts = options or CompactOptions()
    max_chars = math.floor(opts.max_tokens * CHARS_PER_TOKEN["json"])

    context = opts.query_context
    if context is None and opts.query:
        context = analyze_query(opts.query)

    if isinstance(data, str):
        try:
            parsed = json.loads(data)
        except ValueError:
            return _truncate_string(data, max_chars)
    else:
        parsed = data

    cap = opts.max_array_length
    result = _run_passes(parsed, cap, context, opts)
    tokens = estimate_json_tokens(result)

    while tokens > opts.max_tokens and cap > _MIN_ARRAY_CAP:
        cap = math.floor(cap * _SHRINK_FACTOR)
        result = _run_passes(parsed, cap, context, opts)
        tokens = estimate_json_tokens(result)

    if tokens > opts.max_tokens:
        logger.debug(
            "Hard truncating compacted result (%d tokens > %d budget)",
            tokens, opts.max_tokens,
        )
        result = result[:max_chars] + TRUNCATION_MARKER

    return result


def _run_passes(
    parsed: Any,
    cap: int,
    context: QueryContext | None,
    opts: CompactOptions,
) -> str:
    compacted = parsed
    if context is not None:
        compacted = filter_by_query_context(compacted, context)
    compacted = truncate_arrays(compacted, cap)
    if opts.remove_verbose_fields:
        compacted = remove_fields(compacted, VERBOSE_FIELDS)
    if opts.truncate_urls:
        compacted = truncate_text_fields(compacted, TRUNCATABLE_TEXT_FIELDS)
    return _serialize(compacted, opts.minify)


def _serialize(data: Any, minify: bool) -> str:
    if minify:
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False, default=str)
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _truncate_string(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def compact_multiple_results(
    results: list[tuple[str, Any]],
    total_budget: int,
    *,
    query: str | None = None,
) -> list[str]:
    """Compact several results so that together they fit *total_budget*.

    Later (more recent) results get more budget: the first is weighted 1x,
    the last 2x.

    Args:
        results: ``(description, data)`` pairs in chronological order.
        total_budget: Total token budget to distribute.
        query: Optional query for date-aware filtering.

    Returns:
        One ``"### <description>\\n<compacted>"`` block per result.
    """
    if not results:
        return []

    n = len(results)
    weights = [1 + i / ((n - 1) or 1) for i in range(n)]
    total_weight = sum(weights)
    context = analyze_query(query) if query else None

    blocks: list[str] = []
    for (description, data), weight in zip(results, weights):
        share = math.floor(weight / total_weight * total_budget)
        options = CompactOptions(max_tokens=share, query_context=context)
        blocks.append(f"### {description}\n{compact_json(data, options)}")
    return blocks


def filter_by_query_context(data: Any, context: QueryContext) -> Any:
    """Keep array items whose date field is relevant to *context*.

    Only arrays whose first element is an object with a date-like field are
    filtered. If no item survives, the first 20 items are kept unchanged.
    """
    if isinstance(data, list):
        if data and isinstance(data[0], dict):
            date_field = find_date_field(data[0])
            if date_field is not None:
                kept = [
                    item for item in data
                    if not isinstance(item, dict)
                    or not isinstance(item.get(date_field), str)
                    or is_date_relevant(item[date_field], context, 1)
                ]
                if not kept:
                    return data[:_FILTER_FALLBACK_ITEMS]
                return [filter_by_query_context(item, context) for item in kept]
        return [filter_by_query_context(item, context) for item in data]

    if isinstance(data, dict):
        return {key: filter_by_query_context(value, context) for key, value in data.items()}

    return data


def find_date_field(obj: dict[str, Any]) -> str | None:
    """Return the first recognised date field of *obj* whose value looks like a date."""
    for field in DATE_FIELDS:
        value = obj.get(field)
        if isinstance(value, str) and looks_like_date(value):
            return field
    return None


def detect_date_ordering(items: list[Any]) -> DateOrdering:
    """Detect whether an array is sorted newest-first or oldest-first.

    Compares the first two items on the first shared date field. Equal or
    unparseable dates give ``UNKNOWN``.
    """
    if len(items) < 2:
        return DateOrdering.UNKNOWN

    first, second = items[0], items[1]
    if not isinstance(first, dict) or not isinstance(second, dict):
        return DateOrdering.UNKNOWN

    for field in DATE_FIELDS:
        first_value = first.get(field)
        second_value = second.get(field)
        if not isinstance(first_value, str) or not isinstance(second_value, str):
            continue
        d1 = parse_date(first_value)
        d2 = parse_date(second_value)
        if d1 is None or d2 is None:
            continue
        if d1 > d2:
            return DateOrdering.NEWEST_FIRST
        if d1 < d2:
            return DateOrdering.OLDEST_FIRST
        return DateOrdering.UNKNOWN

    return DateOrdering.UNKNOWN


def truncate_arrays(data: Any, max_length: int) -> Any:
    """Cap every array at *max_length* items, keeping the most recent ones."""
    if isinstance(data, list):
        if len(data) <= max_length:
            return [truncate_arrays(item, max_length) for item in data]

        ordering = detect_date_ordering(data)
        if ordering is DateOrdering.OLDEST_FIRST:
            kept = data[-max_length:] if max_length > 0 else []
        else:
            kept = data[:max_length]
        return [truncate_arrays(item, max_length) for item in kept]

    if isinstance(data, dict):
        return {key: truncate_arrays(value, max_length) for key, value in data.items()}

    return data


def remove_fields(data: Any, fields: frozenset[str]) -> Any:
    """Recursively drop the named keys from every object."""
    if isinstance(data, list):
        return [remove_fields(item, fields) for item in data]
    if isinstance(data, dict):
        return {
            key: remove_fields(value, fields)
            for key, value in data.items()
            if key not in fields
        }
    return data


def truncate_text_fields(data: Any, fields: frozenset[str]) -> Any:
    """Shorten long URL and text values in the named fields."""
    if isinstance(data, list):
        return [truncate_text_fields(item, fields) for item in data]
    if isinstance(data, dict):
        result: dict[str, Any] = {}
        for key, value in data.items():
            if key in fields and isinstance(value, str) and len(value) > _URL_TRUNCATE_THRESHOLD:
                result[key] = _shorten_text(value)
            else:
                result[key] = truncate_text_fields(value, fields)
        return result
    return data


def _shorten_text(value: str) -> str:
    if not value.startswith("http"):
        return value[:_TEXT_PREFIX_CHARS] + "..."
    origin = _url_origin(value)
    if origin is None:
        return value[:_URL_TRUNCATE_THRESHOLD] + "..."
    return f"{origin}/..."


def _url_origin(value: str) -> str | None:
    try:
        parts = urlsplit(value)
        port = parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    origin = f"{parts.scheme}://{parts.hostname}"
    if port is not None:
        origin += f":{port}"
    return origin


def create_data_summary(data: Any, description: str) -> str:
    """Produce a one-line summary of data too large to include.

    Arrays report their length and the last three items; objects list their
    first ten keys.
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError:
            return f"{description}: [data parsing error]"

    if isinstance(data, list):
        sample = json.dumps(data[-3:], separators=(",", ":"), ensure_ascii=False, default=str)
        return f"{description}: {len(data)} records. Recent: {sample}"

    if isinstance(data, dict):
        keys = list(data)
        more = "..." if len(keys) > _SUMMARY_MAX_KEYS else ""
        return f"{description}: Object with keys [{', '.join(keys[:_SUMMARY_MAX_KEYS])}{more}]"

    text = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False, default=str)
    return f"{description}: {text[:_SUMMARY_SCALAR_CHARS]}"

