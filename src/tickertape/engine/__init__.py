"""Pure context engine: token estimation, query analysis and JSON compaction."""

from tickertape.engine.compactor import (
    CompactOptions,
    DateOrdering,
    compact_json,
    compact_multiple_results,
    create_data_summary,
    detect_date_ordering,
)
from tickertape.engine.hashing import canonical_json, result_id
from tickertape.engine.query import (
    DateRange,
    QueryContext,
    analyze_query,
    get_min_relevant_date,
    is_date_relevant,
    parse_date,
)
from tickertape.engine.tokens import (
    TOKEN_BUDGETS,
    TokenBudget,
    estimate_json_tokens,
    estimate_tokens,
    exceeds_token_budget,
    get_token_budget,
)

__all__ = [
    "CompactOptions",
    "DateOrdering",
    "compact_json",
    "compact_multiple_results",
    "create_data_summary",
    "detect_date_ordering",
    "canonical_json",
    "result_id",
    "DateRange",
    "QueryContext",
    "analyze_query",
    "get_min_relevant_date",
    "is_date_relevant",
    "parse_date",
    "TOKEN_BUDGETS",
    "TokenBudget",
    "estimate_json_tokens",
    "estimate_tokens",
    "exceeds_token_budget",
    "get_token_budget",
]
