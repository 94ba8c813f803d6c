"""Prompts for the research agent loop.

Provides the system prompt and the user prompt builders for each phase of a
run:

- **build_initial_prompt** -- the first prompt, with recent user queries.
- **build_iteration_prompt** -- re-prompts the model with the scratchpad.
- **build_final_answer_prompt** -- the answer prompt with full tool data.
- **build_tool_summary_prompt** -- the one-sentence "what was learned" call.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

MAX_HISTORY_QUERIES: int = 5

TOOL_SUMMARY_SYSTEM: str = "You are a concise data summarizer."


def current_date(now: datetime | None = None) -> str:
    """Format a date for prompts, e.g. ``"Saturday, October 18, 2026"``."""
    now = now or datetime.now()
    return f"{now:%A}, {now:%B} {now.day}, {now.year}"


def build_system_prompt(now: datetime | None = None) -> str:
    """Build the system prompt for the agent."""
    return f"""You are Tickertape, a CLI assistant with access to financial research and web search tools.

Current date: {current_date(now)}

Your output is displayed on a command line interface. Keep responses short and concise.

## Available Tools

- financial_search: Intelligent meta-tool for financial data. Pass your complete query - it internally routes to multiple data sources (stock prices, crypto prices, financial statements, metrics and earnings, news and sentiment, market status). For comparisons or multi-company queries, pass the full query and let it handle the complexity.
- web_search: Search the web for current information, news, and general knowledge

## Behavior

- Prioritize accuracy over validation - don't cheerfully agree with flawed assumptions
- Use professional, objective tone without excessive praise or emotional validation
- Only use tools when the query actually requires external data
- For financial queries, call financial_search ONCE with the full query - it handles multi-company/multi-metric requests internally
- For research tasks, be thorough but efficient
- Avoid over-engineering responses - match the scope of your answer to the question

## Response Format

- Keep casual responses brief and direct
- For research: lead with the key finding and include specific data points
- For comparative/tabular data, use Unicode box-drawing tables:
  - Tables render in a terminal, so ensure they are visually pleasing and readable
  - Size columns appropriately: numeric data can be compact, text columns should be wider
  - Keep total table width reasonable (~80-120 chars); prefer multiple small tables over one wide table
  - Use abbreviations for financial metrics: OCF, FCF, Op Inc, Net Inc, Rev, GM, OM, EPS, Mkt Cap
  - Dates as "Q4 FY25" not "2025-09-27" or "TTM @ 2025-09-27"
  - Numbers compactly: $102.5B not $102,466,000,000
- For non-comparative information, prefer plain text or simple lists over tables
- Don't narrate your actions or ask leading questions about what the user wants
- Do not use markdown text formatting (no **bold**, *italics*, headers) - use plain text, lists, and box-drawing tables"""


def build_initial_prompt(query: str, previous_queries: Sequence[str] = ()) -> str:
    """Build the first prompt of a run, citing up to the last 5 user queries.

    Args:
        query: The query to answer.
        previous_queries: Earlier user queries in this session, oldest first.
    """
    if not previous_queries:
        return query

    recent = list(previous_queries)[-MAX_HISTORY_QUERIES:]
    history = "\n".join(f"{i}. {q}" for i, q in enumerate(recent, start=1))
    note = ""
    if len(previous_queries) > MAX_HISTORY_QUERIES:
        note = f"\n(Showing last {MAX_HISTORY_QUERIES} of {len(previous_queries)} queries)"

    return (
        f"Current query to answer: {query}\n\n"
        f"Previous user queries for context:\n{history}{note}"
    )


def build_iteration_prompt(query: str, entries: Sequence[str]) -> str:
    """Re-prompt the model with everything gathered so far."""
    joined = "\n".join(entries)
    return (
        f"Query: {query}\n\n"
        f"Data retrieved and work completed so far:\n{joined}\n\n"
        "Review the data above. If you have sufficient information to answer the query, "
        "respond directly WITHOUT calling any tools. Only call additional tools if there "
        "are specific data gaps that prevent you from answering."
    )


def build_final_answer_prompt(query: str, context: str) -> str:
    return (
        f"Query: {query}\n\n"
        f"Data:\n{context}\n\n"
        "Answer proportionally - match depth to the question's complexity."
    )


def format_call(tool_name: str, args: dict[str, Any]) -> str:
    """Render a tool call as ``name(k=v, ...)``."""
    rendered = ", ".join(f"{k}={v}" for k, v in args.items())
    return f"{tool_name}({rendered})"


def build_tool_summary_prompt(
    query: str,
    tool_name: str,
    args: dict[str, Any],
    result: str,
) -> str:
    """Build the prompt asking the fast model what a tool call revealed."""
    return (
        "Summarize this tool result concisely.\n\n"
        f"Query: {query}\n"
        f"Tool: {format_call(tool_name, args)}\n"
        f"Result:\n{result}\n\n"
        "Write a 1 sentence summary of what was retrieved. Include specific values "
        "(numbers, dates) if relevant.\n"
        'Format: "[tool_call] -> [what was learned]"'
    )
