"""The financial_search meta-tool.

Routes a natural-language data request to the Alpha Vantage tools with one
model call, runs the selected calls concurrently and combines their data
under ``<tool>`` or ``<tool>_<ticker>`` keys. Failed calls are reported
under ``_errors`` rather than failing the whole search.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from tickertape.cancellation import check_cancelled
from tickertape.exceptions import RunCancelledError
from tickertape.llm.protocols import LanguageModel, ToolCall
from tickertape.prompts.router import build_router_prompt
from tickertape.tools.finance.api import AlphaVantageClient, format_tool_result
from tickertape.tools.finance.crypto import crypto_tools
from tickertape.tools.finance.fundamentals import fundamentals_tools
from tickertape.tools.finance.market import market_tools
from tickertape.tools.finance.metrics import metrics_tools
from tickertape.tools.finance.news import news_tools
from tickertape.tools.finance.prices import price_tools
from tickertape.tools.registry import ToolDefinition, ToolRegistry

logger = logging.getLogger(__name__)

MAX_ROUTED_WORKERS = 4


class FinancialSearchArgs(BaseModel):
    query: str = Field(description="Natural language query about financial data")


@dataclass(frozen=True)
class RoutedResult:
    """Outcome of one routed finance tool call."""

    tool: str
    args: dict[str, Any]
    data: Any = None
    source_urls: list[str] = field(default_factory=list)
    error: str | None = None


def finance_registry(client: AlphaVantageClient) -> ToolRegistry:
    """All Alpha Vantage tools the router can pick from."""
    return ToolRegistry([
        *price_tools(client),
        *crypto_tools(client),
        *fundamentals_tools(client),
        *metrics_tools(client),
        *news_tools(client),
        *market_tools(client),
    ])


def result_key(tool: str, args: dict[str, Any]) -> str:
    """Key a routed result by tool name, plus ticker when the call has one."""
    ticker = args.get("ticker") or args.get("symbol")
    return f"{tool}_{ticker}" if ticker else tool


def combine_results(results: list[RoutedResult]) -> tuple[dict[str, Any], list[str]]:
    """Merge routed results into one payload and the list of all source URLs."""
    combined: dict[str, Any] = {}
    for result in results:
        if result.error is None:
            combined[result_key(result.tool, result.args)] = result.data

    failed = [r for r in results if r.error is not None]
    if failed:
        combined["_errors"] = [
            {"tool": r.tool, "args": r.args, "error": r.error} for r in failed
        ]

    urls = [url for result in results for url in result.source_urls]
    return combined, urls


def _run_routed_call(
    registry: ToolRegistry,
    call: ToolCall,
    signal: threading.Event | None,
) -> RoutedResult:
    try:
        raw = registry.get(call.name).invoke(call.arguments, signal=signal)
        parsed = json.loads(raw)
        return RoutedResult(
            tool=call.name,
            args=call.arguments,
            data=parsed.get("data"),
            source_urls=list(parsed.get("sourceUrls") or []),
        )
    except RunCancelledError:
        raise
    except Exception as exc:
        logger.debug("Routed call %s failed: %s", call.name, exc, exc_info=True)
        return RoutedResult(tool=call.name, args=call.arguments, error=str(exc))


def create_financial_search(
    llm: LanguageModel,
    model: str,
    client: AlphaVantageClient,
) -> ToolDefinition:
    """Create the financial_search tool routing with *model* over *client*."""
    registry = finance_registry(client)

    def financial_search(params: FinancialSearchArgs, signal: threading.Event | None) -> str:
        response = llm.invoke(
            params.query,
            model=model,
            system_prompt=build_router_prompt(),
            tools=list(registry),
            signal=signal,
        )
        if not response.tool_calls:
            return format_tool_result({"error": "No tools selected for query"}, [])

        check_cancelled(signal)
        workers = min(MAX_ROUTED_WORKERS, len(response.tool_calls))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="finance") as pool:
            futures = [
                pool.submit(_run_routed_call, registry, call, signal)
                for call in response.tool_calls
            ]
            results = [future.result() for future in futures]

        combined, urls = combine_results(results)
        return format_tool_result(combined, urls)

    return ToolDefinition(
        name="financial_search",
        description=(
            "Intelligent agentic search for financial data powered by the Alpha Vantage API. "
            "Takes a natural language query and automatically routes to the appropriate "
            "financial data tools. Use for:\n"
            "- Stock prices (current quotes, historical daily/weekly/monthly/intraday)\n"
            "- Company financials (income statements, balance sheets, cash flow)\n"
            "- Financial metrics (P/E ratio, market cap, EPS, dividend yield, analyst ratings)\n"
            "- Earnings data (quarterly and annual EPS, estimates, surprises)\n"
            "- Cryptocurrency prices (current exchange rates, historical series)\n"
            "- Company news with sentiment analysis\n"
            "- Market open/closed status\n"
            "- Ticker symbol search"
        ),
        args_schema=FinancialSearchArgs,
        handler=financial_search,
    )
