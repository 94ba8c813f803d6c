"""Price tools: latest quote, historical series and ticker search."""

from __future__ import annotations

import threading
from typing import Any, Literal

from pydantic import BaseModel, Field

from tickertape.tools.finance.api import (
    AlphaVantageClient,
    format_tool_result,
    parse_int,
    parse_number,
)
from tickertape.tools.registry import ToolDefinition

INTRADAY_INTERVALS = ("1min", "5min", "15min", "30min", "60min")

# interval -> (Alpha Vantage function, response key)
_SERIES_FUNCTIONS = {
    "daily": ("TIME_SERIES_DAILY", "Time Series (Daily)"),
    "weekly": ("TIME_SERIES_WEEKLY", "Weekly Time Series"),
    "monthly": ("TIME_SERIES_MONTHLY", "Monthly Time Series"),
}

_QUOTE_FIELDS = (
    ("01. symbol", "symbol", str),
    ("02. open", "open", parse_number),
    ("03. high", "high", parse_number),
    ("04. low", "low", parse_number),
    ("05. price", "price", parse_number),
    ("06. volume", "volume", parse_int),
    ("07. latest trading day", "latestTradingDay", str),
    ("08. previous close", "previousClose", parse_number),
    ("09. change", "change", parse_number),
    ("10. change percent", "changePercent", str),
)

_MATCH_FIELDS = (
    ("1. symbol", "symbol"),
    ("2. name", "name"),
    ("3. type", "type"),
    ("4. region", "region"),
    ("5. marketOpen", "marketOpen"),
    ("6. marketClose", "marketClose"),
    ("7. timezone", "timezone"),
    ("8. currency", "currency"),
    ("9. matchScore", "matchScore"),
)


class PriceSnapshotArgs(BaseModel):
    ticker: str = Field(
        description="The stock ticker symbol to fetch the price snapshot for. For example, 'AAPL' for Apple."
    )


class PricesArgs(BaseModel):
    ticker: str = Field(
        description="The stock ticker symbol to fetch historical prices for. For example, 'AAPL' for Apple."
    )
    interval: Literal["1min", "5min", "15min", "30min", "60min", "daily", "weekly", "monthly"] = Field(
        default="daily",
        description=(
            "The time interval for price data. Use '1min', '5min', '15min', '30min', '60min' "
            "for intraday data, or 'daily', 'weekly', 'monthly' for longer intervals."
        ),
    )
    outputsize: Literal["compact", "full"] = Field(
        default="compact",
        description=(
            "'compact' returns the latest 100 data points, 'full' returns up to 20+ years of data."
        ),
    )
    month: str | None = Field(
        default=None,
        description="For intraday data only: month to query in YYYY-MM format (e.g. '2024-01').",
    )


class SearchTickerArgs(BaseModel):
    keywords: str = Field(
        description="Company name, partial name, or ticker symbol. For example, 'microsoft' or 'MSFT'."
    )


def transform_quote(data: dict[str, Any]) -> dict[str, Any]:
    """Flatten a GLOBAL_QUOTE response into camelCase fields."""
    quote = data.get("Global Quote")
    if not quote:
        return {}
    return {
        target: (convert(quote[source]) if quote.get(source) is not None else None)
        for source, target, convert in _QUOTE_FIELDS
    }


def transform_time_series(
    data: dict[str, Any],
    series_key: str,
    stamp_field: str = "date",
) -> list[dict[str, Any]]:
    """Turn an Alpha Vantage time-series mapping into a list of OHLCV rows."""
    series = data.get(series_key) or {}
    return [
        {
            stamp_field: stamp,
            "open": parse_number(values.get("1. open")),
            "high": parse_number(values.get("2. high")),
            "low": parse_number(values.get("3. low")),
            "close": parse_number(values.get("4. close")),
            "volume": parse_int(values.get("5. volume")),
        }
        for stamp, values in series.items()
    ]


def price_tools(client: AlphaVantageClient) -> list[ToolDefinition]:
    """Build the price tools bound to *client*."""

    def get_price_snapshot(params: PriceSnapshotArgs, signal: threading.Event | None) -> str:
        response = client.call("GLOBAL_QUOTE", {"symbol": params.ticker}, signal=signal)
        return format_tool_result(transform_quote(response.data), [response.url])

    def get_prices(params: PricesArgs, signal: threading.Event | None) -> str:
        if params.interval in INTRADAY_INTERVALS:
            response = client.call(
                "TIME_SERIES_INTRADAY",
                {
                    "symbol": params.ticker,
                    "interval": params.interval,
                    "outputsize": params.outputsize,
                    "month": params.month,
                },
                signal=signal,
            )
            rows = transform_time_series(
                response.data, f"Time Series ({params.interval})", stamp_field="timestamp"
            )
        else:
            function, series_key = _SERIES_FUNCTIONS[params.interval]
            response = client.call(
                function,
                {"symbol": params.ticker, "outputsize": params.outputsize},
                signal=signal,
            )
            rows = transform_time_series(response.data, series_key)
        return format_tool_result(rows, [response.url])

    def search_ticker(params: SearchTickerArgs, signal: threading.Event | None) -> str:
        response = client.call("SYMBOL_SEARCH", {"keywords": params.keywords}, signal=signal)
        matches = response.data.get("bestMatches") or []
        results = [
            {target: match.get(source) for source, target in _MATCH_FIELDS}
            for match in matches
        ]
        return format_tool_result(results, [response.url])

    return [
        ToolDefinition(
            name="get_price_snapshot",
            description=(
                "Fetches the most recent price quote for a specific stock ticker, including the "
                "latest price, trading volume, open, high, low, previous close, and price change data."
            ),
            args_schema=PriceSnapshotArgs,
            handler=get_price_snapshot,
        ),
        ToolDefinition(
            name="get_prices",
            description=(
                "Retrieves historical price data for a stock over time, including open, high, low, "
                "close prices, and volume. Supports intraday intervals (1min to 60min) and "
                "daily/weekly/monthly intervals."
            ),
            args_schema=PricesArgs,
            handler=get_prices,
        ),
        ToolDefinition(
            name="search_ticker",
            description=(
                "Search for stock ticker symbols by company name or keywords. Returns matching "
                "symbols with company names, regions, and market information."
            ),
            args_schema=SearchTickerArgs,
            handler=search_ticker,
        ),
    ]
