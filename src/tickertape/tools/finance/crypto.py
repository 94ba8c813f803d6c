"""Cryptocurrency tools: spot exchange rate and historical series."""

from __future__ import annotations

import threading
from typing import Any, Literal

from pydantic import BaseModel, Field

from tickertape.tools.finance.api import AlphaVantageClient, format_tool_result, parse_number
from tickertape.tools.registry import ToolDefinition

# interval -> (Alpha Vantage function, response key)
_SERIES_FUNCTIONS = {
    "daily": ("DIGITAL_CURRENCY_DAILY", "Time Series (Digital Currency Daily)"),
    "weekly": ("DIGITAL_CURRENCY_WEEKLY", "Time Series (Digital Currency Weekly)"),
    "monthly": ("DIGITAL_CURRENCY_MONTHLY", "Time Series (Digital Currency Monthly)"),
}

_RATE_FIELDS = (
    ("1. From_Currency Code", "fromCurrencyCode", str),
    ("2. From_Currency Name", "fromCurrencyName", str),
    ("3. To_Currency Code", "toCurrencyCode", str),
    ("4. To_Currency Name", "toCurrencyName", str),
    ("5. Exchange Rate", "exchangeRate", parse_number),
    ("6. Last Refreshed", "lastRefreshed", str),
    ("7. Time Zone", "timeZone", str),
    ("8. Bid Price", "bidPrice", parse_number),
    ("9. Ask Price", "askPrice", parse_number),
)


class CryptoPriceSnapshotArgs(BaseModel):
    symbol: str = Field(
        description="The cryptocurrency symbol. For example, 'BTC' for Bitcoin, 'ETH' for Ethereum."
    )
    market: str = Field(
        default="USD",
        description="The currency to price it in. For example, 'USD', 'EUR', 'JPY'.",
    )


class CryptoPricesArgs(BaseModel):
    symbol: str = Field(
        description="The cryptocurrency symbol. For example, 'BTC' for Bitcoin, 'ETH' for Ethereum."
    )
    market: str = Field(
        default="USD",
        description="The currency to get prices in. For example, 'USD', 'EUR'.",
    )
    interval: Literal["daily", "weekly", "monthly"] = Field(
        default="daily",
        description="The time interval for price data.",
    )


def transform_exchange_rate(data: dict[str, Any]) -> dict[str, Any]:
    """Flatten a CURRENCY_EXCHANGE_RATE response into camelCase fields."""
    rate = data.get("Realtime Currency Exchange Rate")
    if not rate:
        return {}
    return {
        target: (convert(rate[source]) if rate.get(source) is not None else None)
        for source, target, convert in _RATE_FIELDS
    }


def transform_crypto_series(
    data: dict[str, Any],
    series_key: str,
    market: str,
) -> list[dict[str, Any]]:
    """Turn a DIGITAL_CURRENCY_* mapping into rows.

    Older responses carry market-specific price keys (``1a. open (USD)``);
    current ones use plain ``1. open``. Either is accepted.
    """
    series = data.get(series_key) or {}

    def price(values: dict[str, Any], index: str, name: str) -> float | None:
        raw = values.get(f"{index}a. {name} ({market})") or values.get(f"{index}. {name}")
        return parse_number(raw)

    return [
        {
            "date": date,
            "open": price(values, "1", "open"),
            "high": price(values, "2", "high"),
            "low": price(values, "3", "low"),
            "close": price(values, "4", "close"),
            "volume": parse_number(values.get("5. volume")) or 0.0,
            "marketCap": parse_number(values.get("6. market cap (USD)")) or 0.0,
        }
        for date, values in series.items()
    ]


def crypto_tools(client: AlphaVantageClient) -> list[ToolDefinition]:
    """Build the cryptocurrency tools bound to *client*."""

    def get_crypto_price_snapshot(
        params: CryptoPriceSnapshotArgs, signal: threading.Event | None
    ) -> str:
        response = client.call(
            "CURRENCY_EXCHANGE_RATE",
            {"from_currency": params.symbol, "to_currency": params.market},
            signal=signal,
        )
        return format_tool_result(transform_exchange_rate(response.data), [response.url])

    def get_crypto_prices(params: CryptoPricesArgs, signal: threading.Event | None) -> str:
        function, series_key = _SERIES_FUNCTIONS[params.interval]
        response = client.call(
            function, {"symbol": params.symbol, "market": params.market}, signal=signal
        )
        rows = transform_crypto_series(response.data, series_key, params.market)
        return format_tool_result(rows, [response.url])

    return [
        ToolDefinition(
            name="get_crypto_price_snapshot",
            description=(
                "Fetches the current exchange rate for a cryptocurrency against a market "
                "currency, with bid/ask prices and currency names."
            ),
            args_schema=CryptoPriceSnapshotArgs,
            handler=get_crypto_price_snapshot,
        ),
        ToolDefinition(
            name="get_crypto_prices",
            description=(
                "Retrieves historical price data for a cryptocurrency: open, high, low, close, "
                "volume and market cap at a daily, weekly or monthly interval."
            ),
            args_schema=CryptoPricesArgs,
            handler=get_crypto_prices,
        ),
    ]
