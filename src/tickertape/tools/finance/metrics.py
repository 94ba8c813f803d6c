"""Company overview metrics and earnings history tools."""

from __future__ import annotations

import threading
from typing import Any

from pydantic import BaseModel, Field

from tickertape.tools.finance.api import AlphaVantageClient, format_tool_result, parse_number
from tickertape.tools.registry import ToolDefinition

# OVERVIEW keys copied verbatim
_OVERVIEW_TEXT = (
    ("Symbol", "symbol"),
    ("Name", "name"),
    ("Description", "description"),
    ("Exchange", "exchange"),
    ("Currency", "currency"),
    ("Country", "country"),
    ("Sector", "sector"),
    ("Industry", "industry"),
    ("DividendDate", "dividendDate"),
    ("ExDividendDate", "exDividendDate"),
    ("FiscalYearEnd", "fiscalYearEnd"),
    ("LatestQuarter", "latestQuarter"),
)

# OVERVIEW keys parsed as numbers
_OVERVIEW_NUMBERS = (
    ("MarketCapitalization", "marketCapitalization"),
    ("PERatio", "peRatio"),
    ("PEGRatio", "pegRatio"),
    ("BookValue", "bookValue"),
    ("PriceToBookRatio", "priceToBookRatio"),
    ("PriceToSalesRatioTTM", "priceToSalesRatioTTM"),
    ("EVToRevenue", "evToRevenue"),
    ("EVToEBITDA", "evToEbitda"),
    ("DividendPerShare", "dividendPerShare"),
    ("DividendYield", "dividendYield"),
    ("EPS", "eps"),
    ("RevenuePerShareTTM", "revenuePerShareTTM"),
    ("ProfitMargin", "profitMargin"),
    ("OperatingMarginTTM", "operatingMarginTTM"),
    ("ReturnOnAssetsTTM", "returnOnAssetsTTM"),
    ("ReturnOnEquityTTM", "returnOnEquityTTM"),
    ("RevenueTTM", "revenueTTM"),
    ("GrossProfitTTM", "grossProfitTTM"),
    ("EBITDA", "ebitda"),
    ("QuarterlyRevenueGrowthYOY", "quarterlyRevenueGrowthYOY"),
    ("QuarterlyEarningsGrowthYOY", "quarterlyEarningsGrowthYOY"),
    ("AnalystTargetPrice", "analystTargetPrice"),
    ("AnalystRatingStrongBuy", "analystRatingStrongBuy"),
    ("AnalystRatingBuy", "analystRatingBuy"),
    ("AnalystRatingHold", "analystRatingHold"),
    ("AnalystRatingSell", "analystRatingSell"),
    ("AnalystRatingStrongSell", "analystRatingStrongSell"),
    ("Beta", "beta"),
    ("52WeekHigh", "fiftyTwoWeekHigh"),
    ("52WeekLow", "fiftyTwoWeekLow"),
    ("50DayMovingAverage", "fiftyDayMovingAverage"),
    ("200DayMovingAverage", "twoHundredDayMovingAverage"),
    ("SharesOutstanding", "sharesOutstanding"),
)


class TickerArgs(BaseModel):
    ticker: str = Field(
        description="The stock ticker symbol to fetch data for. For example, 'AAPL' for Apple."
    )


def transform_overview(data: dict[str, Any]) -> dict[str, Any]:
    """Map an OVERVIEW response to camelCase fields with numeric values parsed."""
    overview: dict[str, Any] = {target: data.get(source) for source, target in _OVERVIEW_TEXT}
    overview.update(
        (target, parse_number(data.get(source))) for source, target in _OVERVIEW_NUMBERS
    )
    return overview


def transform_earnings(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "symbol": data.get("symbol"),
        "annualEarnings": [
            {
                "fiscalDateEnding": row.get("fiscalDateEnding"),
                "reportedEPS": parse_number(row.get("reportedEPS")),
            }
            for row in data.get("annualEarnings") or []
        ],
        "quarterlyEarnings": [
            {
                "fiscalDateEnding": row.get("fiscalDateEnding"),
                "reportedDate": row.get("reportedDate"),
                "reportedEPS": parse_number(row.get("reportedEPS")),
                "estimatedEPS": parse_number(row.get("estimatedEPS")),
                "surprise": parse_number(row.get("surprise")),
                "surprisePercentage": parse_number(row.get("surprisePercentage")),
            }
            for row in data.get("quarterlyEarnings") or []
        ],
    }


def metrics_tools(client: AlphaVantageClient) -> list[ToolDefinition]:
    """Build the overview metrics and earnings tools bound to *client*."""

    def get_financial_metrics_snapshot(params: TickerArgs, signal: threading.Event | None) -> str:
        response = client.call("OVERVIEW", {"symbol": params.ticker}, signal=signal)
        return format_tool_result(transform_overview(response.data), [response.url])

    def get_earnings(params: TickerArgs, signal: threading.Event | None) -> str:
        response = client.call("EARNINGS", {"symbol": params.ticker}, signal=signal)
        return format_tool_result(transform_earnings(response.data), [response.url])

    return [
        ToolDefinition(
            name="get_financial_metrics_snapshot",
            description=(
                "Fetches a company overview with valuation metrics (P/E, PEG, price-to-book, "
                "market cap, EV/EBITDA), dividend data, profitability (margins, ROA, ROE), "
                "growth, analyst targets and ratings, beta, 52-week range and moving averages."
            ),
            args_schema=TickerArgs,
            handler=get_financial_metrics_snapshot,
        ),
        ToolDefinition(
            name="get_earnings",
            description=(
                "Retrieves annual and quarterly earnings for a company: reported EPS, estimated "
                "EPS and the surprise against the estimate."
            ),
            args_schema=TickerArgs,
            handler=get_earnings,
        ),
    ]
