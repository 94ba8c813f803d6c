"""News and sentiment tool."""

from __future__ import annotations

import threading
from typing import Any, Literal

from pydantic import BaseModel, Field

from tickertape.tools.finance.api import AlphaVantageClient, format_tool_result, parse_number
from tickertape.tools.registry import ToolDefinition


class NewsArgs(BaseModel):
    tickers: str = Field(
        description="Ticker symbol(s) to fetch news for, comma separated: 'AAPL' or 'AAPL,MSFT,GOOGL'."
    )
    topics: str | None = Field(
        default=None,
        description=(
            "News topics to filter by, comma separated. Options: blockchain, earnings, ipo, "
            "mergers_and_acquisitions, financial_markets, economy_fiscal, economy_monetary, "
            "economy_macro, energy_transportation, finance, life_sciences, manufacturing, "
            "real_estate, retail_wholesale, technology."
        ),
    )
    time_from: str | None = Field(
        default=None,
        description="Start time in YYYYMMDDTHHMM format (e.g. '20240115T0000').",
    )
    time_to: str | None = Field(
        default=None,
        description="End time in YYYYMMDDTHHMM format (e.g. '20240116T2359').",
    )
    sort: Literal["LATEST", "EARLIEST", "RELEVANCE"] = Field(
        default="LATEST",
        description="Sort order for results.",
    )
    limit: int = Field(default=10, ge=1, le=1000, description="Number of articles to retrieve.")


def transform_news_item(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "title": item.get("title"),
        "url": item.get("url"),
        "timePublished": item.get("time_published"),
        "authors": item.get("authors"),
        "summary": item.get("summary"),
        "source": item.get("source"),
        "sourceDomain": item.get("source_domain"),
        "overallSentimentScore": parse_number(item.get("overall_sentiment_score")) or 0.0,
        "overallSentimentLabel": item.get("overall_sentiment_label"),
        "tickerSentiment": [
            {
                "ticker": ts.get("ticker"),
                "relevanceScore": parse_number(ts.get("relevance_score")) or 0.0,
                "sentimentScore": parse_number(ts.get("ticker_sentiment_score")) or 0.0,
                "sentimentLabel": ts.get("ticker_sentiment_label"),
            }
            for ts in item.get("ticker_sentiment") or []
        ],
    }


def news_tools(client: AlphaVantageClient) -> list[ToolDefinition]:
    """Build the news tool bound to *client*."""

    def get_news(params: NewsArgs, signal: threading.Event | None) -> str:
        response = client.call("NEWS_SENTIMENT", params.model_dump(), signal=signal)
        result = {
            "itemsReturned": response.data.get("items"),
            "sentimentScoreDefinition": response.data.get("sentiment_score_definition"),
            "relevanceScoreDefinition": response.data.get("relevance_score_definition"),
            "articles": [transform_news_item(item) for item in response.data.get("feed") or []],
        }
        return format_tool_result(result, [response.url])

    return [
        ToolDefinition(
            name="get_news",
            description=(
                "Retrieves news articles with sentiment analysis for given stock ticker(s): title, "
                "summary, source, URL, publication time, overall sentiment score and label, and "
                "per-ticker sentiment and relevance."
            ),
            args_schema=NewsArgs,
            handler=get_news,
        )
    ]
