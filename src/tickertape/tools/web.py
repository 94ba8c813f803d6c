"""web_search tool backed by the Tavily search API."""

from __future__ import annotations

import logging
import threading
from typing import Any

import httpx
from pydantic import BaseModel, Field

from tickertape.cancellation import check_cancelled
from tickertape.exceptions import ConfigError, DataProviderError
from tickertape.tools.finance.api import format_tool_result
from tickertape.tools.registry import ToolDefinition

logger = logging.getLogger(__name__)

TAVILY_URL = "https://api.tavily.com/search"
PROVIDER = "Tavily"


class WebSearchArgs(BaseModel):
    query: str = Field(description="The search query")
    max_results: int = Field(default=5, ge=1, le=20, description="Number of results to return")


def transform_results(data: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {
            "title": item.get("title"),
            "url": item.get("url"),
            "content": item.get("content"),
            "score": item.get("score"),
            "publishedDate": item.get("published_date"),
        }
        for item in data.get("results") or []
    ]


def create_web_search(
    api_key: str,
    *,
    timeout: float = 30.0,
    transport: httpx.BaseTransport | None = None,
) -> ToolDefinition:
    """Create the web_search tool.

    Raises:
        ConfigError: If *api_key* is empty.
    """
    if not api_key:
        raise ConfigError("Tavily API key is not configured")
    client = httpx.Client(timeout=timeout, transport=transport)

    def web_search(params: WebSearchArgs, signal: threading.Event | None) -> str:
        check_cancelled(signal)
        response = client.post(
            TAVILY_URL,
            json={
                "api_key": api_key,
                "query": params.query,
                "max_results": params.max_results,
            },
        )
        if response.is_error:
            raise DataProviderError(
                PROVIDER, f"request failed: {response.status_code} {response.reason_phrase}"
            )
        data = response.json()
        results = transform_results(data)
        logger.debug("Tavily returned %d results for %r", len(results), params.query)
        return format_tool_result(
            {"answer": data.get("answer"), "results": results},
            [r["url"] for r in results if r.get("url")],
        )

    return ToolDefinition(
        name="web_search",
        description="Search the web for current information, news, and general knowledge.",
        args_schema=WebSearchArgs,
        handler=web_search,
    )
