"""Global market open/closed status tool."""

from __future__ import annotations

import threading
from typing import Any

from pydantic import BaseModel

from tickertape.tools.finance.api import AlphaVantageClient, format_tool_result
from tickertape.tools.registry import ToolDefinition


class MarketStatusArgs(BaseModel):
    pass


def transform_market_status(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "endpoint": data.get("endpoint"),
        "markets": [
            {
                "marketType": market.get("market_type"),
                "region": market.get("region"),
                "primaryExchanges": market.get("primary_exchanges"),
                "localOpen": market.get("local_open"),
                "localClose": market.get("local_close"),
                "currentStatus": market.get("current_status"),
                "notes": market.get("notes"),
            }
            for market in data.get("markets") or []
        ],
    }


def market_tools(client: AlphaVantageClient) -> list[ToolDefinition]:
    def get_market_status(params: MarketStatusArgs, signal: threading.Event | None) -> str:
        response = client.call("MARKET_STATUS", signal=signal)
        return format_tool_result(transform_market_status(response.data), [response.url])

    return [
        ToolDefinition(
            name="get_market_status",
            description=(
                "Returns the current trading status of major global stock exchanges and whether "
                "they are open or closed."
            ),
            args_schema=MarketStatusArgs,
            handler=get_market_status,
        )
    ]
