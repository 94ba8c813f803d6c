"""Alpha Vantage-powered financial data tools."""

from tickertape.tools.finance.api import AlphaVantageClient, ApiResponse, format_tool_result
from tickertape.tools.finance.search import create_financial_search, finance_registry

__all__ = [
    "AlphaVantageClient",
    "ApiResponse",
    "format_tool_result",
    "create_financial_search",
    "finance_registry",
]
