"""Financial statement tools: income statements, balance sheets, cash flow."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Literal

from pydantic import BaseModel, Field

from tickertape.tools.finance.api import AlphaVantageClient, format_tool_result, parse_number
from tickertape.tools.registry import ToolDefinition

# Report fields passed through as-is; everything else is numeric
_TEXT_FIELDS = frozenset({"fiscalDateEnding", "reportedCurrency"})


class FinancialStatementsArgs(BaseModel):
    ticker: str = Field(
        description="The stock ticker symbol to fetch financial statements for. For example, 'AAPL' for Apple."
    )
    period: Literal["annual", "quarterly"] = Field(
        default="annual",
        description="'annual' for yearly reports, 'quarterly' for quarterly reports.",
    )
    limit: int = Field(
        default=5,
        ge=1,
        description="Maximum number of report periods to return. Returns the most recent N periods.",
    )


def transform_report(report: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value if key in _TEXT_FIELDS else parse_number(value)
        for key, value in report.items()
    }


def filter_reports(
    data: dict[str, Any],
    period: Literal["annual", "quarterly"],
    limit: int,
) -> list[dict[str, Any]]:
    """Pick the most recent *limit* annual or quarterly reports."""
    key = "annualReports" if period == "annual" else "quarterlyReports"
    reports = data.get(key) or []
    return [transform_report(report) for report in reports[:limit]]


_STATEMENTS = (
    (
        "get_income_statements",
        "INCOME_STATEMENT",
        "Fetches a company's income statements, detailing revenues, expenses, gross profit, "
        "operating income, EBITDA, and net income over reporting periods.",
    ),
    (
        "get_balance_sheets",
        "BALANCE_SHEET",
        "Retrieves a company's balance sheets: total assets, total liabilities, shareholders' "
        "equity, cash, debt, and other financial positions at specific points in time.",
    ),
    (
        "get_cash_flow_statements",
        "CASH_FLOW",
        "Retrieves a company's cash flow statements across operating, investing, and financing "
        "activities, including free cash flow, capital expenditures, and dividend payments.",
    ),
)


def fundamentals_tools(client: AlphaVantageClient) -> list[ToolDefinition]:
    """Build the financial statement tools bound to *client*."""

    def make_handler(function: str):  # type: ignore[no-untyped-def]
        def handler(params: FinancialStatementsArgs, signal: threading.Event | None) -> str:
            response = client.call(function, {"symbol": params.ticker}, signal=signal)
            result = {
                "symbol": response.data.get("symbol"),
                "reports": filter_reports(response.data, params.period, params.limit),
            }
            return format_tool_result(result, [response.url])

        return handler

    def get_all_financial_statements(
        params: FinancialStatementsArgs, signal: threading.Event | None
    ) -> str:
        functions = [function for _, function, _ in _STATEMENTS]
        with ThreadPoolExecutor(max_workers=len(functions)) as pool:
            responses = list(pool.map(
                lambda function: client.call(function, {"symbol": params.ticker}, signal=signal),
                functions,
            ))
        income, balance, cash_flow = (
            filter_reports(response.data, params.period, params.limit) for response in responses
        )
        result = {
            "symbol": params.ticker,
            "incomeStatements": income,
            "balanceSheets": balance,
            "cashFlowStatements": cash_flow,
        }
        return format_tool_result(result, [response.url for response in responses])

    tools = [
        ToolDefinition(
            name=name,
            description=description,
            args_schema=FinancialStatementsArgs,
            handler=make_handler(function),
        )
        for name, function, description in _STATEMENTS
    ]
    tools.append(
        ToolDefinition(
            name="get_all_financial_statements",
            description=(
                "Retrieves all three financial statements (income statements, balance sheets "
                "and cash flow statements) for a company in one call. Use only when more than "
                "one statement type is needed."
            ),
            args_schema=FinancialStatementsArgs,
            handler=get_all_financial_statements,
        )
    )
    return tools
