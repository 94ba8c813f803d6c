"""Tests for the tool registry and the research tools.

Tests cover:
- ToolDefinition / ToolRegistry: schemas, lookup, argument validation
- AlphaVantageClient: query building, error bodies, status errors, retries
- Response transforms for prices, crypto, statements, metrics, earnings, news and market status
- financial_search: routing through the model, combined results, partial failures
- web_search and build_default_tools
"""

from __future__ import annotations

import json
import threading

import httpx
import pytest
from pydantic import ValidationError

from tests.conftest import FakeLLM, QueryArgs, TickerArgs, call, make_tool, text_reply, tool_reply
from tickertape.config import Settings
from tickertape.exceptions import ConfigError, DataProviderError, RunCancelledError, ToolNotFoundError
from tickertape.tools import ToolRegistry, build_default_tools
from tickertape.tools.finance.api import AlphaVantageClient, format_tool_result, parse_int, parse_number
from tickertape.tools.finance.crypto import transform_crypto_series, transform_exchange_rate
from tickertape.tools.finance.fundamentals import filter_reports
from tickertape.tools.finance.market import transform_market_status
from tickertape.tools.finance.metrics import transform_earnings, transform_overview
from tickertape.tools.finance.news import transform_news_item
from tickertape.tools.finance.prices import transform_quote, transform_time_series
from tickertape.tools.finance.search import (
    RoutedResult,
    combine_results,
    create_financial_search,
    finance_registry,
    result_key,
)
from tickertape.tools.web import create_web_search


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr("tenacity.nap.time.sleep", lambda seconds: None)


def _alpha(handler) -> AlphaVantageClient:
    return AlphaVantageClient("av-key", transport=httpx.MockTransport(handler))


QUOTE = {
    "Global Quote": {
        "01. symbol": "AAPL",
        "02. open": "227.50",
        "03. high": "229.10",
        "04. low": "226.80",
        "05. price": "228.02",
        "06. volume": "41234567",
        "07. latest trading day": "2025-01-24",
        "08. previous close": "226.90",
        "09. change": "1.12",
        "10. change percent": "0.4936%",
    }
}

INCOME = {
    "symbol": "MSFT",
    "annualReports": [
        {"fiscalDateEnding": "2024-06-30", "reportedCurrency": "USD", "totalRevenue": "245122000000"},
        {"fiscalDateEnding": "2023-06-30", "reportedCurrency": "USD", "totalRevenue": "211915000000"},
    ],
    "quarterlyReports": [
        {"fiscalDateEnding": "2024-12-31", "reportedCurrency": "USD", "totalRevenue": "None"},
    ],
}

EXCHANGE_RATE = {
    "Realtime Currency Exchange Rate": {
        "1. From_Currency Code": "BTC",
        "2. From_Currency Name": "Bitcoin",
        "3. To_Currency Code": "USD",
        "4. To_Currency Name": "United States Dollar",
        "5. Exchange Rate": "104250.12",
        "6. Last Refreshed": "2025-01-24 18:05:01",
        "7. Time Zone": "UTC",
        "8. Bid Price": "104249.90",
        "9. Ask Price": "104250.40",
    }
}

EARNINGS = {
    "symbol": "IBM",
    "annualEarnings": [{"fiscalDateEnding": "2024-12-31", "reportedEPS": "10.33"}],
    "quarterlyEarnings": [
        {
            "fiscalDateEnding": "2024-12-31",
            "reportedDate": "2025-01-29",
            "reportedEPS": "3.92",
            "estimatedEPS": "3.77",
            "surprise": "0.15",
            "surprisePercentage": "None",
        }
    ],
}

MARKETS = {
    "endpoint": "Global Market Open & Close Status",
    "markets": [
        {
            "market_type": "Equity",
            "region": "United States",
            "primary_exchanges": "NASDAQ, NYSE",
            "local_open": "09:30",
            "local_close": "16:15",
            "current_status": "open",
            "notes": "",
        }
    ],
}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestToolDefinition:
    def test_openai_format(self) -> None:
        spec = make_tool("get_income_statements", args_schema=TickerArgs).to_openai()
        assert spec["type"] == "function"
        function = spec["function"]
        assert function["name"] == "get_income_statements"
        assert "title" not in function["parameters"]
        assert function["parameters"]["required"] == ["ticker"]
        assert set(function["parameters"]["properties"]) == {"ticker", "period", "limit"}

    def test_invoke_serializes_non_string_results(self) -> None:
        result = make_tool("search").invoke({"query": "fed"})
        assert json.loads(result) == {"data": {"query": "fed"}}

    def test_invoke_passes_strings_through(self) -> None:
        tool = make_tool("raw", lambda params, signal: "plain text")
        assert tool.invoke({}) == "plain text"

    def test_invoke_validates_arguments(self) -> None:
        tool = make_tool("get_income_statements", args_schema=TickerArgs)
        with pytest.raises(ValidationError):
            tool.invoke({"period": "annual"})

    def test_invoke_passes_signal(self) -> None:
        seen = []
        tool = make_tool("s", lambda params, signal: seen.append(signal) or "ok")
        signal = threading.Event()
        tool.invoke({}, signal=signal)
        assert seen == [signal]

    def test_invoke_cancelled(self) -> None:
        signal = threading.Event()
        signal.set()
        with pytest.raises(RunCancelledError):
            make_tool("search").invoke({}, signal=signal)


class TestToolRegistry:
    def test_lookup_and_order(self) -> None:
        registry = ToolRegistry([make_tool("b"), make_tool("a")])
        assert registry.names() == ["b", "a"]
        assert "a" in registry
        assert "c" not in registry
        assert len(registry) == 2
        assert registry.get("a").name == "a"
        assert [t.name for t in registry] == ["b", "a"]

    def test_unknown_tool(self) -> None:
        with pytest.raises(ToolNotFoundError, match="missing"):
            ToolRegistry().get("missing")

    def test_register_replaces(self) -> None:
        registry = ToolRegistry([make_tool("a")])
        replacement = make_tool("a", lambda params, signal: "new")
        registry.register(replacement)
        assert len(registry) == 1
        assert registry.get("a") is replacement

    def test_to_openai(self) -> None:
        specs = ToolRegistry([make_tool("a"), make_tool("b")]).to_openai()
        assert [s["function"]["name"] for s in specs] == ["a", "b"]


# ---------------------------------------------------------------------------
# Alpha Vantage client
# ---------------------------------------------------------------------------

class TestAlphaVantageClient:
    def test_missing_key(self) -> None:
        with pytest.raises(ConfigError):
            AlphaVantageClient("")

    def test_query_parameters(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=QUOTE)

        response = _alpha(handler).call(
            "GLOBAL_QUOTE", {"symbol": "AAPL", "month": None, "tickers": ["A", "B"]}
        )

        [request] = seen
        params = request.url.params
        assert params["function"] == "GLOBAL_QUOTE"
        assert params["symbol"] == "AAPL"
        assert params.get_list("tickers") == ["A", "B"]
        assert "month" not in params
        assert params["apikey"] == "av-key"

        assert response.data == QUOTE
        assert response.url.startswith("https://www.alphavantage.co/query?function=GLOBAL_QUOTE")
        assert "apikey" not in response.url

    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            ({"Error Message": "Invalid API call."}, "Error: Invalid API call."),
            ({"Note": "Thank you for using Alpha Vantage!"}, "Rate Limit: Thank you"),
            ({"Information": "Premium endpoint."}, "Info: Premium endpoint."),
        ],
    )
    def test_error_bodies(self, body: dict, expected: str) -> None:
        client = _alpha(lambda r: httpx.Response(200, json=body))
        with pytest.raises(DataProviderError, match=expected) as exc_info:
            client.call("GLOBAL_QUOTE", {"symbol": "AAPL"})
        assert exc_info.value.provider == "Alpha Vantage"

    def test_error_status(self) -> None:
        client = _alpha(lambda r: httpx.Response(503, text="unavailable"))
        with pytest.raises(DataProviderError, match="503"):
            client.call("GLOBAL_QUOTE")

    def test_invalid_json(self) -> None:
        client = _alpha(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(DataProviderError, match="invalid JSON"):
            client.call("GLOBAL_QUOTE")

    def test_non_object_body(self) -> None:
        client = _alpha(lambda r: httpx.Response(200, json=[1, 2]))
        with pytest.raises(DataProviderError, match="unexpected response shape"):
            client.call("GLOBAL_QUOTE")

    def test_connect_errors_retried(self) -> None:
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=MARKETS)

        assert _alpha(handler).call("MARKET_STATUS").data == MARKETS
        assert attempts == 2

    def test_cancelled(self) -> None:
        signal = threading.Event()
        signal.set()
        client = _alpha(lambda r: httpx.Response(200, json=QUOTE))
        with pytest.raises(RunCancelledError):
            client.call("GLOBAL_QUOTE", signal=signal)


class TestParsing:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("228.02", 228.02),
            ("-1.5", -1.5),
            (7, 7.0),
            ("None", None),
            ("-", None),
            ("", None),
            (None, None),
            ("abc", None),
            ("nan", None),
            ("inf", None),
        ],
    )
    def test_parse_number(self, value, expected) -> None:
        assert parse_number(value) == expected

    def test_parse_int(self) -> None:
        assert parse_int("41234567") == 41234567
        assert parse_int("12.9") == 12
        assert parse_int("None") is None

    def test_format_tool_result(self) -> None:
        payload = json.loads(format_tool_result({"a": 1}, ("https://x",)))
        assert payload == {"data": {"a": 1}, "sourceUrls": ["https://x"]}


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------

class TestTransforms:
    def test_quote(self) -> None:
        quote = transform_quote(QUOTE)
        assert quote["symbol"] == "AAPL"
        assert quote["price"] == 228.02
        assert quote["volume"] == 41234567
        assert quote["latestTradingDay"] == "2025-01-24"
        assert quote["changePercent"] == "0.4936%"

    def test_empty_quote(self) -> None:
        assert transform_quote({"Global Quote": {}}) == {}
        assert transform_quote({}) == {}

    def test_time_series(self) -> None:
        data = {
            "Time Series (5min)": {
                "2025-01-24 16:00:00": {
                    "1. open": "228.0",
                    "2. high": "228.5",
                    "3. low": "227.9",
                    "4. close": "228.02",
                    "5. volume": "120000",
                }
            }
        }
        rows = transform_time_series(data, "Time Series (5min)", stamp_field="timestamp")
        assert rows == [
            {
                "timestamp": "2025-01-24 16:00:00",
                "open": 228.0,
                "high": 228.5,
                "low": 227.9,
                "close": 228.02,
                "volume": 120000,
            }
        ]
        assert transform_time_series({}, "Weekly Time Series") == []

    def test_filter_reports(self) -> None:
        annual = filter_reports(INCOME, "annual", 1)
        assert annual == [
            {"fiscalDateEnding": "2024-06-30", "reportedCurrency": "USD", "totalRevenue": 245122000000.0}
        ]
        quarterly = filter_reports(INCOME, "quarterly", 5)
        assert quarterly[0]["totalRevenue"] is None
        assert filter_reports({}, "annual", 3) == []

    def test_news_item(self) -> None:
        item = transform_news_item({
            "title": "Apple beats",
            "url": "https://news.example/apple",
            "time_published": "20250124T120000",
            "overall_sentiment_score": "0.31",
            "overall_sentiment_label": "Somewhat-Bullish",
            "ticker_sentiment": [
                {
                    "ticker": "AAPL",
                    "relevance_score": "0.9",
                    "ticker_sentiment_score": "None",
                    "ticker_sentiment_label": "Neutral",
                }
            ],
        })
        assert item["timePublished"] == "20250124T120000"
        assert item["overallSentimentScore"] == 0.31
        assert item["tickerSentiment"] == [
            {"ticker": "AAPL", "relevanceScore": 0.9, "sentimentScore": 0.0, "sentimentLabel": "Neutral"}
        ]

    def test_market_status(self) -> None:
        status = transform_market_status(MARKETS)
        assert status["markets"][0]["marketType"] == "Equity"
        assert status["markets"][0]["currentStatus"] == "open"

    def test_exchange_rate(self) -> None:
        rate = transform_exchange_rate(EXCHANGE_RATE)
        assert rate["fromCurrencyCode"] == "BTC"
        assert rate["exchangeRate"] == 104250.12
        assert rate["askPrice"] == 104250.40
        assert rate["timeZone"] == "UTC"
        assert transform_exchange_rate({}) == {}

    def test_crypto_series_accepts_both_key_styles(self) -> None:
        data = {
            "Time Series (Digital Currency Daily)": {
                "2025-01-24": {
                    "1a. open (EUR)": "99000.0",
                    "2a. high (EUR)": "101000.0",
                    "3a. low (EUR)": "98500.0",
                    "4a. close (EUR)": "100100.0",
                    "5. volume": "1234.5",
                    "6. market cap (USD)": "2000000000000",
                },
                "2025-01-23": {
                    "1. open": "98000.0",
                    "2. high": "99500.0",
                    "3. low": "97000.0",
                    "4. close": "99000.0",
                },
            }
        }
        rows = transform_crypto_series(data, "Time Series (Digital Currency Daily)", "EUR")
        assert rows[0] == {
            "date": "2025-01-24",
            "open": 99000.0,
            "high": 101000.0,
            "low": 98500.0,
            "close": 100100.0,
            "volume": 1234.5,
            "marketCap": 2000000000000.0,
        }
        assert rows[1]["close"] == 99000.0
        assert rows[1]["volume"] == 0.0
        assert rows[1]["marketCap"] == 0.0

    def test_overview(self) -> None:
        overview = transform_overview({
            "Symbol": "IBM",
            "Sector": "TECHNOLOGY",
            "PERatio": "36.5",
            "52WeekHigh": "239.35",
            "DividendYield": "None",
            "LatestQuarter": "2024-12-31",
        })
        assert overview["symbol"] == "IBM"
        assert overview["sector"] == "TECHNOLOGY"
        assert overview["peRatio"] == 36.5
        assert overview["fiftyTwoWeekHigh"] == 239.35
        assert overview["dividendYield"] is None
        assert overview["latestQuarter"] == "2024-12-31"
        assert overview["beta"] is None

    def test_earnings(self) -> None:
        earnings = transform_earnings(EARNINGS)
        assert earnings["annualEarnings"] == [{"fiscalDateEnding": "2024-12-31", "reportedEPS": 10.33}]
        [quarter] = earnings["quarterlyEarnings"]
        assert quarter["reportedDate"] == "2025-01-29"
        assert quarter["estimatedEPS"] == 3.77
        assert quarter["surprisePercentage"] is None
        assert transform_earnings({}) == {"symbol": None, "annualEarnings": [], "quarterlyEarnings": []}


# ---------------------------------------------------------------------------
# Finance tools
# ---------------------------------------------------------------------------

def _router_backend(bodies: dict[str, dict]):
    """Mock Alpha Vantage answering by ``function``; unknown functions get an error body."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        function = request.url.params["function"]
        body = bodies.get(function, {"Error Message": f"Invalid API call: {function}"})
        return httpx.Response(200, json=body)

    return handler, requests


class TestFinanceTools:
    def test_registry_names(self) -> None:
        registry = finance_registry(_alpha(lambda r: httpx.Response(200, json={})))
        assert registry.names() == [
            "get_price_snapshot",
            "get_prices",
            "search_ticker",
            "get_crypto_price_snapshot",
            "get_crypto_prices",
            "get_income_statements",
            "get_balance_sheets",
            "get_cash_flow_statements",
            "get_all_financial_statements",
            "get_financial_metrics_snapshot",
            "get_earnings",
            "get_news",
            "get_market_status",
        ]

    def test_intraday_prices(self) -> None:
        handler, requests = _router_backend({"TIME_SERIES_INTRADAY": {"Time Series (5min)": {}}})
        registry = finance_registry(_alpha(handler))

        result = json.loads(
            registry.get("get_prices").invoke({"ticker": "NVDA", "interval": "5min", "month": "2024-01"})
        )
        params = requests[0].url.params
        assert params["function"] == "TIME_SERIES_INTRADAY"
        assert params["interval"] == "5min"
        assert params["month"] == "2024-01"
        assert result["data"] == []
        assert result["sourceUrls"][0].startswith("https://www.alphavantage.co/query")

    def test_daily_prices(self) -> None:
        handler, requests = _router_backend({"TIME_SERIES_DAILY": {"Time Series (Daily)": {}}})
        finance_registry(_alpha(handler)).get("get_prices").invoke({"ticker": "NVDA"})
        assert requests[0].url.params["function"] == "TIME_SERIES_DAILY"
        assert "month" not in requests[0].url.params

    def test_invalid_interval_rejected(self) -> None:
        registry = finance_registry(_alpha(lambda r: httpx.Response(200, json={})))
        with pytest.raises(ValidationError):
            registry.get("get_prices").invoke({"ticker": "NVDA", "interval": "2min"})

    def test_statements(self) -> None:
        handler, _ = _router_backend({"INCOME_STATEMENT": INCOME})
        tool = finance_registry(_alpha(handler)).get("get_income_statements")
        result = json.loads(tool.invoke({"ticker": "MSFT", "limit": 1}))
        assert result["data"]["symbol"] == "MSFT"
        assert len(result["data"]["reports"]) == 1

    def test_all_statements(self) -> None:
        balance = {"symbol": "MSFT", "annualReports": [{"fiscalDateEnding": "2024-06-30", "totalAssets": "512163000000"}]}
        handler, requests = _router_backend({
            "INCOME_STATEMENT": INCOME,
            "BALANCE_SHEET": balance,
            "CASH_FLOW": {"symbol": "MSFT"},
        })
        tool = finance_registry(_alpha(handler)).get("get_all_financial_statements")
        result = json.loads(tool.invoke({"ticker": "MSFT", "limit": 1}))

        assert sorted(r.url.params["function"] for r in requests) == [
            "BALANCE_SHEET", "CASH_FLOW", "INCOME_STATEMENT",
        ]
        data = result["data"]
        assert data["symbol"] == "MSFT"
        assert data["incomeStatements"][0]["totalRevenue"] == 245122000000.0
        assert data["balanceSheets"][0]["totalAssets"] == 512163000000.0
        assert data["cashFlowStatements"] == []
        assert len(result["sourceUrls"]) == 3

    def test_all_statements_fails_when_one_statement_fails(self) -> None:
        handler, _ = _router_backend({"INCOME_STATEMENT": INCOME, "BALANCE_SHEET": {}})
        tool = finance_registry(_alpha(handler)).get("get_all_financial_statements")
        with pytest.raises(DataProviderError, match="CASH_FLOW"):
            tool.invoke({"ticker": "MSFT"})

    @pytest.mark.parametrize(
        ("interval", "function"),
        [
            ("daily", "DIGITAL_CURRENCY_DAILY"),
            ("weekly", "DIGITAL_CURRENCY_WEEKLY"),
            ("monthly", "DIGITAL_CURRENCY_MONTHLY"),
        ],
    )
    def test_crypto_prices(self, interval: str, function: str) -> None:
        handler, requests = _router_backend({function: {}})
        tool = finance_registry(_alpha(handler)).get("get_crypto_prices")
        result = json.loads(tool.invoke({"symbol": "ETH", "interval": interval}))
        params = requests[0].url.params
        assert params["function"] == function
        assert params["symbol"] == "ETH"
        assert params["market"] == "USD"
        assert result["data"] == []

    def test_crypto_snapshot(self) -> None:
        handler, requests = _router_backend({"CURRENCY_EXCHANGE_RATE": EXCHANGE_RATE})
        tool = finance_registry(_alpha(handler)).get("get_crypto_price_snapshot")
        result = json.loads(tool.invoke({"symbol": "BTC", "market": "EUR"}))
        params = requests[0].url.params
        assert params["from_currency"] == "BTC"
        assert params["to_currency"] == "EUR"
        assert result["data"]["exchangeRate"] == 104250.12

    @pytest.mark.parametrize(
        ("tool_name", "function"),
        [("get_financial_metrics_snapshot", "OVERVIEW"), ("get_earnings", "EARNINGS")],
    )
    def test_metrics_tools(self, tool_name: str, function: str) -> None:
        handler, requests = _router_backend({function: EARNINGS})
        finance_registry(_alpha(handler)).get(tool_name).invoke({"ticker": "IBM"})
        assert requests[0].url.params["function"] == function
        assert requests[0].url.params["symbol"] == "IBM"

    def test_news_drops_unset_filters(self) -> None:
        handler, requests = _router_backend({"NEWS_SENTIMENT": {"items": "0", "feed": []}})
        finance_registry(_alpha(handler)).get("get_news").invoke({"tickers": "AAPL,MSFT"})
        params = requests[0].url.params
        assert params["tickers"] == "AAPL,MSFT"
        assert params["sort"] == "LATEST"
        assert params["limit"] == "10"
        assert "topics" not in params


class TestFinancialSearch:
    def test_routes_and_combines(self) -> None:
        handler, requests = _router_backend({
            "GLOBAL_QUOTE": QUOTE,
            "INCOME_STATEMENT": INCOME,
            "MARKET_STATUS": MARKETS,
        })
        llm = FakeLLM([tool_reply(
            call("get_price_snapshot", ticker="AAPL"),
            call("get_income_statements", ticker="MSFT", limit=1),
            call("get_market_status"),
        )])
        tool = create_financial_search(llm, "gpt-4o", _alpha(handler))

        result = json.loads(tool.invoke({"query": "AAPL price, MSFT revenue, markets open?"}))

        assert set(result["data"]) == {
            "get_price_snapshot_AAPL",
            "get_income_statements_MSFT",
            "get_market_status",
        }
        assert result["data"]["get_price_snapshot_AAPL"]["price"] == 228.02
        assert len(result["sourceUrls"]) == 3
        assert len(requests) == 3

        [router_call] = llm.calls
        assert router_call["prompt"] == "AAPL price, MSFT revenue, markets open?"
        assert router_call["model"] == "gpt-4o"
        assert "financial data routing assistant" in router_call["system_prompt"]
        assert len(router_call["tools"]) == 8

    def test_partial_failure_reported(self) -> None:
        handler, _ = _router_backend({"GLOBAL_QUOTE": QUOTE})
        llm = FakeLLM([tool_reply(
            call("get_price_snapshot", ticker="AAPL"),
            call("get_balance_sheets", ticker="AAPL"),
        )])
        tool = create_financial_search(llm, "gpt-4o", _alpha(handler))

        data = json.loads(tool.invoke({"query": "q"}))["data"]
        assert "get_price_snapshot_AAPL" in data
        [error] = data["_errors"]
        assert error["tool"] == "get_balance_sheets"
        assert error["args"] == {"ticker": "AAPL"}
        assert "Invalid API call: BALANCE_SHEET" in error["error"]

    def test_no_tools_selected(self) -> None:
        llm = FakeLLM([text_reply("I cannot help with that.")])
        tool = create_financial_search(llm, "gpt-4o", _alpha(lambda r: httpx.Response(200, json={})))
        result = json.loads(tool.invoke({"query": "weather in Paris"}))
        assert result == {"data": {"error": "No tools selected for query"}, "sourceUrls": []}

    def test_unknown_routed_tool_reported(self) -> None:
        llm = FakeLLM([tool_reply(call("get_crypto_prices", symbol="BTC"))])
        tool = create_financial_search(llm, "gpt-4o", _alpha(lambda r: httpx.Response(200, json={})))
        data = json.loads(tool.invoke({"query": "btc"}))["data"]
        assert data["_errors"][0]["tool"] == "get_crypto_prices"

    def test_cancelled_routed_call_propagates(self) -> None:
        signal = threading.Event()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=QUOTE)

        class CancellingLLM(FakeLLM):
            def invoke(self, *args, **kwargs):
                reply = super().invoke(*args, **kwargs)
                signal.set()
                return reply

        llm = CancellingLLM([tool_reply(call("get_price_snapshot", ticker="AAPL"))])
        tool = create_financial_search(llm, "gpt-4o", _alpha(handler))
        with pytest.raises(RunCancelledError):
            tool.invoke({"query": "q"}, signal=signal)


class TestCombineResults:
    def test_result_key(self) -> None:
        assert result_key("get_prices", {"ticker": "AAPL"}) == "get_prices_AAPL"
        assert result_key("get_quote", {"symbol": "IBM"}) == "get_quote_IBM"
        assert result_key("get_market_status", {}) == "get_market_status"

    def test_combine(self) -> None:
        combined, urls = combine_results([
            RoutedResult("get_prices", {"ticker": "A"}, data=[1], source_urls=["u1"]),
            RoutedResult("get_news", {"tickers": "A"}, error="boom"),
            RoutedResult("get_market_status", {}, data={"m": 1}, source_urls=["u2"]),
        ])
        assert combined == {
            "get_prices_A": [1],
            "get_market_status": {"m": 1},
            "_errors": [{"tool": "get_news", "args": {"tickers": "A"}, "error": "boom"}],
        }
        assert urls == ["u1", "u2"]

    def test_combine_without_errors(self) -> None:
        combined, _ = combine_results([RoutedResult("t", {}, data=1)])
        assert "_errors" not in combined


# ---------------------------------------------------------------------------
# Web search
# ---------------------------------------------------------------------------

TAVILY = {
    "answer": "Rates were held.",
    "results": [
        {"title": "Fed holds", "url": "https://news.example/fed", "content": "...", "score": 0.9},
        {"title": "No url", "content": "...", "score": 0.1},
    ],
}


class TestWebSearch:
    def test_missing_key(self) -> None:
        with pytest.raises(ConfigError):
            create_web_search("")

    def test_search(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=TAVILY)

        tool = create_web_search("tv-key", transport=httpx.MockTransport(handler))
        result = json.loads(tool.invoke({"query": "fed decision"}))

        assert bodies == [{"api_key": "tv-key", "query": "fed decision", "max_results": 5}]
        assert result["data"]["answer"] == "Rates were held."
        assert [r["title"] for r in result["data"]["results"]] == ["Fed holds", "No url"]
        assert result["sourceUrls"] == ["https://news.example/fed"]

    def test_error_status(self) -> None:
        tool = create_web_search(
            "tv-key", transport=httpx.MockTransport(lambda r: httpx.Response(401, json={}))
        )
        with pytest.raises(DataProviderError, match="401"):
            tool.invoke({"query": "q"})

    def test_max_results_bounds(self) -> None:
        tool = create_web_search("tv-key", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
        with pytest.raises(ValidationError):
            tool.invoke({"query": "q", "max_results": 50})


# ---------------------------------------------------------------------------
# Default tool set
# ---------------------------------------------------------------------------

class TestBuildDefaultTools:
    @pytest.mark.parametrize(
        ("keys", "expected"),
        [
            ({}, []),
            ({"alpha_vantage_api_key": "av"}, ["financial_search"]),
            ({"tavily_api_key": "tv"}, ["web_search"]),
            ({"alpha_vantage_api_key": "av", "tavily_api_key": "tv"}, ["financial_search", "web_search"]),
        ],
    )
    def test_tools_follow_keys(self, keys: dict, expected: list[str]) -> None:
        registry = build_default_tools(Settings(**keys), FakeLLM())
        assert registry.names() == expected

    def test_financial_search_schema(self) -> None:
        registry = build_default_tools(Settings(alpha_vantage_api_key="av"), FakeLLM())
        schema = registry.get("financial_search").parameters
        assert schema["required"] == ["query"]
        assert QueryArgs.model_json_schema()["properties"].keys() == schema["properties"].keys()
