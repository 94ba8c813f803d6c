"""Tests for the CLI's Rich formatting helpers."""

from __future__ import annotations

import io
import json

import pytest
from rich.console import Console

from tickertape.agent.models import (
    AnswerChunkEvent,
    AnswerStartEvent,
    DoneEvent,
    ThinkingEvent,
    ToolCallRecord,
    ToolEndEvent,
    ToolErrorEvent,
    ToolStartEvent,
)
from tickertape.cli.formatting import (
    EventRenderer,
    format_args,
    format_compact_stats,
    format_duration,
    format_error,
    format_tool_name,
    summarize_tool_result,
    truncate_at_word,
)


def _console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=120, color_system=None), buffer


class TestTextHelpers:
    def test_tool_name(self) -> None:
        assert format_tool_name("get_income_statements") == "Get Income Statements"
        assert format_tool_name("web_search") == "Web Search"

    def test_truncate_at_word(self) -> None:
        text = "revenue growth for the last five fiscal years"
        assert truncate_at_word(text, 100) == text
        assert truncate_at_word(text, 20) == "revenue growth for..."
        assert truncate_at_word("a" * 30, 10) == "a" * 10 + "..."

    def test_args_single_query(self) -> None:
        assert format_args({"query": "AAPL revenue"}) == '"AAPL revenue"'

    def test_args_pairs(self) -> None:
        assert format_args({"ticker": "AAPL", "limit": 4}) == "ticker=AAPL, limit=4"

    @pytest.mark.parametrize(("ms", "expected"), [(0, "0ms"), (999, "999ms"), (1000, "1.0s"), (2549, "2.5s")])
    def test_duration(self, ms: int, expected: str) -> None:
        assert format_duration(ms) == expected


class TestSummarizeToolResult:
    def test_list_data(self) -> None:
        assert summarize_tool_result("get_prices", json.dumps({"data": [1, 2, 3]})) == "Received 3 items"

    def test_financial_search_sources(self) -> None:
        one = json.dumps({"data": {"get_prices_AAPL": [], "_errors": []}})
        two = json.dumps({"data": {"a": 1, "b": 2}})
        assert summarize_tool_result("financial_search", one) == "Called 1 data source"
        assert summarize_tool_result("financial_search", two) == "Called 2 data sources"

    def test_web_search(self) -> None:
        assert summarize_tool_result("web_search", json.dumps({"data": {"results": []}})) == "Found results"

    def test_other_fields(self) -> None:
        assert summarize_tool_result("x", json.dumps({"data": {"a": 1, "b": 2}})) == "Received 2 fields"
        assert summarize_tool_result("x", json.dumps({"data": 5})) == "Received data"

    def test_non_json(self) -> None:
        assert summarize_tool_result("x", "plain " * 20) == ("plain " * 20)[:50] + "..."


class TestEventRenderer:
    def test_streamed_run(self) -> None:
        console, buffer = _console()
        renderer = EventRenderer(console)
        events = [
            ThinkingEvent(message="Checking [filings]."),
            ToolStartEvent(tool="financial_search", args={"query": "AAPL revenue"}),
            ToolEndEvent(
                tool="financial_search",
                args={"query": "AAPL revenue"},
                result=json.dumps({"data": {"get_income_statements_AAPL": {}}}),
                duration=1234,
            ),
            ToolStartEvent(tool="web_search", args={"query": "fed"}),
            ToolErrorEvent(tool="web_search", error="Tavily API error: 401"),
            AnswerStartEvent(),
            AnswerChunkEvent(text="Revenue was "),
            AnswerChunkEvent(text="[$391B]."),
            DoneEvent(answer="Revenue was [$391B].", tool_calls=(), iterations=2),
        ]
        for event in events:
            renderer.render(event)

        output = buffer.getvalue()
        assert "Checking [filings]." in output
        assert 'Financial Search ("AAPL revenue")' in output
        assert "Called 1 data source in 1.2s" in output
        assert "x Error: Tavily API error: 401" in output
        assert "Revenue was [$391B].\n" in output

    def test_done_without_stream_prints_answer(self) -> None:
        console, buffer = _console()
        EventRenderer(console).render(DoneEvent(answer="No tools available."))
        assert buffer.getvalue() == "No tools available.\n"


class TestMisc:
    def test_error_escapes_markup(self) -> None:
        console, buffer = _console()
        format_error("bad [value]", console)
        assert buffer.getvalue() == "Error: bad [value]\n"

    def test_compact_stats(self) -> None:
        console, buffer = _console()
        format_compact_stats(1000, 250, console)
        assert buffer.getvalue() == "~1000 -> ~250 tokens (75% reduction)\n"
        console, buffer = _console()
        format_compact_stats(0, 0, console)
        assert "0% reduction" in buffer.getvalue()

    def test_event_serialization(self) -> None:
        record = ToolCallRecord(tool="web_search", args={"query": "q"}, result="{}")
        done = DoneEvent(answer="a", tool_calls=(record,), iterations=1)
        assert done.to_dict() == {
            "type": "done",
            "answer": "a",
            "tool_calls": ({"tool": "web_search", "args": {"query": "q"}, "result": "{}"},),
            "iterations": 1,
        }
        assert AnswerStartEvent().to_dict() == {"type": "answer_start"}
