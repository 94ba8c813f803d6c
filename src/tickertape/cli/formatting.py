"""Rich formatting helpers for the Tickertape CLI.

Renders agent events and engine results for terminal display.
Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tickertape.agent.models import (
    AgentEvent,
    AnswerChunkEvent,
    AnswerStartEvent,
    DoneEvent,
    ThinkingEvent,
    ToolEndEvent,
    ToolErrorEvent,
    ToolStartEvent,
)

if TYPE_CHECKING:
    from tickertape.agent.loop import Agent
    from tickertape.engine.query import QueryContext

ARG_DISPLAY_LENGTH = 60
THINKING_DISPLAY_LENGTH = 200
ERROR_DISPLAY_LENGTH = 80


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)


# ------------------------------------------------------------------
# Text helpers
# ------------------------------------------------------------------


def format_tool_name(name: str) -> str:
    """``get_income_statements`` -> ``Get Income Statements``."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split("_"))


def truncate_at_word(text: str, max_length: int) -> str:
    """Cut *text* before *max_length*, at a space when one falls past the midpoint."""
    if len(text) <= max_length:
        return text
    last_space = text.rfind(" ", 0, max_length + 1)
    if last_space > max_length * 0.5:
        return text[:last_space] + "..."
    return text[:max_length] + "..."


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def format_args(args: dict[str, Any]) -> str:
    """Short display form of tool arguments.

    A lone ``query`` argument is shown quoted; anything else as ``k=v`` pairs.
    """
    if list(args) == ["query"]:
        return f'"{truncate_at_word(str(args["query"]), ARG_DISPLAY_LENGTH)}"'
    return ", ".join(
        f"{key}={truncate_at_word(str(value), ARG_DISPLAY_LENGTH)}" for key, value in args.items()
    )


def format_duration(ms: int) -> str:
    if ms < 1000:
        return f"{ms}ms"
    return f"{ms / 1000:.1f}s"


def summarize_tool_result(tool: str, result: str) -> str:
    """One-line description of a tool result for the progress view."""
    try:
        parsed = json.loads(result)
    except ValueError:
        return truncate(result, 50)

    data = parsed.get("data") if isinstance(parsed, dict) else None
    if isinstance(data, list):
        return f"Received {len(data)} items"
    if isinstance(data, dict):
        keys = [key for key in data if not key.startswith("_")]
        if tool == "financial_search":
            return "Called 1 data source" if len(keys) == 1 else f"Called {len(keys)} data sources"
        if tool == "web_search":
            return "Found results"
        return f"Received {len(keys)} fields"
    return "Received data"


# ------------------------------------------------------------------
# Agent events
# ------------------------------------------------------------------


class EventRenderer:
    """Prints agent events as they arrive.

    Progress events are printed one line each; answer chunks are streamed
    without newlines. Unknown event types are ignored.
    """

    def __init__(self, console: Console) -> None:
        self.console = console
        self._answering = False

    def render(self, event: AgentEvent) -> None:
        if isinstance(event, ThinkingEvent):
            message = escape(truncate(event.message, THINKING_DISPLAY_LENGTH))
            self.console.print(f"[magenta]*[/magenta] {message}")
        elif isinstance(event, ToolStartEvent):
            self._print_tool_line(event.tool, event.args)
        elif isinstance(event, ToolEndEvent):
            summary = escape(summarize_tool_result(event.tool, event.result))
            self.console.print(
                f"  [dim]->[/dim] [green]{summary}[/green] "
                f"[dim]in {format_duration(event.duration)}[/dim]"
            )
        elif isinstance(event, ToolErrorEvent):
            error = escape(truncate(event.error, ERROR_DISPLAY_LENGTH))
            self.console.print(f"  [dim]->[/dim] [red]x Error: {error}[/red]")
        elif isinstance(event, AnswerStartEvent):
            self._answering = True
            self.console.print()
        elif isinstance(event, AnswerChunkEvent):
            self.console.print(event.text, end="", markup=False, highlight=False, soft_wrap=True)
        elif isinstance(event, DoneEvent):
            if self._answering:
                self.console.print()
            else:
                self.console.print(event.answer, markup=False, highlight=False)
            self._answering = False

    def _print_tool_line(self, tool: str, args: dict[str, Any]) -> None:
        self.console.print(
            f"[cyan]o[/cyan] [bold blue]{escape(format_tool_name(tool))}[/bold blue] "
            f"[dim]({escape(format_args(args))})[/dim]"
        )


def format_intro(agent: Agent, console: Console) -> None:
    """Print the chat session banner."""
    from tickertape._version import __version__

    console.print(f"[bold]Tickertape[/bold] [dim]v{__version__}[/dim]")
    console.print("Research assistant for financial questions.")
    console.print(f"[dim]Model:[/dim] [cyan]{escape(agent.config.model)}[/cyan]")
    tools = ", ".join(agent.tools.names()) or "none (set ALPHAVANTAGE_API_KEY or TAVILY_API_KEY)"
    console.print(f"[dim]Tools:[/dim] {escape(tools)}")
    console.print("[dim]Type exit to quit, /clear to start over.[/dim]")
    console.print()


def format_done_footer(event: DoneEvent, console: Console) -> None:
    """Print the tool-call and iteration counts of a finished run."""
    calls = len(event.tool_calls)
    console.print(
        f"[dim]{calls} tool call{'s' if calls != 1 else ''}, "
        f"{event.iterations} iteration{'s' if event.iterations != 1 else ''}[/dim]"
    )


# ------------------------------------------------------------------
# Engine results
# ------------------------------------------------------------------


def format_query_context(query_context: QueryContext, console: Console) -> None:
    """Display the extracted temporal and entity context of a query."""
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    def _join(values: tuple[Any, ...]) -> str:
        return ", ".join(str(v) for v in values) if values else "[dim]-[/dim]"

    ranges = tuple(
        f"{r.start.date().isoformat()} .. {r.end.date().isoformat()}"
        for r in query_context.date_ranges
    )
    table.add_row("Tickers", _join(query_context.tickers))
    table.add_row("Years", _join(query_context.years))
    table.add_row("Date ranges", _join(ranges))
    table.add_row("Time periods", _join(query_context.time_periods))
    table.add_row("Calculation", _join(query_context.calculation_keywords))
    table.add_row(
        "Full data",
        "[yellow]yes[/yellow]" if query_context.requires_full_data else "no",
    )
    console.print(table)


def query_context_to_dict(query_context: QueryContext) -> dict[str, Any]:
    return {
        "years": list(query_context.years),
        "date_ranges": [
            {"start": r.start.isoformat(), "end": r.end.isoformat()}
            for r in query_context.date_ranges
        ],
        "time_periods": list(query_context.time_periods),
        "tickers": list(query_context.tickers),
        "requires_full_data": query_context.requires_full_data,
        "calculation_keywords": list(query_context.calculation_keywords),
    }


def format_compact_stats(before: int, after: int, console: Console) -> None:
    """Display estimated token counts before and after compaction."""
    saved = 1 - after / before if before else 0.0
    console.print(
        f"[dim]~{before} -> ~{after} tokens ({saved:.0%} reduction)[/dim]",
        highlight=False,
    )
