"""tickertape chat -- interactive research session."""

from __future__ import annotations

import click

from tickertape.exceptions import TickertapeError

EXIT_COMMANDS = frozenset({"exit", "quit", "/exit", "/quit"})
CLEAR_COMMAND = "/clear"


@click.command()
@click.option(
    "--parallel-tools",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Run up to this many tool calls from one model response at once.",
)
@click.pass_context
def chat(ctx: click.Context, parallel_tools: int) -> None:
    """Start an interactive session that remembers earlier questions.

    Type ``exit`` to quit and ``/clear`` to forget the conversation so far.
    Ctrl-C cancels the running query.
    """
    from tickertape.agent.history import ChatHistory
    from tickertape.cli import _agent_session, run_query
    from tickertape.cli.formatting import format_error, format_intro

    with _agent_session(ctx, max_parallel_tools=parallel_tools) as (agent, console):
        format_intro(agent, console)
        history = ChatHistory()

        while True:
            try:
                query = console.input("[bold cyan]>[/bold cyan] ").strip()
            except (EOFError, KeyboardInterrupt):
                console.print()
                return

            if not query:
                continue
            if query.lower() in EXIT_COMMANDS:
                return
            if query.lower() == CLEAR_COMMAND:
                history.clear()
                console.print("[dim]Conversation cleared.[/dim]")
                continue

            try:
                done = run_query(agent, query, console, history=history)
            except TickertapeError as e:
                format_error(str(e), console)
                continue

            if done is not None:
                history.add_turn(query, done.answer)
            console.print()
