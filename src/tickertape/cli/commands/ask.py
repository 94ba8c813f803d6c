"""tickertape ask -- answer a single query."""

from __future__ import annotations

import click


@click.command()
@click.argument("query")
@click.option(
    "--max-iterations",
    type=click.IntRange(min=0),
    default=None,
    help="Maximum model/tool cycles (overrides TICKERTAPE_MAX_ITERATIONS).",
)
@click.option(
    "--parallel-tools",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Run up to this many tool calls from one model response at once.",
)
@click.option("--json", "as_json", is_flag=True, help="Print raw events as JSON lines.")
@click.pass_context
def ask(
    ctx: click.Context,
    query: str,
    max_iterations: int | None,
    parallel_tools: int,
    as_json: bool,
) -> None:
    """Research QUERY with the available tools and stream the answer."""
    from tickertape.cli import _agent_session, run_query

    overrides = {"max_parallel_tools": parallel_tools}
    if max_iterations is not None:
        overrides["max_iterations"] = max_iterations

    with _agent_session(ctx, **overrides) as (agent, console):
        run_query(agent, query, console, as_json=as_json)
