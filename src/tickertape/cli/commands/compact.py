"""tickertape compact -- compact a JSON document to a token budget."""

from __future__ import annotations

from typing import TextIO

import click


@click.command()
@click.argument("source", type=click.File("r"), default="-")
@click.option(
    "--max-tokens",
    type=click.IntRange(min=1),
    default=25_000,
    show_default=True,
    help="Token budget for the output.",
)
@click.option(
    "--max-array-length",
    type=click.IntRange(min=1),
    default=50,
    show_default=True,
    help="Maximum items kept in any array.",
)
@click.option("--query", default=None, help="Query used for date-aware filtering.")
@click.option("--pretty", is_flag=True, help="Indent the output instead of minifying it.")
@click.option("--stats", is_flag=True, help="Print estimated token counts to stderr.")
def compact(
    source: TextIO,
    max_tokens: int,
    max_array_length: int,
    query: str | None,
    pretty: bool,
    stats: bool,
) -> None:
    """Compact the JSON in SOURCE (a file, or - for stdin).

    Runs the same passes the agent applies to tool results: query-aware
    date filtering, array truncation, verbose field removal and URL/text
    shortening. Invalid JSON is passed through, truncated to the budget.
    """
    from rich.console import Console

    from tickertape.cli.formatting import format_compact_stats
    from tickertape.engine.compactor import CompactOptions, compact_json
    from tickertape.engine.tokens import estimate_tokens

    text = source.read()
    options = CompactOptions(
        max_tokens=max_tokens,
        max_array_length=max_array_length,
        minify=not pretty,
        query=query,
    )
    result = compact_json(text, options)
    click.echo(result)

    if stats:
        format_compact_stats(
            estimate_tokens(text, "json"),
            estimate_tokens(result, "json"),
            Console(stderr=True),
        )
