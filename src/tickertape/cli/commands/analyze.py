"""tickertape analyze -- show what the query analyzer extracts."""

from __future__ import annotations

import json

import click


@click.command()
@click.argument("query")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
def analyze(query: str, as_json: bool) -> None:
    """Extract tickers, years, date ranges and periods from QUERY."""
    from tickertape.cli.formatting import format_query_context, get_console, query_context_to_dict
    from tickertape.engine.query import analyze_query

    query_context = analyze_query(query)
    if as_json:
        click.echo(json.dumps(query_context_to_dict(query_context), indent=2))
    else:
        format_query_context(query_context, get_console())
