"""Tickertape CLI -- terminal interface for the research agent.

This module is NEVER imported from tickertape/__init__.py.
It is only loaded via the ``tickertape`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler

from tickertape.cli.formatting import (
    EventRenderer,
    format_done_footer,
    format_error,
    get_console,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from tickertape.agent.history import ChatHistory
    from tickertape.agent.loop import Agent
    from tickertape.agent.models import DoneEvent
    from tickertape.config import Settings
    from tickertape.llm.client import OpenAIClient


@click.group()
@click.option(
    "--env-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to a .env file (searched upward from the working directory if omitted).",
)
@click.option("--db", default=None, help="Path to the context database (overrides TICKERTAPE_DB).")
@click.option("--model", default=None, help="Model for reasoning and answers (overrides TICKERTAPE_MODEL).")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.version_option(package_name="tickertape")
@click.pass_context
def cli(
    ctx: click.Context,
    env_file: str | None,
    db: str | None,
    model: str | None,
    verbose: bool,
) -> None:
    """Tickertape: a research assistant for financial questions."""
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file
    ctx.obj["overrides"] = {
        key: value for key, value in (("context_db", db), ("model", model)) if value is not None
    }
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
            force=True,
        )
        for name in ("httpx", "httpcore"):
            logging.getLogger(name).setLevel(logging.WARNING)


def _get_settings(ctx: click.Context) -> Settings:
    """Load settings from the environment and apply command-line overrides."""
    from tickertape.config import Settings

    settings = Settings.from_env(ctx.obj["env_file"])
    overrides = ctx.obj["overrides"]
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


def _open_llm(settings: Settings) -> OpenAIClient:
    from tickertape.llm.client import OpenAIClient

    return OpenAIClient(settings.openai_api_key, base_url=settings.openai_base_url)


@contextmanager
def _agent_session(
    ctx: click.Context,
    **config_overrides: int,
) -> Iterator[tuple[Agent, Console]]:
    """Context manager that builds an Agent, yields (agent, console), and handles cleanup.

    Closes the model client and context store on exit and formats exceptions
    as CLI errors.
    """
    from tickertape.agent.config import AgentConfig
    from tickertape.agent.loop import Agent
    from tickertape.storage.store import ContextStore

    console = get_console()
    try:
        settings = _get_settings(ctx)
        config = AgentConfig(
            model=settings.model,
            summary_model=settings.fast_model,
            max_iterations=settings.max_iterations,
        )
        if config_overrides:
            config = dataclasses.replace(config, **config_overrides)

        llm = _open_llm(settings)
        try:
            store = ContextStore.open(settings.context_db)
            try:
                yield Agent.create(settings, config=config, llm=llm, store=store), console
            finally:
                store.close()
        finally:
            llm.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


def run_query(
    agent: Agent,
    query: str,
    console: Console,
    *,
    history: ChatHistory | None = None,
    as_json: bool = False,
) -> DoneEvent | None:
    """Run *query* on a fresh cancellation signal and render its events.

    Ctrl-C cancels the run. Returns the ``done`` event, or None when the run
    was cancelled.
    """
    from tickertape.agent.models import DoneEvent

    signal = threading.Event()
    run_agent = agent.with_config(dataclasses.replace(agent.config, signal=signal))
    renderer = EventRenderer(console)
    done: DoneEvent | None = None

    events = run_agent.run(query, history)
    try:
        for event in events:
            if as_json:
                click.echo(json.dumps(event.to_dict(), default=str))
            else:
                renderer.render(event)
            if isinstance(event, DoneEvent):
                done = event
    except KeyboardInterrupt:
        signal.set()
        console.print("\n[yellow]Cancelled.[/yellow]")
        return None
    finally:
        events.close()

    if done is not None and not as_json:
        format_done_footer(done, console)
    return done


# Register subcommands after cli group is defined
from tickertape.cli.commands.analyze import analyze  # noqa: E402
from tickertape.cli.commands.ask import ask  # noqa: E402
from tickertape.cli.commands.chat import chat  # noqa: E402
from tickertape.cli.commands.compact import compact  # noqa: E402

cli.add_command(ask)
cli.add_command(chat)
cli.add_command(analyze)
cli.add_command(compact)
