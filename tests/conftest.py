"""Shared test fixtures for Tickertape.

Provides an in-memory context store, a scripted language model double and
helpers for building tools and model replies.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Sequence
from typing import Any

import pytest
from pydantic import BaseModel

from tickertape.llm.protocols import ModelMessage, ToolCall, ToolSpec
from tickertape.prompts.agent import TOOL_SUMMARY_SYSTEM
from tickertape.storage.engine import create_context_engine, init_db
from tickertape.storage.store import ContextStore
from tickertape.tools.registry import ToolDefinition, ToolRegistry


class FakeLLM:
    """Language model double with scripted replies.

    Reasoning calls pop ``replies`` in order (an Exception entry is raised);
    once exhausted they return an empty message. Tool-summary calls (made
    with the summary system prompt) return ``summary`` or raise
    ``summary_error``. ``stream`` yields ``answer`` chunk by chunk.
    """

    def __init__(
        self,
        replies: Sequence[ModelMessage | Exception] = (),
        *,
        answer: Sequence[str] = ("The ", "answer."),
        summary: str = "Fetched the data.",
        summary_error: Exception | None = None,
        stream_error: Exception | None = None,
    ) -> None:
        self.replies = list(replies)
        self.answer = list(answer)
        self.summary = summary
        self.summary_error = summary_error
        self.stream_error = stream_error
        self.calls: list[dict[str, Any]] = []
        self.summary_calls: list[dict[str, Any]] = []
        self.stream_calls: list[dict[str, Any]] = []
        self.closed = False

    def invoke(
        self,
        prompt: str,
        *,
        model: str,
        system_prompt: str,
        tools: Sequence[ToolSpec] | None = None,
        signal: threading.Event | None = None,
    ) -> ModelMessage:
        record = {"prompt": prompt, "model": model, "system_prompt": system_prompt, "tools": tools}
        if system_prompt == TOOL_SUMMARY_SYSTEM:
            self.summary_calls.append(record)
            if self.summary_error is not None:
                raise self.summary_error
            return ModelMessage(text=self.summary)

        self.calls.append(record)
        if not self.replies:
            return ModelMessage()
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def stream(
        self,
        prompt: str,
        *,
        model: str,
        system_prompt: str,
        signal: threading.Event | None = None,
    ) -> Iterator[str]:
        self.stream_calls.append({"prompt": prompt, "model": model})
        if self.stream_error is not None:
            raise self.stream_error
        yield from self.answer

    def close(self) -> None:
        self.closed = True


class QueryArgs(BaseModel):
    query: str = ""


class TickerArgs(BaseModel):
    ticker: str
    period: str = "annual"
    limit: int = 4


def make_tool(
    name: str,
    handler: Callable[[Any, threading.Event | None], Any] | None = None,
    *,
    args_schema: type[BaseModel] = QueryArgs,
) -> ToolDefinition:
    """Build a tool whose handler defaults to echoing its arguments as ``data``."""
    if handler is None:
        def handler(params: BaseModel, signal: threading.Event | None) -> Any:
            return {"data": params.model_dump()}
    return ToolDefinition(
        name=name,
        description=f"Test tool {name}.",
        args_schema=args_schema,
        handler=handler,
    )


def failing_tool(name: str, message: str = "boom") -> ToolDefinition:
    def handler(params: BaseModel, signal: threading.Event | None) -> Any:
        raise RuntimeError(message)
    return make_tool(name, handler)


_call_ids = iter(range(1_000_000))


def call(name: str, **arguments: Any) -> ToolCall:
    """A tool call as the model would request it."""
    return ToolCall(id=f"call_{next(_call_ids)}", name=name, arguments=arguments)


def tool_reply(*calls: ToolCall, text: str = "") -> ModelMessage:
    return ModelMessage(text=text, tool_calls=tuple(calls))


def text_reply(text: str) -> ModelMessage:
    return ModelMessage(text=text)


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_context_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store() -> Iterator[ContextStore]:
    """In-memory context store."""
    s = ContextStore.open(":memory:")
    yield s
    s.close()


@pytest.fixture
def registry() -> ToolRegistry:
    """Registry with one echoing ``search`` tool."""
    return ToolRegistry([make_tool("search")])
