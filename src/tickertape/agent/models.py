"""Agent event and record models.

Every event the agent yields is a frozen dataclass with a literal ``type``
tag, so consumers can dispatch on ``event.type`` (or on the class) and
ignore types they do not know. ``AgentEvent`` is the union of all of them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Union

from tickertape.storage.store import ToolSummary


class _Event:
    """Serialization shared by all agent events."""

    type: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)  # type: ignore[call-overload]
        return {"type": data.pop("type"), **data}


@dataclass(frozen=True)
class ThinkingEvent(_Event):
    """Model reasoning text emitted alongside tool calls."""

    message: str
    type: Literal["thinking"] = field(default="thinking", init=False)


@dataclass(frozen=True)
class ToolStartEvent(_Event):
    tool: str
    args: dict[str, Any]
    type: Literal["tool_start"] = field(default="tool_start", init=False)


@dataclass(frozen=True)
class ToolEndEvent(_Event):
    """A tool call finished; ``duration`` is in milliseconds."""

    tool: str
    args: dict[str, Any]
    result: str
    duration: int
    type: Literal["tool_end"] = field(default="tool_end", init=False)


@dataclass(frozen=True)
class ToolErrorEvent(_Event):
    tool: str
    error: str
    type: Literal["tool_error"] = field(default="tool_error", init=False)


@dataclass(frozen=True)
class AnswerStartEvent(_Event):
    type: Literal["answer_start"] = field(default="answer_start", init=False)


@dataclass(frozen=True)
class AnswerChunkEvent(_Event):
    text: str
    type: Literal["answer_chunk"] = field(default="answer_chunk", init=False)


@dataclass(frozen=True)
class ToolCallRecord:
    """One executed tool call and its raw result (or ``"Error: ..."``)."""

    tool: str
    args: dict[str, Any]
    result: str


@dataclass(frozen=True)
class DoneEvent(_Event):
    """Terminal event of a completed run.

    ``answer`` equals the concatenation of every ``answer_chunk`` emitted.
    """

    answer: str
    tool_calls: tuple[ToolCallRecord, ...] = ()
    iterations: int = 0
    type: Literal["done"] = field(default="done", init=False)


AgentEvent = Union[
    ThinkingEvent,
    ToolStartEvent,
    ToolEndEvent,
    ToolErrorEvent,
    AnswerStartEvent,
    AnswerChunkEvent,
    DoneEvent,
]

ToolEvent = Union[ToolStartEvent, ToolEndEvent, ToolErrorEvent]

__all__ = [
    "AgentEvent",
    "AnswerChunkEvent",
    "AnswerStartEvent",
    "DoneEvent",
    "ThinkingEvent",
    "ToolCallRecord",
    "ToolEndEvent",
    "ToolErrorEvent",
    "ToolEvent",
    "ToolStartEvent",
    "ToolSummary",
]
