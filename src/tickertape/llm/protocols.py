"""Language-model gateway protocol and message types.

Defines the pluggable interface the agent loop talks to. The built-in
OpenAIClient implements it; tests use scripted fakes.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ModelMessage:
    """A complete (non-streamed) model response.

    Attributes:
        text: Assistant text, empty when the model only called tools.
        tool_calls: Tool calls requested by the model, in order.
    """

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@runtime_checkable
class ToolSpec(Protocol):
    """Anything that can be advertised to the model as a callable tool."""

    name: str

    def to_openai(self) -> dict[str, Any]:
        """Return the OpenAI ``tools`` entry for this tool."""
        ...


@runtime_checkable
class LanguageModel(Protocol):
    """Protocol for pluggable language-model gateways.

    Any object with invoke() and stream() methods matching these signatures
    works. Implementations check *signal* and raise RunCancelledError once it
    is set.
    """

    def invoke(
        self,
        prompt: str,
        *,
        model: str,
        system_prompt: str,
        tools: Sequence[ToolSpec] | None = None,
        signal: threading.Event | None = None,
    ) -> ModelMessage:
        """Send one prompt, return the complete response."""
        ...

    def stream(
        self,
        prompt: str,
        *,
        model: str,
        system_prompt: str,
        signal: threading.Event | None = None,
    ) -> Iterator[str]:
        """Send one prompt, yield text fragments as they arrive."""
        ...
