"""Tool definitions and the registry the agent looks tools up in.

A tool pairs a pydantic argument model with a handler. Arguments coming
from the model are validated before the handler runs; validation errors
propagate like any other tool failure.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from tickertape.cancellation import check_cancelled
from tickertape.exceptions import ToolNotFoundError

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Any, "threading.Event | None"], Any]


@dataclass(frozen=True)
class ToolDefinition:
    """A single tool definition for LLM consumption.

    Attributes:
        name: Tool name (e.g. "financial_search").
        description: Human-readable description of when/why to use this tool.
        args_schema: Pydantic model validating the tool's arguments.
        handler: Callable ``(params, signal) -> result``; non-string results
            are serialized as JSON.
    """

    name: str
    description: str
    args_schema: type[BaseModel]
    handler: ToolHandler

    @property
    def parameters(self) -> dict:
        """JSON Schema for the tool's arguments."""
        schema = self.args_schema.model_json_schema()
        schema.pop("title", None)
        return schema

    def to_openai(self) -> dict:
        """Convert to OpenAI function-calling format.

        Returns:
            Dict with "type": "function" and nested "function" object.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def invoke(self, args: dict[str, Any], *, signal: threading.Event | None = None) -> str:
        """Validate *args*, run the handler and return its result as a string.

        Raises:
            pydantic.ValidationError: If the arguments do not match the schema.
            RunCancelledError: If *signal* is set before the handler runs.
        """
        check_cancelled(signal)
        params = self.args_schema.model_validate(args)
        result = self.handler(params, signal)
        if isinstance(result, str):
            return result
        return json.dumps(result, ensure_ascii=False, default=str)


class ToolRegistry:
    """Ordered collection of tools, looked up by name.

    Usage::

        registry = ToolRegistry([financial_search, web_search])
        tool = registry.get("web_search")
    """

    def __init__(self, tools: Iterable[ToolDefinition] = ()) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            logger.debug("Replacing registered tool %s", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> ToolDefinition:
        """Return the tool called *name*.

        Raises:
            ToolNotFoundError: If no such tool is registered.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def names(self) -> list[str]:
        return list(self._tools)

    def to_openai(self) -> list[dict]:
        return [tool.to_openai() for tool in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
