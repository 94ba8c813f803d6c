"""Tickertape: a terminal research assistant for financial questions.

An agent answers queries by calling market-data tools in a bounded
reason/act loop, keeping full tool results out of the prompt and compacting
them into a token budget for the final answer.
"""

from tickertape._version import __version__

# Core entry point
from tickertape.agent import Agent, AgentConfig, AgentPhase, ChatHistory

# Events
from tickertape.agent.models import (
    AgentEvent,
    AnswerChunkEvent,
    AnswerStartEvent,
    DoneEvent,
    ThinkingEvent,
    ToolCallRecord,
    ToolEndEvent,
    ToolErrorEvent,
    ToolStartEvent,
)

# Configuration
from tickertape.config import Settings

# Context engine
from tickertape.engine import (
    CompactOptions,
    QueryContext,
    analyze_query,
    compact_json,
    compact_multiple_results,
    estimate_tokens,
    get_token_budget,
)

# Storage
from tickertape.storage import ContextStore, ToolSummary

# Exceptions
from tickertape.exceptions import (
    AgentError,
    ConfigError,
    ContextNotFoundError,
    DataProviderError,
    ModelAuthError,
    ModelError,
    ModelRateLimitError,
    ModelResponseError,
    RunCancelledError,
    TickertapeError,
    ToolNotFoundError,
)

__all__ = [
    "__version__",
    "Agent",
    "AgentConfig",
    "AgentPhase",
    "ChatHistory",
    "AgentEvent",
    "AnswerChunkEvent",
    "AnswerStartEvent",
    "DoneEvent",
    "ThinkingEvent",
    "ToolCallRecord",
    "ToolEndEvent",
    "ToolErrorEvent",
    "ToolStartEvent",
    "Settings",
    "CompactOptions",
    "QueryContext",
    "analyze_query",
    "compact_json",
    "compact_multiple_results",
    "estimate_tokens",
    "get_token_budget",
    "ContextStore",
    "ToolSummary",
    "AgentError",
    "ConfigError",
    "ContextNotFoundError",
    "DataProviderError",
    "ModelAuthError",
    "ModelError",
    "ModelRateLimitError",
    "ModelResponseError",
    "RunCancelledError",
    "TickertapeError",
    "ToolNotFoundError",
]
