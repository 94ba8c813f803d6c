"""Research agent: the ReAct loop, its events, state machine and tool executor."""

from tickertape.agent.config import AgentConfig, AgentPhase
from tickertape.agent.executor import ToolBatch, ToolCallExecutor, ToolExecution
from tickertape.agent.history import ChatHistory, ChatMessage
from tickertape.agent.loop import Agent
from tickertape.agent.models import (
    AgentEvent,
    AnswerChunkEvent,
    AnswerStartEvent,
    DoneEvent,
    ThinkingEvent,
    ToolCallRecord,
    ToolEndEvent,
    ToolErrorEvent,
    ToolEvent,
    ToolStartEvent,
    ToolSummary,
)
from tickertape.agent.state import RunState, Scratchpad, next_phase

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentPhase",
    "ToolBatch",
    "ToolCallExecutor",
    "ToolExecution",
    "ChatHistory",
    "ChatMessage",
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
    "RunState",
    "Scratchpad",
    "next_phase",
]
