"""Run-scoped state for the agent loop.

``RunState`` is the single mutable accumulator of one ``Agent.run()`` call.
``next_phase`` is the pure transition function of the run's state machine:
it reads only the state and the iteration limit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from tickertape.agent.config import AgentPhase
from tickertape.agent.models import ToolCallRecord
from tickertape.exceptions import AgentError
from tickertape.llm.protocols import ModelMessage
from tickertape.storage.store import ToolSummary

EntryKind = Literal["thinking", "tool"]


@dataclass(frozen=True)
class ScratchpadEntry:
    kind: EntryKind
    text: str


class Scratchpad:
    """Append-only log of the work done for one query.

    Holds the model's interleaved reasoning and the one-line tool summaries,
    in order. Entries are never modified or removed.
    """

    def __init__(self, query: str) -> None:
        self.query = query
        self._entries: list[ScratchpadEntry] = []

    def add_thinking(self, text: str) -> None:
        self._entries.append(ScratchpadEntry("thinking", text))

    def add_tool_entry(self, text: str) -> None:
        self._entries.append(ScratchpadEntry("tool", text))

    @property
    def entries(self) -> tuple[ScratchpadEntry, ...]:
        return tuple(self._entries)

    def texts(self) -> list[str]:
        """All entry texts in order, as fed to the iteration prompt."""
        return [entry.text for entry in self._entries]

    def tool_entries(self) -> list[str]:
        return [entry.text for entry in self._entries if entry.kind == "tool"]

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class RunState:
    """Mutable accumulator for one agent run.

    Attributes:
        query: The user query being answered.
        prompt: Prompt for the next model call.
        phase: Current state-machine phase.
        iteration: Number of model calls made in ITERATING.
        scratchpad: Reasoning and tool summaries so far.
        records: Every tool call executed, in order.
        summaries: Store pointers for every tool call, in order.
        response: Latest model response.
        answer: Concatenation of the answer chunks emitted so far.
    """

    query: str
    prompt: str
    phase: AgentPhase = AgentPhase.INIT
    iteration: int = 0
    scratchpad: Scratchpad = field(init=False)
    records: list[ToolCallRecord] = field(default_factory=list)
    summaries: list[ToolSummary] = field(default_factory=list)
    response: ModelMessage | None = None
    answer: str = ""

    def __post_init__(self) -> None:
        self.scratchpad = Scratchpad(self.query)

    @property
    def stored_ids(self) -> list[str]:
        return [s.id for s in self.summaries if s.id]


def is_direct_answer(state: RunState) -> bool:
    """True when the model answered without tools and nothing was gathered yet."""
    response = state.response
    return (
        response is not None
        and not response.has_tool_calls
        and not state.summaries
        and bool(response.text)
    )


def next_phase(state: RunState, max_iterations: int) -> AgentPhase:
    """Compute the phase that follows ``state.phase``.

    Raises:
        AgentError: If called in DONE, or in ITERATING without a response.
    """
    phase = state.phase

    if phase is AgentPhase.INIT:
        return AgentPhase.ITERATING if max_iterations > 0 else AgentPhase.GENERATING_FINAL_ANSWER

    if phase is AgentPhase.ITERATING:
        if state.response is None:
            raise AgentError("ITERATING phase completed without a model response")
        if state.response.has_tool_calls:
            return AgentPhase.EXECUTING_TOOLS
        if is_direct_answer(state):
            return AgentPhase.DONE
        return AgentPhase.GENERATING_FINAL_ANSWER

    if phase is AgentPhase.EXECUTING_TOOLS:
        if state.iteration < max_iterations:
            return AgentPhase.ITERATING
        return AgentPhase.GENERATING_FINAL_ANSWER

    if phase is AgentPhase.GENERATING_FINAL_ANSWER:
        return AgentPhase.DONE

    raise AgentError(f"No transition out of phase {phase.value}")


def hit_iteration_limit(state: RunState, max_iterations: int) -> bool:
    """True when the final answer is being forced by the iteration limit."""
    return state.iteration >= max_iterations and (
        state.response is None or state.response.has_tool_calls
    )
