"""Agent configuration types.

Provides AgentPhase, the states of one agent run, and AgentConfig for
configuring an Agent.

A run moves through the phases::

    INIT -> ITERATING -> EXECUTING_TOOLS -> ITERATING -> ...
                      \\-> GENERATING_FINAL_ANSWER -> DONE
                      \\-> DONE (direct answer)
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field

from tickertape.config import DEFAULT_MAX_ITERATIONS, DEFAULT_MODEL


class AgentPhase(str, enum.Enum):
    """States of one agent run."""

    INIT = "init"
    ITERATING = "iterating"
    EXECUTING_TOOLS = "executing_tools"
    GENERATING_FINAL_ANSWER = "generating_final_answer"
    DONE = "done"


@dataclass(frozen=True)
class AgentConfig:
    """Configuration for an Agent.

    Attributes:
        model: Model for reasoning and the final answer.
        summary_model: Smaller model for per-tool summaries; None means
            use ``model``.
        max_iterations: Maximum model/tool cycles before the answer is forced.
        max_parallel_tools: Tool calls from one model response run on up to
            this many threads. 1 runs them sequentially.
        system_prompt: Override for the default system prompt.
        signal: Cancellation signal shared with the model gateway and tools.
    """

    model: str = DEFAULT_MODEL
    summary_model: str | None = None
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    max_parallel_tools: int = 1
    system_prompt: str | None = None
    signal: threading.Event | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {self.max_iterations}")
        if self.max_parallel_tools < 1:
            raise ValueError(f"max_parallel_tools must be >= 1, got {self.max_parallel_tools}")

    @property
    def effective_summary_model(self) -> str:
        return self.summary_model or self.model
