"""Core research agent loop.

Provides the Agent class that runs a bounded ReAct-style loop: call the
model with the tools, execute the tool calls it requests, re-prompt with
one-line summaries of what was learned, and repeat until the model stops
asking for tools or ``max_iterations`` is reached. The final answer is then
streamed from a prompt rebuilt out of the full, compacted tool results.

The loop is an explicit state machine over :class:`AgentPhase`. Each phase
has a generator handler that does the phase's work and yields its events;
:func:`next_phase` picks the following phase from the run state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Iterator
from typing import TYPE_CHECKING

from tickertape.agent.config import AgentConfig, AgentPhase
from tickertape.agent.executor import ToolCallExecutor
from tickertape.agent.history import ChatHistory
from tickertape.agent.models import (
    AgentEvent,
    AnswerChunkEvent,
    AnswerStartEvent,
    DoneEvent,
    ThinkingEvent,
)
from tickertape.agent.state import RunState, hit_iteration_limit, is_direct_answer, next_phase
from tickertape.cancellation import check_cancelled
from tickertape.engine.compactor import CompactOptions, compact_json
from tickertape.engine.query import analyze_query
from tickertape.engine.tokens import estimate_tokens, get_token_budget
from tickertape.exceptions import RunCancelledError
from tickertape.prompts.agent import (
    build_final_answer_prompt,
    build_initial_prompt,
    build_iteration_prompt,
    build_system_prompt,
)

if TYPE_CHECKING:
    from tickertape.config import Settings
    from tickertape.llm.protocols import LanguageModel
    from tickertape.storage.store import ContextStore
    from tickertape.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

NO_TOOLS_MESSAGE = "No tools available. Please check your API key configuration."
NO_DATA_GATHERED = "No data was gathered."
NO_DATA_STORED = "No data was successfully gathered."
CONTEXT_LOAD_FAILED = "Failed to load context data."

# Data points kept per array in the final answer context
FINAL_ANSWER_ARRAY_LENGTH = 100

PhaseHandler = Callable[[RunState], Iterator[AgentEvent]]


class Agent:
    """ReAct-style research agent that streams progress events.

    Usage::

        agent = Agent.create(Settings.from_env())
        for event in agent.run("What was AAPL's revenue growth in 2024?"):
            print(event.to_dict())

    A run ends with exactly one ``done`` event, unless the model call fails
    (the error propagates) or the run is cancelled through
    ``config.signal`` (the stream just stops).
    """

    def __init__(
        self,
        llm: LanguageModel,
        tools: ToolRegistry,
        store: ContextStore,
        config: AgentConfig | None = None,
    ) -> None:
        self._llm = llm
        self._tools = tools
        self._store = store
        self._config = config or AgentConfig()
        self._system_prompt = self._config.system_prompt or build_system_prompt()
        self._executor = ToolCallExecutor(
            llm,
            tools,
            store,
            summary_model=self._config.effective_summary_model,
            signal=self._config.signal,
            max_parallel_tools=self._config.max_parallel_tools,
        )
        self._handlers: dict[AgentPhase, PhaseHandler] = {
            AgentPhase.INIT: self._on_init,
            AgentPhase.ITERATING: self._on_iterating,
            AgentPhase.EXECUTING_TOOLS: self._on_executing_tools,
            AgentPhase.GENERATING_FINAL_ANSWER: self._on_generating_final_answer,
            AgentPhase.DONE: self._on_done,
        }

    @classmethod
    def create(
        cls,
        settings: Settings,
        *,
        config: AgentConfig | None = None,
        llm: LanguageModel | None = None,
        store: ContextStore | None = None,
    ) -> Agent:
        """Build an agent with the default tools for *settings*.

        Args:
            settings: Process settings (API keys, models, database path).
            config: Agent configuration; derived from *settings* when None.
            llm: Model gateway; an OpenAIClient when None.
            store: Context store; opened at ``settings.context_db`` when None.
        """
        from tickertape.llm.client import OpenAIClient
        from tickertape.storage.store import ContextStore
        from tickertape.tools import build_default_tools

        if llm is None:
            llm = OpenAIClient(settings.openai_api_key, base_url=settings.openai_base_url)
        if store is None:
            store = ContextStore.open(settings.context_db)
        if config is None:
            config = AgentConfig(
                model=settings.model,
                summary_model=settings.fast_model,
                max_iterations=settings.max_iterations,
            )
        return cls(llm, build_default_tools(settings, llm), store, config)

    def with_config(self, config: AgentConfig) -> Agent:
        """Return an agent sharing this one's model, tools and store under *config*."""
        return Agent(self._llm, self._tools, self._store, config)

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self, query: str, history: ChatHistory | None = None
    ) -> Generator[AgentEvent, None, None]:
        """Answer *query*, yielding events as the run progresses.

        Args:
            query: The user query.
            history: Earlier turns of the session; the last few user
                queries are cited in the first prompt.

        Raises:
            ModelError: If the reasoning or answer model call fails.
        """
        if len(self._tools) == 0:
            yield DoneEvent(answer=NO_TOOLS_MESSAGE, tool_calls=(), iterations=0)
            return

        previous = history.user_messages() if history is not None else []
        state = RunState(query=query, prompt=build_initial_prompt(query, previous))

        try:
            while True:
                yield from self._handlers[state.phase](state)
                if state.phase is AgentPhase.DONE:
                    return
                state.phase = next_phase(state, self._config.max_iterations)
                logger.debug("Run phase -> %s (iteration %d)", state.phase.value, state.iteration)
        except RunCancelledError:
            logger.info("Run cancelled in phase %s", state.phase.value)

    # ------------------------------------------------------------------
    # Phase handlers
    # ------------------------------------------------------------------

    def _on_init(self, state: RunState) -> Iterator[AgentEvent]:
        yield from ()

    def _on_iterating(self, state: RunState) -> Iterator[AgentEvent]:
        state.iteration += 1
        check_cancelled(self._config.signal)
        response = self._llm.invoke(
            state.prompt,
            model=self._config.model,
            system_prompt=self._system_prompt,
            tools=list(self._tools),
            signal=self._config.signal,
        )
        state.response = response

        if response.text and response.has_tool_calls:
            state.scratchpad.add_thinking(response.text)
            yield ThinkingEvent(message=response.text)

        if is_direct_answer(state):
            state.answer = response.text
            yield AnswerStartEvent()
            yield AnswerChunkEvent(text=response.text)

    def _on_executing_tools(self, state: RunState) -> Iterator[AgentEvent]:
        assert state.response is not None
        batch = self._executor.start_batch(state.query, state.response.tool_calls)
        try:
            yield from batch
            executions = batch.result()
        finally:
            batch.close()

        for execution in executions:
            state.scratchpad.add_tool_entry(execution.prompt_entry)
            state.records.append(execution.record)
            state.summaries.append(execution.summary)

        state.prompt = build_iteration_prompt(state.query, state.scratchpad.texts())

    def _on_generating_final_answer(self, state: RunState) -> Iterator[AgentEvent]:
        yield AnswerStartEvent()

        context = self.build_answer_context(state)
        prompt = build_final_answer_prompt(state.query, context)

        check_cancelled(self._config.signal)
        for chunk in self._llm.stream(
            prompt,
            model=self._config.model,
            system_prompt=self._system_prompt,
            signal=self._config.signal,
        ):
            check_cancelled(self._config.signal)
            if not chunk:
                continue
            state.answer += chunk
            yield AnswerChunkEvent(text=chunk)

        if not state.answer and hit_iteration_limit(state, self._config.max_iterations):
            fallback = (
                f"Reached maximum iterations ({self._config.max_iterations}). "
                f"{self._store.overview(state.stored_ids)}"
            )
            state.answer = fallback
            yield AnswerChunkEvent(text=fallback)

    def _on_done(self, state: RunState) -> Iterator[AgentEvent]:
        yield DoneEvent(
            answer=state.answer,
            tool_calls=tuple(state.records),
            iterations=state.iteration,
        )

    # ------------------------------------------------------------------
    # Final answer context
    # ------------------------------------------------------------------

    def build_answer_context(self, state: RunState) -> str:
        """Reload every stored result and compact it into the answer prompt's data.

        Each result gets ``min(per_tool_result, tool_results // n)`` tokens
        of the model's budget; results that would overflow the total budget
        are replaced by a note.
        """
        if not state.summaries:
            return NO_DATA_GATHERED

        ids = state.stored_ids
        if not ids:
            return NO_DATA_STORED

        results = self._store.load_many(ids)
        if not results:
            return CONTEXT_LOAD_FAILED

        budget = get_token_budget(self._config.model)
        total_budget = budget.tool_results
        per_result = min(budget.per_tool_result, total_budget // len(results))
        options = CompactOptions(
            max_tokens=per_result,
            max_array_length=FINAL_ANSWER_ARRAY_LENGTH,
            remove_verbose_fields=True,
            truncate_urls=True,
            minify=True,
            query=state.query,
            query_context=analyze_query(state.query),
        )

        blocks: list[str] = []
        total_tokens = 0
        for result in results:
            description = self._store.describe(result.tool_name, result.args)
            block = f"### {description}\n{compact_json(result.result, options)}"
            tokens = estimate_tokens(block, "json")

            if total_tokens + tokens > total_budget:
                omitted = len(results) - len(blocks)
                blocks.append(
                    f"### Note\n[Additional {omitted} data sources omitted to fit context window]"
                )
                break

            blocks.append(block)
            total_tokens += tokens

        logger.debug(
            "Answer context: %d of %d results, ~%d tokens",
            len(blocks), len(results), total_tokens,
        )
        return "\n\n".join(blocks)
