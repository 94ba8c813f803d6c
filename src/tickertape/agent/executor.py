"""ToolCallExecutor: runs the tool calls from one model response.

Each call is looked up, invoked with the run's cancellation signal,
persisted to the context store and summarized by the fast model. Failures
of the tool itself are contained: they become a ``tool_error`` event and a
``[FAILED]`` summary, and the run continues.

A batch runs on a worker thread that puts events on a channel
(``queue.Queue``) while the batch's structured result is returned through
a future::

    batch = executor.start_batch(query, calls)
    for event in batch:        # drains the channel
        ...
    executions = batch.result()

With ``max_parallel_tools > 1`` the calls themselves run on a bounded
thread pool; each call's events are buffered and replayed in call order,
so the emitted order matches sequential execution.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from tickertape.agent.models import (
    ToolCallRecord,
    ToolEndEvent,
    ToolErrorEvent,
    ToolEvent,
    ToolStartEvent,
)
from tickertape.cancellation import check_cancelled
from tickertape.engine.compactor import CompactOptions, compact_json
from tickertape.engine.tokens import get_token_budget
from tickertape.exceptions import RunCancelledError
from tickertape.llm.protocols import LanguageModel, ToolCall
from tickertape.prompts.agent import TOOL_SUMMARY_SYSTEM, build_tool_summary_prompt
from tickertape.storage.store import ContextStore, ToolSummary
from tickertape.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

EventSink = Callable[[ToolEvent], None]

_CHANNEL_CLOSED = object()


@dataclass(frozen=True)
class ToolExecution:
    """Structured outcome of one tool call.

    Attributes:
        record: The call and its raw result (``"Error: ..."`` on failure).
        summary: Store pointer; empty id when the call failed.
        prompt_entry: Line appended to the scratchpad for the next prompt.
    """

    record: ToolCallRecord
    summary: ToolSummary
    prompt_entry: str

    @property
    def failed(self) -> bool:
        return self.summary.failed


class ToolBatch:
    """A batch of tool calls running on a worker thread.

    Iterate to receive events as they are produced; call :meth:`result`
    afterwards for the executions (re-raising any error from the worker).
    :meth:`close` releases the worker when the batch is abandoned early.
    """

    def __init__(
        self,
        executor: ToolCallExecutor,
        query: str,
        calls: Sequence[ToolCall],
    ) -> None:
        self._channel: queue.Queue[object] = queue.Queue()
        self._closed = False
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tool-worker")
        self._future: Future[list[ToolExecution]] = self._worker.submit(
            self._run, executor, query, list(calls)
        )

    def _run(
        self,
        executor: ToolCallExecutor,
        query: str,
        calls: list[ToolCall],
    ) -> list[ToolExecution]:
        try:
            return executor.run_batch(query, calls, self._channel.put)
        finally:
            self._channel.put(_CHANNEL_CLOSED)

    def __iter__(self) -> Iterator[ToolEvent]:
        while True:
            event = self._channel.get()
            if event is _CHANNEL_CLOSED:
                return
            yield event  # type: ignore[misc]

    def result(self) -> list[ToolExecution]:
        try:
            return self._future.result()
        finally:
            self.close()

    def close(self) -> None:
        """Shut the worker pool down without waiting for a running call."""
        if not self._closed:
            self._closed = True
            self._worker.shutdown(wait=False, cancel_futures=True)

    @property
    def closed(self) -> bool:
        return self._closed


class ToolCallExecutor:
    """Executes tool calls and turns each into a ToolExecution.

    Usage::

        executor = ToolCallExecutor(llm, registry, store, summary_model="gpt-4o-mini")
        executions = executor.run_batch(query, calls, events.append)
    """

    def __init__(
        self,
        llm: LanguageModel,
        tools: ToolRegistry,
        store: ContextStore,
        *,
        summary_model: str,
        signal: threading.Event | None = None,
        max_parallel_tools: int = 1,
    ) -> None:
        self._llm = llm
        self._tools = tools
        self._store = store
        self._summary_model = summary_model
        self._signal = signal
        self._max_parallel_tools = max_parallel_tools
        self._summary_budget = get_token_budget(summary_model).per_tool_result

    def start_batch(self, query: str, calls: Sequence[ToolCall]) -> ToolBatch:
        """Start executing *calls* on a worker thread."""
        return ToolBatch(self, query, calls)

    def run_batch(
        self,
        query: str,
        calls: Sequence[ToolCall],
        emit: EventSink,
    ) -> list[ToolExecution]:
        """Execute *calls*, emitting events in call order.

        Raises:
            RunCancelledError: If the run's signal is set.
        """
        if self._max_parallel_tools <= 1 or len(calls) <= 1:
            return [self.execute(query, call, emit) for call in calls]
        return self._run_parallel(query, calls, emit)

    def _run_parallel(
        self,
        query: str,
        calls: Sequence[ToolCall],
        emit: EventSink,
    ) -> list[ToolExecution]:
        buffers: list[list[ToolEvent]] = [[] for _ in calls]
        workers = min(self._max_parallel_tools, len(calls))
        executions: list[ToolExecution] = []

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tool-call") as pool:
            futures = [
                pool.submit(self.execute, query, call, buffer.append)
                for call, buffer in zip(calls, buffers)
            ]
            try:
                for future, buffer in zip(futures, buffers):
                    execution = future.result()
                    for event in buffer:
                        emit(event)
                    executions.append(execution)
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        return executions

    def execute(self, query: str, call: ToolCall, emit: EventSink) -> ToolExecution:
        """Execute one tool call, emitting tool_start then tool_end or tool_error."""
        emit(ToolStartEvent(tool=call.name, args=call.arguments))
        start = time.monotonic()

        try:
            tool = self._tools.get(call.name)
            result = tool.invoke(call.arguments, signal=self._signal)
            summary = self._store.save(call.name, call.arguments, result)
        except RunCancelledError:
            raise
        except Exception as exc:
            logger.debug("Tool %s failed: %s", call.name, exc, exc_info=True)
            return self._failed(call, str(exc) or type(exc).__name__, emit)

        duration = round((time.monotonic() - start) * 1000)
        emit(ToolEndEvent(tool=call.name, args=call.arguments, result=result, duration=duration))

        entry = self._summarize(query, call, result, summary)
        return ToolExecution(
            record=ToolCallRecord(tool=call.name, args=call.arguments, result=result),
            summary=summary,
            prompt_entry=entry,
        )

    def _failed(self, call: ToolCall, message: str, emit: EventSink) -> ToolExecution:
        emit(ToolErrorEvent(tool=call.name, error=message))
        summary = ToolSummary(
            id="",
            tool_name=call.name,
            args=call.arguments,
            summary=f"{self._store.describe(call.name, call.arguments)} [FAILED]",
        )
        return ToolExecution(
            record=ToolCallRecord(tool=call.name, args=call.arguments, result=f"Error: {message}"),
            summary=summary,
            prompt_entry=f"- {summary.summary}: {message}",
        )

    def _summarize(self, query: str, call: ToolCall, result: str, summary: ToolSummary) -> str:
        """Ask the fast model what the call revealed; fall back to the store summary."""
        check_cancelled(self._signal)
        compacted = compact_json(result, CompactOptions(max_tokens=self._summary_budget))
        prompt = build_tool_summary_prompt(query, call.name, call.arguments, compacted)
        try:
            response = self._llm.invoke(
                prompt,
                model=self._summary_model,
                system_prompt=TOOL_SUMMARY_SYSTEM,
                signal=self._signal,
            )
        except RunCancelledError:
            raise
        except Exception as exc:
            logger.warning(
                "Summarizing %s failed, using stored description: %s", call.name, exc
            )
            return summary.summary

        text = response.text.strip()
        return text or summary.summary
