"""Persistent context store for full tool results.

During the agent loop only short summaries travel in prompts; the full raw
results are saved here and reloaded by pointer when the final answer is
generated. Pointers are the SHA-256 of the canonical ``{tool_name, args,
result}`` payload, so identical tool calls share one row.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session, sessionmaker

from tickertape.engine.hashing import result_id as compute_result_id
from tickertape.engine.tokens import estimate_tokens
from tickertape.exceptions import ContextNotFoundError
from tickertape.storage.engine import create_context_engine, create_session_factory, init_db
from tickertape.storage.schema import ToolResultRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSummary:
    """Lightweight pointer to a stored tool result.

    An empty ``id`` marks a failed call whose result was never stored.
    """

    id: str
    tool_name: str
    args: dict[str, Any] = field(default_factory=dict)
    summary: str = ""

    @property
    def failed(self) -> bool:
        return not self.id


@dataclass(frozen=True)
class StoredResult:
    """A full tool result reloaded from the store."""

    id: str
    tool_name: str
    args: dict[str, Any]
    result: str


def describe(tool_name: str, args: dict[str, Any]) -> str:
    """Human-readable description of a tool call.

    Examples::

        describe("get_income_statements", {"ticker": "aapl", "period": "annual", "limit": 4})
        # 'AAPL income statements (annual) - 4 periods'
        describe("web_search", {"query": "fed minutes"})
        # 'web search "fed minutes"'
    """
    parts: list[str] = []
    used: set[str] = set()

    for key in ("ticker", "symbol"):
        if key in args and args[key] not in (None, ""):
            parts.append(str(args[key]).upper())
            used.add(key)
            break

    name = tool_name.removeprefix("get_").replace("_", " ")
    parts.append(name)

    if args.get("query") not in (None, ""):
        parts.append(f'"{args["query"]}"')
        used.add("query")
    for key in ("period", "interval"):
        if args.get(key) not in (None, ""):
            parts.append(f"({args[key]})")
            used.add(key)

    description = " ".join(parts)

    if isinstance(args.get("limit"), int):
        description += f" - {args['limit']} periods"
        used.add("limit")

    rest = [f"{k}={v}" for k, v in args.items() if k not in used and v not in (None, "")]
    if rest:
        description += f" [{', '.join(rest)}]"
    return description


class ContextStore:
    """SQLAlchemy-backed store of full tool results.

    Thread-safe: tool calls running in parallel may save concurrently.

    Usage::

        store = ContextStore.open(".tickertape/context.db")
        summary = store.save("get_prices", {"ticker": "AAPL"}, raw_json)
        [full] = store.load_many([summary.id])
    """

    def __init__(self, engine: Engine, session_factory: sessionmaker[Session]) -> None:
        self._engine = engine
        self._session_factory = session_factory
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: str = ":memory:", *, url: str | None = None) -> ContextStore:
        """Open (creating if needed) a store at *path* or SQLAlchemy *url*."""
        engine = create_context_engine(path, url=url)
        init_db(engine)
        return cls(engine, create_session_factory(engine))

    def save(self, tool_name: str, args: dict[str, Any], result: str) -> ToolSummary:
        """Persist a tool result and return its pointer summary.

        Saving an identical ``(tool_name, args, result)`` again is a no-op
        that returns the same pointer.
        """
        rid = compute_result_id(tool_name, args, result)
        with self._lock, self._session_factory() as session:
            existing = session.get(ToolResultRow, rid)
            if existing is None:
                session.add(
                    ToolResultRow(
                        result_id=rid,
                        tool_name=tool_name,
                        args_json=dict(args),
                        result_text=result,
                        token_count=estimate_tokens(result, "json"),
                        created_at=datetime.now(timezone.utc).replace(tzinfo=None),
                    )
                )
                session.commit()
                logger.debug("Stored %s result %s (%d chars)", tool_name, rid[:12], len(result))

        return ToolSummary(
            id=rid,
            tool_name=tool_name,
            args=dict(args),
            summary=describe(tool_name, args),
        )

    def load(self, result_id: str) -> StoredResult:
        """Load one stored result.

        Raises:
            ContextNotFoundError: If no result has this id.
        """
        with self._lock, self._session_factory() as session:
            row = session.get(ToolResultRow, result_id)
        if row is None:
            raise ContextNotFoundError(result_id)
        return self._to_result(row)

    def load_many(self, result_ids: Sequence[str]) -> list[StoredResult]:
        """Load stored results in the given order, skipping unknown ids."""
        ids = [rid for rid in result_ids if rid]
        if not ids:
            return []

        with self._lock, self._session_factory() as session:
            rows = session.execute(
                select(ToolResultRow).where(ToolResultRow.result_id.in_(ids))
            ).scalars().all()
        by_id = {row.result_id: row for row in rows}

        results: list[StoredResult] = []
        for rid in ids:
            row = by_id.get(rid)
            if row is None:
                logger.warning("Stored result %s not found; skipping", rid)
                continue
            results.append(self._to_result(row))
        return results

    def describe(self, tool_name: str, args: dict[str, Any]) -> str:
        return describe(tool_name, args)

    def overview(self, result_ids: Sequence[str]) -> str:
        """One-paragraph overview of what the given results contain."""
        with self._lock, self._session_factory() as session:
            rows = session.execute(
                select(ToolResultRow).where(ToolResultRow.result_id.in_(list(result_ids)))
            ).scalars().all()
        if not rows:
            return "No data was gathered."
        total_tokens = sum(row.token_count for row in rows)
        sources = "; ".join(describe(row.tool_name, row.args_json) for row in rows)
        return f"Gathered {len(rows)} data sources (~{total_tokens} tokens): {sources}."

    def count(self) -> int:
        with self._lock, self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(ToolResultRow)) or 0

    def close(self) -> None:
        """Dispose of the underlying engine."""
        self._engine.dispose()

    def __enter__(self) -> ContextStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @staticmethod
    def _to_result(row: ToolResultRow) -> StoredResult:
        return StoredResult(
            id=row.result_id,
            tool_name=row.tool_name,
            args=dict(row.args_json or {}),
            result=row.result_text,
        )
