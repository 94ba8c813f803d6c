"""Storage layer for Tickertape: SQLAlchemy schema, engine, context store."""

from tickertape.storage.engine import create_context_engine, create_session_factory, init_db
from tickertape.storage.schema import Base, ToolResultRow
from tickertape.storage.store import ContextStore, StoredResult, ToolSummary, describe

__all__ = [
    "Base",
    "ToolResultRow",
    "create_context_engine",
    "create_session_factory",
    "init_db",
    "ContextStore",
    "StoredResult",
    "ToolSummary",
    "describe",
]
