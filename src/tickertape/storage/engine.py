"""Engine and session factory for the context store.

Provides SQLite engine creation with performance pragmas,
session factory creation, and database initialization.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tickertape.storage.schema import Base


def create_context_engine(
    db_path: str = ":memory:",
    *,
    url: str | None = None,
) -> Engine:
    """Create a SQLAlchemy engine for the context store.

    Supports two modes:

    1. **SQLite shorthand** (default): pass a file path or ``":memory:"``.
       Parent directories of a file path are created.
    2. **Full URL**: pass any SQLAlchemy connection URL via *url=*.

    SQLite performance pragmas (WAL, busy_timeout) are applied automatically
    when the engine dialect is SQLite.

    Args:
        db_path: Path to SQLite database file, or ``":memory:"`` for
            in-memory.  Ignored when *url* is provided.
        url: Full SQLAlchemy database URL, e.g. ``"sqlite:///path/to/file.db"``.

    Returns:
        Configured SQLAlchemy Engine.
    """
    if url is not None:
        engine = create_engine(url, echo=False)
    elif db_path == ":memory:":
        # One shared connection so every session sees the same in-memory DB
        engine = create_engine(
            "sqlite://",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{Path(db_path).expanduser()}",
            echo=False,
            connect_args={"check_same_thread": False},
        )

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to the given engine.

    Uses expire_on_commit=False to prevent lazy-load issues
    when accessing attributes after commit.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables defined in Base.metadata (idempotent)."""
    Base.metadata.create_all(engine)
