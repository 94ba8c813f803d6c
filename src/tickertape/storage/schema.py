"""SQLAlchemy ORM schema for the context store.

One table, ``tool_results``, keyed by the SHA-256 pointer of each stored
tool call so that saving the same call twice is a no-op.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all Tickertape ORM models."""

    pass


class ToolResultRow(Base):
    """A full tool result, content-addressed by its pointer."""

    __tablename__ = "tool_results"

    result_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tool_name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    args_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    result_text: Mapped[str] = mapped_column(Text, nullable=False)
    token_count: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
