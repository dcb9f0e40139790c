"""
Database models for session persistence

Uses SQLAlchemy 2.0 async ORM for database operations.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.ext.asyncio import AsyncAttrs, AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models."""
    pass


class SessionRecord(Base):
    """A session row, keyed by its identity triple."""

    __tablename__ = "sessions"

    app_name: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    # Session-scoped state only; app and user state live in their own tables
    state: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    last_update_time: Mapped[float] = mapped_column(Float)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class EventRecord(Base):
    """One persisted event. ``position`` preserves append order."""

    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_session", "app_name", "user_id", "session_id"),
    )

    position: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64))

    app_name: Mapped[str] = mapped_column(String(128))
    user_id: Mapped[str] = mapped_column(String(128))
    session_id: Mapped[str] = mapped_column(String(128))

    invocation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    author: Mapped[str] = mapped_column(String(255))
    branch: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[float] = mapped_column(Float)

    event_data: Mapped[dict[str, Any]] = mapped_column(JSON)


class AppState(Base):
    """State shared by every session of an app (``app:`` keys)."""

    __tablename__ = "app_states"

    app_name: Mapped[str] = mapped_column(String(128), primary_key=True)
    state: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())


class UserState(Base):
    """State shared by every session of a user (``user:`` keys)."""

    __tablename__ = "user_states"

    app_name: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    state: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())


async def init_database(database_url: str) -> tuple[AsyncEngine, async_sessionmaker]:
    """Initialize the database and return the engine and session maker."""
    if database_url.endswith(":memory:") or database_url.endswith("://"):
        # In-memory SQLite must reuse one connection or every checkout sees an empty DB.
        engine = create_async_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return engine, async_sessionmaker(engine, expire_on_commit=False)
