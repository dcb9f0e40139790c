"""
SQL-backed session store.

Works with any SQLAlchemy async driver; defaults to SQLite via aiosqlite.
"""

import asyncio
import time
import uuid
from typing import Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..errors import SessionExistsError
from ..events import Event
from .base import BaseSessionService
from .models import AppState, EventRecord, SessionRecord, UserState, init_database
from .session import GetSessionConfig, Session
from .state import merge_scoped_state, split_state_delta

logger = structlog.get_logger()


class DatabaseSessionService(BaseSessionService):
    """Persists sessions, events and scoped state in a relational database."""

    def __init__(self, database_url: str | None = None):
        if database_url is None:
            from ..config import get_settings
            database_url = get_settings().database_url

        self.database_url = database_url
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker | None = None
        self._init_lock = asyncio.Lock()

    async def _db(self) -> async_sessionmaker:
        """Create the schema on first use and return the session maker."""
        if self._session_maker is None:
            async with self._init_lock:
                if self._session_maker is None:
                    self._engine, self._session_maker = await init_database(self.database_url)
                    logger.info("Session database initialized", database_url=self.database_url)
        return self._session_maker

    async def close(self) -> None:
        """Dispose of the engine and its connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None

    async def create_session(
        self,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session:
        session_id = session_id.strip() if session_id and session_id.strip() else str(uuid.uuid4())
        session_maker = await self._db()

        async with session_maker() as db:
            existing = await db.get(SessionRecord, (app_name, user_id, session_id))
            if existing is not None:
                raise SessionExistsError(f"Session with id '{session_id}' already exists.")

            deltas = split_state_delta(state)
            app_state, user_state = await self._update_scoped_state(
                db, app_name, user_id, deltas.app, deltas.user
            )

            now = time.time()
            db.add(SessionRecord(
                app_name=app_name,
                user_id=user_id,
                id=session_id,
                state=deltas.session,
                last_update_time=now,
            ))
            await db.commit()

        logger.info("Created new session", app_name=app_name, user_id=user_id, session_id=session_id)

        return Session(
            app_name=app_name,
            user_id=user_id,
            id=session_id,
            state=merge_scoped_state(deltas.session, app_state, user_state),
            last_update_time=now,
        )

    async def get_session(
        self,
        app_name: str,
        user_id: str,
        session_id: str,
        config: GetSessionConfig | None = None,
    ) -> Session | None:
        session_maker = await self._db()

        async with session_maker() as db:
            record = await db.get(SessionRecord, (app_name, user_id, session_id))
            if record is None:
                return None

            result = await db.execute(
                select(EventRecord)
                .where(
                    EventRecord.app_name == app_name,
                    EventRecord.user_id == user_id,
                    EventRecord.session_id == session_id,
                )
                .order_by(EventRecord.position)
            )
            events = [Event.from_dict(row.event_data) for row in result.scalars().all()]

            app_state, user_state = await self._load_scoped_state(db, app_name, user_id)

        if config is not None:
            events = config.apply(events)

        return Session(
            app_name=record.app_name,
            user_id=record.user_id,
            id=record.id,
            state=merge_scoped_state(dict(record.state or {}), app_state, user_state),
            events=events,
            last_update_time=record.last_update_time,
        )

    async def list_sessions(
        self,
        app_name: str,
        user_id: str | None = None,
    ) -> list[Session]:
        session_maker = await self._db()

        async with session_maker() as db:
            query = select(SessionRecord).where(SessionRecord.app_name == app_name)
            if user_id is not None:
                query = query.where(SessionRecord.user_id == user_id)
            result = await db.execute(query.order_by(SessionRecord.created_at))
            records = result.scalars().all()

            sessions = []
            for record in records:
                app_state, user_state = await self._load_scoped_state(db, app_name, record.user_id)
                sessions.append(Session(
                    app_name=record.app_name,
                    user_id=record.user_id,
                    id=record.id,
                    state=merge_scoped_state(dict(record.state or {}), app_state, user_state),
                    last_update_time=record.last_update_time,
                ))

        return sessions

    async def delete_session(
        self,
        app_name: str,
        user_id: str,
        session_id: str,
    ) -> None:
        session_maker = await self._db()

        async with session_maker() as db:
            await db.execute(
                delete(EventRecord).where(
                    EventRecord.app_name == app_name,
                    EventRecord.user_id == user_id,
                    EventRecord.session_id == session_id,
                )
            )
            await db.execute(
                delete(SessionRecord).where(
                    SessionRecord.app_name == app_name,
                    SessionRecord.user_id == user_id,
                    SessionRecord.id == session_id,
                )
            )
            await db.commit()

        logger.info("Session deleted", app_name=app_name, user_id=user_id, session_id=session_id)

    async def append_event(self, session: Session, event: Event) -> Event:
        if event.partial:
            return event

        session_maker = await self._db()

        async with session_maker() as db:
            record = await db.get(SessionRecord, (session.app_name, session.user_id, session.id))
            if record is None:
                logger.warning(
                    "Append to unknown session ignored",
                    app_name=session.app_name,
                    user_id=session.user_id,
                    session_id=session.id,
                )
                return event

            deltas = split_state_delta(event.actions.state_delta)
            await self._update_scoped_state(
                db, session.app_name, session.user_id, deltas.app, deltas.user
            )
            if deltas.session:
                # Reassign so the JSON column is flagged dirty.
                record.state = {**(record.state or {}), **deltas.session}

            record.last_update_time = event.timestamp

            db.add(EventRecord(
                id=event.id,
                app_name=session.app_name,
                user_id=session.user_id,
                session_id=session.id,
                invocation_id=event.invocation_id,
                author=event.author,
                branch=event.branch,
                timestamp=event.timestamp,
                event_data=event.to_dict(),
            ))
            await db.commit()

        return await super().append_event(session, event)

    async def _load_scoped_state(
        self,
        db: AsyncSession,
        app_name: str,
        user_id: str,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        app_row = await db.get(AppState, app_name)
        user_row = await db.get(UserState, (app_name, user_id))
        return (
            dict(app_row.state or {}) if app_row else {},
            dict(user_row.state or {}) if user_row else {},
        )

    async def _update_scoped_state(
        self,
        db: AsyncSession,
        app_name: str,
        user_id: str,
        app_delta: dict[str, Any],
        user_delta: dict[str, Any],
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Merge deltas into the app and user state rows, creating them if needed."""
        app_row = await db.get(AppState, app_name)
        if app_delta:
            if app_row is None:
                app_row = AppState(app_name=app_name, state={})
                db.add(app_row)
            app_row.state = {**(app_row.state or {}), **app_delta}

        user_row = await db.get(UserState, (app_name, user_id))
        if user_delta:
            if user_row is None:
                user_row = UserState(app_name=app_name, user_id=user_id, state={})
                db.add(user_row)
            user_row.state = {**(user_row.state or {}), **user_delta}

        return (
            dict(app_row.state or {}) if app_row else {},
            dict(user_row.state or {}) if user_row else {},
        )
