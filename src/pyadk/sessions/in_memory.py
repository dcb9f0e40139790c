"""
In-memory session store, for tests and single-process use.
"""

import copy
import time
import uuid
from typing import Any

import structlog

from ..errors import SessionExistsError
from ..events import Event
from .base import BaseSessionService
from .session import GetSessionConfig, Session
from .state import merge_scoped_state, split_state_delta

logger = structlog.get_logger()


class InMemorySessionService(BaseSessionService):
    """Keeps sessions, app state and user state in process memory.

    Sessions handed out are copies; the stored copy only changes through
    append_event.
    """

    def __init__(self):
        # app_name -> user_id -> session_id -> Session
        self._sessions: dict[str, dict[str, dict[str, Session]]] = {}
        self._app_state: dict[str, dict[str, Any]] = {}
        # app_name -> user_id -> state
        self._user_state: dict[str, dict[str, dict[str, Any]]] = {}

    async def create_session(
        self,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session:
        session_id = session_id.strip() if session_id and session_id.strip() else str(uuid.uuid4())

        if self._get_stored(app_name, user_id, session_id) is not None:
            raise SessionExistsError(f"Session with id '{session_id}' already exists.")

        deltas = split_state_delta(state)
        if deltas.app:
            self._app_state.setdefault(app_name, {}).update(deltas.app)
        if deltas.user:
            self._user_state.setdefault(app_name, {}).setdefault(user_id, {}).update(deltas.user)

        session = Session(
            app_name=app_name,
            user_id=user_id,
            id=session_id,
            state=deltas.session,
            last_update_time=time.time(),
        )
        self._sessions.setdefault(app_name, {}).setdefault(user_id, {})[session_id] = session

        logger.info("Created new session", app_name=app_name, user_id=user_id, session_id=session_id)

        return self._merge_state(self._copy(session))

    async def get_session(
        self,
        app_name: str,
        user_id: str,
        session_id: str,
        config: GetSessionConfig | None = None,
    ) -> Session | None:
        stored = self._get_stored(app_name, user_id, session_id)
        if stored is None:
            return None

        session = self._copy(stored)
        if config is not None:
            session.events = config.apply(session.events)

        return self._merge_state(session)

    async def list_sessions(
        self,
        app_name: str,
        user_id: str | None = None,
    ) -> list[Session]:
        app_sessions = self._sessions.get(app_name, {})
        if user_id is not None:
            user_ids = [user_id] if user_id in app_sessions else []
        else:
            user_ids = list(app_sessions.keys())

        sessions = []
        for uid in user_ids:
            for stored in app_sessions[uid].values():
                session = self._copy(stored)
                session.events = []
                sessions.append(self._merge_state(session))
        return sessions

    async def delete_session(
        self,
        app_name: str,
        user_id: str,
        session_id: str,
    ) -> None:
        user_sessions = self._sessions.get(app_name, {}).get(user_id, {})
        if user_sessions.pop(session_id, None) is not None:
            logger.info("Session deleted", app_name=app_name, user_id=user_id, session_id=session_id)

    async def append_event(self, session: Session, event: Event) -> Event:
        if event.partial:
            return event

        stored = self._get_stored(session.app_name, session.user_id, session.id)
        if stored is None:
            logger.warning(
                "Append to unknown session ignored",
                app_name=session.app_name,
                user_id=session.user_id,
                session_id=session.id,
            )
            return event

        deltas = split_state_delta(event.actions.state_delta)
        if deltas.app:
            self._app_state.setdefault(session.app_name, {}).update(deltas.app)
        if deltas.user:
            self._user_state.setdefault(session.app_name, {}).setdefault(session.user_id, {}).update(deltas.user)
        if deltas.session:
            stored.state.update(deltas.session)

        stored.events.append(event)
        stored.last_update_time = event.timestamp

        return await super().append_event(session, event)

    def _get_stored(self, app_name: str, user_id: str, session_id: str) -> Session | None:
        return self._sessions.get(app_name, {}).get(user_id, {}).get(session_id)

    def _copy(self, session: Session) -> Session:
        # Events are immutable, so a shallow copy of the list is enough.
        return Session(
            app_name=session.app_name,
            user_id=session.user_id,
            id=session.id,
            state=copy.deepcopy(session.state),
            events=list(session.events),
            last_update_time=session.last_update_time,
        )

    def _merge_state(self, session: Session) -> Session:
        session.state = merge_scoped_state(
            session.state,
            self._app_state.get(session.app_name),
            self._user_state.get(session.app_name, {}).get(session.user_id),
        )
        return session
