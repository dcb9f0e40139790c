"""
Session persistence boundary.
"""

import time
from abc import ABC, abstractmethod
from typing import Any

from ..events import Event
from .session import GetSessionConfig, Session


class BaseSessionService(ABC):
    """Base class for session stores.

    The engine depends on exactly these operations: create/get a session by
    identity, append one event (applying its state delta), and list/delete
    sessions.
    """

    @abstractmethod
    async def create_session(
        self,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session:
        """Create a new session. Raises SessionExistsError on a taken id."""
        pass

    @abstractmethod
    async def get_session(
        self,
        app_name: str,
        user_id: str,
        session_id: str,
        config: GetSessionConfig | None = None,
    ) -> Session | None:
        """Get a session, or None if it does not exist."""
        pass

    @abstractmethod
    async def list_sessions(
        self,
        app_name: str,
        user_id: str | None = None,
    ) -> list[Session]:
        """List sessions of an app (optionally one user), without events."""
        pass

    @abstractmethod
    async def delete_session(
        self,
        app_name: str,
        user_id: str,
        session_id: str,
    ) -> None:
        """Delete a session. Deleting an unknown session is a no-op."""
        pass

    async def append_event(self, session: Session, event: Event) -> Event:
        """Append an event to the caller's session object.

        Partial events are returned untouched. Subclasses persist the event
        and then call this to update the in-memory session.
        """
        if event.partial:
            return event

        self._apply_state_delta(session, event)
        session.events.append(event)
        session.last_update_time = event.timestamp or time.time()
        return event

    def _apply_state_delta(self, session: Session, event: Event) -> None:
        # Every key, temporary ones included, is visible on the live session.
        delta = event.actions.state_delta
        if not delta:
            return
        for key, value in delta.items():
            session.state[key] = value
