"""
Session - identity, mutable state and the append-only event log.
"""

import time
from dataclasses import dataclass, field
from typing import Any

from ..events import Event


@dataclass
class Session:
    """A conversation between one user and one app.

    The identity triple (app_name, user_id, id) never changes. ``events`` is
    only appended to through a session service, in emission order.
    """

    app_name: str
    user_id: str
    id: str
    state: dict[str, Any] = field(default_factory=dict)
    events: list[Event] = field(default_factory=list)
    last_update_time: float = field(default_factory=time.time)

    @property
    def event_count(self) -> int:
        return len(self.events)


@dataclass
class GetSessionConfig:
    """Filters applied to the events returned by get_session."""

    num_recent_events: int | None = None
    after_timestamp: float | None = None

    def apply(self, events: list[Event]) -> list[Event]:
        filtered = list(events)
        if self.num_recent_events is not None:
            filtered = filtered[-self.num_recent_events:] if self.num_recent_events > 0 else []
        if self.after_timestamp is not None:
            filtered = [e for e in filtered if e.timestamp >= self.after_timestamp]
        return filtered
