"""
Session storage: the Session model and the stores that persist it.
"""

from .base import BaseSessionService
from .database import DatabaseSessionService
from .in_memory import InMemorySessionService
from .session import GetSessionConfig, Session
from .state import StateDeltas, merge_scoped_state, split_state_delta

__all__ = [
    "BaseSessionService",
    "DatabaseSessionService",
    "GetSessionConfig",
    "InMemorySessionService",
    "Session",
    "StateDeltas",
    "merge_scoped_state",
    "split_state_delta",
]
