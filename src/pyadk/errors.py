"""
Error hierarchy for the agent execution engine.
"""


class AdkError(Exception):
    """Base class for all engine errors."""


class LlmCallsLimitExceededError(AdkError):
    """Raised when an invocation makes more model calls than allowed."""


class CompactionConfigError(AdkError):
    """Raised when compaction runs without a usable configuration."""


class SessionNotFoundError(AdkError, LookupError):
    """Raised when a session lookup by identity finds nothing."""

    def __init__(self, app_name: str, user_id: str, session_id: str):
        super().__init__(
            f"Session '{session_id}' not found for user '{user_id}' in app '{app_name}'"
        )
        self.app_name = app_name
        self.user_id = user_id
        self.session_id = session_id


class SessionExistsError(AdkError):
    """Raised when creating a session whose id is already taken."""


class RewindIndexError(AdkError, IndexError):
    """Raised when a rewind index falls outside the stored history."""


class StateTemplateError(AdkError, KeyError):
    """Raised when an instruction references a state key that is not set."""
