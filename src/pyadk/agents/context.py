"""
Invocation context - the per-run environment handed to every agent.
"""

import asyncio
import dataclasses
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..errors import LlmCallsLimitExceededError
from ..events import Content
from .run_config import RunConfig

if TYPE_CHECKING:
    from ..sessions import BaseSessionService, Session
    from .base import BaseAgent


def new_invocation_id() -> str:
    return f"e-{uuid.uuid4()}"


@dataclass
class InvocationContext:
    """Everything an agent needs for one invocation.

    Derived contexts (``with_branch`` and friends) share the session, the
    services and the cancel event, but take a snapshot of the model-call
    counter rather than sharing it.
    """

    session: "Session"
    invocation_id: str = field(default_factory=new_invocation_id)
    branch: str = "main"
    user_content: Content | None = None
    run_config: RunConfig = field(default_factory=RunConfig)
    artifact_service: Any = None
    memory_service: Any = None
    session_service: "BaseSessionService | None" = None
    agent: "BaseAgent | None" = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    _number_of_llm_calls: int = 0

    @property
    def number_of_llm_calls(self) -> int:
        return self._number_of_llm_calls

    @property
    def state(self) -> dict[str, Any]:
        """The live session state."""
        return self.session.state

    def increment_and_enforce_llm_calls_limit(self) -> None:
        """Count one model call; raise once the configured limit is exceeded."""
        self._number_of_llm_calls += 1
        limit = self.run_config.max_llm_calls
        if limit > 0 and self._number_of_llm_calls > limit:
            raise LlmCallsLimitExceededError(
                f"Max number of llm calls limit of {limit} exceeded"
            )

    def with_branch(self, branch: str) -> "InvocationContext":
        return dataclasses.replace(self, branch=branch)

    def with_user_content(self, content: Content | None) -> "InvocationContext":
        return dataclasses.replace(self, user_content=content)

    def with_user_input(self, text: str) -> "InvocationContext":
        return self.with_user_content(Content.from_text(text, role="user"))

    def cancel(self) -> None:
        """Request cooperative cancellation of the whole invocation."""
        self.cancel_event.set()

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise asyncio.CancelledError(f"Invocation {self.invocation_id} was cancelled")
