"""
ToolContext - what a running tool may read and the actions it may request.
"""

from typing import TYPE_CHECKING, Any

from ..events import EventActions

if TYPE_CHECKING:
    from ..agents.context import InvocationContext


class ToolContext:
    """Per-call view of the invocation handed to context-aware tools.

    State writes are collected as a delta and travel on the function-response
    event; the session itself is only updated when that event is appended.
    """

    def __init__(
        self,
        invocation_context: "InvocationContext",
        agent_name: str = "",
        function_call_id: str | None = None,
    ):
        self.invocation_context = invocation_context
        self.agent_name = agent_name
        self.function_call_id = function_call_id

        self.state_delta: dict[str, Any] = {}
        self.transfer_to: str | None = None
        self.escalate = False
        self.skip_summarization = False

    @property
    def state(self) -> dict[str, Any]:
        """Session state with this call's pending writes applied."""
        return {**self.invocation_context.session.state, **self.state_delta}

    def get_state(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)

    def set_state(self, key: str, value: Any) -> None:
        self.state_delta[key] = value

    def to_actions(self) -> EventActions:
        return EventActions(
            escalate=self.escalate,
            transfer_to=self.transfer_to,
            state_delta=dict(self.state_delta),
            skip_summarization=self.skip_summarization,
        )
