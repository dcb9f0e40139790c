"""
Event model - one immutable step of conversation or execution.

Events are produced by agents, forwarded by workflow agents and persisted
by the Runner. An event flagged partial is a streaming fragment and never
reaches durable history.
"""

import time
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from .content import Content, FunctionCall, FunctionResponse

# State key prefixes
APP_PREFIX = "app:"
USER_PREFIX = "user:"
TEMP_PREFIX = "temp:"


def new_event_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class EventCompaction:
    """Summary replacing the events between two timestamps."""

    start_timestamp: float
    end_timestamp: float
    compacted_content: Content

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_timestamp": self.start_timestamp,
            "end_timestamp": self.end_timestamp,
            "compacted_content": self.compacted_content.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventCompaction":
        return cls(
            start_timestamp=data["start_timestamp"],
            end_timestamp=data["end_timestamp"],
            compacted_content=Content.from_dict(data["compacted_content"]),
        )


@dataclass(frozen=True)
class EventActions:
    """Control signals and side effects attached to an event."""

    escalate: bool = False
    transfer_to: str | None = None
    state_delta: Mapping[str, Any] = field(default_factory=dict)
    compaction: EventCompaction | None = None
    custom_actions: Mapping[str, Any] = field(default_factory=dict)
    skip_summarization: bool = False

    def __post_init__(self):
        # Read-only views over private copies; nested values are not frozen.
        object.__setattr__(self, "state_delta", MappingProxyType(dict(self.state_delta)))
        object.__setattr__(self, "custom_actions", MappingProxyType(dict(self.custom_actions)))

    @property
    def is_empty(self) -> bool:
        return not (
            self.escalate
            or self.transfer_to
            or self.state_delta
            or self.compaction
            or self.custom_actions
            or self.skip_summarization
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "escalate": self.escalate,
            "transfer_to": self.transfer_to,
            "state_delta": dict(self.state_delta),
            "compaction": self.compaction.to_dict() if self.compaction else None,
            "custom_actions": dict(self.custom_actions),
            "skip_summarization": self.skip_summarization,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventActions":
        compaction = data.get("compaction")
        return cls(
            escalate=data.get("escalate", False),
            transfer_to=data.get("transfer_to"),
            state_delta=data.get("state_delta") or {},
            compaction=EventCompaction.from_dict(compaction) if compaction else None,
            custom_actions=data.get("custom_actions") or {},
            skip_summarization=data.get("skip_summarization", False),
        )


@dataclass(frozen=True)
class Event:
    """An immutable record of one step produced by an agent, tool or user."""

    author: str
    content: Content | None = None
    actions: EventActions = field(default_factory=EventActions)
    metadata: Mapping[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    partial: bool = False
    branch: str | None = None
    invocation_id: str | None = None
    id: str = field(default_factory=new_event_id)

    def __post_init__(self):
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def from_text(
        cls,
        author: str,
        text: str,
        role: str | None = "model",
        **kwargs: Any,
    ) -> "Event":
        """Create an event holding a single text part."""
        return cls(author=author, content=Content.from_text(text, role=role), **kwargs)

    @property
    def text(self) -> str:
        """Joined text of the content, empty if there is none."""
        return self.content.text if self.content else ""

    @property
    def is_compaction(self) -> bool:
        return self.actions.compaction is not None

    def get_function_calls(self) -> list[FunctionCall]:
        if not self.content:
            return []
        return [p.function_call for p in self.content.parts if p.function_call]

    def get_function_responses(self) -> list[FunctionResponse]:
        if not self.content:
            return []
        return [p.function_response for p in self.content.parts if p.function_response]

    def is_final_response(self) -> bool:
        """Whether this event is a complete answer meant for the end user."""
        if self.actions.skip_summarization:
            return True
        return (
            not self.partial
            and not self.get_function_calls()
            and not self.get_function_responses()
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dict for storage."""
        return {
            "id": self.id,
            "author": self.author,
            "content": self.content.to_dict() if self.content else None,
            "actions": self.actions.to_dict(),
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp,
            "partial": self.partial,
            "branch": self.branch,
            "invocation_id": self.invocation_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Event":
        content = data.get("content")
        return cls(
            id=data.get("id") or new_event_id(),
            author=data["author"],
            content=Content.from_dict(content) if content else None,
            actions=EventActions.from_dict(data.get("actions") or {}),
            metadata=data.get("metadata") or {},
            timestamp=data.get("timestamp", 0.0),
            partial=data.get("partial", False),
            branch=data.get("branch"),
            invocation_id=data.get("invocation_id"),
        )
