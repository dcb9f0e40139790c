"""
Events module - the unit of output flowing through the engine.

Includes:
- Event: immutable record of one conversation/execution step
- EventActions: escalate, transfer, state delta, compaction signals
- Content / Part: role plus ordered text, reasoning, function and binary parts
"""

from .content import Content, FunctionCall, FunctionResponse, Part
from .event import (
    APP_PREFIX,
    TEMP_PREFIX,
    USER_PREFIX,
    Event,
    EventActions,
    EventCompaction,
)

__all__ = [
    "APP_PREFIX",
    "TEMP_PREFIX",
    "USER_PREFIX",
    "Content",
    "Event",
    "EventActions",
    "EventCompaction",
    "FunctionCall",
    "FunctionResponse",
    "Part",
]
