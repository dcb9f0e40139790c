"""
pyadk - Agent execution engine.

Compose agents into trees (sequential, loop, parallel, model-driven), run
them with a Runner against a session store, and keep long histories in
check with sliding-window compaction.
"""

__version__ = "0.1.0"

from .agents import (
    BaseAgent,
    InvocationContext,
    LlmAgent,
    LoopAgent,
    ParallelAgent,
    RunConfig,
    SequentialAgent,
    StreamingMode,
)
from .compaction import (
    BaseEventSummarizer,
    EventsCompactionConfig,
    LlmEventSummarizer,
    run_compaction_for_sliding_window,
)
from .errors import (
    AdkError,
    CompactionConfigError,
    LlmCallsLimitExceededError,
    RewindIndexError,
    SessionExistsError,
    SessionNotFoundError,
    StateTemplateError,
)
from .events import Content, Event, EventActions, EventCompaction, FunctionCall, FunctionResponse, Part
from .runners import InMemoryRunner, Runner
from .sessions import (
    BaseSessionService,
    DatabaseSessionService,
    GetSessionConfig,
    InMemorySessionService,
    Session,
)

__all__ = [
    "AdkError",
    "BaseAgent",
    "BaseEventSummarizer",
    "BaseSessionService",
    "CompactionConfigError",
    "Content",
    "DatabaseSessionService",
    "Event",
    "EventActions",
    "EventCompaction",
    "EventsCompactionConfig",
    "FunctionCall",
    "FunctionResponse",
    "GetSessionConfig",
    "InMemoryRunner",
    "InMemorySessionService",
    "InvocationContext",
    "LlmAgent",
    "LlmCallsLimitExceededError",
    "LlmEventSummarizer",
    "LoopAgent",
    "ParallelAgent",
    "Part",
    "RewindIndexError",
    "RunConfig",
    "Runner",
    "SequentialAgent",
    "Session",
    "SessionExistsError",
    "SessionNotFoundError",
    "StateTemplateError",
    "StreamingMode",
    "run_compaction_for_sliding_window",
]
