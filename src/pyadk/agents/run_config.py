"""
Per-invocation run configuration.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..compaction.base import EventsCompactionConfig


class StreamingMode(str, Enum):
    """How model output is delivered to the caller."""

    NONE = "none"
    SSE = "sse"
    BIDI = "bidi"


@dataclass
class RunConfig:
    """Limits and switches for one Runner invocation.

    ``max_llm_calls`` <= 0 disables the model-call budget.
    """

    max_llm_calls: int = 500
    streaming_mode: StreamingMode = StreamingMode.NONE
    events_compaction_config: "EventsCompactionConfig | None" = None
