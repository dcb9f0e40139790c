"""
Compaction configuration and the summarizer boundary.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..events import Event


class BaseEventSummarizer(ABC):
    """Turns a slice of events into one compaction event."""

    @abstractmethod
    async def maybe_summarize_events(self, events: list[Event]) -> Event | None:
        """Return a compaction event for ``events``, or None to skip this round."""
        pass


@dataclass
class EventsCompactionConfig:
    """Sliding-window compaction settings.

    Compaction runs once ``compaction_interval`` new invocations have
    accumulated since the last compaction; ``overlap_size`` earlier
    invocations are summarized again for continuity.
    """

    compaction_interval: int = 10
    overlap_size: int = 2
    summarizer: BaseEventSummarizer | None = None
    enabled: bool = True
