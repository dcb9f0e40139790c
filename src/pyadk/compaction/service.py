"""
Sliding-window compaction over a session's event history.

Works in invocation units:
1. Find where the most recent compaction ended
2. Collect the invocations that finished after that point
3. Once enough have accumulated, summarize them (plus a few earlier ones
   for overlap) into a single compaction event appended to the session
"""

import structlog

from ..errors import CompactionConfigError
from ..events import Event
from ..sessions import BaseSessionService, Session
from .base import EventsCompactionConfig

logger = structlog.get_logger()


def _last_compaction_end(events: list[Event]) -> float:
    for event in reversed(events):
        if event.is_compaction:
            return event.actions.compaction.end_timestamp
    return 0.0


def _invocation_latest_timestamps(events: list[Event]) -> dict[str, float]:
    """Latest timestamp per invocation id, in order of first appearance."""
    latest: dict[str, float] = {}
    for event in events:
        if event.is_compaction or not event.invocation_id:
            continue
        current = latest.get(event.invocation_id)
        if current is None or event.timestamp > current:
            latest[event.invocation_id] = event.timestamp
    return latest


def select_events_to_compact(events: list[Event], config: EventsCompactionConfig) -> list[Event]:
    """Events the next compaction should cover, or an empty list if it is not due."""
    last_end = _last_compaction_end(events)
    latest = _invocation_latest_timestamps(events)
    invocation_ids = list(latest.keys())

    new_invocations = [inv for inv in invocation_ids if latest[inv] > last_end]
    if len(new_invocations) < config.compaction_interval or not new_invocations:
        return []

    end_invocation = new_invocations[-1]
    start_index = max(0, invocation_ids.index(new_invocations[0]) - config.overlap_size)
    start_invocation = invocation_ids[start_index]

    first = next(i for i, e in enumerate(events) if e.invocation_id == start_invocation)
    last = max(i for i, e in enumerate(events) if e.invocation_id == end_invocation)

    return [event for event in events[first:last + 1] if not event.is_compaction]


async def run_compaction_for_sliding_window(
    session: Session,
    session_service: BaseSessionService,
    config: EventsCompactionConfig | None,
) -> Event | None:
    """Compact the session's history when enough new invocations accumulated.

    Returns the appended compaction event, or None when nothing was done.
    Raises CompactionConfigError if compaction is due but no summarizer is set.
    """
    if config is None or not config.enabled:
        return None

    to_compact = select_events_to_compact(session.events, config)
    if not to_compact:
        return None

    if config.summarizer is None:
        raise CompactionConfigError("Compaction is due but no summarizer is configured")

    logger.info(
        "Compacting session events",
        session_id=session.id,
        event_count=len(to_compact),
        start_timestamp=to_compact[0].timestamp,
        end_timestamp=to_compact[-1].timestamp,
    )

    compaction_event = await config.summarizer.maybe_summarize_events(to_compact)
    if compaction_event is None:
        logger.debug("Summarizer produced no compaction event", session_id=session.id)
        return None

    await session_service.append_event(session, compaction_event)
    return compaction_event
