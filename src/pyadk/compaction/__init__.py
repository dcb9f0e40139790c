"""
Compaction module - sliding-window summarization of session history.
"""

from .base import BaseEventSummarizer, EventsCompactionConfig
from .llm_summarizer import DEFAULT_PROMPT_TEMPLATE, LlmEventSummarizer
from .service import run_compaction_for_sliding_window, select_events_to_compact

__all__ = [
    "BaseEventSummarizer",
    "DEFAULT_PROMPT_TEMPLATE",
    "EventsCompactionConfig",
    "LlmEventSummarizer",
    "run_compaction_for_sliding_window",
    "select_events_to_compact",
]
