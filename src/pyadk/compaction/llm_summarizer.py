"""
LLM-backed event summarizer.
"""

import uuid

import structlog

from ..events import Content, Event, EventActions, EventCompaction
from ..llm.base import BaseLLM, LLMMessage
from .base import BaseEventSummarizer

logger = structlog.get_logger()

DEFAULT_PROMPT_TEMPLATE = (
    "The following is a conversation history between a user and an AI agent. "
    "Please summarize the conversation, focusing on key information and decisions made, "
    "as well as any unresolved questions or tasks. The summary should be concise and "
    "capture the essence of the interaction.\n\n{conversation_history}"
)


class LlmEventSummarizer(BaseEventSummarizer):
    """Summarizes events by asking a model for a concise recap."""

    def __init__(self, llm: BaseLLM, prompt_template: str | None = None):
        self.llm = llm
        self.prompt_template = prompt_template or DEFAULT_PROMPT_TEMPLATE

    def format_events(self, events: list[Event]) -> str:
        """One ``author: text`` line per text part."""
        lines = []
        for event in events:
            if event.content is None:
                continue
            for part in event.content.parts:
                if part.text:
                    lines.append(f"{event.author}: {part.text}")
        return "\n".join(lines)

    async def maybe_summarize_events(self, events: list[Event]) -> Event | None:
        if not events:
            return None

        prompt = self.prompt_template.replace("{conversation_history}", self.format_events(events))

        try:
            response = await self.llm.generate(messages=[LLMMessage(role="user", content=prompt)])
        except Exception as e:
            logger.error("Event summarization failed", error=str(e), event_count=len(events))
            return None

        summary = response.content.strip()
        if not summary:
            return None

        return Event(
            author="user",
            actions=EventActions(
                compaction=EventCompaction(
                    start_timestamp=events[0].timestamp,
                    end_timestamp=events[-1].timestamp,
                    compacted_content=Content.from_text(summary, role="model"),
                ),
            ),
            invocation_id=str(uuid.uuid4()),
        )
