"""
LoopAgent - repeats its children until escalation or an iteration cap.
"""

from contextlib import aclosing
from typing import AsyncGenerator, Iterable

import structlog

from ..events import Event
from .base import BaseAgent
from .context import InvocationContext

logger = structlog.get_logger()


class LoopAgent(BaseAgent):
    """Runs the whole sub-agent sequence repeatedly.

    Stops after ``max_iterations`` passes (never, if None) or as soon as any
    event escalates.
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        sub_agents: Iterable[BaseAgent] = (),
        max_iterations: int | None = None,
    ):
        super().__init__(name, description, sub_agents)
        self.max_iterations = max_iterations

    async def _run_async_impl(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        if not self.sub_agents:
            return

        iteration = 0
        while self.max_iterations is None or iteration < self.max_iterations:
            ctx.raise_if_cancelled()
            iteration += 1

            for child in self.sub_agents:
                ctx.raise_if_cancelled()
                async with aclosing(child.run_async(ctx)) as events:
                    async for event in events:
                        yield event
                        if event.actions.escalate:
                            logger.debug("Loop escalated", agent=self.name, iteration=iteration, by=event.author)
                            return
