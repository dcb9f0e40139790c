"""
SequentialAgent - runs its children one after another.
"""

from contextlib import aclosing
from typing import AsyncGenerator

from ..events import Event
from .base import BaseAgent
from .context import InvocationContext


class SequentialAgent(BaseAgent):
    """Runs sub-agents in declaration order with a shared context.

    An escalating event is forwarded and ends the sequence.
    """

    async def _run_async_impl(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        for child in self.sub_agents:
            ctx.raise_if_cancelled()
            async with aclosing(child.run_async(ctx)) as events:
                async for event in events:
                    yield event
                    if event.actions.escalate:
                        return
