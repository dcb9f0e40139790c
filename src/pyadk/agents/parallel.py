"""
ParallelAgent - runs its children concurrently on separate branches.
"""

import asyncio
from contextlib import aclosing
from typing import AsyncGenerator

import structlog

from ..events import Event
from .base import BaseAgent
from .context import InvocationContext

logger = structlog.get_logger()

_DONE = object()


class ParallelAgent(BaseAgent):
    """Runs every sub-agent as its own task and merges their events.

    Child ``X`` under branch ``main`` runs on branch ``main.X``. Events are
    yielded in arrival order. A failing child is logged and does not stop
    its siblings.
    """

    async def _run_async_impl(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        if not self.sub_agents:
            return

        ctx.raise_if_cancelled()
        queue: asyncio.Queue = asyncio.Queue()

        async def run_child(child: BaseAgent, child_ctx: InvocationContext) -> None:
            try:
                async with aclosing(child.run_async(child_ctx)) as events:
                    async for event in events:
                        queue.put_nowait(event)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "Parallel sub-agent failed",
                    agent=self.name,
                    sub_agent=child.name,
                    branch=child_ctx.branch,
                )
            finally:
                queue.put_nowait(_DONE)

        tasks = [
            asyncio.create_task(
                run_child(child, ctx.with_branch(f"{ctx.branch}.{child.name}")),
                name=f"{self.name}.{child.name}",
            )
            for child in self.sub_agents
        ]

        remaining = len(tasks)
        cancel_waiter = asyncio.create_task(ctx.cancel_event.wait())
        getter: asyncio.Task | None = None
        try:
            while remaining:
                getter = asyncio.create_task(queue.get())
                await asyncio.wait({getter, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED)
                if not getter.done():
                    ctx.raise_if_cancelled()
                item = getter.result()
                getter = None

                if item is _DONE:
                    remaining -= 1
                    continue
                yield item
                ctx.raise_if_cancelled()
            ctx.raise_if_cancelled()
        finally:
            waiters = [cancel_waiter] if getter is None else [cancel_waiter, getter]
            for task in [*tasks, *waiters]:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, *waiters, return_exceptions=True)
