"""
Shared test doubles: scripted agents and a fake LLM.
"""

import asyncio
from typing import Any, AsyncIterator

from pyadk.agents import BaseAgent, InvocationContext
from pyadk.events import Event, EventActions
from pyadk.llm.base import BaseLLM, LLMMessage, LLMResponse, ToolDefinition
from pyadk.sessions import Session


class ScriptedAgent(BaseAgent):
    """Emits a fixed script of events and records each run.

    Script items are either plain text or ``(text, EventActions)`` pairs.
    """

    def __init__(
        self,
        name: str,
        script: tuple = ("ok",),
        run_log: list | None = None,
        error: Exception | None = None,
        sub_agents: tuple = (),
    ):
        super().__init__(name, sub_agents=sub_agents)
        self.script = script
        self.run_log = run_log if run_log is not None else []
        self.error = error
        self.branches: list[str] = []

    async def _run_async_impl(self, ctx: InvocationContext):
        self.run_log.append(self.name)
        self.branches.append(ctx.branch)
        await asyncio.sleep(0)

        if self.error is not None:
            raise self.error

        for item in self.script:
            text, actions = item if isinstance(item, tuple) else (item, EventActions())
            yield Event.from_text(
                author=self.name,
                text=text,
                actions=actions,
                invocation_id=ctx.invocation_id,
                branch=ctx.branch,
            )


class BlockingAgent(BaseAgent):
    """Emits one event, then waits forever until cancelled."""

    def __init__(self, name: str):
        super().__init__(name)
        self.cancelled = False

    async def _run_async_impl(self, ctx: InvocationContext):
        yield Event.from_text(self.name, "started", invocation_id=ctx.invocation_id, branch=ctx.branch)
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise


class FakeLLM(BaseLLM):
    """Returns queued responses and records every call."""

    def __init__(self, responses: list[LLMResponse] | None = None, default: LLMResponse | None = None):
        super().__init__(api_key="test", model="fake-model")
        self.responses = list(responses or [])
        self.default = default or LLMResponse(content="done")
        self.calls: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    def _next(self) -> LLMResponse:
        return self.responses.pop(0) if self.responses else self.default

    async def generate(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        self.calls.append({"messages": list(messages), "tools": tools, "system_prompt": system_prompt})
        return self._next()

    async def stream(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
        system_prompt: str | None = None,
    ) -> AsyncIterator[LLMResponse]:
        self.calls.append({"messages": list(messages), "tools": tools, "system_prompt": system_prompt})
        response = self._next()
        words = response.content.split(" ")
        for i, word in enumerate(words):
            yield LLMResponse(content=word if i == 0 else " " + word, partial=True)
        yield response


def make_context(session: Session | None = None, **kwargs: Any) -> InvocationContext:
    session = session or Session(app_name="test-app", user_id="user-1", id="session-1")
    return InvocationContext(session=session, **kwargs)


async def collect(stream) -> list[Event]:
    return [event async for event in stream]
