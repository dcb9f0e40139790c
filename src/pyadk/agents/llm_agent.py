"""
LlmAgent - an agent whose turns are decided by a language model.

Each run:
1. Renders the instruction against session state
2. Rebuilds model history from the session events visible on this branch
3. Calls the model (streaming partial events in SSE mode)
4. Executes requested tools and feeds their results back until the model
   answers with text, transfers, or escalates
"""

import inspect
import json
import re
import uuid
from contextlib import aclosing
from typing import Any, AsyncGenerator, Awaitable, Callable, Iterable, Literal, Union

import structlog

from ..errors import StateTemplateError
from ..events import (
    APP_PREFIX,
    TEMP_PREFIX,
    USER_PREFIX,
    Content,
    Event,
    EventActions,
    FunctionCall,
    FunctionResponse,
    Part,
)
from ..llm.base import BaseLLM, LLMMessage, LLMResponse, ToolCall, ToolDefinition
from ..tools import BaseTool, Tool, ToolContext, ToolRegistry
from ..tools.builtin import TRANSFER_TO_AGENT, create_transfer_tool
from .base import BaseAgent
from .context import InvocationContext
from .run_config import StreamingMode

logger = structlog.get_logger()

SUMMARY_PREFIX = "[Previous conversation summary]: "

BeforeModelCallback = Callable[
    [InvocationContext, list[LLMMessage]],
    Union[LLMResponse, None, Awaitable[LLMResponse | None]],
]
AfterModelCallback = Callable[
    [InvocationContext, LLMResponse],
    Union[LLMResponse, None, Awaitable[LLMResponse | None]],
]

_TEMPLATE_PATTERN = re.compile(r"\{([^{}]+)\}")


def _is_state_name(name: str) -> bool:
    for prefix in (APP_PREFIX, USER_PREFIX, TEMP_PREFIX):
        if name.startswith(prefix):
            name = name[len(prefix):]
            break
    return name.isidentifier()


def inject_session_state(template: str, state: dict[str, Any]) -> str:
    """Replace ``{key}`` and ``{key?}`` placeholders with state values.

    A missing required key raises StateTemplateError; a missing optional key
    renders as an empty string. Braces around anything that is not a valid
    state name are left untouched.
    """

    def replace(match: re.Match) -> str:
        name = match.group(1).strip()
        optional = name.endswith("?")
        if optional:
            name = name[:-1]

        if not _is_state_name(name):
            return match.group(0)

        if name in state:
            return str(state[name])
        if optional:
            return ""
        raise StateTemplateError(f"Context variable not found: `{name}`.")

    return _TEMPLATE_PATTERN.sub(replace, template)


def is_event_on_branch(event_branch: str | None, branch: str | None) -> bool:
    """Whether an event on ``event_branch`` is visible from ``branch``.

    Events are visible on their own branch and on every branch forked from it.
    """
    if not event_branch or not branch:
        return True
    return branch == event_branch or branch.startswith(event_branch + ".")


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _to_json(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


class LlmAgent(BaseAgent):
    """Agent driven by a BaseLLM with optional tools and sub-agents."""

    def __init__(
        self,
        name: str,
        llm: BaseLLM,
        instruction: str = "",
        description: str = "",
        tools: Iterable[Union[BaseTool, Tool]] = (),
        sub_agents: Iterable[BaseAgent] = (),
        output_key: str | None = None,
        include_contents: Literal["default", "none"] = "default",
        enable_transfer: bool = True,
        before_model_callback: BeforeModelCallback | None = None,
        after_model_callback: AfterModelCallback | None = None,
    ):
        super().__init__(name, description, sub_agents)
        self.llm = llm
        self.instruction = instruction
        self.tools = list(tools)
        self.output_key = output_key
        self.include_contents = include_contents
        self.enable_transfer = enable_transfer
        self.before_model_callback = before_model_callback
        self.after_model_callback = after_model_callback

    def build_tool_registry(self) -> ToolRegistry:
        """Tools offered to the model, including transfer when sub-agents exist."""
        registry = ToolRegistry(self.tools)
        if self.enable_transfer and self.sub_agents and TRANSFER_TO_AGENT not in registry:
            registry.register(create_transfer_tool([agent.name for agent in self.sub_agents]))
        return registry

    def build_system_prompt(self, ctx: InvocationContext) -> str | None:
        if not self.instruction:
            return None
        return inject_session_state(self.instruction, ctx.session.state)

    def build_messages(self, ctx: InvocationContext, own_events: list[Event] | None = None) -> list[LLMMessage]:
        """Rebuild model history for this agent from session events."""
        own_events = own_events or []

        if self.include_contents == "none":
            events: list[Event] = []
            if ctx.user_content is not None:
                events.append(Event(author="user", content=ctx.user_content, invocation_id=ctx.invocation_id))
        else:
            events = [
                event for event in ctx.session.events
                if not event.partial and is_event_on_branch(event.branch, ctx.branch)
            ]

        seen = {event.id for event in events}
        events.extend(event for event in own_events if event.id not in seen)

        messages: list[LLMMessage] = []
        for event in self._apply_compaction(events):
            if event.is_compaction:
                summary = event.actions.compaction.compacted_content.text
                messages.append(LLMMessage(role="user", content=SUMMARY_PREFIX + summary))
            else:
                messages.extend(self._event_to_messages(event))
        return messages

    def _apply_compaction(self, events: list[Event]) -> list[Event]:
        """Replace events covered by a compaction with the compaction event itself.

        A compaction whose range lies inside a later, wider one is dropped.
        """
        compactions = [event for event in events if event.is_compaction]
        if not compactions:
            return events

        def span(event: Event) -> tuple[float, float]:
            return event.actions.compaction.start_timestamp, event.actions.compaction.end_timestamp

        active = [
            c for c in compactions
            if not any(
                other is not c
                and span(other)[0] <= span(c)[0]
                and span(c)[1] <= span(other)[1]
                and span(other) != span(c)
                for other in compactions
            )
        ]
        active_ids = {c.id for c in active}

        result: list[Event] = []
        emitted: set[str] = set()
        for event in events:
            if event.is_compaction:
                if event.id in active_ids and event.id not in emitted:
                    emitted.add(event.id)
                    result.append(event)
                continue

            covering = [c for c in active if span(c)[0] <= event.timestamp <= span(c)[1]]
            if not covering:
                result.append(event)
                continue

            newest = max(covering, key=lambda c: span(c)[1])
            if newest.id not in emitted:
                emitted.add(newest.id)
                result.append(newest)

        return result

    def _event_to_messages(self, event: Event) -> list[LLMMessage]:
        if event.content is None:
            return []

        calls = event.get_function_calls()
        responses = event.get_function_responses()
        text = event.text

        if event.author == "user":
            return [LLMMessage(role="user", content=text)] if text else []

        if event.author != self.name:
            return self._foreign_event_to_messages(event)

        if calls:
            return [LLMMessage(
                role="assistant",
                content=text,
                tool_calls=[ToolCall(id=fc.id or "", name=fc.name, arguments=dict(fc.args)) for fc in calls],
            )]

        if responses:
            return [
                LLMMessage(
                    role="tool",
                    content=_to_json(fr.response if fr.error is None else {"error": fr.error}),
                    tool_call_id=fr.id,
                    name=fr.name,
                )
                for fr in responses
            ]

        return [LLMMessage(role="assistant", content=text)] if text else []

    def _foreign_event_to_messages(self, event: Event) -> list[LLMMessage]:
        """Present another agent's output as user-side context."""
        lines = []
        for part in event.content.parts:
            if part.text:
                lines.append(f"For context: [{event.author}] said: {part.text}")
            elif part.function_call:
                fc = part.function_call
                lines.append(
                    f"For context: [{event.author}] called tool `{fc.name}` "
                    f"with parameters: {_to_json(fc.args)}"
                )
            elif part.function_response:
                fr = part.function_response
                lines.append(
                    f"For context: [{event.author}] `{fr.name}` tool returned result: "
                    f"{_to_json(fr.response)}"
                )
        if not lines:
            return []
        return [LLMMessage(role="user", content="\n".join(lines))]

    async def _call_model(
        self,
        ctx: InvocationContext,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None,
        system_prompt: str | None,
    ) -> AsyncGenerator[Event | LLMResponse, None]:
        """Yield partial events while streaming, then the final LLMResponse."""
        if self.before_model_callback is not None:
            override = await _maybe_await(self.before_model_callback(ctx, messages))
            if override is not None:
                yield override
                return

        ctx.increment_and_enforce_llm_calls_limit()

        response: LLMResponse | None = None
        if ctx.run_config.streaming_mode == StreamingMode.SSE:
            streamed = ""
            async for chunk in self.llm.stream(messages=messages, tools=tools, system_prompt=system_prompt):
                if chunk.partial:
                    if chunk.content:
                        streamed += chunk.content
                        yield Event(
                            author=self.name,
                            content=Content.from_text(chunk.content, role="model"),
                            partial=True,
                            invocation_id=ctx.invocation_id,
                            branch=ctx.branch,
                        )
                else:
                    response = chunk
            if response is None:
                response = LLMResponse(content=streamed)
        else:
            response = await self.llm.generate(messages=messages, tools=tools, system_prompt=system_prompt)

        logger.debug(
            "Model responded",
            agent=self.name,
            tool_calls=len(response.tool_calls),
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )

        if self.after_model_callback is not None:
            replacement = await _maybe_await(self.after_model_callback(ctx, response))
            if replacement is not None:
                response = replacement

        yield response

    async def _run_async_impl(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        registry = self.build_tool_registry()
        tools = registry.get_definitions() or None
        own_events: list[Event] = []

        while True:
            ctx.raise_if_cancelled()

            system_prompt = self.build_system_prompt(ctx)
            messages = self.build_messages(ctx, own_events)

            response: LLMResponse | None = None
            async with aclosing(self._call_model(ctx, messages, tools, system_prompt)) as stream:
                async for item in stream:
                    if isinstance(item, Event):
                        yield item
                    else:
                        response = item

            if not response.tool_calls:
                state_delta = {self.output_key: response.content} if self.output_key else {}
                yield Event(
                    author=self.name,
                    content=Content.from_text(response.content, role="model"),
                    actions=EventActions(state_delta=state_delta),
                    invocation_id=ctx.invocation_id,
                    branch=ctx.branch,
                )
                return

            calls = [
                FunctionCall(name=tc.name, args=dict(tc.arguments), id=tc.id or f"call_{uuid.uuid4().hex[:12]}")
                for tc in response.tool_calls
            ]
            parts = [Part.from_text(response.content)] if response.content else []
            parts.extend(Part.from_function_call(fc) for fc in calls)

            call_event = Event(
                author=self.name,
                content=Content(parts=parts, role="model"),
                invocation_id=ctx.invocation_id,
                branch=ctx.branch,
            )
            own_events.append(call_event)
            yield call_event

            for fc in calls:
                ctx.raise_if_cancelled()

                tool_context = ToolContext(ctx, agent_name=self.name, function_call_id=fc.id)
                result = await registry.execute(fc.name, fc.args, tool_context)
                actions = tool_context.to_actions()

                response_event = Event(
                    author=self.name,
                    content=Content(
                        parts=[Part.from_function_response(FunctionResponse(
                            name=fc.name,
                            response=result.to_response(),
                            id=fc.id,
                            error=None if result.success else (result.error or "Tool execution failed"),
                        ))],
                        role="user",
                    ),
                    actions=actions,
                    invocation_id=ctx.invocation_id,
                    branch=ctx.branch,
                )
                own_events.append(response_event)
                yield response_event

                if actions.transfer_to or actions.escalate:
                    return
