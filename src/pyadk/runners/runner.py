"""
Runner - drives one agent tree against a session store.

For each user turn the Runner:
1. Gets or creates the session
2. Records the user message as an event
3. Iterates the root agent, persisting every complete event before
   handing it to the caller
4. Compacts the session history when compaction is configured
"""

import asyncio
import dataclasses
from contextlib import aclosing
from typing import Any, AsyncGenerator

import structlog

from ..agents import BaseAgent, InvocationContext, RunConfig
from ..compaction import run_compaction_for_sliding_window
from ..errors import RewindIndexError, SessionNotFoundError
from ..events import Content, Event
from ..sessions import BaseSessionService, InMemorySessionService, Session

logger = structlog.get_logger()


def _to_content(message: str | Content | None) -> Content | None:
    if message is None:
        return None
    if isinstance(message, str):
        return Content.from_text(message, role="user")
    if message.role is None:
        return dataclasses.replace(message, role="user")
    return message


class Runner:
    """Runs an agent for an app, persisting its events to a session store."""

    def __init__(
        self,
        agent: BaseAgent,
        app_name: str,
        session_service: BaseSessionService,
        artifact_service: Any = None,
        memory_service: Any = None,
        run_config: RunConfig | None = None,
    ):
        if agent is None:
            raise ValueError("agent is required")
        if not app_name:
            raise ValueError("app_name is required")
        if session_service is None:
            raise ValueError("session_service is required")

        self.agent = agent
        self.app_name = app_name
        self.session_service = session_service
        self.artifact_service = artifact_service
        self.memory_service = memory_service
        self.run_config = run_config or RunConfig()

    async def _get_or_create_session(
        self,
        user_id: str,
        session_id: str,
        state: dict[str, Any] | None,
    ) -> Session:
        session = await self.session_service.get_session(self.app_name, user_id, session_id)
        if session is None:
            session = await self.session_service.create_session(
                self.app_name, user_id, state=state, session_id=session_id
            )
        return session

    async def run_async(
        self,
        user_id: str,
        session_id: str,
        new_message: str | Content | None = None,
        state: dict[str, Any] | None = None,
        run_config: RunConfig | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncGenerator[Event, None]:
        """Run one user turn and yield every event the agent tree produces.

        ``state`` only seeds a session created by this call.
        """
        session = await self._get_or_create_session(user_id, session_id, state)

        async with aclosing(self._run_invocation(session, new_message, run_config, cancel_event)) as events:
            async for event in events:
                yield event

    async def rewind_async(
        self,
        user_id: str,
        session_id: str,
        from_index: int,
        new_message: str | Content | None = None,
        run_config: RunConfig | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncGenerator[Event, None]:
        """Replay stored events up to ``from_index``, then continue live.

        Replayed events are not persisted again.
        """
        session = await self.session_service.get_session(self.app_name, user_id, session_id)
        if session is None:
            raise SessionNotFoundError(self.app_name, user_id, session_id)

        if from_index < 0 or from_index >= len(session.events):
            raise RewindIndexError(
                f"Event index {from_index} out of range (0-{len(session.events) - 1})"
            )

        logger.info("Rewinding session", session_id=session_id, from_index=from_index)

        for event in session.events[:from_index + 1]:
            yield event

        async with aclosing(self._run_invocation(session, new_message, run_config, cancel_event)) as events:
            async for event in events:
                yield event

    async def _run_invocation(
        self,
        session: Session,
        new_message: str | Content | None,
        run_config: RunConfig | None,
        cancel_event: asyncio.Event | None,
    ) -> AsyncGenerator[Event, None]:
        run_config = run_config or self.run_config
        ctx = InvocationContext(
            session=session,
            user_content=_to_content(new_message),
            run_config=run_config,
            artifact_service=self.artifact_service,
            memory_service=self.memory_service,
            session_service=self.session_service,
            agent=self.agent,
            cancel_event=cancel_event or asyncio.Event(),
        )

        log = logger.bind(
            app_name=self.app_name,
            user_id=session.user_id,
            session_id=session.id,
            invocation_id=ctx.invocation_id,
        )
        log.info("Invocation started", agent=self.agent.name)

        ctx.raise_if_cancelled()
        if ctx.user_content is not None:
            await self.session_service.append_event(
                session,
                Event(author="user", content=ctx.user_content, invocation_id=ctx.invocation_id),
            )

        event_count = 0
        async with aclosing(self.agent.run_async(ctx)) as events:
            async for event in events:
                ctx.raise_if_cancelled()

                if event.invocation_id is None:
                    event = dataclasses.replace(event, invocation_id=ctx.invocation_id)

                if not event.partial:
                    await self.session_service.append_event(session, event)
                    event_count += 1

                yield event

        ctx.raise_if_cancelled()

        compaction = run_config.events_compaction_config
        if compaction is not None and compaction.enabled:
            compaction_event = await run_compaction_for_sliding_window(session, self.session_service, compaction)
            if compaction_event is not None:
                log.info("Session compacted", compaction_event_id=compaction_event.id)

        log.info("Invocation finished", event_count=event_count)


class InMemoryRunner(Runner):
    """Runner wired to an InMemorySessionService, for tests and local use."""

    def __init__(
        self,
        agent: BaseAgent,
        app_name: str = "InMemoryRunner",
        run_config: RunConfig | None = None,
    ):
        super().__init__(
            agent=agent,
            app_name=app_name,
            session_service=InMemorySessionService(),
            run_config=run_config,
        )
