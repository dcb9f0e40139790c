"""
Agent abstraction.

Every agent produces a lazy stream of events for an invocation context.
BaseAgent owns the agent tree (weak parent links, ordered children) and
resolves transfer requests raised by the events flowing through it.
"""

import weakref
from abc import ABC, abstractmethod
from contextlib import aclosing
from typing import AsyncGenerator, Iterable

import structlog

from ..events import Event
from .context import InvocationContext

logger = structlog.get_logger()

AGENT_NOT_FOUND = "AGENT_NOT_FOUND"


class BaseAgent(ABC):
    """Base class for all agents."""

    def __init__(
        self,
        name: str,
        description: str = "",
        sub_agents: Iterable["BaseAgent"] = (),
    ):
        if not name or not name.strip():
            raise ValueError("Agent name must be a non-empty string")
        if name == "user":
            raise ValueError("Agent name 'user' is reserved for end-user input")

        self.name = name
        self.description = description
        self.sub_agents: list[BaseAgent] = []
        self._parent_ref: weakref.ReferenceType[BaseAgent] | None = None

        self.add_sub_agents(sub_agents)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @property
    def parent_agent(self) -> "BaseAgent | None":
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def root_agent(self) -> "BaseAgent":
        agent = self
        while agent.parent_agent is not None:
            agent = agent.parent_agent
        return agent

    def add_sub_agent(self, agent: "BaseAgent") -> None:
        """Append a child and point its parent link back at this agent."""
        if agent is self:
            raise ValueError(f"Agent '{self.name}' cannot be its own sub-agent")

        ancestor = self.parent_agent
        while ancestor is not None:
            if ancestor is agent:
                raise ValueError(
                    f"Agent '{agent.name}' is an ancestor of '{self.name}' and cannot be its sub-agent"
                )
            ancestor = ancestor.parent_agent

        parent = agent.parent_agent
        if parent is not None:
            raise ValueError(
                f"Agent '{agent.name}' already has parent '{parent.name}' "
                f"and cannot be added to '{self.name}'"
            )

        agent._parent_ref = weakref.ref(self)
        self.sub_agents.append(agent)

    def add_sub_agents(self, agents: Iterable["BaseAgent"]) -> None:
        for agent in agents:
            self.add_sub_agent(agent)

    def find_agent(self, name: str) -> "BaseAgent | None":
        """Pre-order search of this agent and its descendants."""
        if self.name == name:
            return self
        return self.find_sub_agent(name)

    def find_sub_agent(self, name: str) -> "BaseAgent | None":
        """Search descendants only, children in declaration order."""
        for child in self.sub_agents:
            found = child.find_agent(name)
            if found is not None:
                return found
        return None

    async def run_async(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        """Run this agent and yield its events.

        Each event is yielded before it is inspected. When it asks for a
        transfer, this agent's stream stops and the named agent, looked up
        in this agent's subtree, continues the run with the same context.
        """
        logger.debug("Agent run started", agent=self.name, branch=ctx.branch)

        current: BaseAgent = self
        stream = self._run_async_impl(ctx)

        while True:
            transfer_to = None
            async with aclosing(stream) as events:
                async for event in events:
                    yield event
                    if event.actions.transfer_to:
                        transfer_to = event.actions.transfer_to
                        break

            if transfer_to is None:
                return

            target = self.find_agent(transfer_to)
            if target is None:
                logger.warning(
                    "Transfer target not found",
                    agent=self.name,
                    requested_by=current.name,
                    target=transfer_to,
                )
                yield Event.from_text(
                    author=self.name,
                    text=f"Error: Cannot transfer to agent '{transfer_to}' - agent not found in hierarchy.",
                    metadata={"error_code": AGENT_NOT_FOUND},
                    invocation_id=ctx.invocation_id,
                    branch=ctx.branch,
                )
                return

            logger.info("Transferring to agent", source=current.name, target=target.name)
            current = target
            stream = target.run_async(ctx)

    @abstractmethod
    def _run_async_impl(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        """Produce this agent's own events. Implemented as an async generator."""
