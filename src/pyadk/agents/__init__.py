"""
Agents module - the agent tree and its execution context.

Includes:
- BaseAgent: tree structure, lookup and transfer resolution
- SequentialAgent / LoopAgent / ParallelAgent: workflow combinators
- LlmAgent: model-driven agent with tools
- InvocationContext / RunConfig: per-invocation environment and limits
"""

from .base import AGENT_NOT_FOUND, BaseAgent
from .context import InvocationContext, new_invocation_id
from .llm_agent import LlmAgent, inject_session_state, is_event_on_branch
from .loop import LoopAgent
from .parallel import ParallelAgent
from .run_config import RunConfig, StreamingMode
from .sequential import SequentialAgent

__all__ = [
    "AGENT_NOT_FOUND",
    "BaseAgent",
    "InvocationContext",
    "LlmAgent",
    "LoopAgent",
    "ParallelAgent",
    "RunConfig",
    "SequentialAgent",
    "StreamingMode",
    "inject_session_state",
    "is_event_on_branch",
    "new_invocation_id",
]
