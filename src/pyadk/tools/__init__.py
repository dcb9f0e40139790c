"""
Tools module - functions a model can call from an LlmAgent.
"""

from .base import BaseTool, Tool, ToolParameter, ToolResult
from .builtin import (
    EXIT_LOOP,
    TRANSFER_TO_AGENT,
    create_exit_loop_tool,
    create_transfer_tool,
    create_workflow_tools,
)
from .context import ToolContext
from .registry import ToolRegistry

__all__ = [
    "BaseTool",
    "EXIT_LOOP",
    "TRANSFER_TO_AGENT",
    "Tool",
    "ToolContext",
    "ToolParameter",
    "ToolResult",
    "ToolRegistry",
    "create_exit_loop_tool",
    "create_transfer_tool",
    "create_workflow_tools",
]
