"""
Built-in workflow tools.

Provides tools for the model to steer the agent tree:
- transfer_to_agent: hand the conversation to another agent
- exit_loop: end the enclosing LoopAgent
"""

from .base import Tool, ToolParameter, ToolResult
from .context import ToolContext

TRANSFER_TO_AGENT = "transfer_to_agent"
EXIT_LOOP = "exit_loop"


async def transfer_to_agent(tool_context: ToolContext, agent_name: str) -> ToolResult:
    """Request a transfer to the named agent."""
    tool_context.transfer_to = agent_name
    return ToolResult(success=True, output=f"Transferring to agent '{agent_name}'")


async def exit_loop(tool_context: ToolContext) -> ToolResult:
    """Escalate so the enclosing loop stops."""
    tool_context.escalate = True
    tool_context.skip_summarization = True
    return ToolResult(success=True, output="Exiting loop")


def create_transfer_tool(agent_names: list[str] | None = None) -> Tool:
    """Create the transfer tool, optionally restricted to known agent names."""
    return Tool(
        name=TRANSFER_TO_AGENT,
        description=(
            "Transfer the conversation to another agent that is better suited "
            "to answer. Use the exact agent name."
        ),
        parameters=[
            ToolParameter(
                name="agent_name",
                param_type="string",
                description="Name of the agent to transfer to",
                required=True,
                enum=agent_names or None,
            ),
        ],
        handler=transfer_to_agent,
        takes_context=True,
    )


def create_exit_loop_tool() -> Tool:
    return Tool(
        name=EXIT_LOOP,
        description="Call this only when the task is complete and the loop should stop.",
        parameters=[],
        handler=exit_loop,
        takes_context=True,
    )


def create_workflow_tools() -> list[Tool]:
    """Create all workflow tools."""
    return [create_transfer_tool(), create_exit_loop_tool()]
