"""
Tests for tools module.
"""

from typing import Any

import pytest

from pyadk.events import Event, EventActions
from pyadk.tools import (
    BaseTool,
    Tool,
    ToolContext,
    ToolParameter,
    ToolRegistry,
    ToolResult,
    create_workflow_tools,
)
from helpers import make_context


class EchoTool(BaseTool):
    """Class-based tool used in tests."""

    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echo the given text"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"text": {"type": "string", "description": "Text to echo"}},
            "required": ["text"],
        }

    async def execute(self, tool_context: ToolContext | None = None, **kwargs: Any) -> ToolResult:
        return ToolResult(success=True, output=kwargs["text"])


async def failing_handler(**kwargs) -> ToolResult:
    raise RuntimeError("kaboom")


def test_tool_result_success():
    """Test successful tool result."""
    result = ToolResult(success=True, output="Test output", data={"key": "value"})

    assert result.success is True
    assert result.output == "Test output"
    assert result.error is None
    assert result.to_response() == {"result": "Test output", "data": {"key": "value"}}


def test_tool_result_failure():
    """Test failed tool result."""
    result = ToolResult(success=False, output="", error="Something went wrong")

    assert result.success is False
    assert result.to_response() == {"error": "Something went wrong"}


def test_tool_parameters_schema():
    """Test converting parameters to JSON Schema."""
    tool = Tool(
        name="search",
        description="Search things",
        parameters=[
            ToolParameter(name="query", param_type="string", description="Query"),
            ToolParameter(name="limit", param_type="integer", description="Max", required=False, default=5),
            ToolParameter(name="mode", param_type="string", description="Mode", required=False, enum=["a", "b"]),
        ],
        handler=failing_handler,
    )

    schema = tool.get_parameters_schema()

    assert schema["required"] == ["query"]
    assert schema["properties"]["limit"]["default"] == 5
    assert schema["properties"]["mode"]["enum"] == ["a", "b"]


def test_base_tool_to_definition():
    """Test converting a class-based tool to an LLM definition."""
    definition = EchoTool().to_definition()

    assert definition["name"] == "echo"
    assert "text" in definition["parameters"]["properties"]


def test_registry_register_and_definitions():
    """Test registering tools and listing their definitions."""
    registry = ToolRegistry([EchoTool()])
    registry.register(Tool(name="noop", description="Nothing", parameters=[], handler=failing_handler))

    assert registry.list_tools() == ["echo", "noop"]
    assert "echo" in registry
    assert [d.name for d in registry.get_definitions()] == ["echo", "noop"]

    registry.unregister("noop")
    assert len(registry) == 1
    assert registry.get("noop") is None


@pytest.mark.asyncio
async def test_registry_execute():
    """Test executing a registered tool."""
    registry = ToolRegistry([EchoTool()])

    result = await registry.execute("echo", {"text": "hi"})

    assert result.success is True
    assert result.output == "hi"


@pytest.mark.asyncio
async def test_registry_unknown_tool():
    """Test executing a tool that is not registered."""
    result = await ToolRegistry().execute("nope", {})

    assert result.success is False
    assert result.error == "Tool 'nope' not found"


@pytest.mark.asyncio
async def test_registry_tool_exception_becomes_failure():
    """Test that a raising tool yields an unsuccessful result."""
    registry = ToolRegistry([Tool(name="bad", description="Fails", parameters=[], handler=failing_handler)])

    result = await registry.execute("bad", {})

    assert result.success is False
    assert result.error == "kaboom"


def test_tool_context_state_view():
    """Test that pending writes are visible through the context only."""
    ctx = make_context()
    ctx.session.state["count"] = 1
    tool_context = ToolContext(ctx, agent_name="agent")

    tool_context.set_state("count", 2)

    assert tool_context.get_state("count") == 2
    assert ctx.session.state["count"] == 1
    assert tool_context.to_actions() == EventActions(state_delta={"count": 2})


@pytest.mark.asyncio
async def test_workflow_tools_set_actions():
    """Test that transfer and exit_loop record their control actions."""
    transfer, exit_loop = create_workflow_tools()
    ctx = make_context()

    transfer_context = ToolContext(ctx)
    await transfer.execute(transfer_context, agent_name="billing")
    exit_context = ToolContext(ctx)
    await exit_loop.execute(exit_context)

    assert transfer.name == "transfer_to_agent"
    assert transfer_context.to_actions().transfer_to == "billing"
    assert exit_loop.name == "exit_loop"
    assert exit_context.to_actions().escalate is True
    assert Event.from_text("a", "x", actions=exit_context.to_actions()).is_final_response()
