"""
Tool registry for managing available tools.
"""

from typing import Any, Union

import structlog

from ..llm.base import ToolDefinition
from .base import BaseTool, Tool, ToolResult
from .context import ToolContext

logger = structlog.get_logger()


class ToolRegistry:
    """Registry for managing tools. Each LlmAgent owns one."""

    def __init__(self, tools: list[Union[BaseTool, Tool]] | None = None):
        self._tools: dict[str, Union[BaseTool, Tool]] = {}
        for tool in tools or []:
            self.register(tool)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, tool: Union[BaseTool, Tool]) -> None:
        """Register a tool."""
        self._tools[tool.name] = tool
        logger.debug("Tool registered", tool_name=tool.name)

    def unregister(self, name: str) -> None:
        """Unregister a tool."""
        if name in self._tools:
            del self._tools[name]
            logger.debug("Tool unregistered", tool_name=name)

    def get(self, name: str) -> Union[BaseTool, Tool, None]:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[str]:
        """List all registered tool names."""
        return list(self._tools.keys())

    def get_definitions(self) -> list[ToolDefinition]:
        """Get all tool definitions for LLM."""
        definitions = []
        for tool in self._tools.values():
            if isinstance(tool, Tool):
                definitions.append(ToolDefinition(
                    name=tool.name,
                    description=tool.description,
                    parameters=tool.get_parameters_schema(),
                ))
            else:
                definitions.append(ToolDefinition(
                    name=tool.name,
                    description=tool.description,
                    parameters=tool.parameters,
                ))
        return definitions

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        tool_context: ToolContext | None = None,
    ) -> ToolResult:
        """Execute a tool by name. Failures come back as unsuccessful results."""
        tool = self.get(name)
        if tool is None:
            return ToolResult(
                success=False,
                output="",
                error=f"Tool '{name}' not found",
            )

        try:
            logger.info("Executing tool", tool_name=name, arguments=arguments)
            result = await tool.execute(tool_context, **arguments)
            logger.info("Tool executed", tool_name=name, success=result.success)
            return result
        except Exception as e:
            logger.error("Tool execution error", tool_name=name, error=str(e))
            return ToolResult(
                success=False,
                output="",
                error=str(e),
            )
