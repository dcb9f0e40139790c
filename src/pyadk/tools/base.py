"""
Base classes for tools.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Coroutine

if TYPE_CHECKING:
    from .context import ToolContext


@dataclass
class ToolResult:
    """Result from a tool execution."""

    success: bool
    output: str = ""
    data: Any = None
    error: str | None = None

    def to_response(self) -> dict[str, Any]:
        """Payload placed in the function-response part."""
        if not self.success:
            return {"error": self.error or "Tool execution failed"}
        response: dict[str, Any] = {"result": self.output}
        if self.data is not None:
            response["data"] = self.data
        return response


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""

    name: str
    param_type: str  # string, integer, number, boolean, array, object
    description: str
    required: bool = True
    default: Any = None
    enum: list[str] | None = None


@dataclass
class Tool:
    """
    Simple tool wrapper that can be created from a function.

    This is an alternative to the class-based BaseTool for simpler tools.
    When ``takes_context`` is set the handler receives the ToolContext as its
    first positional argument.
    """

    name: str
    description: str
    parameters: list[ToolParameter]
    handler: Callable[..., Coroutine[Any, Any, ToolResult]]
    takes_context: bool = False

    def get_parameters_schema(self) -> dict[str, Any]:
        """Convert parameters to JSON Schema format."""
        properties = {}
        required = []

        for param in self.parameters:
            prop = {
                "type": param.param_type,
                "description": param.description,
            }
            if param.enum:
                prop["enum"] = param.enum
            if param.default is not None:
                prop["default"] = param.default

            properties[param.name] = prop

            if param.required:
                required.append(param.name)

        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }

    async def execute(self, tool_context: "ToolContext | None" = None, **kwargs: Any) -> ToolResult:
        """Execute the tool handler."""
        if self.takes_context:
            return await self.handler(tool_context, **kwargs)
        return await self.handler(**kwargs)


class BaseTool(ABC):
    """Base class for all tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Get the tool description."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """Get the tool parameters schema (JSON Schema)."""
        pass

    @abstractmethod
    async def execute(self, tool_context: "ToolContext | None" = None, **kwargs: Any) -> ToolResult:
        """Execute the tool with given arguments."""
        pass

    def to_definition(self) -> dict[str, Any]:
        """Convert to a tool definition for LLM."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }
