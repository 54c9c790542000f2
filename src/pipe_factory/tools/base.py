"""
Base Tool Infrastructure

Provides the foundation for agent-callable tools:
- tool decorator attaching name, description and JSON schema to a method
- ToolResult for standardized responses
- ToolSet for per-actor discovery and dispatch
"""

import inspect
import logging
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """
    Standardized result from tool execution.

    Attributes:
        success: Whether the tool executed successfully
        data: Result text
        error: Error message if failed
        attachment: Optional non-text payload (e.g. a camera frame)
        metadata: Additional context
    """

    success: bool
    data: Optional[str] = None
    error: Optional[str] = None
    attachment: Optional[bytes] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def response(self) -> str:
        """Text handed back to the reasoning service."""
        if self.success:
            return self.data or "OK"
        return f"Error: {self.error}"

    def __str__(self) -> str:
        return self.response

    @classmethod
    def ok(cls, data: str, **metadata: Any) -> "ToolResult":
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, **metadata: Any) -> "ToolResult":
        return cls(success=False, error=error, metadata=metadata)


def tool(
    name: str,
    description: str,
    parameters: Optional[dict[str, Any]] = None,
    terminal: bool = False,
):
    """
    Decorator to expose an async method as an agent tool.

    Args:
        name: Tool identifier as seen by the reasoning service
        description: Human-readable description of what the tool does
        parameters: JSON Schema for tool arguments
        terminal: Resolving this tool ends the calling session

    Example:
        >>> class Cutter:
        ...     @tool(name="operate", description="Run one cut")
        ...     async def operate(self) -> ToolResult:
        ...         return ToolResult.ok("Sheet cut")
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(*args, **kwargs):
            # Missing or unexpected arguments from the model
            try:
                signature.bind(*args, **kwargs)
            except TypeError as e:
                return ToolResult(success=False, error=f"Invalid arguments for {name}: {e}")
            try:
                result = await func(*args, **kwargs)
                if isinstance(result, ToolResult):
                    return result
                return ToolResult(success=True, data=str(result))
            except Exception as e:
                logger.exception("Tool %s raised", name)
                return ToolResult(success=False, error=str(e))

        wrapper.tool_name = name
        wrapper.tool_description = description
        wrapper.tool_parameters = parameters or {"type": "object", "properties": {}}
        wrapper.tool_terminal = terminal
        return wrapper

    return decorator


@dataclass
class ToolSpec:
    name: str
    description: str
    parameters: dict[str, Any]
    handler: Callable[..., Any]
    terminal: bool = False

    def schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }


class ToolSet:
    """
    Tools available to one actor, collected from decorated methods.
    """

    def __init__(self, tools: Optional[list[ToolSpec]] = None):
        self._tools: dict[str, ToolSpec] = {}
        for spec in tools or []:
            self._tools[spec.name] = spec

    @classmethod
    def from_object(cls, *owners: Any) -> "ToolSet":
        """Collect every @tool method on the given objects."""
        specs = []
        for owner in owners:
            for _, member in inspect.getmembers(owner, predicate=inspect.ismethod):
                if hasattr(member, "tool_name"):
                    specs.append(ToolSpec(
                        name=member.tool_name,
                        description=member.tool_description,
                        parameters=member.tool_parameters,
                        handler=member,
                        terminal=member.tool_terminal,
                    ))
        return cls(specs)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> list[str]:
        return sorted(self._tools)

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def is_terminal(self, name: str) -> bool:
        spec = self._tools.get(name)
        return bool(spec and spec.terminal)

    def schemas(self) -> list[dict[str, Any]]:
        """Tool definitions for LLM function calling."""
        return [spec.schema() for spec in self._tools.values()]

    async def call(self, name: str, args: Optional[dict[str, Any]] = None) -> ToolResult:
        """
        Execute a tool by name.

        Unknown names are a soft error: the caller gets a descriptive
        result rather than an exception.
        """
        spec = self._tools.get(name)
        if spec is None:
            return ToolResult(
                success=False,
                error=f"Unknown tool: {name}. Available tools: {', '.join(self.names())}",
            )
        return await spec.handler(**(args or {}))
