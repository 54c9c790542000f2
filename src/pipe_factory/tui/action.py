"""
ACTION block display for agent tool calls.
"""

from typing import Any, Optional

from rich.text import Text

from .console import AgentConsole, get_console


def _truncate(value: Any, limit: int) -> str:
    text = str(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def print_tool_call(
    session: str,
    tool_name: str,
    arguments: dict[str, Any],
    response: Optional[str] = None,
    success: bool = True,
    *,
    console: Optional[AgentConsole] = None,
) -> None:
    """
    Print a tool call made by an agent session, with its response.

    Args:
        session: Session name (planner, worker-0, ...)
        tool_name: Name of the tool being called
        arguments: Tool arguments
        response: Text returned to the session
        success: Whether the tool succeeded
        console: Console to use (defaults to global console)
    """
    console = console or get_console()

    content = Text()
    content.append(f"{session} ", style="bold magenta")
    content.append("-> ", style="dim")
    content.append(tool_name, style="bold green")
    content.append("\n")

    for key, value in arguments.items():
        content.append(f"  {key}: ", style="dim")
        content.append(f"{_truncate(value, 80)}\n")

    if response is not None:
        mark, style = ("✓", "green") if success else ("✗", "red")
        content.append(f"{mark} ", style=f"bold {style}")
        content.append(_truncate(response, 300))

    console.print_block(content, "action")
