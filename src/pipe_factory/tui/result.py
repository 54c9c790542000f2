"""
RESULT block display for validation results and run outcomes.
"""

from typing import Any, Optional

from rich.table import Table
from rich.text import Text

from .console import AgentConsole, get_console


def print_result(
    content: str,
    *,
    success: bool = True,
    title: Optional[str] = None,
    console: Optional[AgentConsole] = None,
) -> None:
    """
    Print a RESULT block.

    Args:
        content: The result content to display
        success: Whether the outcome was successful
        title: Custom title (overrides default "[RESULT]")
        console: Console to use (defaults to global console)
    """
    console = console or get_console()

    text = Text()
    mark, style = ("✓", "green") if success else ("✗", "red")
    text.append(f"{mark} ", style=f"bold {style}")
    text.append(content)

    console.print_block(text, "result", title)


def print_error(
    error_message: str,
    *,
    error_type: Optional[str] = None,
    suggestion: Optional[str] = None,
    console: Optional[AgentConsole] = None,
) -> None:
    """Print an error block, optionally with a suggestion."""
    console = console or get_console()

    content = Text()
    content.append("Error", style="bold red")
    if error_type:
        content.append(f" ({error_type})", style="dim red")
    content.append("\n\n")
    content.append(error_message)

    if suggestion:
        content.append("\n\n")
        content.append(suggestion, style="italic")

    console.print_block(content, "problem")


def print_data_result(
    data: dict[str, Any],
    *,
    title: Optional[str] = None,
    console: Optional[AgentConsole] = None,
) -> None:
    """Print a key/value table."""
    console = console or get_console()

    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    for key, value in data.items():
        str_value = str(value)
        if len(str_value) > 100:
            str_value = str_value[:97] + "..."
        table.add_row(key, str_value)

    console.print_block(table, "result", title)


def print_validation(
    valid: bool,
    errors: list[str],
    warnings: list[str],
    *,
    console: Optional[AgentConsole] = None,
) -> None:
    """Print a validation result with its errors and warnings."""
    console = console or get_console()

    content = Text()
    if valid:
        content.append("✓ Specification is valid", style="bold green")
    else:
        content.append("✗ Specification rejected", style="bold red")

    for error in errors:
        content.append("\n  error: ", style="bold red")
        content.append(error)
    for warning in warnings:
        content.append("\n  warning: ", style="bold yellow")
        content.append(warning)

    console.print_block(content, "result" if valid else "problem", "[VALIDATION]")
