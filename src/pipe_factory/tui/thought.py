"""
THOUGHT block display for plans and planner reasoning.
"""

from typing import Optional

from rich.markdown import Markdown
from rich.text import Text

from .console import AgentConsole, get_console


def format_thought_content(content: str, as_markdown: bool = False) -> Text | Markdown:
    if as_markdown:
        return Markdown(content)
    return Text(content)


def print_thought(
    content: str,
    *,
    title: Optional[str] = None,
    as_markdown: bool = False,
    console: Optional[AgentConsole] = None,
) -> None:
    """
    Print a THOUGHT block.

    Args:
        content: The text to display
        title: Custom title (overrides default "[THOUGHT]")
        as_markdown: Render content as markdown
        console: Console to use (defaults to global console)
    """
    console = console or get_console()
    console.print_block(
        format_thought_content(content, as_markdown=as_markdown), "thought", title
    )
