"""
Rich TUI Console Setup

Console infrastructure for the pipe factory CLI. Output is grouped into
panels by block type:

    thought  - plans and planner reasoning
    action   - tool calls made by the planner and the workers
    result   - run outcomes and validation results
    problem  - rejected specs, failed runs, configuration errors

Colours and timestamps are configured via environment variables.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from rich.console import Console, RenderableType
from rich.panel import Panel
from rich.style import Style
from rich.theme import Theme


BlockType = Literal["thought", "action", "result", "problem"]


@dataclass
class TUIConfig:
    """
    TUI configuration loaded from environment variables.

    Attributes:
        color_thought: Colour for THOUGHT blocks
        color_action: Colour for ACTION blocks
        color_result: Colour for RESULT blocks
        color_problem: Colour for PROBLEM blocks
        show_timestamps: Prefix panel titles with the wall-clock time
    """

    color_thought: str = "blue"
    color_action: str = "green"
    color_result: str = "yellow"
    color_problem: str = "red"
    show_timestamps: bool = True

    @classmethod
    def from_env(cls) -> "TUIConfig":
        return cls(
            color_thought=os.getenv("COLOR_THOUGHT", cls.color_thought),
            color_action=os.getenv("COLOR_ACTION", cls.color_action),
            color_result=os.getenv("COLOR_RESULT", cls.color_result),
            color_problem=os.getenv("COLOR_PROBLEM", cls.color_problem),
            show_timestamps=os.getenv("SHOW_TIMESTAMPS", "true").lower() == "true",
        )

    def color_for(self, block_type: BlockType) -> str:
        return getattr(self, f"color_{block_type}")


def create_theme(config: TUIConfig) -> Theme:
    styles = {
        block: Style(color=config.color_for(block), bold=True)
        for block in ("thought", "action", "result", "problem")
    }
    styles["timestamp"] = Style(dim=True)
    return Theme(styles)


class AgentConsole:
    """Rich console wrapper that prints themed panels per block type."""

    def __init__(self, config: Optional[TUIConfig] = None, console: Optional[Console] = None):
        """
        Args:
            config: TUI configuration. If None, loads from environment.
            console: Underlying rich Console (e.g. one recording to a file)
        """
        self.config = config or TUIConfig.from_env()
        self.console = console or Console(theme=create_theme(self.config))

    def title(self, label: str) -> str:
        if not self.config.show_timestamps:
            return label
        return f"{datetime.now():%H:%M:%S} {label}"

    def print_block(
        self,
        content: RenderableType,
        block_type: BlockType,
        title: Optional[str] = None,
    ) -> None:
        """
        Print content inside a panel coloured for its block type.

        Args:
            content: Text or any rich renderable
            block_type: thought, action, result or problem
            title: Optional title to override the default "[BLOCK TYPE]" label
        """
        self.console.print(Panel(
            content,
            title=self.title(title or f"[{block_type.upper()}]"),
            title_align="left",
            border_style=self.config.color_for(block_type),
            padding=(0, 1),
        ))

    def print(self, *args, **kwargs) -> None:
        """Passthrough to underlying Rich console."""
        self.console.print(*args, **kwargs)


_console: Optional[AgentConsole] = None


def get_console() -> AgentConsole:
    """Get or create the global console instance."""
    global _console
    if _console is None:
        _console = AgentConsole()
    return _console


def create_console(config: Optional[TUIConfig] = None) -> AgentConsole:
    return AgentConsole(config)
