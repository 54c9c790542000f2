"""
Rich TUI Interface Module

Terminal output for the pipe factory CLI.

Components:
- AgentConsole: Main console wrapper with themed output
- TUIConfig: Configuration for colors and display options
- THOUGHT/ACTION/RESULT/PROBLEM block functions
- Status tables for steps and workers
"""

from pipe_factory.tui.console import (
    AgentConsole,
    BlockType,
    TUIConfig,
    create_console,
    get_console,
)
from pipe_factory.tui.thought import format_thought_content, print_thought
from pipe_factory.tui.action import print_tool_call
from pipe_factory.tui.result import (
    print_data_result,
    print_error,
    print_result,
    print_validation,
)
from pipe_factory.tui.status import (
    print_plan_table,
    print_snapshot,
    steps_table,
    workers_table,
)

__all__ = [
    # Console infrastructure
    "AgentConsole",
    "BlockType",
    "TUIConfig",
    "create_console",
    "get_console",
    # Thought blocks
    "format_thought_content",
    "print_thought",
    # Action blocks
    "print_tool_call",
    # Result blocks
    "print_data_result",
    "print_error",
    "print_result",
    "print_validation",
    # Status tables
    "print_plan_table",
    "print_snapshot",
    "steps_table",
    "workers_table",
]
