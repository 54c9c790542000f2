"""
Agent Tool Infrastructure

Decorator, result type and per-actor tool sets shared by the worker
runtimes and the planner.
"""

from .base import ToolResult, ToolSet, ToolSpec, tool

__all__ = [
    "ToolResult",
    "ToolSet",
    "ToolSpec",
    "tool",
]
