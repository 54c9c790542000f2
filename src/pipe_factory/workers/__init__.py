"""
Worker runtimes: role-scoped primitive operations over the WorldState.
"""

from .runtime import (
    ConfigurableOperatorRuntime,
    CutterOperatorRuntime,
    PressOperatorRuntime,
    RollerOperatorRuntime,
    StationOperatorRuntime,
    TransporterRuntime,
    WelderRuntime,
    WorkerRuntime,
    create_worker_runtimes,
)

__all__ = [
    "WorkerRuntime",
    "TransporterRuntime",
    "StationOperatorRuntime",
    "ConfigurableOperatorRuntime",
    "CutterOperatorRuntime",
    "RollerOperatorRuntime",
    "PressOperatorRuntime",
    "WelderRuntime",
    "create_worker_runtimes",
]
