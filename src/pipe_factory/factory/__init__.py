"""
Factory Model

Specification parsing, constraint validation, task decomposition and the
shared world state of the factory floor.
"""

from .constraints import DEFAULT_CONSTRAINTS, STATION_POSITIONS, MachineConstraints, StationId
from .spec import CylinderSegment, FrustrumSegment, ProductSpec
from .segments import ResolvedSegment, resolve_segments
from .steps import ProductionPlan, Step, StepAction, StepStatus
from .validator import ConstraintValidator, ValidationResult, validate_spec
from .decomposer import TaskDecomposer, autofill_segments, create_task_decomposer
from .world import WorkerRole, WorkerStatus, WorkpieceRef, WorkpieceShape, WorldState
from .motion import MotionDriver, TickingMotionDriver

__all__ = [
    "DEFAULT_CONSTRAINTS",
    "STATION_POSITIONS",
    "MachineConstraints",
    "StationId",
    "CylinderSegment",
    "FrustrumSegment",
    "ProductSpec",
    "ResolvedSegment",
    "resolve_segments",
    "ProductionPlan",
    "Step",
    "StepAction",
    "StepStatus",
    "ConstraintValidator",
    "ValidationResult",
    "validate_spec",
    "TaskDecomposer",
    "autofill_segments",
    "create_task_decomposer",
    "WorkerRole",
    "WorkerStatus",
    "WorkpieceRef",
    "WorkpieceShape",
    "WorldState",
    "MotionDriver",
    "TickingMotionDriver",
]
