"""
Manufacturing Step Model

Atomic units of work produced by the TaskDecomposer. Each step is bound to
a single station and a single segment (or a pair of segments for joins),
and carries parameters specific to its action.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from .constraints import StationId


class StepStatus(Enum):
    """Status of a manufacturing step."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class StepAction(Enum):
    """What a step does to the workpiece."""

    FETCH = "fetch"
    CUT = "cut"
    FORM_CYLINDER = "form-cylinder"
    FORM_FRUSTRUM = "form-frustrum"
    WELD_SEAM = "weld-seam"
    WELD_JOIN = "weld-join"


def _fmt(value: float) -> str:
    return f"{value:.4f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class SheetParams:
    """Sheet size for fetch and cut steps."""

    width: float
    height: float

    def as_pairs(self) -> dict[str, float]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class RollParams:
    """Roller settings for a cylinder."""

    diameter: float
    height: float

    def as_pairs(self) -> dict[str, float]:
        return {"diameter": self.diameter, "height": self.height}


@dataclass(frozen=True)
class PressParams:
    """Press settings for a frustrum."""

    top_radius: float
    bottom_radius: float
    frustrum_height: float

    def as_pairs(self) -> dict[str, float]:
        return {
            "topRadius": self.top_radius,
            "bottomRadius": self.bottom_radius,
            "frustrumHeight": self.frustrum_height,
        }


@dataclass(frozen=True)
class SeamParams:
    """Longitudinal seam along a formed segment."""

    top_diameter: float
    bottom_diameter: float
    height: float

    def as_pairs(self) -> dict[str, float]:
        return {
            "topDiameter": self.top_diameter,
            "bottomDiameter": self.bottom_diameter,
            "height": self.height,
        }


@dataclass(frozen=True)
class JoinParams:
    """Circumferential weld joining two neighbouring segments."""

    section_a: int
    section_b: int

    def as_pairs(self) -> dict[str, int]:
        return {"sectionA": self.section_a, "sectionB": self.section_b}


StepParams = Union[SheetParams, RollParams, PressParams, SeamParams, JoinParams]

# Which params variant each action carries
ACTION_PARAMS: dict[StepAction, type] = {
    StepAction.FETCH: SheetParams,
    StepAction.CUT: SheetParams,
    StepAction.FORM_CYLINDER: RollParams,
    StepAction.FORM_FRUSTRUM: PressParams,
    StepAction.WELD_SEAM: SeamParams,
    StepAction.WELD_JOIN: JoinParams,
}


@dataclass
class Step:
    """
    A single manufacturing step within a production plan.

    Created pending by the decomposer; only the dispatch loop (or the
    planner-less production line) changes its status afterwards.
    """

    id: int
    machine_id: StationId
    action: StepAction
    description: str
    params: StepParams
    segment_index: int
    status: StepStatus = StepStatus.PENDING
    assigned_worker: Optional[int] = None
    result: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        expected = ACTION_PARAMS[self.action]
        if not isinstance(self.params, expected):
            raise TypeError(
                f"{self.action.value} step requires {expected.__name__}, "
                f"got {type(self.params).__name__}"
            )

    @property
    def label(self) -> str:
        """Stable identifier used in digests and tool calls."""
        return f"step-{self.id}"

    @property
    def segment_indices(self) -> tuple[int, ...]:
        """Segments this step touches (two for join welds)."""
        if isinstance(self.params, JoinParams):
            return (self.params.section_a, self.params.section_b)
        return (self.segment_index,)

    @property
    def is_terminal(self) -> bool:
        return self.status in (StepStatus.COMPLETED, StepStatus.FAILED)

    def mark_in_progress(self, worker_id: Optional[int] = None) -> None:
        """Mark step as in progress, optionally assigning a worker."""
        self.status = StepStatus.IN_PROGRESS
        self.assigned_worker = worker_id
        self.error = None

    def mark_completed(self, result: Optional[str] = None) -> None:
        """Mark step as completed."""
        self.status = StepStatus.COMPLETED
        self.result = result

    def mark_failed(self, error: str) -> None:
        """Mark step as failed."""
        self.status = StepStatus.FAILED
        self.error = error

    def digest_line(self) -> str:
        """One plain-text line: id, station, description, params."""
        pairs = " ".join(
            f"{key}={_fmt(value)}" for key, value in self.params.as_pairs().items()
        )
        return f"{self.label} | {self.machine_id.value} | {self.description} | {pairs}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.label,
            "machineId": self.machine_id.value,
            "action": self.action.value,
            "description": self.description,
            "params": self.params.as_pairs(),
            "segmentIndex": self.segment_index,
            "status": self.status.value,
            "assignedWorker": self.assigned_worker,
        }


def parse_step_ref(ref: Any) -> Optional[int]:
    """Accept 3, "3" or "step-3" and return the numeric id."""
    if isinstance(ref, bool):
        return None
    if isinstance(ref, int):
        return ref
    if isinstance(ref, float) and ref.is_integer():
        return int(ref)
    if isinstance(ref, str):
        text = ref.strip().lower()
        if text.startswith("step-"):
            text = text[len("step-"):]
        if text.isdigit():
            return int(text)
    return None


@dataclass
class ProductionPlan:
    """
    A decomposed order: resolved segments plus the ordered steps.
    """

    spec: Any
    segments: tuple = ()
    steps: list[Step] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """Check if every step reached completed."""
        return all(s.status == StepStatus.COMPLETED for s in self.steps)

    @property
    def progress(self) -> float:
        """Get completion progress as a percentage."""
        if not self.steps:
            return 0.0
        completed = sum(1 for s in self.steps if s.status == StepStatus.COMPLETED)
        return (completed / len(self.steps)) * 100

    def get_step(self, ref: Any) -> Optional[Step]:
        """Get a step by id or label."""
        step_id = parse_step_ref(ref)
        if step_id is None:
            return None
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def steps_for_segment(self, segment_index: int) -> list[Step]:
        """Per-segment steps, excluding join welds."""
        return [
            s for s in self.steps
            if s.segment_index == segment_index and s.action != StepAction.WELD_JOIN
        ]

    def join_steps(self) -> list[Step]:
        return [s for s in self.steps if s.action == StepAction.WELD_JOIN]

    def count(self, status: StepStatus) -> int:
        return sum(1 for s in self.steps if s.status == status)

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of the plan."""
        return {
            "total_steps": len(self.steps),
            "segments": len(self.segments),
            "completed": self.count(StepStatus.COMPLETED),
            "failed": self.count(StepStatus.FAILED),
            "in_progress": self.count(StepStatus.IN_PROGRESS),
            "pending": self.count(StepStatus.PENDING),
            "progress": f"{self.progress:.0f}%",
        }
