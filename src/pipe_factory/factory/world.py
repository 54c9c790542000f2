"""
World State

Shared mutable model of the factory floor: machine settings, the live
workpiece, the pipe rack and the worker roster. Only the worker runtimes
mutate it. There is no lock; dispatch serialization keeps a single writer
at a time.
"""

import itertools
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional

from .constraints import StationId

logger = logging.getLogger(__name__)


class WorkerStatus(str, Enum):
    IDLE = "idle"
    MOVING = "moving"
    OPERATING = "operating"
    CARRYING = "carrying"


class WorkerRole(str, Enum):
    TRANSPORTER = "transporter"
    CUTTER_OPERATOR = "cutter_operator"
    ROLLER_OPERATOR = "roller_operator"
    PRESS_OPERATOR = "press_operator"
    WELDER = "welder"


class WorkpieceShape(str, Enum):
    SHEET = "sheet"
    CUT_SHEET = "cut_sheet"
    CYLINDER = "cylinder"
    FRUSTRUM = "frustrum"
    ASSEMBLY = "assembly"


# Worker id -> (role, home station)
ROSTER: dict[int, tuple[WorkerRole, StationId]] = {
    0: (WorkerRole.TRANSPORTER, StationId.SHEET_STOCK),
    1: (WorkerRole.CUTTER_OPERATOR, StationId.CUTTER),
    2: (WorkerRole.ROLLER_OPERATOR, StationId.ROLLER),
    3: (WorkerRole.PRESS_OPERATOR, StationId.PRESS),
    4: (WorkerRole.WELDER, StationId.WELDER),
}


@dataclass(frozen=True)
class WorkpieceRef:
    """Opaque handle to the in-progress physical item."""

    id: int
    shape: WorkpieceShape
    segment_index: Optional[int] = None
    seam_welded: bool = False
    joins: int = 0
    diameter: Optional[float] = None
    height: Optional[float] = None
    top_radius: Optional[float] = None
    bottom_radius: Optional[float] = None
    # Segment indices welded into this piece
    sections: tuple[int, ...] = ()

    def describe(self) -> str:
        text = f"workpiece #{self.id} ({self.shape.value}"
        if len(self.sections) > 1:
            text += ", segments " + "+".join(str(i) for i in self.sections)
        if self.seam_welded:
            text += ", seam welded"
        if self.joins:
            text += f", {self.joins} join weld(s)"
        return text + ")"

    def contains(self, segment_index: int) -> bool:
        return segment_index in self.sections or segment_index == self.segment_index


@dataclass
class Worker:
    id: int
    role: WorkerRole
    home: StationId
    position: StationId
    status: WorkerStatus = WorkerStatus.IDLE
    carried_item: Optional[WorkpieceRef] = None

    @property
    def is_busy(self) -> bool:
        return self.status in (WorkerStatus.MOVING, WorkerStatus.OPERATING)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "position": self.position.value,
            "status": self.status.value,
            "carrying": self.carried_item.describe() if self.carried_item else None,
        }


@dataclass
class RollerSetting:
    diameter: float = 1.0
    height: float = 3.0


@dataclass
class PressSetting:
    top_radius: float = 0.4
    bottom_radius: float = 0.6
    frustrum_height: float = 0.8


@dataclass
class FactorySnapshot:
    """Read-only view handed to observers and the getStatus tools."""

    workers: list[dict[str, Any]]
    machines: dict[str, Any]
    stations: dict[str, Optional[str]]
    rack: list[str]
    rack_capacity: int
    live_workpiece: Optional[str]
    steps: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "workers": self.workers,
            "machines": self.machines,
            "stations": self.stations,
            "rack": {"stored": self.rack, "capacity": self.rack_capacity},
            "liveWorkpiece": self.live_workpiece,
            "steps": self.steps,
        }


StateObserver = Callable[[FactorySnapshot], None]


class WorldState:
    """
    The factory floor model.

    Workpieces are immutable refs; reshaping one replaces it with a new ref.
    At most one live (not yet stored) workpiece exists at any time; during
    a join the staged partner is the only other piece off the rack.
    """

    def __init__(self, rack_capacity: int = 5):
        self.rack_capacity = rack_capacity
        self.workers: dict[int, Worker] = {
            worker_id: Worker(id=worker_id, role=role, home=home, position=home)
            for worker_id, (role, home) in ROSTER.items()
        }
        self.roller = RollerSetting()
        self.press = PressSetting()
        # Station -> configured for the job currently at that machine
        self.configured: dict[StationId, bool] = {
            StationId.ROLLER: False,
            StationId.PRESS: False,
        }
        self.at_station: dict[StationId, Optional[WorkpieceRef]] = {
            station: None for station in StationId if station != StationId.PIPE_RACK
        }
        self.rack: list[WorkpieceRef] = []
        self.live_workpiece: Optional[WorkpieceRef] = None
        # Second section held at the welder for a join weld
        self.join_partner: Optional[WorkpieceRef] = None
        self._ids = itertools.count(1)
        self._observers: list[StateObserver] = []
        self._step_source: Optional[Callable[[], list[dict[str, Any]]]] = None

    # ─── Observers ───

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Register a snapshot observer; returns an unsubscribe callable."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def attach_steps(self, source: Optional[Callable[[], list[dict[str, Any]]]]) -> None:
        """Include step statuses in snapshots."""
        self._step_source = source

    def notify(self) -> None:
        if not self._observers:
            return
        snapshot = self.snapshot()
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                logger.exception("State observer failed")

    def snapshot(self) -> FactorySnapshot:
        return FactorySnapshot(
            workers=[w.to_dict() for w in self.workers.values()],
            machines={
                "roller": {
                    "diameter": self.roller.diameter,
                    "height": self.roller.height,
                    "configured": self.configured[StationId.ROLLER],
                },
                "press": {
                    "topRadius": self.press.top_radius,
                    "bottomRadius": self.press.bottom_radius,
                    "frustrumHeight": self.press.frustrum_height,
                    "configured": self.configured[StationId.PRESS],
                },
                "welder": {
                    "joinPartner": self.join_partner.describe() if self.join_partner else None,
                },
            },
            stations={
                station.value: piece.describe() if piece else None
                for station, piece in self.at_station.items()
            },
            rack=[piece.describe() for piece in self.rack],
            rack_capacity=self.rack_capacity,
            live_workpiece=self.live_workpiece.describe() if self.live_workpiece else None,
            steps=self._step_source() if self._step_source else [],
        )

    # ─── Workpieces ───

    @property
    def rack_has_space(self) -> bool:
        return len(self.rack) < self.rack_capacity

    def create_workpiece(self, segment_index: Optional[int] = None) -> WorkpieceRef:
        piece = WorkpieceRef(
            id=next(self._ids),
            shape=WorkpieceShape.SHEET,
            segment_index=segment_index,
            sections=() if segment_index is None else (segment_index,),
        )
        self.live_workpiece = piece
        return piece

    def reshape(self, old: WorkpieceRef, **changes: Any) -> WorkpieceRef:
        """Replace a workpiece with a converted one under a fresh id."""
        new = replace(old, id=next(self._ids), **changes)
        for station, piece in self.at_station.items():
            if piece is not None and piece.id == old.id:
                self.at_station[station] = new
        for worker in self.workers.values():
            if worker.carried_item is not None and worker.carried_item.id == old.id:
                worker.carried_item = new
        if self.live_workpiece is not None and self.live_workpiece.id == old.id:
            self.live_workpiece = new
        return new

    def join(self, base: WorkpieceRef, partner: WorkpieceRef) -> WorkpieceRef:
        """
        Weld two sections into one assembly.

        Both refs are consumed: the assembly replaces base wherever base
        was, and the staged partner slot is cleared.
        """
        sections = tuple(sorted(base.sections + partner.sections))
        height = None
        if base.height is not None and partner.height is not None:
            height = base.height + partner.height
        if self.join_partner is not None and self.join_partner.id == partner.id:
            self.join_partner = None
        return self.reshape(
            base,
            shape=WorkpieceShape.ASSEMBLY,
            segment_index=sections[0] if sections else base.segment_index,
            sections=sections,
            joins=base.joins + partner.joins + 1,
            height=height,
            diameter=None,
            top_radius=None,
            bottom_radius=None,
        )

    def worker(self, worker_id: int) -> Optional[Worker]:
        return self.workers.get(worker_id)

    def busy_workers(self) -> list[int]:
        return [w.id for w in self.workers.values() if w.is_busy]
