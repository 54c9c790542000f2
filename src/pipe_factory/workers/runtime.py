"""
Worker Agent Runtime

Per-worker primitive operations over the WorldState. Each worker exposes a
role-scoped tool set to its agent session. Preconditions are checked here,
not by the reasoning service, and a violated precondition comes back as an
error result instead of an exception.

Worker status transitions:
    idle -> moving -> idle (or carrying, if holding a workpiece)
    idle -> operating -> idle
    idle -> carrying -> idle (after placing or storing)
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..factory.constraints import DEFAULT_CONSTRAINTS, MachineConstraints, StationId
from ..factory.motion import MotionDriver, TickingMotionDriver
from ..factory.world import (
    Worker,
    WorkerRole,
    WorkerStatus,
    WorkpieceRef,
    WorkpieceShape,
    WorldState,
)
from ..tools import ToolResult, ToolSet, tool

logger = logging.getLogger(__name__)

STATION_ENUM = [station.value for station in StationId]
HANDOFF_ENUM = [s.value for s in StationId if s != StationId.SHEET_STOCK]


def _station(value: Any) -> Optional[StationId]:
    try:
        return StationId(value)
    except ValueError:
        return None


def _adjacent(a: tuple[int, ...], b: tuple[int, ...]) -> bool:
    return max(a) + 1 == min(b) or max(b) + 1 == min(a)


def _span(sections: tuple[int, ...]) -> str:
    return "+".join(str(i) for i in sections)


class WorkerRuntime:
    """
    Capabilities common to every worker.

    Subclasses add role-specific tools with the @tool decorator; the
    session discovers them through tool_set().
    """

    # Set by each concrete runtime
    role: Optional[WorkerRole] = None

    def __init__(
        self,
        worker_id: int,
        world: WorldState,
        motion: Optional[MotionDriver] = None,
        constraints: Optional[MachineConstraints] = None,
    ):
        self.worker_id = worker_id
        self.world = world
        self.motion = motion or TickingMotionDriver()
        self.constraints = constraints or DEFAULT_CONSTRAINTS

    @property
    def worker(self) -> Worker:
        return self.world.workers[self.worker_id]

    def tool_set(self) -> ToolSet:
        return ToolSet.from_object(self)

    def _settle(self) -> None:
        """Return to idle, or carrying if holding something."""
        w = self.worker
        w.status = WorkerStatus.CARRYING if w.carried_item else WorkerStatus.IDLE
        self.world.notify()

    def _reject_if_busy(self) -> Optional[ToolResult]:
        w = self.worker
        if w.is_busy:
            return ToolResult.fail(
                f"Worker {w.id} is {w.status.value}; wait until the current action finishes"
            )
        return None

    def _require_at(self, station: StationId) -> Optional[ToolResult]:
        if self.worker.position != station:
            return ToolResult.fail(
                f"Worker {self.worker_id} is at {self.worker.position.value}, "
                f"not at {station.value}. Use moveTo first"
            )
        return None

    # ─── Common tools ───

    @tool(
        name="moveTo",
        description=(
            "Walk to a station on the factory floor. You must be at a station before "
            "you can operate it or interact with workpieces there."
        ),
        parameters={
            "type": "object",
            "properties": {
                "stationId": {
                    "type": "string",
                    "enum": STATION_ENUM,
                    "description": "The station to walk to",
                },
            },
            "required": ["stationId"],
        },
    )
    async def move_to(self, stationId: str) -> ToolResult:
        target = _station(stationId)
        if target is None:
            return ToolResult.fail(f"Unknown station '{stationId}'. Valid: {', '.join(STATION_ENUM)}")
        busy = self._reject_if_busy()
        if busy:
            return busy

        w = self.worker
        origin = w.position
        if origin == target:
            return ToolResult.ok(f"Worker {w.id} is already at {target.value}")

        w.status = WorkerStatus.MOVING
        self.world.notify()
        try:
            await self.motion.move(w.id, origin, target)
            w.position = target
        finally:
            self._settle()
        logger.debug("Worker %d moved %s -> %s", w.id, origin.value, target.value)
        return ToolResult.ok(f"Worker {w.id} arrived at {target.value}")

    @tool(
        name="captureSnapshot",
        description=(
            "Capture what you currently see through your eye camera. Diagnostic only; "
            "use it when a tool returns an unexpected error."
        ),
    )
    async def capture_snapshot(self) -> ToolResult:
        w = self.worker
        station = w.position
        if station == StationId.PIPE_RACK:
            here = f"{len(self.world.rack)} of {self.world.rack_capacity} cradles occupied"
        else:
            piece = self.world.at_station.get(station)
            here = piece.describe() if piece else "no workpiece"
        result = ToolResult.ok(
            f"Worker {w.id} at {station.value} sees {here}"
            + (f"; holding {w.carried_item.describe()}" if w.carried_item else "")
        )
        result.attachment = self.motion.capture(w.id)
        return result

    @tool(
        name="getStatus",
        description="Get your position, status and what you are carrying.",
    )
    async def get_status(self) -> ToolResult:
        return ToolResult.ok(json.dumps(self.worker.to_dict()))

    @tool(
        name="reportComplete",
        description=(
            "Report that your assigned task is finished. You MUST call this when your "
            "task is done. Include what you accomplished."
        ),
        parameters={
            "type": "object",
            "properties": {
                "summary": {"type": "string", "description": "What you did and the outcome"},
                "success": {"type": "boolean", "description": "Whether the task succeeded"},
            },
            "required": ["summary"],
        },
        terminal=True,
    )
    async def report_complete(self, summary: str, success: bool = True) -> ToolResult:
        return ToolResult(success=success, data=summary, error=None if success else summary)

    @tool(
        name="reportProblem",
        description="Report that something went wrong. The planner decides how to proceed.",
        parameters={
            "type": "object",
            "properties": {
                "description": {"type": "string", "description": "What went wrong"},
            },
            "required": ["description"],
        },
        terminal=True,
    )
    async def report_problem(self, description: str) -> ToolResult:
        return ToolResult.fail(description)


class TransporterRuntime(WorkerRuntime):
    """
    Worker 0: material handling between stations.

    Carries one workpiece at a time.
    """

    role = WorkerRole.TRANSPORTER

    @tool(
        name="fetchRawMaterial",
        description=(
            "Take a fresh metal sheet from the sheet stock. You must be at sheetStock "
            "with empty hands. The sheet becomes the workpiece you carry."
        ),
        parameters={
            "type": "object",
            "properties": {
                "segmentIndex": {
                    "type": "integer",
                    "description": "Segment the sheet is for (optional)",
                },
            },
        },
    )
    async def fetch_raw_material(self, segmentIndex: Optional[int] = None) -> ToolResult:
        busy = self._reject_if_busy()
        if busy:
            return busy
        away = self._require_at(StationId.SHEET_STOCK)
        if away:
            return away
        w = self.worker
        if w.carried_item is not None:
            return ToolResult.fail(f"Already carrying {w.carried_item.describe()}")
        if self.world.live_workpiece is not None:
            return ToolResult.fail(
                f"{self.world.live_workpiece.describe()} is still in production; "
                "store it before fetching new material"
            )

        await self.motion.pick_up(w.id)
        piece = self.world.create_workpiece(segment_index=segmentIndex)
        w.carried_item = piece
        self._settle()
        logger.info("Worker %d fetched %s", w.id, piece.describe())
        return ToolResult.ok(f"Picked up fresh sheet: {piece.describe()}")

    @tool(
        name="pickUpFrom",
        description=(
            "Pick up the workpiece sitting at a station. At pipeRack, pass segmentIndex "
            "to take the stored section containing that segment (default: the most "
            "recently stored). You must be at that station with empty hands."
        ),
        parameters={
            "type": "object",
            "properties": {
                "stationId": {"type": "string", "enum": HANDOFF_ENUM},
                "segmentIndex": {
                    "type": "integer",
                    "description": "pipeRack only: segment the section must contain",
                },
            },
            "required": ["stationId"],
        },
    )
    async def pick_up_from(self, stationId: str, segmentIndex: Optional[int] = None) -> ToolResult:
        station = _station(stationId)
        if station is None or station == StationId.SHEET_STOCK:
            return ToolResult.fail(
                f"Cannot pick up from '{stationId}'. Valid: {', '.join(HANDOFF_ENUM)}"
            )
        busy = self._reject_if_busy()
        if busy:
            return busy
        w = self.worker
        if w.carried_item is not None:
            return ToolResult.fail(
                f"Already carrying {w.carried_item.describe()}; place it before picking up another"
            )
        away = self._require_at(station)
        if away:
            return away

        if station == StationId.PIPE_RACK:
            return await self._retrieve_from_rack(segmentIndex)

        piece = self.world.at_station.get(station)
        if piece is None:
            return ToolResult.fail(f"No workpiece at {station.value}")
        await self.motion.pick_up(w.id)
        # A staged join partner moves up when the piece in front of it leaves
        if station == StationId.WELDER and self.world.join_partner is not None:
            self.world.at_station[station] = self.world.join_partner
            self.world.join_partner = None
        else:
            self.world.at_station[station] = None

        w.carried_item = piece
        self._settle()
        return ToolResult.ok(f"Picked up {piece.describe()} from {station.value}")

    async def _retrieve_from_rack(self, segment_index: Optional[int]) -> ToolResult:
        rack = self.world.rack
        if segment_index is not None:
            matches = [i for i, piece in enumerate(rack) if piece.contains(segment_index)]
            if not matches:
                return ToolResult.fail(f"No stored section contains segment {segment_index}")
            position = matches[0]
        elif rack:
            position = len(rack) - 1
        else:
            return ToolResult.fail("Pipe rack is empty")

        live = self.world.live_workpiece
        # The only second piece allowed out is the partner for the assembly at the welder
        joining = (
            live is not None
            and self.world.at_station.get(StationId.WELDER) == live
            and self.world.join_partner is None
        )
        if live is not None and not joining:
            return ToolResult.fail(f"{live.describe()} is still in production")

        w = self.worker
        await self.motion.pick_up(w.id)
        piece = rack.pop(position)
        if live is None:
            self.world.live_workpiece = piece
        w.carried_item = piece
        self._settle()
        return ToolResult.ok(f"Picked up {piece.describe()} from {StationId.PIPE_RACK.value}")

    @tool(
        name="placeAt",
        description=(
            "Place the workpiece you are carrying at the station you are at. "
            "The station must be free, except at the welder: a seam-welded section "
            "placed next to another seam-welded section is staged for a join weld."
        ),
        parameters={
            "type": "object",
            "properties": {
                "stationId": {
                    "type": "string",
                    "enum": [s for s in HANDOFF_ENUM if s != StationId.PIPE_RACK.value],
                },
            },
            "required": ["stationId"],
        },
    )
    async def place_at(self, stationId: str) -> ToolResult:
        station = _station(stationId)
        if station is None or station in (StationId.SHEET_STOCK, StationId.PIPE_RACK):
            return ToolResult.fail(
                f"Cannot place at '{stationId}'. Use storeFinished for the pipe rack"
            )
        busy = self._reject_if_busy()
        if busy:
            return busy
        w = self.worker
        if w.carried_item is None:
            return ToolResult.fail("Not carrying a workpiece")
        away = self._require_at(station)
        if away:
            return away
        occupant = self.world.at_station.get(station)
        piece = w.carried_item
        if occupant is not None:
            if self._can_stage_join(station, occupant, piece):
                await self.motion.place(w.id)
                self.world.join_partner = piece
                w.carried_item = None
                self._settle()
                return ToolResult.ok(
                    f"Staged {piece.describe()} against {occupant.describe()} for a join weld"
                )
            return ToolResult.fail(f"{station.value} already holds {occupant.describe()}")

        await self.motion.place(w.id)
        self.world.at_station[station] = piece
        w.carried_item = None
        self._settle()
        return ToolResult.ok(f"Placed {piece.describe()} at {station.value}")

    def _can_stage_join(self, station: StationId, occupant: WorkpieceRef, piece: WorkpieceRef) -> bool:
        return (
            station == StationId.WELDER
            and self.world.join_partner is None
            and occupant.seam_welded
            and piece.seam_welded
        )

    @tool(
        name="storeFinished",
        description=(
            "Store the carried pipe segment in the next free pipe rack cradle. "
            "You must be at pipeRack."
        ),
    )
    async def store_finished(self) -> ToolResult:
        busy = self._reject_if_busy()
        if busy:
            return busy
        w = self.worker
        if w.carried_item is None:
            return ToolResult.fail("Not carrying a workpiece")
        away = self._require_at(StationId.PIPE_RACK)
        if away:
            return away
        if not self.world.rack_has_space:
            return ToolResult.fail(
                f"Pipe rack is full ({self.world.rack_capacity} of {self.world.rack_capacity} cradles)"
            )

        await self.motion.place(w.id)
        piece = w.carried_item
        self.world.rack.append(piece)
        w.carried_item = None
        if self.world.live_workpiece is not None and self.world.live_workpiece.id == piece.id:
            self.world.live_workpiece = None
        self._settle()
        logger.info("Worker %d stored %s", w.id, piece.describe())
        return ToolResult.ok(
            f"Stored {piece.describe()} in cradle {len(self.world.rack)} of {self.world.rack_capacity}"
        )


class StationOperatorRuntime(WorkerRuntime, ABC):
    """
    Workers 1-4: operate the machine at their home station.

    Subclasses define _transform, the conversion one machine cycle applies.
    """

    station: StationId = StationId.CUTTER
    accepts: tuple[WorkpieceShape, ...] = ()

    def __init__(self, worker_id: int, world: WorldState, **kwargs: Any):
        super().__init__(worker_id, world, **kwargs)
        self.station = world.workers[worker_id].home

    @abstractmethod
    def _transform(self, piece: WorkpieceRef) -> tuple[WorkpieceRef, str]:
        """Replace the workpiece at the station; returns (new piece, message)."""

    @tool(
        name="operate",
        description=(
            "Run one cycle of your machine on the workpiece placed there. You must be "
            "at your station."
        ),
    )
    async def operate(self) -> ToolResult:
        busy = self._reject_if_busy()
        if busy:
            return busy
        w = self.worker
        if w.carried_item is not None:
            return ToolResult.fail("Put down the carried workpiece before operating")
        away = self._require_at(self.station)
        if away:
            return away
        piece = self.world.at_station.get(self.station)
        if piece is None:
            return ToolResult.fail(f"No workpiece at {self.station.value}")
        if self.accepts and piece.shape not in self.accepts:
            return ToolResult.fail(
                f"{self.station.value} cannot process {piece.describe()}"
            )
        not_ready = self._check_ready()
        if not_ready:
            return not_ready

        w.status = WorkerStatus.OPERATING
        self.world.notify()
        try:
            await self.motion.operate(w.id, self.station)
            new_piece, message = self._transform(piece)
        finally:
            self._settle()
        logger.info("Worker %d operated %s: %s", w.id, self.station.value, message)
        return ToolResult.ok(f"{message}: {new_piece.describe()}")

    def _check_ready(self) -> Optional[ToolResult]:
        return None


class CutterOperatorRuntime(StationOperatorRuntime):
    role = WorkerRole.CUTTER_OPERATOR
    accepts = (WorkpieceShape.SHEET,)

    def _transform(self, piece):
        return self.world.reshape(piece, shape=WorkpieceShape.CUT_SHEET), "Sheet cut to size"


class WelderRuntime(StationOperatorRuntime):
    """
    Worker 4. A piece without a seam gets its longitudinal seam; a
    seam-welded piece with a staged partner gets a circumferential join.
    """

    role = WorkerRole.WELDER
    accepts = (WorkpieceShape.CYLINDER, WorkpieceShape.FRUSTRUM, WorkpieceShape.ASSEMBLY)

    def _check_ready(self) -> Optional[ToolResult]:
        piece = self.world.at_station[self.station]
        if not piece.seam_welded:
            return None
        partner = self.world.join_partner
        if partner is None:
            return ToolResult.fail(
                f"{piece.describe()} is already seam welded and nothing is staged to join "
                "it with; place the neighbouring section at the welder first"
            )
        if piece.sections and partner.sections and not _adjacent(piece.sections, partner.sections):
            return ToolResult.fail(
                f"Segments {_span(piece.sections)} and {_span(partner.sections)} are not neighbours"
            )
        return None

    def _transform(self, piece):
        if not piece.seam_welded:
            return self.world.reshape(piece, seam_welded=True), "Longitudinal seam welded"
        return self.world.join(piece, self.world.join_partner), "Circumferential join welded"


class ConfigurableOperatorRuntime(StationOperatorRuntime):
    """
    Roller and press operators. configure() must precede every operate().
    """

    def _check_ready(self) -> Optional[ToolResult]:
        if not self.world.configured.get(self.station):
            return ToolResult.fail(
                f"{self.station.value} is not configured for this job; call configure first"
            )
        return None

    def _consume_configuration(self) -> None:
        self.world.configured[self.station] = False


class RollerOperatorRuntime(ConfigurableOperatorRuntime):
    role = WorkerRole.ROLLER_OPERATOR
    accepts = (WorkpieceShape.CUT_SHEET,)

    @tool(
        name="configure",
        description="Set the 3-roller bender parameters. Required before every operate.",
        parameters={
            "type": "object",
            "properties": {
                "diameter": {"type": "number", "description": "Pipe diameter in meters"},
                "height": {"type": "number", "description": "Segment height in meters"},
            },
            "required": ["diameter", "height"],
        },
    )
    async def configure(self, diameter: float, height: float) -> ToolResult:
        busy = self._reject_if_busy()
        if busy:
            return busy
        c = self.constraints
        if not c.roller_diameter_min <= diameter <= c.roller_diameter_max:
            return ToolResult.fail(
                f"Diameter {diameter}m outside roller range "
                f"[{c.roller_diameter_min}, {c.roller_diameter_max}]m"
            )
        if not c.roller_height_min <= height <= c.roller_height_max:
            return ToolResult.fail(
                f"Height {height}m outside roller range "
                f"[{c.roller_height_min}, {c.roller_height_max}]m"
            )
        self.world.roller.diameter = diameter
        self.world.roller.height = height
        self.world.configured[self.station] = True
        self.world.notify()
        return ToolResult.ok(f"Roller set: diameter={diameter}m, height={height}m")

    def _transform(self, piece):
        self._consume_configuration()
        roller = self.world.roller
        new = self.world.reshape(
            piece,
            shape=WorkpieceShape.CYLINDER,
            diameter=roller.diameter,
            height=roller.height,
        )
        return new, f"Rolled cylinder {roller.diameter}m x {roller.height}m"


class PressOperatorRuntime(ConfigurableOperatorRuntime):
    role = WorkerRole.PRESS_OPERATOR
    accepts = (WorkpieceShape.CUT_SHEET,)

    @tool(
        name="configure",
        description="Set the frustrum press parameters. Required before every operate.",
        parameters={
            "type": "object",
            "properties": {
                "topRadius": {"type": "number", "description": "Top radius in meters"},
                "bottomRadius": {"type": "number", "description": "Bottom radius in meters"},
                "frustrumHeight": {"type": "number", "description": "Height in meters"},
            },
            "required": ["topRadius", "bottomRadius", "frustrumHeight"],
        },
    )
    async def configure(
        self, topRadius: float, bottomRadius: float, frustrumHeight: float
    ) -> ToolResult:
        busy = self._reject_if_busy()
        if busy:
            return busy
        c = self.constraints
        checks = [
            ("Top radius", topRadius, c.frustrum_top_radius_min, c.frustrum_top_radius_max),
            ("Bottom radius", bottomRadius, c.frustrum_bottom_radius_min, c.frustrum_bottom_radius_max),
            ("Frustrum height", frustrumHeight, c.frustrum_height_min, c.frustrum_height_max),
        ]
        for label, value, low, high in checks:
            if not low <= value <= high:
                return ToolResult.fail(f"{label} {value}m outside press range [{low}, {high}]m")
        press = self.world.press
        press.top_radius = topRadius
        press.bottom_radius = bottomRadius
        press.frustrum_height = frustrumHeight
        self.world.configured[self.station] = True
        self.world.notify()
        return ToolResult.ok(
            f"Press set: top={topRadius}m, bottom={bottomRadius}m, height={frustrumHeight}m"
        )

    def _transform(self, piece):
        self._consume_configuration()
        press = self.world.press
        new = self.world.reshape(
            piece,
            shape=WorkpieceShape.FRUSTRUM,
            top_radius=press.top_radius,
            bottom_radius=press.bottom_radius,
            height=press.frustrum_height,
        )
        return new, (
            f"Pressed frustrum r{press.top_radius}m -> r{press.bottom_radius}m, "
            f"h{press.frustrum_height}m"
        )


RUNTIME_CLASSES: dict[WorkerRole, type[WorkerRuntime]] = {
    WorkerRole.TRANSPORTER: TransporterRuntime,
    WorkerRole.CUTTER_OPERATOR: CutterOperatorRuntime,
    WorkerRole.ROLLER_OPERATOR: RollerOperatorRuntime,
    WorkerRole.PRESS_OPERATOR: PressOperatorRuntime,
    WorkerRole.WELDER: WelderRuntime,
}


def create_worker_runtimes(
    world: WorldState,
    motion: Optional[MotionDriver] = None,
    constraints: Optional[MachineConstraints] = None,
) -> dict[int, WorkerRuntime]:
    """
    Build one runtime per worker in the roster.

    Args:
        world: Shared factory state
        motion: Motion driver shared by all workers
        constraints: Machine bounds for configure checks

    Returns:
        Mapping of worker id to runtime
    """
    motion = motion or TickingMotionDriver()
    return {
        worker.id: RUNTIME_CLASSES[worker.role](
            worker.id, world, motion=motion, constraints=constraints
        )
        for worker in world.workers.values()
    }
