"""
Production Line

Runs a production plan without a reasoning service by calling the worker
runtimes directly: fetch -> cut -> form -> weld seam -> store for every
segment, then for each join: both neighbouring sections from the rack ->
welder -> join weld -> store the assembly.
"""

import logging
from typing import Optional

from ..config import FactorySettings
from ..errors import FactoryError, SpecificationError
from ..tools import ToolResult
from ..workers.runtime import WorkerRuntime, create_worker_runtimes
from .constraints import DEFAULT_CONSTRAINTS, MachineConstraints, StationId
from .decomposer import TaskDecomposer
from .motion import MotionDriver, TickingMotionDriver
from .spec import ProductSpec
from .steps import JoinParams, ProductionPlan, Step, StepAction, StepStatus
from .validator import ConstraintValidator
from .world import WorldState

logger = logging.getLogger(__name__)

TRANSPORTER = 0
OPERATOR_FOR_STATION = {
    StationId.CUTTER: 1,
    StationId.ROLLER: 2,
    StationId.PRESS: 3,
    StationId.WELDER: 4,
}


class StepAborted(FactoryError):
    """A primitive operation failed while carrying out a step."""


class ProductionLine:
    """
    Sequential, scripted execution of a production plan.

    Segments run strictly one after another; the running flag is checked
    before each segment and each join.
    """

    def __init__(
        self,
        world: Optional[WorldState] = None,
        motion: Optional[MotionDriver] = None,
        constraints: Optional[MachineConstraints] = None,
        settings: Optional[FactorySettings] = None,
    ):
        settings = settings or FactorySettings()
        self.constraints = constraints or DEFAULT_CONSTRAINTS
        self.world = world or WorldState(rack_capacity=settings.rack_capacity)
        self.motion = motion or TickingMotionDriver(time_scale=settings.time_scale)
        self.runtimes: dict[int, WorkerRuntime] = create_worker_runtimes(
            self.world, self.motion, self.constraints
        )
        self.running = False

    def prepare(self, spec: ProductSpec) -> ProductionPlan:
        """
        Validate and decompose a spec.

        Raises:
            SpecificationError: If the spec has hard errors
        """
        validation = ConstraintValidator(self.constraints).validate(spec)
        if not validation.valid:
            raise SpecificationError(validation.errors)
        return TaskDecomposer(self.constraints).decompose(spec, warnings=validation.warnings)

    def stop(self) -> None:
        """Let the current segment finish, then stop."""
        self.running = False

    async def execute_all(self, plan: ProductionPlan) -> ProductionPlan:
        """
        Execute every step of a plan.

        A failed primitive marks its step failed and skips the rest of
        that segment; the line moves on to the next segment.
        """
        self.running = True
        self.world.attach_steps(lambda: [s.to_dict() for s in plan.steps])
        self.world.notify()

        try:
            for index in range(len(plan.segments)):
                if not self.running:
                    logger.info("Line stopped before segment %d", index + 1)
                    break
                await self._run_segment(plan, index)

            for step in plan.join_steps():
                if not self.running:
                    logger.info("Line stopped before %s", step.label)
                    break
                await self._run_step(step, self._join)
        finally:
            self.running = False
            self.world.notify()

        logger.info("Line finished: %s", plan.get_summary())
        return plan

    async def run(self, spec: ProductSpec) -> ProductionPlan:
        return await self.execute_all(self.prepare(spec))

    async def _run_segment(self, plan: ProductionPlan, index: int) -> None:
        handlers = {
            StepAction.FETCH: self._fetch_and_load_cutter,
            StepAction.CUT: self._cut,
            StepAction.FORM_CYLINDER: self._form,
            StepAction.FORM_FRUSTRUM: self._form,
            StepAction.WELD_SEAM: self._weld_seam_and_store,
        }
        for step in plan.steps_for_segment(index):
            if not await self._run_step(step, handlers[step.action]):
                for rest in plan.steps_for_segment(index):
                    if rest.status == StepStatus.PENDING:
                        rest.mark_failed(f"Skipped after {step.label} failed")
                self.world.notify()
                return

    async def _run_step(self, step: Step, handler) -> bool:
        step.mark_in_progress(self._worker_for(step))
        self.world.notify()
        try:
            message = await handler(step)
        except StepAborted as e:
            step.mark_failed(str(e))
            logger.warning("%s failed: %s", step.label, e)
            self.world.notify()
            return False
        step.mark_completed(message)
        self.world.notify()
        return True

    @staticmethod
    def _worker_for(step: Step) -> int:
        if step.action == StepAction.FETCH:
            return TRANSPORTER
        return OPERATOR_FOR_STATION[step.machine_id]

    async def _call(self, worker_id: int, name: str, **args) -> str:
        result: ToolResult = await self.runtimes[worker_id].tool_set().call(name, args)
        if not result.success:
            raise StepAborted(f"worker {worker_id} {name}: {result.error}")
        return result.response

    async def _carry(self, source: StationId, target: StationId) -> None:
        await self._call(TRANSPORTER, "moveTo", stationId=source.value)
        await self._call(TRANSPORTER, "pickUpFrom", stationId=source.value)
        await self._call(TRANSPORTER, "moveTo", stationId=target.value)
        if target == StationId.PIPE_RACK:
            await self._call(TRANSPORTER, "storeFinished")
        else:
            await self._call(TRANSPORTER, "placeAt", stationId=target.value)

    async def _operate(self, station: StationId, **configure) -> str:
        worker_id = OPERATOR_FOR_STATION[station]
        await self._call(worker_id, "moveTo", stationId=station.value)
        if configure:
            await self._call(worker_id, "configure", **configure)
        return await self._call(worker_id, "operate")

    # ─── Step handlers ───

    async def _fetch_and_load_cutter(self, step: Step) -> str:
        if not self.world.rack_has_space:
            raise StepAborted("Pipe rack is full; no room for another segment")
        await self._call(TRANSPORTER, "moveTo", stationId=StationId.SHEET_STOCK.value)
        message = await self._call(
            TRANSPORTER, "fetchRawMaterial", segmentIndex=step.segment_index
        )
        await self._call(TRANSPORTER, "moveTo", stationId=StationId.CUTTER.value)
        await self._call(TRANSPORTER, "placeAt", stationId=StationId.CUTTER.value)
        return message

    async def _cut(self, step: Step) -> str:
        return await self._operate(StationId.CUTTER)

    async def _form(self, step: Step) -> str:
        station = step.machine_id
        await self._carry(StationId.CUTTER, station)
        return await self._operate(station, **step.params.as_pairs())

    async def _weld_seam_and_store(self, step: Step) -> str:
        formed_at = [
            s for s in (StationId.ROLLER, StationId.PRESS) if self.world.at_station.get(s)
        ]
        if not formed_at:
            raise StepAborted("No formed workpiece at the roller or the press")
        await self._carry(formed_at[0], StationId.WELDER)
        message = await self._operate(StationId.WELDER)
        await self._carry(StationId.WELDER, StationId.PIPE_RACK)
        return message

    async def _join(self, step: Step) -> str:
        params: JoinParams = step.params
        for section in (params.section_a, params.section_b):
            await self._call(TRANSPORTER, "moveTo", stationId=StationId.PIPE_RACK.value)
            await self._call(
                TRANSPORTER, "pickUpFrom", stationId=StationId.PIPE_RACK.value, segmentIndex=section
            )
            await self._call(TRANSPORTER, "moveTo", stationId=StationId.WELDER.value)
            await self._call(TRANSPORTER, "placeAt", stationId=StationId.WELDER.value)
        message = await self._operate(StationId.WELDER)
        await self._carry(StationId.WELDER, StationId.PIPE_RACK)
        return message
