"""
Factory Orchestrator

Drives the planner session for one product order. The planner's
dispatchTask calls each run a nested worker session to completion before
the planner can continue, so at most one worker is ever mid-task.

Flow:
    validate -> decompose -> planner session
        acknowledgePlan -> dispatchTask* (blocking) -> reportComplete
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..config import FactorySettings
from ..factory.constraints import DEFAULT_CONSTRAINTS, MachineConstraints
from ..factory.decomposer import TaskDecomposer
from ..factory.motion import MotionDriver, TickingMotionDriver
from ..factory.spec import ProductSpec
from ..factory.steps import ProductionPlan, Step, StepStatus
from ..factory.validator import ConstraintValidator, ValidationResult
from ..factory.world import WorldState
from ..llm import LLMProvider
from ..tools import ToolResult, ToolSet, tool
from ..tui import print_tool_call
from ..workers.runtime import WorkerRuntime, create_worker_runtimes
from .definitions import get_planner_definition, get_worker_definition
from .session import AgentSession, OutcomeStatus, SessionManager, SessionOutcome

logger = logging.getLogger(__name__)

FAILURE_LANGUAGE = re.compile(
    r"\b(fail\w*|error\w*|problem\w*|unable|could not|couldn't|cannot|can't|timed out)\b",
    re.IGNORECASE,
)


def reports_failure(text: str) -> bool:
    """Whether a worker's report reads as a failure."""
    return bool(FAILURE_LANGUAGE.search(text or ""))


class RunStatus(str, Enum):
    COMPLETED = "completed"
    REJECTED = "rejected"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class DispatchRecord:
    """One planner -> worker dispatch."""

    worker_id: int
    description: str
    step_label: Optional[str]
    outcome: SessionOutcome
    succeeded: bool


@dataclass
class RunSummary:
    """Terminal summary of one order."""

    status: RunStatus
    summary: str
    validation: ValidationResult
    plan: Optional[ProductionPlan] = None
    dispatches: list[DispatchRecord] = field(default_factory=list)

    @property
    def completed_steps(self) -> list[Step]:
        if self.plan is None:
            return []
        return [s for s in self.plan.steps if s.status == StepStatus.COMPLETED]

    @property
    def failed_steps(self) -> list[Step]:
        if self.plan is None:
            return []
        return [s for s in self.plan.steps if s.status == StepStatus.FAILED]

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "summary": self.summary,
            "validation": self.validation.to_dict(),
            "completed": [s.label for s in self.completed_steps],
            "failed": [s.label for s in self.failed_steps],
            "dispatches": len(self.dispatches),
        }


class FactoryOrchestrator:
    """
    Coordinates the planner and the five workers for one order at a time.

    The planner's tools are the @tool methods on this class.
    """

    def __init__(
        self,
        provider: LLMProvider,
        settings: Optional[FactorySettings] = None,
        constraints: Optional[MachineConstraints] = None,
        world: Optional[WorldState] = None,
        motion: Optional[MotionDriver] = None,
        verbose: bool = False,
        sleep=asyncio.sleep,
    ):
        """
        Initialize the orchestrator.

        Args:
            provider: Reasoning service shared by all sessions
            settings: Turn limits, backoff and pacing (uses env if None)
            constraints: Machine bounds
            world: Factory state (created from settings if None)
            motion: Motion driver (ticking driver at settings.time_scale if None)
            verbose: Print plan and tool activity to the console
            sleep: Awaitable used for rate-limit backoff
        """
        self.provider = provider
        self.settings = settings or FactorySettings.from_env()
        self.constraints = constraints or DEFAULT_CONSTRAINTS
        self.world = world or WorldState(rack_capacity=self.settings.rack_capacity)
        self.motion = motion or TickingMotionDriver(time_scale=self.settings.time_scale)
        self.verbose = verbose
        self._sleep = sleep

        self.validator = ConstraintValidator(self.constraints)
        self.decomposer = TaskDecomposer(self.constraints, verbose=verbose)
        self.runtimes: dict[int, WorkerRuntime] = create_worker_runtimes(
            self.world, self.motion, self.constraints
        )
        self.sessions = SessionManager()

        self.plan: Optional[ProductionPlan] = None
        self.running = False
        self.dispatches: list[DispatchRecord] = []
        self._acknowledged = False
        self._stopped = False
        self._dispatch_in_flight = False
        self._started_segments: set[int] = set()
        self._final_report: Optional[str] = None

    # ─── Run ───

    async def run(self, spec: ProductSpec) -> RunSummary:
        """
        Validate, decompose and manufacture one order.

        Args:
            spec: The submitted product specification

        Returns:
            RunSummary enumerating completed and failed steps
        """
        validation = self.validator.validate(spec)
        if not validation.valid:
            logger.info("Order rejected: %s", "; ".join(validation.errors))
            return RunSummary(
                status=RunStatus.REJECTED,
                summary="Specification rejected: " + "; ".join(validation.errors),
                validation=validation,
            )
        for warning in validation.warnings:
            logger.warning("Specification warning: %s", warning)

        self.plan = self.decomposer.decompose(spec, warnings=validation.warnings)
        self.world.attach_steps(lambda: [s.to_dict() for s in self.plan.steps])
        self.world.notify()

        self._reset_run_state()
        self.running = True

        definition = get_planner_definition(self.constraints)
        self.sessions.reset(definition.name)
        planner = self.sessions.get_or_create(definition.name, lambda: AgentSession(
            name=definition.name,
            provider=self.provider,
            system_prompt=definition.system_prompt,
            tools=self.planner_tools(),
            tier=definition.tier,
            max_turns=self.settings.planner_max_turns,
            backoff_ms=self.settings.rate_limit_backoff_ms,
            sleep=self._sleep,
            on_tool_call=self._on_tool_call,
        ))

        try:
            outcome = await planner.run(self._order_message(spec, validation))
        finally:
            self.running = False
            self.sessions.reset(definition.name)
            self.world.notify()

        return self._summarize(validation, outcome)

    def _reset_run_state(self) -> None:
        self.dispatches = []
        self._acknowledged = False
        self._stopped = False
        self._dispatch_in_flight = False
        self._started_segments = set()
        self._final_report = None

    def _order_message(self, spec: ProductSpec, validation: ValidationResult) -> str:
        plan = self.plan
        lines = [
            "NEW PIPE ORDER",
            f"Total length: {spec.total_length}m",
            f"Initial diameter: {spec.initial_diameter}m",
            f"Segments: {len(plan.segments)}",
            f"Steps: {len(plan.steps)}",
        ]
        if validation.warnings:
            lines.append("Warnings:")
            lines.extend(f"- {w}" for w in validation.warnings)
        lines.append("")
        lines.append("MANUFACTURING STEPS (id | station | description | params):")
        lines.append(TaskDecomposer.digest(plan))
        lines.append("")
        lines.append("Acknowledge the plan with acknowledgePlan, then dispatch tasks to workers.")
        return "\n".join(lines)

    def _summarize(self, validation: ValidationResult, outcome: SessionOutcome) -> RunSummary:
        plan = self.plan
        counts = f"{plan.count(StepStatus.COMPLETED)} completed, {plan.count(StepStatus.FAILED)} failed of {len(plan.steps)} steps"

        if self._stopped:
            status = RunStatus.STOPPED
            text = f"Production stopped: {counts}"
        elif outcome.status in (OutcomeStatus.COMPLETED, OutcomeStatus.TEXT):
            status = RunStatus.COMPLETED
            text = f"{self._final_report or outcome.summary} ({counts})"
        else:
            status = RunStatus.ERROR
            text = f"Planner ended with {outcome.status.value}: {outcome.summary} ({counts})"

        logger.info("Run finished: %s", text)
        return RunSummary(
            status=status,
            summary=text,
            validation=validation,
            plan=plan,
            dispatches=list(self.dispatches),
        )

    # ─── Control ───

    def stop(self) -> None:
        """
        Stop after the current dispatch.

        Steps of segments that have not started yet are refused from now
        on; an in-flight worker session runs to its end.
        """
        if self.running:
            logger.info("Stop requested")
        self.running = False
        self._stopped = True
        self.world.notify()

    def reset_session(self, name: str) -> bool:
        """Tear down a named session; unknown names are ignored."""
        return self.sessions.reset(name)

    def planner_tools(self) -> ToolSet:
        return ToolSet.from_object(self)

    # ─── Planner tools ───

    @tool(
        name="acknowledgePlan",
        description="Acknowledge the manufacturing plan. Call this first, before any dispatch.",
        parameters={
            "type": "object",
            "properties": {
                "summary": {"type": "string", "description": "Your summary of the plan"},
            },
            "required": ["summary"],
        },
    )
    async def acknowledge_plan(self, summary: str) -> ToolResult:
        self._acknowledged = True
        logger.info("Planner acknowledged plan: %s", summary)
        return ToolResult.ok(
            f"Plan acknowledged. {len(self.plan.steps)} steps pending. Dispatch tasks in order."
        )

    @tool(
        name="dispatchTask",
        description=(
            "Assign a task to a worker robot and wait until the worker reports back. "
            "Returns the worker's report."
        ),
        parameters={
            "type": "object",
            "properties": {
                "workerId": {"type": "integer", "description": "Worker robot ID (0-4)"},
                "description": {
                    "type": "string",
                    "description": "Concrete instructions for the worker",
                },
                "relatedStepId": {
                    "type": "string",
                    "description": "Step this task performs, e.g. step-3. Omit for transport-only tasks",
                },
            },
            "required": ["workerId", "description"],
        },
    )
    async def dispatch_task(
        self, workerId: Any, description: str, relatedStepId: Any = None
    ) -> ToolResult:
        if not self._acknowledged:
            return ToolResult.fail("Call acknowledgePlan before dispatching tasks")
        if self._dispatch_in_flight:
            return ToolResult.fail("Another dispatch is still running; wait for it to finish")

        try:
            worker_id = int(workerId)
        except (TypeError, ValueError):
            worker_id = None
        if worker_id not in self.runtimes:
            return ToolResult.fail(
                f"Unknown worker '{workerId}'. Valid workers: {', '.join(map(str, sorted(self.runtimes)))}"
            )

        step: Optional[Step] = None
        if relatedStepId not in (None, ""):
            step = self.plan.get_step(relatedStepId)
            if step is None:
                return ToolResult.fail(f"Unknown step '{relatedStepId}'")
            if step.status == StepStatus.COMPLETED:
                return ToolResult.fail(f"{step.label} is already completed")
            if step.status == StepStatus.IN_PROGRESS:
                return ToolResult.fail(f"{step.label} is already in progress")

        refusal = self._refuse_when_stopped(step)
        if refusal:
            return refusal

        if step is not None:
            step.mark_in_progress(worker_id)
            self._started_segments.update(step.segment_indices)
            self.world.notify()

        logger.info(
            "Dispatch to worker %d%s: %s",
            worker_id, f" ({step.label})" if step else "", description,
        )

        self._dispatch_in_flight = True
        try:
            outcome = await self._run_worker(worker_id, description, step)
        except Exception as e:
            logger.exception("Worker %d session crashed", worker_id)
            outcome = SessionOutcome(
                status=OutcomeStatus.ERROR,
                summary=f"Worker session crashed: {e}",
                turns=0,
            )
        finally:
            self._dispatch_in_flight = False

        succeeded = outcome.succeeded and not reports_failure(outcome.summary)
        if step is not None:
            if succeeded:
                step.mark_completed(outcome.summary)
                logger.info("%s completed by worker %d", step.label, worker_id)
            else:
                step.mark_failed(outcome.summary)
                logger.warning(
                    "%s failed (worker %d, %s): %s",
                    step.label, worker_id, outcome.status.value, outcome.summary,
                )
            self.world.notify()
        elif not succeeded:
            logger.warning("Worker %d reported a problem: %s", worker_id, outcome.summary)

        self.dispatches.append(DispatchRecord(
            worker_id=worker_id,
            description=description,
            step_label=step.label if step else None,
            outcome=outcome,
            succeeded=succeeded,
        ))

        report = f"Worker {worker_id} {outcome.status.value}: {outcome.summary}"
        if succeeded:
            return ToolResult.ok(report)
        return ToolResult.fail(report)

    def _refuse_when_stopped(self, step: Optional[Step]) -> Optional[ToolResult]:
        if self.running:
            return None
        if step is None:
            if self.world.live_workpiece is None:
                return ToolResult.fail("Production stopped; no further work will be started")
            return None
        not_started = [i for i in step.segment_indices if i not in self._started_segments]
        if not_started:
            return ToolResult.fail(
                f"Production stopped; segment {not_started[0] + 1} will not be started"
            )
        return None

    async def _run_worker(self, worker_id: int, description: str, step: Optional[Step]) -> SessionOutcome:
        definition = get_worker_definition(worker_id)
        # Every dispatch gets a fresh conversation
        self.sessions.reset(definition.name)
        session = self.sessions.get_or_create(definition.name, lambda: AgentSession(
            name=definition.name,
            provider=self.provider,
            system_prompt=definition.system_prompt,
            tools=self.runtimes[worker_id].tool_set(),
            tier=definition.tier,
            max_turns=self.settings.worker_max_turns,
            backoff_ms=self.settings.rate_limit_backoff_ms,
            sleep=self._sleep,
            on_tool_call=self._on_tool_call,
        ))

        message = f"TASK: {description}"
        if step is not None:
            message += f"\nStep: {step.digest_line()}"
        try:
            return await session.run(message)
        finally:
            self.sessions.reset(definition.name)

    @tool(
        name="getStatus",
        description="Get the status of all workers, machines, the pipe rack and every step.",
    )
    async def get_status(self) -> ToolResult:
        snapshot = self.world.snapshot().to_dict()
        snapshot["progress"] = self.plan.get_summary() if self.plan else {}
        return ToolResult.ok(json.dumps(snapshot))

    @tool(
        name="reportComplete",
        description="Report that the order is finished, with a final summary.",
        parameters={
            "type": "object",
            "properties": {
                "summary": {"type": "string", "description": "Final production summary"},
            },
            "required": ["summary"],
        },
        terminal=True,
    )
    async def report_complete(self, summary: str) -> ToolResult:
        self._final_report = summary
        return ToolResult.ok(summary)

    def _on_tool_call(self, session: str, name: str, args: dict, response: str, success: bool) -> None:
        logger.debug("[%s] %s(%s) -> %s", session, name, args, response)
        if self.verbose:
            print_tool_call(session, name, args, response, success)


def create_orchestrator(
    provider: LLMProvider,
    settings: Optional[FactorySettings] = None,
    verbose: bool = False,
    **kwargs: Any,
) -> FactoryOrchestrator:
    """
    Factory function to create an orchestrator.

    Args:
        provider: Reasoning service
        settings: Turn limits, backoff and pacing (uses env if None)
        verbose: Print plan and tool activity
        **kwargs: Passed to FactoryOrchestrator

    Returns:
        Configured FactoryOrchestrator
    """
    return FactoryOrchestrator(provider, settings=settings, verbose=verbose, **kwargs)
