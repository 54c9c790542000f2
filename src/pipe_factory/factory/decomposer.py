"""
Task Decomposition Module

Breaks a validated pipe specification down into an ordered list of atomic
manufacturing steps. Unused length is auto-filled with cylinders and
multi-segment pipes get circumferential join welds at the end.
"""

import itertools
import logging
import math
from typing import Optional

from .constraints import DEFAULT_CONSTRAINTS, MachineConstraints, StationId
from .segments import (
    LENGTH_EPSILON,
    ResolvedSegment,
    resolve_segments,
    running_diameter_after,
    used_length,
)
from .spec import ProductSpec
from .steps import (
    JoinParams,
    PressParams,
    ProductionPlan,
    RollParams,
    SeamParams,
    SheetParams,
    Step,
    StepAction,
)
from ..tui import print_thought

logger = logging.getLogger(__name__)


def _fill(
    length: float, diameter: float, constraints: MachineConstraints
) -> list[ResolvedSegment]:
    """Greedy cylinder fill of a length at a fixed diameter."""
    filled = []
    remaining = length
    while remaining + LENGTH_EPSILON >= constraints.min_segment_height:
        height = min(remaining, constraints.roller_height_max)
        filled.append(ResolvedSegment(
            kind="cylinder",
            height=height,
            top_diameter=diameter,
            bottom_diameter=diameter,
            auto_filled=True,
        ))
        remaining -= height
    return filled


def autofill_segments(
    spec: ProductSpec,
    constraints: Optional[MachineConstraints] = None,
) -> tuple[ResolvedSegment, ...]:
    """
    Resolve declared segments and fill any leftover length with cylinders.

    Leftover below the minimum segment height is dropped.
    """
    constraints = constraints or DEFAULT_CONSTRAINTS
    declared = resolve_segments(spec)

    if not declared:
        return tuple(_fill(spec.total_length, spec.initial_diameter, constraints))

    remaining = spec.total_length - used_length(declared)
    diameter = running_diameter_after(declared, spec.initial_diameter)
    return declared + tuple(_fill(remaining, diameter, constraints))


class TaskDecomposer:
    """
    Decomposes pipe specifications into manufacturing steps.

    Each segment goes through fetch -> cut -> form -> weld seam, then all
    segments are welded together in order.
    """

    def __init__(
        self,
        constraints: Optional[MachineConstraints] = None,
        verbose: bool = False,
    ):
        """
        Initialize task decomposer.

        Args:
            constraints: Machine bounds used for auto-filling
            verbose: Whether to print the decomposed plan
        """
        self.constraints = constraints or DEFAULT_CONSTRAINTS
        self.verbose = verbose

    def decompose(
        self,
        spec: ProductSpec,
        warnings: Optional[list[str]] = None,
    ) -> ProductionPlan:
        """
        Decompose a specification into steps.

        The caller is expected to have validated the spec already.

        Args:
            spec: The product specification
            warnings: Validation warnings to carry along with the plan

        Returns:
            ProductionPlan with ordered steps
        """
        segments = autofill_segments(spec, self.constraints)
        # Ids restart at 1 for every decomposition
        counter = itertools.count(1)
        steps: list[Step] = []

        for index, seg in enumerate(segments):
            if seg.is_cylinder:
                steps.extend(self._cylinder_steps(counter, index, seg))
            else:
                steps.extend(self._frustrum_steps(counter, index, seg))

        if len(segments) > 1:
            for index in range(1, len(segments)):
                steps.append(Step(
                    id=next(counter),
                    machine_id=StationId.WELDER,
                    action=StepAction.WELD_JOIN,
                    description=f"Weld segment {index} to segment {index + 1} (circumferential weld)",
                    params=JoinParams(section_a=index - 1, section_b=index),
                    segment_index=index,
                ))

        plan = ProductionPlan(
            spec=spec,
            segments=segments,
            steps=steps,
            warnings=list(warnings or []),
        )
        logger.info(
            "Decomposed %.2fm pipe into %d segments and %d steps",
            spec.total_length, len(segments), len(steps),
        )

        if self.verbose and plan.steps:
            self._print_plan(plan)

        return plan

    def _cylinder_steps(self, counter, index: int, seg: ResolvedSegment) -> list[Step]:
        diameter = seg.top_diameter
        circumference = math.pi * diameter
        sheet = SheetParams(width=circumference, height=seg.height)
        n = index + 1
        return [
            Step(
                id=next(counter),
                machine_id=StationId.SHEET_STOCK,
                action=StepAction.FETCH,
                description=(
                    f"Fetch metal sheet for cylinder segment {n} "
                    f"({diameter:.1f}m dia, {seg.height:.1f}m tall)"
                ),
                params=sheet,
                segment_index=index,
            ),
            Step(
                id=next(counter),
                machine_id=StationId.CUTTER,
                action=StepAction.CUT,
                description=(
                    f"Cut sheet to {circumference:.2f}m x {seg.height:.1f}m "
                    f"for cylinder segment {n}"
                ),
                params=sheet,
                segment_index=index,
            ),
            Step(
                id=next(counter),
                machine_id=StationId.ROLLER,
                action=StepAction.FORM_CYLINDER,
                description=(
                    f"Bend sheet into cylinder: diameter {diameter:.1f}m, "
                    f"height {seg.height:.1f}m"
                ),
                params=RollParams(diameter=diameter, height=seg.height),
                segment_index=index,
            ),
            Step(
                id=next(counter),
                machine_id=StationId.WELDER,
                action=StepAction.WELD_SEAM,
                description=f"Weld longitudinal seam on cylinder segment {n}",
                params=SeamParams(
                    top_diameter=diameter, bottom_diameter=diameter, height=seg.height
                ),
                segment_index=index,
            ),
        ]

    def _frustrum_steps(self, counter, index: int, seg: ResolvedSegment) -> list[Step]:
        top_r = seg.top_radius
        bottom_r = seg.bottom_radius
        # Sheet size approximated from the slant height and mean circumference
        slant_height = math.sqrt(seg.height ** 2 + (bottom_r - top_r) ** 2)
        avg_circumference = math.pi * (seg.top_diameter + seg.bottom_diameter) / 2
        sheet = SheetParams(width=avg_circumference, height=slant_height)
        n = index + 1
        return [
            Step(
                id=next(counter),
                machine_id=StationId.SHEET_STOCK,
                action=StepAction.FETCH,
                description=(
                    f"Fetch metal sheet for frustrum segment {n} "
                    f"({seg.top_diameter:.1f}m -> {seg.bottom_diameter:.1f}m)"
                ),
                params=sheet,
                segment_index=index,
            ),
            Step(
                id=next(counter),
                machine_id=StationId.CUTTER,
                action=StepAction.CUT,
                description=f"Cut sheet for frustrum segment {n}",
                params=sheet,
                segment_index=index,
            ),
            Step(
                id=next(counter),
                machine_id=StationId.PRESS,
                action=StepAction.FORM_FRUSTRUM,
                description=(
                    f"Press frustrum: top radius {top_r:.2f}m, bottom radius "
                    f"{bottom_r:.2f}m, height {seg.height:.1f}m"
                ),
                params=PressParams(
                    top_radius=top_r, bottom_radius=bottom_r, frustrum_height=seg.height
                ),
                segment_index=index,
            ),
            Step(
                id=next(counter),
                machine_id=StationId.WELDER,
                action=StepAction.WELD_SEAM,
                description=f"Weld longitudinal seam on frustrum segment {n}",
                params=SeamParams(
                    top_diameter=seg.top_diameter,
                    bottom_diameter=seg.bottom_diameter,
                    height=seg.height,
                ),
                segment_index=index,
            ),
        ]

    @staticmethod
    def digest(plan: ProductionPlan) -> str:
        """Plain-text step digest, one line per step."""
        return "\n".join(step.digest_line() for step in plan.steps)

    def _print_plan(self, plan: ProductionPlan) -> None:
        """Print the decomposed plan."""
        spec = plan.spec
        content = f"Pipe: {spec.total_length}m, initial diameter {spec.initial_diameter}m\n\n"
        content += f"Decomposed into {len(plan.steps)} steps over {len(plan.segments)} segments:\n"
        for step in plan.steps:
            content += f"  {step.label} [{step.machine_id.value}] {step.description}\n"

        print_thought(content, title="[TASK DECOMPOSITION]")


def create_task_decomposer(
    constraints: Optional[MachineConstraints] = None,
    verbose: bool = False,
) -> TaskDecomposer:
    """
    Factory function to create a task decomposer.

    Args:
        constraints: Machine bounds used for auto-filling
        verbose: Whether to print the decomposed plan

    Returns:
        Configured TaskDecomposer instance
    """
    return TaskDecomposer(constraints=constraints, verbose=verbose)
