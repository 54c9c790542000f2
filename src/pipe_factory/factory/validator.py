"""
Constraint Validator

Checks a product specification against machine capability bounds.
Hard errors block the order; warnings are surfaced for operator awareness
only. Validation is pure: diameters are resolved by resolve_segments and
the submitted spec is left untouched.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .constraints import DEFAULT_CONSTRAINTS, MachineConstraints
from .segments import LENGTH_EPSILON, ResolvedSegment, resolve_segments, used_length
from .spec import ProductSpec

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """
    Result of validating a product specification.
    """

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    segments: tuple[ResolvedSegment, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def _outside(value: float, low: float, high: float) -> bool:
    return value < low or value > high


class ConstraintValidator:
    """
    Validates pipe specifications against MachineConstraints.
    """

    def __init__(self, constraints: Optional[MachineConstraints] = None):
        self.constraints = constraints or DEFAULT_CONSTRAINTS

    def validate(self, spec: ProductSpec) -> ValidationResult:
        """
        Validate a specification.

        Args:
            spec: The submitted product specification

        Returns:
            ValidationResult with errors, warnings and resolved segments
        """
        c = self.constraints
        errors: list[str] = []
        warnings: list[str] = []

        if not spec.total_length or spec.total_length <= 0:
            errors.append("Total pipe length must be greater than 0")
        elif spec.total_length < c.min_total_length:
            errors.append(f"Total length must be at least {c.min_total_length}m")
        elif spec.total_length > c.max_total_length:
            errors.append(f"Total length must not exceed {c.max_total_length}m")

        if not spec.initial_diameter or spec.initial_diameter <= 0:
            errors.append("Initial diameter is required")
        elif spec.initial_diameter < c.roller_diameter_min:
            errors.append(
                f"Initial diameter must be at least {c.roller_diameter_min}m (roller bender minimum)"
            )
        elif spec.initial_diameter > c.roller_diameter_max:
            errors.append(
                f"Initial diameter must not exceed {c.roller_diameter_max}m (roller bender maximum)"
            )

        # Nothing segment-level to report; avoid cascading noise
        if errors and not spec.segments:
            logger.debug("Specification rejected before segment checks: %s", errors)
            return ValidationResult(valid=False, errors=errors, warnings=warnings)

        segments = resolve_segments(spec)

        for i, seg in enumerate(segments):
            label = f"Segment {i + 1}"
            if seg.is_cylinder:
                self._check_cylinder(label, seg, errors, warnings)
            else:
                self._check_frustrum(label, seg, errors, warnings)

        used = used_length(segments)
        if spec.total_length > 0 and used - spec.total_length > LENGTH_EPSILON:
            errors.append(
                f"Segments total {used:.1f}m exceeds pipe length {spec.total_length}m"
            )

        remaining = spec.total_length - used
        if LENGTH_EPSILON < remaining < c.min_segment_height - LENGTH_EPSILON:
            warnings.append(
                f"Remaining {remaining:.1f}m is less than minimum segment height "
                f"({c.min_segment_height}m). Consider adjusting segments to use the full length."
            )

        if not spec.segments and spec.total_length > c.roller_height_max:
            warnings.append(
                f"Pipe length {spec.total_length}m exceeds max single cylinder height "
                f"({c.roller_height_max}m). It will be split into multiple segments automatically."
            )

        result = ValidationResult(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            segments=segments,
        )
        if not result.valid:
            logger.debug("Specification rejected: %s", errors)
        return result

    def _check_cylinder(
        self,
        label: str,
        seg: ResolvedSegment,
        errors: list[str],
        warnings: list[str],
    ) -> None:
        c = self.constraints
        if seg.height < c.min_segment_height:
            errors.append(f"{label}: Cylinder height must be at least {c.min_segment_height}m")
        if seg.height > c.roller_height_max:
            errors.append(f"{label}: Cylinder height must not exceed {c.roller_height_max}m")
        if _outside(seg.top_diameter, c.roller_diameter_min, c.roller_diameter_max):
            errors.append(
                f"{label}: Cylinder diameter {seg.top_diameter:.2f}m outside roller range "
                f"[{c.roller_diameter_min}, {c.roller_diameter_max}]m"
            )
        if seg.declared_diameter is not None and abs(seg.declared_diameter - seg.top_diameter) > LENGTH_EPSILON:
            warnings.append(
                f"{label}: Declared diameter {seg.declared_diameter}m ignored; "
                f"cylinder continues the running diameter {seg.top_diameter}m"
            )

    def _check_frustrum(
        self,
        label: str,
        seg: ResolvedSegment,
        errors: list[str],
        warnings: list[str],
    ) -> None:
        c = self.constraints
        top_r = seg.top_radius
        bottom_r = seg.bottom_radius

        if _outside(top_r, c.frustrum_top_radius_min, c.frustrum_top_radius_max):
            errors.append(
                f"{label}: Top radius {top_r:.2f}m outside range "
                f"[{c.frustrum_top_radius_min}, {c.frustrum_top_radius_max}]m"
            )
        if _outside(bottom_r, c.frustrum_bottom_radius_min, c.frustrum_bottom_radius_max):
            errors.append(
                f"{label}: Bottom radius {bottom_r:.2f}m outside range "
                f"[{c.frustrum_bottom_radius_min}, {c.frustrum_bottom_radius_max}]m"
            )
        if seg.height < c.frustrum_height_min:
            errors.append(f"{label}: Frustrum height must be at least {c.frustrum_height_min}m")
        if seg.height > c.frustrum_height_max:
            errors.append(f"{label}: Frustrum height must not exceed {c.frustrum_height_max}m")
        if seg.declared_diameter is not None and abs(seg.declared_diameter - seg.top_diameter) > LENGTH_EPSILON:
            warnings.append(
                f"{label}: Declared top diameter {seg.declared_diameter}m ignored; "
                f"frustrum starts at the running diameter {seg.top_diameter}m"
            )


def validate_spec(
    spec: ProductSpec,
    constraints: Optional[MachineConstraints] = None,
) -> ValidationResult:
    """Validate with a one-off validator."""
    return ConstraintValidator(constraints).validate(spec)
