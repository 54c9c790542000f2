"""
Segment resolution.

Threads the running diameter through the declared segments. This is a pure
pass: the submitted spec is never modified, the resolved values are
returned as new objects.
"""

from dataclasses import dataclass
from typing import Optional

from .spec import CylinderSegment, FrustrumSegment, ProductSpec

# Tolerance for accumulated floating point error on lengths
LENGTH_EPSILON = 1e-9


@dataclass(frozen=True)
class ResolvedSegment:
    """A segment with both end diameters known."""

    kind: str  # "cylinder" or "frustrum"
    height: float
    top_diameter: float
    bottom_diameter: float
    auto_filled: bool = False
    declared_diameter: Optional[float] = None

    @property
    def is_cylinder(self) -> bool:
        return self.kind == "cylinder"

    @property
    def top_radius(self) -> float:
        return self.top_diameter / 2

    @property
    def bottom_radius(self) -> float:
        return self.bottom_diameter / 2


def resolve_segments(spec: ProductSpec) -> tuple[ResolvedSegment, ...]:
    """
    Resolve the diameters of every declared segment.

    A cylinder takes the running diameter. A frustrum starts at the running
    diameter and ends at its bottom diameter (or the running diameter when
    omitted), which then becomes the running diameter.
    """
    running = spec.initial_diameter
    resolved = []

    for seg in spec.segments:
        if isinstance(seg, CylinderSegment):
            resolved.append(ResolvedSegment(
                kind="cylinder",
                height=seg.height,
                top_diameter=running,
                bottom_diameter=running,
                declared_diameter=seg.diameter,
            ))
        elif isinstance(seg, FrustrumSegment):
            bottom = seg.bottom_diameter or running
            resolved.append(ResolvedSegment(
                kind="frustrum",
                height=seg.height,
                top_diameter=running,
                bottom_diameter=bottom,
                declared_diameter=seg.top_diameter,
            ))
            running = bottom

    return tuple(resolved)


def running_diameter_after(
    segments: tuple[ResolvedSegment, ...], initial_diameter: float
) -> float:
    """Diameter at the open end of the last segment."""
    if not segments:
        return initial_diameter
    return segments[-1].bottom_diameter


def used_length(segments: tuple[ResolvedSegment, ...]) -> float:
    return sum(seg.height for seg in segments)
