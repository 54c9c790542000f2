"""
Machine Constraints

Capability bounds of the factory machines, in meters. Every bound is
inclusive.
"""

from dataclasses import dataclass
from enum import Enum


class StationId(str, Enum):
    """Fixed physical processing locations on the factory floor."""

    SHEET_STOCK = "sheetStock"
    CUTTER = "cutter"
    ROLLER = "roller"
    PRESS = "press"
    WELDER = "welder"
    PIPE_RACK = "pipeRack"


# Floor layout along the X axis, left to right
STATION_POSITIONS: dict[StationId, float] = {
    StationId.SHEET_STOCK: -12.0,
    StationId.CUTTER: -6.0,
    StationId.ROLLER: 0.0,
    StationId.PRESS: 6.0,
    StationId.WELDER: 12.0,
    StationId.PIPE_RACK: 18.0,
}


@dataclass(frozen=True)
class MachineConstraints:
    """
    Physical production limits derived from machine capabilities.
    """

    roller_diameter_min: float = 0.3
    roller_diameter_max: float = 2.0
    roller_height_min: float = 1.0
    roller_height_max: float = 5.0
    frustrum_top_radius_min: float = 0.2
    frustrum_top_radius_max: float = 1.0
    frustrum_bottom_radius_min: float = 0.3
    frustrum_bottom_radius_max: float = 1.2
    frustrum_height_min: float = 0.3
    frustrum_height_max: float = 1.5
    min_segment_height: float = 1.0
    min_total_length: float = 1.0
    max_total_length: float = 50.0

    def __post_init__(self) -> None:
        if self.min_segment_height <= 0:
            raise ValueError("min_segment_height must be positive")
        if self.min_segment_height > self.roller_height_max:
            raise ValueError("min_segment_height must not exceed roller_height_max")


DEFAULT_CONSTRAINTS = MachineConstraints()
