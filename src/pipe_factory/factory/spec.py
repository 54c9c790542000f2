"""
Data models for product (pipe) specifications.

This module defines the Pydantic models accepted at the submission boundary:
- CylinderSegment: straight section bent on the roller
- FrustrumSegment: conical transition pressed on the frustrum press
- ProductSpec: total length, initial diameter and declared segments

Range checks are deliberately absent here. ConstraintValidator reports
them as errors instead of raising.
"""

import json
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CylinderSegment(BaseModel):
    """Straight pipe section.

    The diameter is always the running diameter at this point of the pipe;
    a declared diameter that disagrees is reported as a warning.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["cylinder"] = "cylinder"

    height: float = 0.0
    """Segment height in meters."""

    diameter: Optional[float] = None
    """Declared diameter in meters (informational)."""


class FrustrumSegment(BaseModel):
    """Conical transition section.

    The top diameter continues the running diameter; the bottom diameter
    becomes the running diameter for every following segment.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["frustrum"] = "frustrum"

    height: float = 0.0
    """Frustrum height in meters."""

    top_diameter: Optional[float] = Field(default=None, alias="topDiameter")
    """Declared top diameter in meters (informational)."""

    bottom_diameter: Optional[float] = Field(default=None, alias="bottomDiameter")
    """Bottom diameter in meters. Omitted means no change of diameter."""


Segment = Annotated[
    Union[CylinderSegment, FrustrumSegment],
    Field(discriminator="type"),
]


class ProductSpec(BaseModel):
    """Declarative pipe order as submitted by the customer."""

    model_config = ConfigDict(populate_by_name=True)

    total_length: float = Field(default=0.0, alias="totalLength")
    """Total pipe length in meters."""

    initial_diameter: float = Field(default=0.0, alias="initialDiameter")
    """Diameter of the first segment in meters."""

    segments: list[Segment] = Field(default_factory=list)
    """Declared segments, in order. Unused length is auto-filled."""

    @classmethod
    def from_json(cls, text: str) -> "ProductSpec":
        """Parse a submission JSON document."""
        return cls.model_validate(json.loads(text))

    @classmethod
    def from_file(cls, path: Path | str) -> "ProductSpec":
        """Load a submission JSON document from disk."""
        return cls.from_json(Path(path).read_text(encoding="utf-8"))

    def to_submission(self) -> dict:
        """Render back into the camelCase submission format."""
        return self.model_dump(by_alias=True, exclude_none=True)
