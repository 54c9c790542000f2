"""
Unit tests for spec parsing and constraint validation.

This module contains unit tests for:
- ProductSpec parsing of the camelCase submission format
- resolve_segments diameter threading
- ConstraintValidator hard errors at every machine bound
- ConstraintValidator warnings
"""

import pytest
from pydantic import ValidationError

from pipe_factory.factory.constraints import MachineConstraints
from pipe_factory.factory.segments import resolve_segments
from pipe_factory.factory.spec import CylinderSegment, FrustrumSegment, ProductSpec
from pipe_factory.factory.validator import ConstraintValidator, validate_spec


def make_spec(total=10.0, diameter=1.0, segments=None):
    return ProductSpec.model_validate({
        "totalLength": total,
        "initialDiameter": diameter,
        "segments": segments or [],
    })


class TestProductSpec:
    """Test the submission model."""

    def test_parses_camel_case_fields(self):
        """Submission keys map onto the model fields."""
        spec = ProductSpec.from_json(
            '{"totalLength": 5, "initialDiameter": 1.0,'
            ' "segments": [{"type": "frustrum", "height": 0.8, "bottomDiameter": 0.6}]}'
        )

        assert spec.total_length == 5.0
        assert spec.initial_diameter == 1.0
        assert isinstance(spec.segments[0], FrustrumSegment)
        assert spec.segments[0].bottom_diameter == 0.6

    def test_segment_type_is_discriminated(self):
        """Each segment becomes the model named by its type."""
        spec = make_spec(segments=[
            {"type": "cylinder", "height": 2.0},
            {"type": "frustrum", "height": 0.5},
        ])

        assert isinstance(spec.segments[0], CylinderSegment)
        assert isinstance(spec.segments[1], FrustrumSegment)

    def test_unknown_segment_type_rejected(self):
        """A segment type outside cylinder/frustrum is a parse error."""
        with pytest.raises(ValidationError):
            make_spec(segments=[{"type": "elbow", "height": 2.0}])

    def test_submission_round_trips_aliases(self):
        """to_submission writes the camelCase keys back."""
        spec = make_spec(total=5, segments=[{"type": "frustrum", "height": 0.8, "bottomDiameter": 0.6}])

        data = spec.to_submission()

        assert data["totalLength"] == 5.0
        assert data["segments"][0]["bottomDiameter"] == 0.6
        assert "topDiameter" not in data["segments"][0]


class TestResolveSegments:
    """Test running diameter threading."""

    def test_frustrum_sets_running_diameter(self):
        """Segments after a frustrum continue at its bottom diameter."""
        spec = make_spec(total=6, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": 0.6},
            {"type": "cylinder", "height": 2.0, "diameter": 1.0},
        ])

        frustrum, cylinder = resolve_segments(spec)

        assert frustrum.top_diameter == 1.0
        assert frustrum.bottom_diameter == 0.6
        assert cylinder.top_diameter == 0.6
        assert cylinder.bottom_diameter == 0.6

    def test_frustrum_without_bottom_keeps_diameter(self):
        """An omitted bottom diameter means no change."""
        spec = make_spec(total=3, segments=[{"type": "frustrum", "height": 0.5}])

        (frustrum,) = resolve_segments(spec)

        assert frustrum.bottom_diameter == 1.0

    def test_submitted_spec_is_not_modified(self):
        """Resolution returns new objects and leaves the submission alone."""
        spec = make_spec(total=6, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": 0.6},
            {"type": "cylinder", "height": 2.0},
        ])
        before = spec.model_dump()

        resolve_segments(spec)
        ConstraintValidator().validate(spec)

        assert spec.model_dump() == before
        assert spec.segments[1].diameter is None


class TestTotalLengthBounds:
    """Test total length checks."""

    @pytest.mark.parametrize("total", [1.0, 50.0])
    def test_inclusive_bounds_accepted(self, total):
        """The minimum and maximum lengths are both valid."""
        result = validate_spec(make_spec(total=total))

        assert result.valid, result.errors

    def test_zero_length(self):
        result = validate_spec(make_spec(total=0))

        assert "Total pipe length must be greater than 0" in result.errors

    def test_below_minimum(self):
        result = validate_spec(make_spec(total=0.5))

        assert "Total length must be at least 1.0m" in result.errors

    def test_above_maximum(self):
        result = validate_spec(make_spec(total=50.5))

        assert "Total length must not exceed 50.0m" in result.errors


class TestInitialDiameterBounds:
    """Test initial diameter checks against the roller range."""

    @pytest.mark.parametrize("diameter", [0.3, 2.0])
    def test_inclusive_bounds_accepted(self, diameter):
        result = validate_spec(make_spec(total=3, diameter=diameter))

        assert result.valid, result.errors

    def test_missing(self):
        result = validate_spec(make_spec(diameter=0))

        assert "Initial diameter is required" in result.errors

    def test_below_roller_minimum(self):
        result = validate_spec(make_spec(diameter=0.29))

        assert "Initial diameter must be at least 0.3m (roller bender minimum)" in result.errors

    def test_above_roller_maximum(self):
        result = validate_spec(make_spec(diameter=2.01))

        assert "Initial diameter must not exceed 2.0m (roller bender maximum)" in result.errors

    def test_errors_without_segments_short_circuit(self):
        """Top-level errors and no segments: nothing else is reported."""
        result = validate_spec(make_spec(total=0, diameter=0))

        assert not result.valid
        assert result.errors == [
            "Total pipe length must be greater than 0",
            "Initial diameter is required",
        ]
        assert result.warnings == []
        assert result.segments == ()


class TestCylinderChecks:
    """Test per-cylinder bounds."""

    @pytest.mark.parametrize("height", [1.0, 5.0])
    def test_height_bounds_accepted(self, height):
        result = validate_spec(make_spec(total=5, segments=[{"type": "cylinder", "height": height}]))

        assert result.valid, result.errors

    def test_too_short(self):
        result = validate_spec(make_spec(total=5, segments=[{"type": "cylinder", "height": 0.9}]))

        assert "Segment 1: Cylinder height must be at least 1.0m" in result.errors

    def test_too_tall(self):
        result = validate_spec(make_spec(total=10, segments=[{"type": "cylinder", "height": 5.5}]))

        assert "Segment 1: Cylinder height must not exceed 5.0m" in result.errors

    def test_segment_numbering_is_one_based(self):
        """Errors name the segment by its position in the submission."""
        result = validate_spec(make_spec(total=10, segments=[
            {"type": "cylinder", "height": 2.0},
            {"type": "cylinder", "height": 0.5},
        ]))

        assert any(e.startswith("Segment 2:") for e in result.errors)
        assert not any(e.startswith("Segment 1:") for e in result.errors)

    def test_declared_diameter_mismatch_warns(self):
        """A cylinder always continues the running diameter."""
        result = validate_spec(make_spec(total=3, segments=[
            {"type": "cylinder", "height": 3.0, "diameter": 1.5},
        ]))

        assert result.valid
        assert any("Declared diameter 1.5m ignored" in w for w in result.warnings)


class TestFrustrumChecks:
    """Test per-frustrum bounds."""

    @pytest.mark.parametrize("height", [0.3, 1.5])
    def test_height_bounds_accepted(self, height):
        result = validate_spec(make_spec(total=5, segments=[
            {"type": "frustrum", "height": height, "bottomDiameter": 0.8},
        ]))

        assert result.valid, result.errors

    def test_height_too_small(self):
        result = validate_spec(make_spec(total=5, segments=[
            {"type": "frustrum", "height": 0.2, "bottomDiameter": 0.8},
        ]))

        assert "Segment 1: Frustrum height must be at least 0.3m" in result.errors

    def test_height_too_large(self):
        result = validate_spec(make_spec(total=5, segments=[
            {"type": "frustrum", "height": 1.6, "bottomDiameter": 0.8},
        ]))

        assert "Segment 1: Frustrum height must not exceed 1.5m" in result.errors

    def test_top_radius_follows_running_diameter(self):
        """A 0.3m pipe gives a 0.15m top radius, below the press minimum."""
        result = validate_spec(make_spec(total=5, diameter=0.3, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": 0.6},
        ]))

        assert any("Top radius 0.15m outside range" in e for e in result.errors)

    def test_bottom_radius_too_small(self):
        result = validate_spec(make_spec(total=5, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": 0.4},
        ]))

        assert any("Bottom radius 0.20m outside range" in e for e in result.errors)

    def test_bottom_radius_too_large(self):
        result = validate_spec(make_spec(total=5, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": 2.6},
        ]))

        assert any("Bottom radius 1.30m outside range" in e for e in result.errors)

    @pytest.mark.parametrize("diameter", [0.4, 2.0])
    def test_top_radius_bounds_accepted(self, diameter):
        """Top radius 0.2m and 1.0m are both inside the press range."""
        result = validate_spec(make_spec(total=5, diameter=diameter, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": 0.8},
        ]))

        assert not any("Top radius" in e for e in result.errors)
        assert result.valid, result.errors

    @pytest.mark.parametrize("diameter, shown", [(0.38, "0.19"), (2.02, "1.01")])
    def test_top_radius_just_outside_rejected(self, diameter, shown):
        result = validate_spec(make_spec(total=5, diameter=diameter, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": 0.8},
        ]))

        assert not result.valid
        assert any(f"Top radius {shown}m outside range [0.2, 1.0]m" in e for e in result.errors)

    @pytest.mark.parametrize("bottom_diameter", [0.6, 2.4])
    def test_bottom_radius_bounds_accepted(self, bottom_diameter):
        """Bottom radius 0.3m and 1.2m are both inside the press range."""
        result = validate_spec(make_spec(total=5, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": bottom_diameter},
        ]))

        assert result.valid, result.errors

    @pytest.mark.parametrize("bottom_diameter, shown", [(0.58, "0.29"), (2.42, "1.21")])
    def test_bottom_radius_just_outside_rejected(self, bottom_diameter, shown):
        result = validate_spec(make_spec(total=5, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": bottom_diameter},
        ]))

        assert not result.valid
        assert any(
            f"Segment 1: Bottom radius {shown}m outside range [0.3, 1.2]m" in e
            for e in result.errors
        )

    def test_chained_frustrum_top_radius_too_large(self):
        """A frustrum widening to 2.4m leaves the next one starting at a 1.2m radius."""
        result = validate_spec(make_spec(total=5, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": 2.4},
            {"type": "frustrum", "height": 0.8, "bottomDiameter": 1.0},
        ]))

        assert not any(e.startswith("Segment 1:") for e in result.errors)
        assert "Segment 2: Top radius 1.20m outside range [0.2, 1.0]m" in result.errors

    def test_cylinder_after_frustrum_checked_at_new_diameter(self):
        """A frustrum can take the pipe outside the roller range."""
        constraints = MachineConstraints(frustrum_bottom_radius_min=0.1)
        result = ConstraintValidator(constraints).validate(make_spec(total=5, segments=[
            {"type": "frustrum", "height": 0.8, "bottomDiameter": 0.2},
            {"type": "cylinder", "height": 2.0},
        ]))

        assert any(e.startswith("Segment 2: Cylinder diameter 0.20m outside roller range") for e in result.errors)


class TestLengthAccounting:
    """Test declared length against the total."""

    def test_segments_exceed_total(self):
        result = validate_spec(make_spec(total=3, segments=[{"type": "cylinder", "height": 4.0}]))

        assert "Segments total 4.0m exceeds pipe length 3.0m" in result.errors

    def test_short_remainder_warns(self):
        """A remainder below the minimum segment height is dropped with a warning."""
        result = validate_spec(make_spec(total=5, segments=[{"type": "cylinder", "height": 4.5}]))

        assert result.valid
        assert any(w.startswith("Remaining 0.5m is less than minimum segment height") for w in result.warnings)

    def test_long_unsegmented_pipe_warns(self):
        result = validate_spec(make_spec(total=10))

        assert result.valid
        assert any("split into multiple segments" in w for w in result.warnings)

    def test_exact_fill_has_no_warnings(self):
        result = validate_spec(make_spec(total=5, segments=[
            {"type": "cylinder", "height": 2.0},
            {"type": "cylinder", "height": 3.0},
        ]))

        assert result.valid
        assert result.warnings == []

    def test_to_dict(self):
        result = validate_spec(make_spec(total=0.5))

        assert result.to_dict() == {
            "valid": False,
            "errors": ["Total length must be at least 1.0m"],
            "warnings": [],
        }
