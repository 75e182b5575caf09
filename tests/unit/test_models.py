"""
Unit tests for data models.

Tests validation logic, type checking, and model behavior for all Pydantic models.
"""

from datetime import datetime, timezone

import pytest
from pydantic import TypeAdapter, ValidationError

from watermap.models import (
    ALLOWED_GEOMETRY_TYPES,
    REGION_BOUNDS,
    Bounds,
    ChangeAction,
    ChangeLog,
    Geometry,
    GeometryType,
    LineString,
    MultiPolygon,
    ObjectStatus,
    ObjectType,
    Point,
    Polygon,
    ReviewDiff,
    Role,
    WaterObject,
    WaterObjectAttributes,
    WaterObjectFilter,
)
from watermap.models.spatial import validate_linear_ring


GEOMETRY = TypeAdapter(Geometry)


def _record(**overrides):
    now = datetime.now(timezone.utc)
    data = {
        "id": 1,
        "canonical_id": "c3a1f0a2-0000-4000-8000-000000000001",
        "version": 1,
        "name_kz": "Балқаш",
        "object_type": "lake",
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[70, 45], [71, 45], [71, 46], [70, 46], [70, 45]]],
        },
        "status": "draft",
        "created_by": 7,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return WaterObject(**data)


# =============================================================================
# Bounds Tests
# =============================================================================


class TestBounds:
    """Test Bounds validation and derived values."""

    def test_valid_bounds(self):
        bounds = Bounds(minx=0.0, miny=0.0, maxx=10.0, maxy=4.0)
        assert bounds.width == 10.0
        assert bounds.height == 4.0
        assert bounds.area == 40.0
        assert bounds.center == (5.0, 2.0)

    def test_point_bounds_allowed(self):
        """Degenerate (point) bounds are valid."""
        bounds = Bounds(minx=1.0, miny=1.0, maxx=1.0, maxy=1.0)
        assert bounds.area == 0.0

    def test_inverted_bounds_rejected(self):
        with pytest.raises(ValidationError, match="minx"):
            Bounds(minx=10.0, miny=0.0, maxx=0.0, maxy=1.0)
        with pytest.raises(ValidationError, match="miny"):
            Bounds(minx=0.0, miny=10.0, maxx=1.0, maxy=0.0)

    def test_contains_is_inclusive(self):
        bounds = Bounds(minx=0.0, miny=0.0, maxx=1.0, maxy=1.0)
        assert bounds.contains(0.0, 0.0)
        assert bounds.contains(1.0, 1.0)
        assert not bounds.contains(1.01, 0.5)

    def test_from_positions(self):
        bounds = Bounds.from_positions([(3.0, -1.0), (1.0, 2.0), (2.0, 0.0)])
        assert bounds == Bounds(minx=1.0, miny=-1.0, maxx=3.0, maxy=2.0)

    def test_from_positions_empty(self):
        with pytest.raises(ValueError):
            Bounds.from_positions([])

    def test_region_bounds(self):
        assert REGION_BOUNDS.contains(71.4, 51.1)  # Astana
        assert not REGION_BOUNDS.contains(0.0, 0.0)


# =============================================================================
# Geometry Shape Tests
# =============================================================================


class TestGeometryShapes:
    """Test GeoJSON shape parsing through the discriminated union."""

    def test_point(self):
        geometry = GEOMETRY.validate_python({"type": "Point", "coordinates": [71.4, 51.1]})
        assert isinstance(geometry, Point)
        assert geometry.geometry_type == GeometryType.POINT
        assert geometry.exterior_rings() == []

    def test_integer_coordinates_accepted(self):
        geometry = GEOMETRY.validate_python({"type": "Point", "coordinates": [71, 51]})
        assert geometry.bounds().center == (71.0, 51.0)

    def test_string_coordinates_rejected(self):
        with pytest.raises(ValidationError):
            GEOMETRY.validate_python({"type": "Point", "coordinates": ["71.4", "51.1"]})

    def test_boolean_coordinates_rejected(self):
        with pytest.raises(ValidationError):
            GEOMETRY.validate_python({"type": "Point", "coordinates": [True, False]})

    def test_altitude_not_supported(self):
        with pytest.raises(ValidationError):
            GEOMETRY.validate_python({"type": "Point", "coordinates": [71.4, 51.1, 350.0]})

    def test_line_string_needs_two_positions(self):
        with pytest.raises(ValidationError):
            LineString(coordinates=[(70.0, 45.0)])

    def test_polygon_exterior_ring(self, polygon_geometry):
        polygon = Polygon(**polygon_geometry)
        assert polygon.exterior_rings() == [polygon.coordinates[0]]
        assert polygon.bounds() == Bounds(minx=70.0, miny=45.0, maxx=71.0, maxy=46.0)

    def test_multi_polygon_exterior_rings(self, multi_polygon_geometry):
        multi = MultiPolygon(**multi_polygon_geometry)
        assert len(multi.exterior_rings()) == 2
        assert multi.bounds().center == (70.75, 45.75)

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            GEOMETRY.validate_python({"type": "GeometryCollection", "coordinates": []})


class TestLinearRing:
    """Test linear ring validation."""

    def test_closed_ring(self):
        ring = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 0.0)]
        assert validate_linear_ring(ring) == ring

    def test_too_short(self):
        with pytest.raises(ValueError, match="at least 4"):
            validate_linear_ring([(0.0, 0.0), (1.0, 0.0), (0.0, 0.0)])

    def test_not_closed(self):
        with pytest.raises(ValueError, match="closed"):
            validate_linear_ring([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)])


# =============================================================================
# Object Type Catalog Tests
# =============================================================================


class TestObjectTypeCatalog:
    """Test the object type -> geometry catalog."""

    def test_every_type_has_allowed_shapes(self):
        assert set(ALLOWED_GEOMETRY_TYPES) == set(ObjectType)

    @pytest.mark.parametrize("object_type", [ObjectType.RIVER, ObjectType.CANAL])
    def test_linear_types(self, object_type):
        assert object_type.allowed_geometry_types == {
            GeometryType.LINE_STRING,
            GeometryType.MULTI_LINE_STRING,
        }

    @pytest.mark.parametrize(
        "object_type", [ObjectType.LAKE, ObjectType.RESERVOIR, ObjectType.GLACIER]
    )
    def test_areal_types(self, object_type):
        assert object_type.allowed_geometry_types == {
            GeometryType.POLYGON,
            GeometryType.MULTI_POLYGON,
        }

    def test_spring_is_point_only(self):
        assert ObjectType.SPRING.allowed_geometry_types == {GeometryType.POINT}


# =============================================================================
# Attribute Tests
# =============================================================================


class TestWaterObjectAttributes:
    """Test attribute payload validation."""

    def test_valid_attributes(self, lake_attributes):
        assert lake_attributes.object_type == ObjectType.LAKE
        assert lake_attributes.name_kz == "Балқаш"

    def test_name_kz_trimmed(self, lake_attributes_dict):
        lake_attributes_dict["name_kz"] = "  Балқаш  "
        assert WaterObjectAttributes(**lake_attributes_dict).name_kz == "Балқаш"

    def test_blank_name_kz_rejected(self, lake_attributes_dict):
        lake_attributes_dict["name_kz"] = "   "
        with pytest.raises(ValidationError, match="name_kz is required"):
            WaterObjectAttributes(**lake_attributes_dict)

    def test_blank_optional_text_becomes_none(self, lake_attributes_dict):
        lake_attributes_dict["name_ru"] = "  "
        assert WaterObjectAttributes(**lake_attributes_dict).name_ru is None

    def test_unknown_object_type_rejected(self, lake_attributes_dict):
        lake_attributes_dict["object_type"] = "ocean"
        with pytest.raises(ValidationError):
            WaterObjectAttributes(**lake_attributes_dict)

    def test_negative_measurement_rejected(self, lake_attributes_dict):
        lake_attributes_dict["max_depth_m"] = -1.0
        with pytest.raises(ValidationError):
            WaterObjectAttributes(**lake_attributes_dict)

    def test_pollution_index_range(self, lake_attributes_dict):
        lake_attributes_dict["pollution_index"] = 10.5
        with pytest.raises(ValidationError):
            WaterObjectAttributes(**lake_attributes_dict)


# =============================================================================
# Water Object Tests
# =============================================================================


class TestWaterObject:
    """Test the full version record."""

    def test_valid_record(self):
        record = _record()
        assert record.status == ObjectStatus.DRAFT
        assert record.is_editable
        assert isinstance(record.geometry, Polygon)

    def test_rejected_requires_reason(self):
        with pytest.raises(ValidationError, match="rejection_reason"):
            _record(status="rejected")

    def test_reason_only_when_rejected(self):
        with pytest.raises(ValidationError, match="rejection_reason"):
            _record(status="pending", rejection_reason="too vague")

    def test_rejected_with_reason(self):
        record = _record(status="rejected", rejection_reason="fix the shoreline")
        assert record.is_editable

    def test_published_not_editable(self):
        assert not _record(status="published").is_editable

    def test_version_must_be_positive(self):
        with pytest.raises(ValidationError):
            _record(version=0)

    def test_attributes_projection(self):
        attributes = _record(area_km2=12.5).attributes()
        assert isinstance(attributes, WaterObjectAttributes)
        assert attributes.area_km2 == 12.5
        assert not hasattr(attributes, "canonical_id")


class TestFilterAndDiff:
    def test_filter_defaults(self):
        filter = WaterObjectFilter()
        assert filter.object_type is None
        assert filter.limit is None
        assert filter.offset == 0

    def test_filter_limit_bounds(self):
        with pytest.raises(ValidationError):
            WaterObjectFilter(limit=0)

    def test_review_diff_new_object(self):
        diff = ReviewDiff(pending=_record(status="pending"))
        assert diff.is_new_object
        assert diff.changes == {}


# =============================================================================
# Role Tests
# =============================================================================


class TestRole:
    """Test role capabilities."""

    def test_user(self):
        assert not Role.USER.can_edit
        assert not Role.USER.can_review

    def test_expert(self):
        assert Role.EXPERT.can_edit
        assert not Role.EXPERT.can_review

    def test_admin(self):
        assert Role.ADMIN.can_edit
        assert Role.ADMIN.can_review

    def test_from_string(self):
        assert Role("expert") is Role.EXPERT


# =============================================================================
# Change Log Tests
# =============================================================================


class TestChangeLog:
    """Test change log entry model."""

    def test_defaults(self):
        entry = ChangeLog(
            canonical_id="abc",
            water_object_id=1,
            version=1,
            action=ChangeAction.CREATE,
            performed_by=7,
        )
        assert entry.performed_at.tzinfo is not None
        assert entry.changed_fields == {}
        assert entry.reviewer_notes is None

    def test_action_from_string(self):
        entry = ChangeLog(
            canonical_id="abc",
            water_object_id=1,
            version=2,
            action="reject",
            performed_by=1,
            reviewer_notes="wrong basin",
        )
        assert entry.action == ChangeAction.REJECT
