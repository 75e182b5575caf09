# =============================================================================
# Geometry Validator
# =============================================================================
# Validates candidate GeoJSON geometry before it is persisted:
# structure -> object type compatibility -> region bounds -> self-intersection.
# =============================================================================

import json
from collections.abc import Mapping
from typing import Any, Sequence

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from watermap.errors import (
    EmptyGeometryError,
    GeometryTypeMismatchError,
    InvalidGeometryError,
    OutsideBoundsError,
    SelfIntersectingError,
    ValidationError,
)
from watermap.models.spatial import REGION_BOUNDS, Bounds, Geometry, GeometryType
from watermap.models.water_object import ALLOWED_GEOMETRY_TYPES, ObjectType

__all__ = [
    "GeometryValidator",
    "validate_geometry",
    "parse_geometry",
    "orientation",
    "segments_cross",
    "is_self_intersecting",
]

_GEOMETRY_ADAPTER: TypeAdapter = TypeAdapter(Geometry)
_KNOWN_TYPES = frozenset(t.value for t in GeometryType)

Point2D = Sequence[float]


# =============================================================================
# Structural parsing
# =============================================================================


def _is_empty_payload(coordinates: Any) -> bool:
    """True when a coordinate payload holds no positions at any depth."""
    if coordinates is None:
        return True
    if isinstance(coordinates, (list, tuple)):
        if not coordinates:
            return True
        if all(isinstance(item, (list, tuple)) for item in coordinates):
            return all(_is_empty_payload(item) for item in coordinates)
    return False


def parse_geometry(raw: Any) -> Geometry:
    """
    Decode raw GeoJSON into a supported geometry shape.

    Args:
        raw: JSON text/bytes or a mapping of the form {"type": ..., "coordinates": ...}

    Returns:
        Parsed geometry model

    Raises:
        InvalidGeometryError: If the input is not a recognized, well-formed geometry
        EmptyGeometryError: If the coordinate payload is missing or empty
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump(mode="json")
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        if not raw.strip():
            raise EmptyGeometryError("geometry is empty")
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidGeometryError(f"invalid geojson structure: {e}") from e

    if not isinstance(raw, Mapping):
        raise InvalidGeometryError(
            f"invalid geojson structure: expected an object, got {type(raw).__name__}"
        )

    geometry_type = raw.get("type")
    if geometry_type not in _KNOWN_TYPES:
        raise InvalidGeometryError(
            f"invalid geojson structure: unsupported geometry type {geometry_type!r}"
        )

    if _is_empty_payload(raw.get("coordinates")):
        raise EmptyGeometryError("geometry is empty")

    try:
        return _GEOMETRY_ADAPTER.validate_python(
            {"type": geometry_type, "coordinates": raw["coordinates"]}
        )
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"][1:])
        raise InvalidGeometryError(
            f"invalid geojson structure: {first['msg']} (at {location or 'coordinates'})"
        ) from e


# =============================================================================
# Self-intersection
# =============================================================================


def orientation(a: Point2D, b: Point2D, c: Point2D) -> float:
    """
    Orientation determinant of point c relative to the directed line a -> b.

    The sign tells which side of the line c lies on; zero means collinear.
    """
    return (c[0] - a[0]) * (b[1] - a[1]) - (b[0] - a[0]) * (c[1] - a[1])


def segments_cross(a: Point2D, b: Point2D, c: Point2D, d: Point2D) -> bool:
    """
    Test whether segments AB and CD properly cross.

    C and D must lie strictly on opposite sides of AB, and A and B strictly
    on opposite sides of CD. Touching or collinear segments do not count.
    """
    d1 = orientation(c, d, a)
    d2 = orientation(c, d, b)
    d3 = orientation(a, b, c)
    d4 = orientation(a, b, d)

    return ((d1 > 0 > d2) or (d1 < 0 < d2)) and ((d3 > 0 > d4) or (d3 < 0 < d4))


def is_self_intersecting(ring: Sequence[Point2D]) -> bool:
    """
    Check a closed ring for crossing non-adjacent edges (O(n²)).

    A ring of n points (last == first) has n - 1 edges. Edge i is compared
    with every edge j >= i + 2; the first and last edges share the closing
    vertex and are skipped.
    """
    n = len(ring)
    if n < 4:
        return False

    for i in range(n - 1):
        for j in range(i + 2, n - 1):
            if i == 0 and j == n - 2:
                continue
            if segments_cross(ring[i], ring[i + 1], ring[j], ring[j + 1]):
                return True
    return False


# =============================================================================
# Validator
# =============================================================================


class GeometryValidator:
    """
    Stateless geometry validator.

    Checks run in order and the first failure wins:
    1. Structure (recognized type tag, well-formed coordinates, non-empty)
    2. Object type compatibility (ALLOWED_GEOMETRY_TYPES)
    3. Bounding-box center inside the service region
    4. Exterior rings of polygons are simple (holes are not checked)

    Instances hold no mutable state and are safe to share between threads.

    Example:
        >>> validator = GeometryValidator()
        >>> validator.validate({"type": "Point", "coordinates": [71.4, 51.1]}, "spring")
        Point(type='Point', coordinates=(71.4, 51.1))
    """

    def __init__(self, region: Bounds = REGION_BOUNDS) -> None:
        self.region = region

    def validate(self, raw: Any, object_type: ObjectType | str) -> Geometry:
        """
        Validate raw GeoJSON for the given object type.

        Args:
            raw: JSON text/bytes or mapping with "type" and "coordinates"
            object_type: Water object type the geometry belongs to

        Returns:
            The parsed geometry

        Raises:
            ValidationError: If object_type is not a recognized type
            GeometryError: If the geometry fails any check
        """
        try:
            object_type = ObjectType(object_type)
        except ValueError as e:
            raise ValidationError(f"invalid object type: {object_type!r}") from e

        geometry = parse_geometry(raw)

        allowed = ALLOWED_GEOMETRY_TYPES[object_type]
        if geometry.geometry_type not in allowed:
            raise GeometryTypeMismatchError(
                expected=[t.value for t in allowed],
                got=geometry.geometry_type.value,
            )

        center_x, center_y = geometry.bounds().center
        if not self.region.contains(center_x, center_y):
            raise OutsideBoundsError(
                f"geometry center ({center_x:.4f}, {center_y:.4f}) is outside region bounds"
            )

        for ring in geometry.exterior_rings():
            if is_self_intersecting(ring):
                raise SelfIntersectingError("polygon is self-intersecting")

        return geometry


_default_validator = GeometryValidator()


def validate_geometry(raw: Any, object_type: ObjectType | str) -> Geometry:
    """Validate raw GeoJSON against the default service region."""
    return _default_validator.validate(raw, object_type)
