# =============================================================================
# Spatial Types Module
# =============================================================================
# Provides reusable spatial data types with validation:
# - Bounds: Geographic bounding box (lon/lat, EPSG:4326)
# - GeometryType: Supported GeoJSON geometry tags
# - Point / LineString / MultiLineString / Polygon / MultiPolygon
# - Geometry: Discriminated union over the supported shapes
# =============================================================================

from enum import Enum
from typing import Annotated, Iterable, Iterator, Literal, Union

from pydantic import (
    AfterValidator,
    AllowInfNan,
    BaseModel,
    ConfigDict,
    Field,
    Strict,
    model_validator,
)

__all__ = [
    "Bounds",
    "REGION_BOUNDS",
    "GeometryType",
    "Position",
    "Point",
    "LineString",
    "MultiLineString",
    "Polygon",
    "MultiPolygon",
    "Geometry",
    "validate_linear_ring",
]


# =============================================================================
# Bounds (Geographic Bounding Box)
# =============================================================================

class Bounds(BaseModel):
    """
    Geographic bounding box defining a rectangular area.

    Represents a bounding box with minimum and maximum X/Y coordinates
    in (longitude, latitude) order.
    Validates that minx <= maxx and miny <= maxy (allows point bounds).

    Attributes:
        minx: Minimum X coordinate (west)
        miny: Minimum Y coordinate (south)
        maxx: Maximum X coordinate (east)
        maxy: Maximum Y coordinate (north)
    """

    minx: float = Field(..., description="Minimum X coordinate (west)")
    miny: float = Field(..., description="Minimum Y coordinate (south)")
    maxx: float = Field(..., description="Maximum X coordinate (east)")
    maxy: float = Field(..., description="Maximum Y coordinate (north)")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_bounds(self) -> 'Bounds':
        """
        Validate that minx <= maxx and miny <= maxy.

        Allows point bounds (minx == maxx and/or miny == maxy).

        Raises:
            ValueError: If bounds are invalid (min > max)
        """
        if self.minx > self.maxx:
            raise ValueError(
                f"Invalid bounds: minx ({self.minx}) must be less than or equal to maxx ({self.maxx})"
            )
        if self.miny > self.maxy:
            raise ValueError(
                f"Invalid bounds: miny ({self.miny}) must be less than or equal to maxy ({self.maxy})"
            )
        return self

    @classmethod
    def from_positions(cls, positions: Iterable[tuple[float, float]]) -> 'Bounds':
        """
        Build the smallest bounding box enclosing the given positions.

        Raises:
            ValueError: If no positions are given
        """
        xs: list[float] = []
        ys: list[float] = []
        for x, y in positions:
            xs.append(x)
            ys.append(y)
        if not xs:
            raise ValueError("Cannot compute bounds of an empty position set")
        return cls(minx=min(xs), miny=min(ys), maxx=max(xs), maxy=max(ys))

    @property
    def width(self) -> float:
        """Calculate the width (east-west extent) of the bounding box."""
        return self.maxx - self.minx

    @property
    def height(self) -> float:
        """Calculate the height (north-south extent) of the bounding box."""
        return self.maxy - self.miny

    @property
    def area(self) -> float:
        """Calculate the area of the bounding box (width × height)."""
        return self.width * self.height

    @property
    def center(self) -> tuple[float, float]:
        """Center point of the bounding box as (x, y)."""
        return ((self.minx + self.maxx) / 2, (self.miny + self.maxy) / 2)

    def contains(self, x: float, y: float) -> bool:
        """Check whether a point lies inside the box (edges included)."""
        return self.minx <= x <= self.maxx and self.miny <= y <= self.maxy


REGION_BOUNDS = Bounds(minx=46.49, miny=40.57, maxx=87.36, maxy=55.44)
"""Service region rectangle (Kazakhstan), lon/lat order."""


# =============================================================================
# Geometry Types
# =============================================================================

class GeometryType(str, Enum):
    """GeoJSON geometry tags accepted by the registry."""
    POINT = "Point"
    LINE_STRING = "LineString"
    MULTI_LINE_STRING = "MultiLineString"
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"


Coordinate = Annotated[float, Strict(), AllowInfNan(False)]

Position = tuple[Coordinate, Coordinate]
"""A (longitude, latitude) pair. Altitude is not supported."""


def validate_linear_ring(ring: list[Position]) -> list[Position]:
    """
    Validate a GeoJSON linear ring.

    A ring needs at least four positions and must be closed
    (first position equals last position).

    Raises:
        ValueError: If the ring is too short or not closed
    """
    if len(ring) < 4:
        raise ValueError(f"linear ring must have at least 4 positions, got {len(ring)}")
    if ring[0] != ring[-1]:
        raise ValueError("linear ring must be closed (first position must equal last)")
    return ring


LinearRing = Annotated[list[Position], AfterValidator(validate_linear_ring)]
LineCoordinates = Annotated[list[Position], Field(min_length=2)]
PolygonCoordinates = Annotated[list[LinearRing], Field(min_length=1)]


class _Shape(BaseModel):
    """Common behaviour for GeoJSON shapes."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def geometry_type(self) -> GeometryType:
        return GeometryType(self.type)

    def positions(self) -> Iterator[Position]:
        raise NotImplementedError

    def bounds(self) -> Bounds:
        return Bounds.from_positions(self.positions())

    def exterior_rings(self) -> list[list[Position]]:
        """Exterior rings of polygonal members (empty for non-polygons)."""
        return []


class Point(_Shape):
    type: Literal["Point"] = "Point"
    coordinates: Position

    def positions(self) -> Iterator[Position]:
        yield self.coordinates


class LineString(_Shape):
    type: Literal["LineString"] = "LineString"
    coordinates: LineCoordinates

    def positions(self) -> Iterator[Position]:
        yield from self.coordinates


class MultiLineString(_Shape):
    type: Literal["MultiLineString"] = "MultiLineString"
    coordinates: Annotated[list[LineCoordinates], Field(min_length=1)]

    def positions(self) -> Iterator[Position]:
        for line in self.coordinates:
            yield from line


class Polygon(_Shape):
    """Polygon: first ring is the exterior, the rest are holes."""

    type: Literal["Polygon"] = "Polygon"
    coordinates: PolygonCoordinates

    def positions(self) -> Iterator[Position]:
        for ring in self.coordinates:
            yield from ring

    def exterior_rings(self) -> list[list[Position]]:
        return [self.coordinates[0]]


class MultiPolygon(_Shape):
    type: Literal["MultiPolygon"] = "MultiPolygon"
    coordinates: Annotated[list[PolygonCoordinates], Field(min_length=1)]

    def positions(self) -> Iterator[Position]:
        for polygon in self.coordinates:
            for ring in polygon:
                yield from ring

    def exterior_rings(self) -> list[list[Position]]:
        return [polygon[0] for polygon in self.coordinates]


Geometry = Annotated[
    Union[Point, LineString, MultiLineString, Polygon, MultiPolygon],
    Field(discriminator="type"),
]
"""
GeoJSON geometry restricted to the supported shapes.

Examples:
    >>> TypeAdapter(Geometry).validate_python({"type": "Point", "coordinates": [71.4, 51.1]})
    Point(type='Point', coordinates=(71.4, 51.1))
"""
