# =============================================================================
# Error Taxonomy
# =============================================================================
# Exceptions raised by the geometry validator, the lifecycle engine and the
# storage resources.
# =============================================================================

"""
Error hierarchy for the water object registry.

- ValidationError: bad input, never retried without a change
- GeometryError: geometry rejected by the validator (subclass of ValidationError)
- NotFoundError: record absent, in the wrong state, or owned by someone else
- ConflictError: a concurrent transition won the race, retry the whole operation
- StorageError: persistence layer failure, surfaced as-is
"""

from typing import Iterable

__all__ = [
    "WatermapError",
    "ValidationError",
    "GeometryError",
    "InvalidGeometryError",
    "EmptyGeometryError",
    "GeometryTypeMismatchError",
    "OutsideBoundsError",
    "SelfIntersectingError",
    "NotFoundError",
    "ConflictError",
    "StorageError",
]


class WatermapError(Exception):
    """Base class for all registry errors."""

    code: str = "error"
    retryable: bool = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or str(self.args[0])


class ValidationError(WatermapError):
    """Input failed validation."""

    code = "validation_error"


# =============================================================================
# Geometry Errors
# =============================================================================


class GeometryError(ValidationError):
    """Geometry rejected by the validator."""

    code = "geometry_error"


class InvalidGeometryError(GeometryError):
    """Invalid GeoJSON structure."""

    code = "invalid_geometry"


class EmptyGeometryError(GeometryError):
    """Geometry is empty."""

    code = "empty_geometry"


class GeometryTypeMismatchError(GeometryError):
    """Geometry type does not match object type."""

    code = "type_mismatch"

    def __init__(self, expected: Iterable[str], got: str) -> None:
        self.expected = frozenset(expected)
        self.got = got
        super().__init__(
            f"geometry type does not match object type: "
            f"expected one of {sorted(self.expected)}, got {got}"
        )


class OutsideBoundsError(GeometryError):
    """Geometry center lies outside the service region."""

    code = "outside_bounds"


class SelfIntersectingError(GeometryError):
    """Polygon is self-intersecting."""

    code = "self_intersecting"


# =============================================================================
# Lifecycle / Storage Errors
# =============================================================================


class NotFoundError(WatermapError):
    """Object not found."""

    code = "not_found"


class ConflictError(WatermapError):
    """Concurrent modification detected."""

    code = "conflict"
    retryable = True


class StorageError(WatermapError):
    """Storage operation failed."""

    code = "storage_error"
