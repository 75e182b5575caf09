# =============================================================================
# Geometry Library
# =============================================================================
# GeoJSON parsing and validation for water object geometry.
# =============================================================================

"""
Geometry utilities for the water object registry.

This library provides:
- GeometryValidator: Structure, type, region and self-intersection checks
- validate_geometry: Validation against the default service region
- parse_geometry: GeoJSON decoding into supported shapes
"""

from .validator import (
    GeometryValidator,
    is_self_intersecting,
    orientation,
    parse_geometry,
    segments_cross,
    validate_geometry,
)

__all__ = [
    "GeometryValidator",
    "is_self_intersecting",
    "orientation",
    "parse_geometry",
    "segments_cross",
    "validate_geometry",
]
