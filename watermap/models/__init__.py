# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models and schemas for the water object registry.
# =============================================================================

"""
Data models for the water object registry.

This library provides:
- Spatial types: Bounds, GeoJSON shapes, region rectangle
- WaterObject: Versioned water object records and projections
- ChangeLog: Lifecycle audit trail entries
- Role: User roles with derived capabilities
- Configuration models
"""

__version__ = "0.1.0"

# Spatial types
from .spatial import (
    REGION_BOUNDS,
    Bounds,
    Geometry,
    GeometryType,
    LineString,
    MultiLineString,
    MultiPolygon,
    Point,
    Polygon,
    Position,
)

# Water object models
from .water_object import (
    ALLOWED_GEOMETRY_TYPES,
    EDITABLE_STATUSES,
    SUBMITTABLE_STATUSES,
    WORKING_STATUSES,
    EcologicalStatus,
    FieldChange,
    ObjectStatus,
    ObjectType,
    ReviewDiff,
    SalinityLevel,
    WaterObject,
    WaterObjectAttributes,
    WaterObjectFilter,
    WaterObjectSummary,
)

# Change log models
from .change_log import (
    ChangeAction,
    ChangeLog,
)

# Roles
from .user import Role

# Configuration models
from .config import (
    DatabaseSettings,
    MongoSettings,
)

__all__ = [
    # Spatial types
    "REGION_BOUNDS",
    "Bounds",
    "Geometry",
    "GeometryType",
    "LineString",
    "MultiLineString",
    "MultiPolygon",
    "Point",
    "Polygon",
    "Position",
    # Water object models
    "ALLOWED_GEOMETRY_TYPES",
    "EDITABLE_STATUSES",
    "SUBMITTABLE_STATUSES",
    "WORKING_STATUSES",
    "EcologicalStatus",
    "FieldChange",
    "ObjectStatus",
    "ObjectType",
    "ReviewDiff",
    "SalinityLevel",
    "WaterObject",
    "WaterObjectAttributes",
    "WaterObjectFilter",
    "WaterObjectSummary",
    # Change log models
    "ChangeAction",
    "ChangeLog",
    # Roles
    "Role",
    # Configuration models
    "DatabaseSettings",
    "MongoSettings",
]
