# =============================================================================
# Water Object Models Module
# =============================================================================
# Defines models for the versioned water object registry:
# - ObjectType / ObjectStatus: Classification and lifecycle enums
# - ALLOWED_GEOMETRY_TYPES: Static object type -> geometry shape catalog
# - WaterObjectAttributes: Editable payload (names, measurements, quality)
# - WaterObject: One stored version of a canonical water object
# - WaterObjectSummary: List/history projection (no geometry)
# - WaterObjectFilter: Published listing filter
# - FieldChange / ReviewDiff: Read-side version comparison
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .base import LocalizedTextMixin
from .spatial import Geometry, GeometryType

__all__ = [
    "ObjectType",
    "ObjectStatus",
    "SalinityLevel",
    "EcologicalStatus",
    "ALLOWED_GEOMETRY_TYPES",
    "EDITABLE_STATUSES",
    "SUBMITTABLE_STATUSES",
    "WORKING_STATUSES",
    "WaterObjectAttributes",
    "WaterObject",
    "WaterObjectSummary",
    "WaterObjectFilter",
    "FieldChange",
    "ReviewDiff",
]


# =============================================================================
# Enums
# =============================================================================


class ObjectType(str, Enum):
    """Water object classification."""

    RIVER = "river"
    LAKE = "lake"
    RESERVOIR = "reservoir"
    CANAL = "canal"
    GLACIER = "glacier"
    SPRING = "spring"

    @property
    def allowed_geometry_types(self) -> frozenset[GeometryType]:
        return ALLOWED_GEOMETRY_TYPES[self]


class ObjectStatus(str, Enum):
    """Lifecycle status of a single water object version."""

    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    REJECTED = "rejected"


class SalinityLevel(str, Enum):
    FRESHWATER = "freshwater"
    BRACKISH = "brackish"
    SALINE = "saline"


class EcologicalStatus(str, Enum):
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"
    CRITICAL = "critical"


ALLOWED_GEOMETRY_TYPES: dict[ObjectType, frozenset[GeometryType]] = {
    ObjectType.RIVER: frozenset({GeometryType.LINE_STRING, GeometryType.MULTI_LINE_STRING}),
    ObjectType.CANAL: frozenset({GeometryType.LINE_STRING, GeometryType.MULTI_LINE_STRING}),
    ObjectType.LAKE: frozenset({GeometryType.POLYGON, GeometryType.MULTI_POLYGON}),
    ObjectType.RESERVOIR: frozenset({GeometryType.POLYGON, GeometryType.MULTI_POLYGON}),
    ObjectType.GLACIER: frozenset({GeometryType.POLYGON, GeometryType.MULTI_POLYGON}),
    ObjectType.SPRING: frozenset({GeometryType.POINT}),
}
"""Geometry shapes permitted for each object type (static catalog)."""

EDITABLE_STATUSES = frozenset({ObjectStatus.DRAFT, ObjectStatus.REJECTED})
SUBMITTABLE_STATUSES = frozenset({ObjectStatus.DRAFT, ObjectStatus.REJECTED})
WORKING_STATUSES = frozenset(
    {ObjectStatus.DRAFT, ObjectStatus.PENDING, ObjectStatus.REJECTED}
)
"""Statuses of an unpublished working copy (at most one per canonical id)."""


# =============================================================================
# Attributes (editable payload)
# =============================================================================


class WaterObjectAttributes(LocalizedTextMixin):
    """
    Editable attributes of a water object version.

    Inherits localized names/descriptions from LocalizedTextMixin.
    Geometry is supplied separately and goes through the geometry validator.

    Attributes:
        object_type: Water object classification
        historical_notes: Free-form historical notes
        length_km .. avg_discharge_m3s: Optional non-negative measurements
        salinity_level: Salinity category
        pollution_index: Pollution index on a 0-10 scale
        ecological_status: Ecological status category
    """

    object_type: ObjectType = Field(..., description="Water object classification")
    historical_notes: Optional[str] = Field(None, description="Historical notes")

    # Measurements
    length_km: Optional[float] = Field(None, ge=0, description="Length (km)")
    area_km2: Optional[float] = Field(None, ge=0, description="Surface area (km²)")
    max_depth_m: Optional[float] = Field(None, ge=0, description="Maximum depth (m)")
    avg_depth_m: Optional[float] = Field(None, ge=0, description="Average depth (m)")
    water_volume_km3: Optional[float] = Field(None, ge=0, description="Water volume (km³)")
    basin_area_km2: Optional[float] = Field(None, ge=0, description="Basin area (km²)")
    avg_discharge_m3s: Optional[float] = Field(
        None, ge=0, description="Average discharge (m³/s)"
    )

    # Water quality
    salinity_level: Optional[SalinityLevel] = Field(None, description="Salinity category")
    pollution_index: Optional[float] = Field(
        None, ge=0, le=10, description="Pollution index (0-10)"
    )
    ecological_status: Optional[EcologicalStatus] = Field(
        None, description="Ecological status"
    )

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "name_kz": "Балқаш",
                "name_ru": "Балхаш",
                "name_en": "Balkhash",
                "object_type": "lake",
                "area_km2": 16400.0,
                "max_depth_m": 26.0,
                "salinity_level": "brackish",
            }
        },
    )


# =============================================================================
# Water Object (full record, one row per version)
# =============================================================================


class WaterObject(WaterObjectAttributes):
    """
    One stored version of a canonical water object.

    Every version of the same logical object shares ``canonical_id``;
    ``version`` grows by exactly one per update or revision.

    Attributes:
        id: Row identifier of this version
        canonical_id: Stable identifier shared by all versions
        version: Version number (>= 1)
        geometry: Validated GeoJSON geometry
        status: Lifecycle status
        rejection_reason: Reviewer reason (only when status is rejected)
        created_by: Author user id
        updated_by: Last editor user id
        reviewed_by: Reviewer user id
        created_at / updated_at / published_at: Timestamps
    """

    id: int = Field(..., description="Row identifier")
    canonical_id: str = Field(..., description="Stable identifier shared by all versions")
    version: int = Field(..., ge=1, description="Version number (>= 1)")
    geometry: Geometry
    status: ObjectStatus = Field(..., description="Lifecycle status")
    rejection_reason: Optional[str] = Field(None, description="Rejection reason")

    created_by: int = Field(..., description="Author user id")
    updated_by: Optional[int] = Field(None, description="Last editor user id")
    reviewed_by: Optional[int] = Field(None, description="Reviewer user id")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    published_at: Optional[datetime] = Field(None, description="Publication timestamp")

    @model_validator(mode="after")
    def validate_rejection_reason(self) -> "WaterObject":
        """rejection_reason is set if and only if status is rejected."""
        if self.status == ObjectStatus.REJECTED and not self.rejection_reason:
            raise ValueError("rejected water object requires rejection_reason")
        if self.status != ObjectStatus.REJECTED and self.rejection_reason is not None:
            raise ValueError(
                f"rejection_reason must be empty for status '{self.status.value}'"
            )
        return self

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES

    def attributes(self) -> WaterObjectAttributes:
        """Return the editable attribute payload of this version."""
        return WaterObjectAttributes.model_validate(
            self.model_dump(include=set(WaterObjectAttributes.model_fields))
        )


class WaterObjectSummary(BaseModel):
    """
    Summary of a water object version for list and history views.

    Deliberately excludes geometry and long texts.
    """

    id: int
    canonical_id: str
    version: int
    name_kz: str
    name_ru: Optional[str] = None
    name_en: Optional[str] = None
    object_type: ObjectType
    status: ObjectStatus
    created_by: int
    updated_by: Optional[int] = None
    reviewed_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime] = None


class WaterObjectFilter(BaseModel):
    """Filter for published listings."""

    object_type: Optional[ObjectType] = None
    limit: Optional[int] = Field(None, ge=1, le=1000)
    offset: int = Field(0, ge=0)


# =============================================================================
# Version comparison
# =============================================================================


class FieldChange(BaseModel):
    """Old/new value pair for a single changed field (JSON-compatible values)."""

    old: Any = None
    new: Any = None


class ReviewDiff(BaseModel):
    """A pending version next to the currently published one."""

    pending: WaterObject
    published: Optional[WaterObject] = None
    changes: dict[str, FieldChange] = Field(default_factory=dict)

    @property
    def is_new_object(self) -> bool:
        return self.published is None
