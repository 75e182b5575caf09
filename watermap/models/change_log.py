# =============================================================================
# Change Log Model
# =============================================================================
# Defines the ChangeLog model for the append-only lifecycle audit trail in
# MongoDB.
# =============================================================================

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


__all__ = ["ChangeLog", "ChangeAction"]


class ChangeAction(str, Enum):
    """Lifecycle transition recorded in the change log."""

    CREATE = "create"
    UPDATE = "update"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    ARCHIVE = "archive"
    DELETE = "delete"


class ChangeLog(BaseModel):
    """
    Change log document model for the lifecycle audit trail.

    One entry is written for every successful lifecycle transition. Entries
    are never updated or deleted.

    Attributes:
        canonical_id: Canonical id of the affected water object
        water_object_id: Row id of the affected version
        version: Version number after the transition
        action: Transition performed
        performed_by: User id of the author/editor/reviewer
        performed_at: When the transition was committed (UTC)
        changed_fields: Field-level diff (field -> {"old": ..., "new": ...})
        reviewer_notes: Reviewer notes (rejection reason, revision origin, ...)
    """

    canonical_id: str = Field(..., description="Canonical id of the water object")
    water_object_id: int = Field(..., description="Row id of the affected version")
    version: int = Field(..., ge=1, description="Version after the transition")
    action: ChangeAction = Field(..., description="Transition performed")
    performed_by: int = Field(..., description="User id who performed the action")
    performed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the transition occurred (UTC)",
    )
    changed_fields: dict[str, Any] = Field(
        default_factory=dict,
        description="Field-level diff for updates",
    )
    reviewer_notes: Optional[str] = Field(None, description="Reviewer notes")
