# =============================================================================
# User Role Model
# =============================================================================
# Closed set of user roles with derived capabilities. Authentication and
# user accounts live outside the registry core.
# =============================================================================

from enum import Enum

__all__ = ["Role"]


class Role(str, Enum):
    """User role with two derived capabilities."""

    USER = "user"
    EXPERT = "expert"
    ADMIN = "admin"

    @property
    def can_edit(self) -> bool:
        """Experts and admins may create and edit water objects."""
        return self in (Role.EXPERT, Role.ADMIN)

    @property
    def can_review(self) -> bool:
        """Only admins approve or reject pending versions."""
        return self is Role.ADMIN
