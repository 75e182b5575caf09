# =============================================================================
# Base Models and Mixins
# =============================================================================
# Shared base models and mixins for localized text fields.
# =============================================================================

"""Base models and mixins for shared localized text fields."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

__all__ = ["LocalizedTextMixin"]


class LocalizedTextMixin(BaseModel):
    """
    Localized names and descriptions shared by attribute payloads and records.

    Kazakh is the primary language: ``name_kz`` is required and may not be
    blank. Russian and English variants are optional.

    Attributes:
        name_kz: Name in Kazakh (required, non-blank)
        name_ru: Name in Russian
        name_en: Name in English
        description_kz: Description in Kazakh
        description_ru: Description in Russian
        description_en: Description in English
    """

    name_kz: str = Field(..., max_length=255, description="Name in Kazakh (required)")
    name_ru: Optional[str] = Field(None, max_length=255, description="Name in Russian")
    name_en: Optional[str] = Field(None, max_length=255, description="Name in English")
    description_kz: Optional[str] = Field(None, description="Description in Kazakh")
    description_ru: Optional[str] = Field(None, description="Description in Russian")
    description_en: Optional[str] = Field(None, description="Description in English")

    @field_validator("name_kz")
    @classmethod
    def validate_required_name(cls, v: str) -> str:
        """Trim the primary name and reject blank values."""
        if not isinstance(v, str):
            raise TypeError("name_kz must be a string")

        v = v.strip()
        if not v:
            raise ValueError("name_kz is required")
        return v

    @field_validator(
        "name_ru", "name_en", "description_kz", "description_ru", "description_en"
    )
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """
        Normalize optional text fields.

        - Trims whitespace
        - Empty/whitespace-only values become None
        """
        if v is None:
            return None
        v = v.strip()
        return v or None
