"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

AGE_RANGE_PATTERN = r"^(\d+-\d+|\d+\+)$"


class RegisterRequest(BaseModel):
    """Self or parent-initiated registration."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    age_range: str = Field(..., alias="ageRange", pattern=AGE_RANGE_PATTERN)
    parental_consent: bool = Field(False, alias="parentalConsent")
    is_parent_created: bool = Field(False, alias="isParentCreated")
    child_email: EmailStr | None = Field(None, alias="childEmail")

    @field_validator("email", "child_email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        """Normalize email to lowercase."""
        return v.lower().strip() if v is not None else None


class LoginRequest(BaseModel):
    """Login with email + password."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class InterestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    category: str
    subcategory: str | None = None
    current_level: int = Field(..., serialization_alias="currentLevel")
    intent_level: str = Field(..., serialization_alias="intentLevel")
    created_at: datetime | None = Field(None, serialization_alias="createdAt")
    updated_at: datetime | None = Field(None, serialization_alias="updatedAt")


class UserResponse(BaseModel):
    """Public view of a user (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    age_range_min: int = Field(..., serialization_alias="ageRangeMin")
    age_range_max: int = Field(..., serialization_alias="ageRangeMax")
    family_mode_enabled: bool = Field(..., serialization_alias="familyModeEnabled")
    onboarding_completed: bool = Field(..., serialization_alias="onboardingCompleted")
    created_at: datetime | None = Field(None, serialization_alias="createdAt")
    last_active: datetime | None = Field(None, serialization_alias="lastActive")
