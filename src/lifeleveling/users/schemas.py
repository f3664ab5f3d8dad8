"""Request schemas for /api/user endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    family_mode_enabled: StrictBool | None = Field(None, alias="familyModeEnabled")


class PrivacyPreferences(BaseModel):
    """Complete set of privacy toggles. Omitted fields take their defaults."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    allow_peer_comparisons: StrictBool = Field(False, alias="allowPeerComparisons")
    allow_family_viewing: StrictBool = Field(False, alias="allowFamilyViewing")
    share_goals_with_family: StrictBool = Field(False, alias="shareGoalsWithFamily")
    share_progress_with_family: StrictBool = Field(False, alias="shareProgressWithFamily")
    allow_anonymous_data_collection: StrictBool = Field(True, alias="allowAnonymousDataCollection")
    data_retention_consent: StrictBool = Field(True, alias="dataRetentionConsent")


class PathProgressRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path_id: str = Field(..., alias="pathId", min_length=1)
    action: str
    stage_number: StrictInt | None = Field(None, alias="stageNumber")
