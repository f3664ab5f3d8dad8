"""Domain enumerations and fixed vocabularies."""

from __future__ import annotations

from enum import Enum, IntEnum


class SkillLevel(IntEnum):
    NOVICE = 1
    INTERMEDIATE = 2
    ADVANCED = 3
    EXPERT = 4


class CommitmentLevel(str, Enum):
    """How deeply a user intends to engage with an interest."""

    CASUAL = "casual"
    AVERAGE = "average"
    INVESTED = "invested"
    COMPETITIVE = "competitive"


class GoalType(str, Enum):
    SKILL_INCREASE = "skill_increase"
    PROJECT_COMPLETION = "project_completion"
    BROAD_PROMISE = "broad_promise"


class Timeframe(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class RetrospectiveType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class FamilyAction(str, Enum):
    """Action types written to the family activity log."""

    LINK_REQUESTED = "link_requested"
    CONSENT_GRANTED = "consent_granted"
    DASHBOARD_ACCESSED = "dashboard_accessed"


INTEREST_CATEGORIES: tuple[str, ...] = (
    "Music",
    "Sports",
    "Math",
    "Communication",
    "Creativity",
    "Technical",
    "Health",
    "Science",
    "Languages",
    "Arts",
    "Reading",
    "Writing",
    "Gaming",
    "Cooking",
    "Other",
)

SKILL_LEVEL_LABELS: dict[int, str] = {
    SkillLevel.NOVICE: "Novice",
    SkillLevel.INTERMEDIATE: "Intermediate",
    SkillLevel.ADVANCED: "Advanced",
    SkillLevel.EXPERT: "Expert",
}

DEFAULT_PRIVACY_PREFERENCES: dict[str, bool] = {
    "allowPeerComparisons": False,
    "allowFamilyViewing": False,
    "shareGoalsWithFamily": False,
    "shareProgressWithFamily": False,
    "allowAnonymousDataCollection": True,
    "dataRetentionConsent": True,
}

MAX_TITLE_LENGTH = 255
MAX_ONBOARDING_INTERESTS = 8
