"""Payload validation.

Pure functions that never touch the database. Each returns a
``ValidationResult``; handlers turn an invalid result into a 400 via
``ensure_valid``.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from lifeleveling.config import get_settings
from lifeleveling.enums import (
    INTEREST_CATEGORIES,
    MAX_ONBOARDING_INTERESTS,
    MAX_TITLE_LENGTH,
    CommitmentLevel,
    GoalStatus,
    GoalType,
    RetrospectiveType,
    SkillLevel,
    Timeframe,
)
from lifeleveling.errors import ValidationFailedError

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_AGE_RANGE_RE = re.compile(r"^(\d+)(?:-(\d+)|\+)$")


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def ensure_valid(result: ValidationResult) -> None:
    """Raise ValidationFailedError carrying the field errors of an invalid result."""
    if not result.is_valid:
        raise ValidationFailedError(format_validation_errors(result.errors), details=result.errors)


def format_validation_errors(errors: list[str]) -> str:
    if len(errors) == 1:
        return errors[0]
    return f"Multiple validation errors: {'; '.join(errors)}"


# ---------------------------------------------------------------------------
# Type guards
# ---------------------------------------------------------------------------


def _is_int(value: Any) -> bool:  # noqa: ANN401
    return isinstance(value, int) and not isinstance(value, bool)


def is_skill_level(value: Any) -> bool:  # noqa: ANN401
    return _is_int(value) and SkillLevel.NOVICE <= value <= SkillLevel.EXPERT


def _in_enum(value: Any, enum_cls: type) -> bool:  # noqa: ANN401
    return isinstance(value, str) and value in {member.value for member in enum_cls}


def is_commitment_level(value: Any) -> bool:  # noqa: ANN401
    return _in_enum(value, CommitmentLevel)


def is_goal_type(value: Any) -> bool:  # noqa: ANN401
    return _in_enum(value, GoalType)


def is_timeframe(value: Any) -> bool:  # noqa: ANN401
    return _in_enum(value, Timeframe)


def is_goal_status(value: Any) -> bool:  # noqa: ANN401
    return _in_enum(value, GoalStatus)


def is_retrospective_type(value: Any) -> bool:  # noqa: ANN401
    return _in_enum(value, RetrospectiveType)


def is_interest_category(value: Any) -> bool:  # noqa: ANN401
    return isinstance(value, str) and value in INTEREST_CATEGORIES


def is_valid_email(email: Any) -> bool:  # noqa: ANN401
    return isinstance(email, str) and bool(_EMAIL_RE.match(email))


def is_valid_uuid(value: Any) -> bool:  # noqa: ANN401
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


# ---------------------------------------------------------------------------
# Parsing / sanitizing
# ---------------------------------------------------------------------------


def parse_age_range(value: str) -> tuple[int, int]:
    """
    Parse ``"13-17"`` or ``"51+"`` into an inclusive (min, max) pair.

    Raises:
        ValueError: If the string is not in either form.
    """
    match = _AGE_RANGE_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        msg = "Age range must look like '13-17' or '51+'"
        raise ValueError(msg)
    low = int(match.group(1))
    high = int(match.group(2)) if match.group(2) is not None else get_settings().max_user_age
    return low, high


def parse_target_date(value: Any) -> datetime | None:  # noqa: ANN401
    """Parse an ISO date/datetime into an aware datetime. Returns None if unparseable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sanitize_string(value: str) -> str:
    return value.strip().replace("<", "").replace(">", "")


def sanitize_email(email: str) -> str:
    return email.lower().strip()


def normalize_commitment_level(value: Any) -> str | None:  # noqa: ANN401
    if isinstance(value, str):
        normalized = value.lower().strip()
        if is_commitment_level(normalized):
            return normalized
    return None


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def validate_age_range(age_min: Any, age_max: Any) -> ValidationResult:  # noqa: ANN401
    settings = get_settings()
    low, high = settings.min_user_age, settings.max_user_age
    result = ValidationResult()
    if not _is_int(age_min) or not low <= age_min <= high:
        result.errors.append(f"Age range minimum must be between {low} and {high}")
    if not _is_int(age_max) or not low <= age_max <= high:
        result.errors.append(f"Age range maximum must be between {low} and {high}")
    if _is_int(age_min) and _is_int(age_max) and age_min > age_max:
        result.errors.append("Age range minimum cannot be greater than maximum")
    return result


def validate_user_registration(email: Any, password: Any, age_min: Any, age_max: Any) -> ValidationResult:  # noqa: ANN401
    min_length = get_settings().password_min_length
    result = ValidationResult()
    if not email or not is_valid_email(email):
        result.errors.append("Valid email address is required")
    if not isinstance(password, str) or len(password) < min_length:
        result.errors.append(f"Password must be at least {min_length} characters long")
    result.errors.extend(validate_age_range(age_min, age_max).errors)
    return result


def validate_interest(
    category: Any,  # noqa: ANN401
    current_level: Any,  # noqa: ANN401
    intent_level: Any,  # noqa: ANN401
    subcategory: Any = None,  # noqa: ANN401
) -> ValidationResult:
    result = ValidationResult()
    if not category or not is_interest_category(category):
        result.errors.append("Valid interest category is required")
    if subcategory is not None and not isinstance(subcategory, str):
        result.errors.append("Subcategory must be a string")
    if not is_skill_level(current_level):
        result.errors.append("Current level must be between 1 and 4")
    if not is_commitment_level(intent_level):
        result.errors.append("Intent level must be one of: casual, average, invested, competitive")
    return result


def validate_goal(data: dict[str, Any]) -> ValidationResult:
    """Validate a goal payload (camelCase keys as sent by clients)."""
    result = ValidationResult()
    errors = result.errors

    if not is_interest_category(data.get("interestCategory")):
        errors.append("Valid interest category is required")
    if not is_goal_type(data.get("goalType")):
        errors.append("Goal type must be one of: skill_increase, project_completion, broad_promise")

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        errors.append("Goal title is required")
    elif len(title) > MAX_TITLE_LENGTH:
        errors.append(f"Goal title must be {MAX_TITLE_LENGTH} characters or less")

    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        errors.append("Goal description is required")

    target_level = data.get("targetLevel")
    if target_level is not None and not is_skill_level(target_level):
        errors.append("Target level must be between 1 and 4")

    if not is_timeframe(data.get("timeframe")):
        errors.append("Timeframe must be one of: weekly, monthly, yearly")

    target_date = data.get("targetDate")
    if target_date is not None:
        parsed = parse_target_date(target_date)
        if parsed is None:
            errors.append("Target date must be a valid date")
        elif parsed <= datetime.now(timezone.utc):
            errors.append("Target date must be in the future")

    return result


def validate_retrospective(data: dict[str, Any]) -> ValidationResult:
    result = ValidationResult()
    errors = result.errors

    if not is_retrospective_type(data.get("type")):
        errors.append("Retrospective type must be one of: weekly, monthly, yearly")

    insights = data.get("insights")
    if insights is not None and not isinstance(insights, dict):
        errors.append("Insights must be an object")

    skill_updates = data.get("skillUpdates")
    if skill_updates is not None:
        if not isinstance(skill_updates, dict):
            errors.append("Skill updates must be an object")
        else:
            for key, value in skill_updates.items():
                if not is_skill_level(value):
                    errors.append(f"Skill update for {key} must be a valid skill level (1-4)")

    goals_reviewed = data.get("goalsReviewed")
    if goals_reviewed is not None and not isinstance(goals_reviewed, dict | list):
        errors.append("Goals reviewed must be an object")

    return result


def validate_onboarding_data(interests: Any) -> ValidationResult:  # noqa: ANN401
    """Validate the onboarding interest list: 1-8 entries, unique categories."""
    result = ValidationResult()
    errors = result.errors

    if not isinstance(interests, list):
        errors.append("Interests must be an array")
        return result
    if not interests:
        errors.append("At least one interest is required")
    if len(interests) > MAX_ONBOARDING_INTERESTS:
        errors.append(f"Maximum {MAX_ONBOARDING_INTERESTS} interests allowed")

    categories: list[Any] = []
    for index, interest in enumerate(interests, start=1):
        if not isinstance(interest, dict):
            errors.append(f"Interest {index}: Interest must be an object")
            continue
        categories.append(interest.get("category"))
        check = validate_interest(
            interest.get("category"),
            interest.get("level"),
            interest.get("intent"),
            subcategory=interest.get("subcategory"),
        )
        errors.extend(f"Interest {index}: {error}" for error in check.errors)

    seen: set[str] = set()
    duplicates: list[str] = []
    for category in map(str, categories):
        if category in seen and category not in duplicates:
            duplicates.append(category)
        seen.add(category)
    if duplicates:
        errors.append(f"Duplicate interest categories: {', '.join(duplicates)}")

    return result
