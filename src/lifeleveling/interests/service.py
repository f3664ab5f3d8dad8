"""User interest business logic: commitment changes, skill levels, onboarding upserts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from lifeleveling.cohorts.buckets import CohortKey, cohort_key_for
from lifeleveling.db.models import SkillHistory, User, UserInterest
from lifeleveling.errors import AuthorizationError, NotFoundError, ValidationFailedError
from lifeleveling.validation import is_valid_uuid, normalize_commitment_level

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass
class CommitmentChange:
    """Outcome of a commitment update. ``affected`` lists cohorts needing recompute."""

    interest: UserInterest
    previous_level: str
    affected: list[CohortKey]

    @property
    def changed(self) -> bool:
        return bool(self.affected)


async def list_user_interests(db: AsyncSession, user_id: str) -> list[UserInterest]:
    result = await db.execute(
        select(UserInterest).where(UserInterest.user_id == user_id).order_by(UserInterest.created_at)
    )
    return list(result.scalars().all())


async def get_interest(db: AsyncSession, interest_id: str) -> UserInterest | None:
    if not is_valid_uuid(interest_id):
        return None
    result = await db.execute(select(UserInterest).where(UserInterest.id == interest_id))
    return result.scalar_one_or_none()


async def update_commitment_level(
    db: AsyncSession,
    user: User,
    interest_id: str,
    commitment_level: Any,  # noqa: ANN401
) -> CommitmentChange:
    """
    Change the commitment level of one of the user's interests.

    Moving from A to B affects both the A and B cohorts; re-submitting the
    current level affects none.

    Raises:
        ValidationFailedError: Unknown commitment level.
        NotFoundError: No such interest.
        AuthorizationError: The interest belongs to someone else.
    """
    normalized = normalize_commitment_level(commitment_level)
    if normalized is None:
        msg = "Invalid commitment level"
        raise ValidationFailedError(
            msg, details=["commitmentLevel must be one of: casual, average, invested, competitive"]
        )
    commitment_level = normalized

    interest = await get_interest(db, interest_id)
    if interest is None:
        msg = "Interest not found"
        raise NotFoundError(msg)
    if interest.user_id != user.id:
        msg = "You can only update your own interests"
        raise AuthorizationError(msg)

    previous = interest.intent_level
    if previous == commitment_level:
        return CommitmentChange(interest=interest, previous_level=previous, affected=[])

    interest.intent_level = commitment_level
    await db.flush()
    logger.info(
        "commitment_level_changed",
        user_id=user.id,
        interest_id=interest.id,
        category=interest.category,
        previous=previous,
        new=commitment_level,
    )
    affected = [
        cohort_key_for(user.age_range_min, user.age_range_max, interest.category, previous),
        cohort_key_for(user.age_range_min, user.age_range_max, interest.category, commitment_level),
    ]
    return CommitmentChange(interest=interest, previous_level=previous, affected=affected)


async def update_interest_level(
    db: AsyncSession,
    interest: UserInterest,
    new_level: int,
    *,
    retrospective_id: str | None = None,
    notes: str | None = None,
) -> bool:
    """Set the skill level and append a history row. Returns False if the level was unchanged."""
    previous = interest.current_level
    if previous == new_level:
        return False
    interest.current_level = new_level
    db.add(
        SkillHistory(
            user_interest_id=interest.id,
            previous_level=previous,
            new_level=new_level,
            retrospective_id=retrospective_id,
            notes=notes,
        )
    )
    await db.flush()
    logger.info("skill_level_changed", interest_id=interest.id, previous=previous, new=new_level)
    return True


@dataclass
class InterestUpsert:
    """Outcome of an onboarding upsert. ``affected`` lists cohorts needing recompute."""

    interests: list[UserInterest]
    affected: list[CohortKey]


async def upsert_interests(db: AsyncSession, user: User, items: list[dict[str, Any]]) -> InterestUpsert:
    """
    Create or update interests keyed by (user, category).

    ``items`` are already validated onboarding entries with ``category``,
    ``subcategory``, ``level`` and ``intent``. Every saved interest's cohort is
    affected, plus the cohort an existing interest leaves when its commitment
    changes.
    """
    existing = {interest.category: interest for interest in await list_user_interests(db, user.id)}
    saved: list[UserInterest] = []
    affected: list[CohortKey] = []
    for item in items:
        interest = existing.get(item["category"])
        if interest is None:
            interest = UserInterest(
                user_id=user.id,
                category=item["category"],
                subcategory=item.get("subcategory"),
                current_level=item["level"],
                intent_level=item["intent"],
            )
            db.add(interest)
            await db.flush()
            db.add(SkillHistory(user_interest_id=interest.id, previous_level=None, new_level=item["level"]))
        else:
            interest.subcategory = item.get("subcategory")
            previous = interest.intent_level
            if previous != item["intent"]:
                interest.intent_level = item["intent"]
                affected.append(cohort_key_for(user.age_range_min, user.age_range_max, interest.category, previous))
                logger.info(
                    "commitment_level_changed",
                    user_id=user.id,
                    interest_id=interest.id,
                    category=interest.category,
                    previous=previous,
                    new=item["intent"],
                )
            if interest.current_level != item["level"]:
                await update_interest_level(db, interest, item["level"], notes="onboarding")
        saved.append(interest)
        affected.append(
            cohort_key_for(user.age_range_min, user.age_range_max, interest.category, interest.intent_level)
        )
    await db.flush()
    return InterestUpsert(interests=saved, affected=affected)
