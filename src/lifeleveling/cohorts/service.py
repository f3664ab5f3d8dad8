"""
Cohort statistics and peer comparisons.

A cohort is every opted-in user in one age bracket who tracks the same
interest category at the same commitment level. ``cohort_stats`` holds one
materialized row per cohort; it is refreshed by the recompute queue and read
by the comparison endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, select

from lifeleveling.cohorts.buckets import (
    AgeRange,
    CohortKey,
    average_level,
    calculate_percentile,
    cohort_key_for,
    cumulative_percentiles,
    empty_level_counts,
    generate_encouraging_message,
    get_user_age_range,
)
from lifeleveling.db.models import CohortStats, User, UserInterest

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PEER_COMPARISON_FLAG = "allowPeerComparisons"


@dataclass
class CohortComparison:
    user_id: str
    interest: str
    current_level: int
    percentile: int
    cohort_size: int
    age_range: AgeRange
    intent_level: str
    encouraging_message: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "interest": self.interest,
            "currentLevel": self.current_level,
            "percentile": self.percentile,
            "cohortSize": self.cohort_size,
            "ageRange": {"min": self.age_range.min, "max": self.age_range.max},
            "intentLevel": self.intent_level,
            "encouragingMessage": self.encouraging_message,
        }


def is_opted_in(user: User) -> bool:
    return (user.privacy_preferences or {}).get(PEER_COMPARISON_FLAG) is True


# ---------------------------------------------------------------------------
# Opt-in flag
# ---------------------------------------------------------------------------


async def has_user_opted_into_comparisons(db: AsyncSession, user_id: str) -> bool:
    result = await db.execute(select(User.privacy_preferences).where(User.id == user_id))
    prefs = result.scalar_one_or_none()
    return bool(prefs) and prefs.get(PEER_COMPARISON_FLAG) is True


async def update_user_comparison_preference(db: AsyncSession, user: User, allow: bool) -> bool:
    """
    Set the peer comparison flag, leaving other privacy toggles untouched.

    Returns True if the stored value changed.
    """
    current = dict(user.privacy_preferences or {})
    changed = current.get(PEER_COMPARISON_FLAG) is not allow
    current[PEER_COMPARISON_FLAG] = allow
    # Reassign so the JSON column is flagged dirty.
    user.privacy_preferences = current
    await db.flush()
    if changed:
        logger.info("comparison_preference_changed", user_id=user.id, allow=allow)
    return changed


async def cohort_keys_for_user(db: AsyncSession, user: User) -> list[CohortKey]:
    """Every cohort the user's interests place them in (opt-in not considered)."""
    result = await db.execute(select(UserInterest).where(UserInterest.user_id == user.id))
    return [
        cohort_key_for(user.age_range_min, user.age_range_max, interest.category, interest.intent_level)
        for interest in result.scalars().all()
    ]


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


async def get_cohort_stats(db: AsyncSession, key: CohortKey) -> CohortStats | None:
    result = await db.execute(
        select(CohortStats).where(
            CohortStats.age_range_min == key.age_min,
            CohortStats.age_range_max == key.age_max,
            CohortStats.interest_category == key.category,
            CohortStats.intent_level == key.commitment,
        )
    )
    return result.scalar_one_or_none()


async def _cohort_level_counts(db: AsyncSession, key: CohortKey) -> dict[str, int]:
    """Count opted-in members of the cohort per skill level."""
    rows = await db.execute(
        select(UserInterest.current_level, User.age_range_min, User.age_range_max, User.privacy_preferences)
        .join(User, User.id == UserInterest.user_id)
        .where(
            UserInterest.category == key.category,
            UserInterest.intent_level == key.commitment,
            # Coarse prefilter; exact bucket membership is decided below.
            User.age_range_max >= key.age_min,
            User.age_range_min <= key.age_max,
        )
    )
    counts = empty_level_counts()
    target = key.age_range
    for level, age_min, age_max, prefs in rows.all():
        if not prefs or prefs.get(PEER_COMPARISON_FLAG) is not True:
            continue
        if get_user_age_range(age_min, age_max) != target:
            continue
        counts[str(level)] = counts.get(str(level), 0) + 1
    return counts


async def update_cohort_statistics(db: AsyncSession, key: CohortKey) -> CohortStats | None:
    """
    Recompute the aggregate row for one cohort.

    Idempotent. A cohort with no remaining members has its row removed and
    None is returned.
    """
    counts = await _cohort_level_counts(db, key)
    total = sum(counts.values())
    existing = await get_cohort_stats(db, key)

    if total == 0:
        if existing is not None:
            await db.execute(delete(CohortStats).where(CohortStats.id == existing.id))
            await db.flush()
            logger.info("cohort_cleared", **key.as_dict())
        return None

    stats = existing or CohortStats(
        age_range_min=key.age_min,
        age_range_max=key.age_max,
        interest_category=key.category,
        intent_level=key.commitment,
    )
    stats.user_count = total
    stats.level_counts = counts
    stats.percentile_data = cumulative_percentiles(counts)
    stats.average_level = average_level(counts)
    stats.updated_at = datetime.now(timezone.utc)
    if existing is None:
        db.add(stats)
    await db.flush()
    logger.info("cohort_recomputed", user_count=total, **key.as_dict())
    return stats


async def update_all_cohort_statistics(db: AsyncSession) -> int:
    """
    Recompute every cohort that has opted-in members or an existing row.

    Returns the number of cohorts recomputed.
    """
    keys: set[CohortKey] = set()

    rows = await db.execute(
        select(
            User.age_range_min, User.age_range_max, User.privacy_preferences,
            UserInterest.category, UserInterest.intent_level,
        ).join(User, User.id == UserInterest.user_id)
    )
    for age_min, age_max, prefs, category, intent in rows.all():
        if prefs and prefs.get(PEER_COMPARISON_FLAG) is True:
            keys.add(cohort_key_for(age_min, age_max, category, intent))

    existing = await db.execute(
        select(
            CohortStats.age_range_min, CohortStats.age_range_max,
            CohortStats.interest_category, CohortStats.intent_level,
        )
    )
    keys.update(CohortKey(*row) for row in existing.all())

    for key in sorted(keys, key=lambda k: (k.category, k.age_min, k.commitment)):
        await update_cohort_statistics(db, key)
    logger.info("all_cohorts_recomputed", cohorts=len(keys))
    return len(keys)


# ---------------------------------------------------------------------------
# Comparisons
# ---------------------------------------------------------------------------


def _build_comparison(user: User, interest: UserInterest, stats: CohortStats, bracket: AgeRange) -> CohortComparison:
    percentile = calculate_percentile(interest.current_level, stats.level_counts)
    return CohortComparison(
        user_id=user.id,
        interest=interest.category,
        current_level=interest.current_level,
        percentile=percentile,
        cohort_size=stats.user_count,
        age_range=bracket,
        intent_level=interest.intent_level,
        encouraging_message=generate_encouraging_message(
            percentile, interest.intent_level, interest.category, bracket
        ),
    )


async def get_user_comparison(db: AsyncSession, user_id: str, category: str) -> CohortComparison | None:
    """
    Compare a user's level in one category against their cohort.

    Returns None (not an error) if the user does not track the category,
    has not opted in, or no aggregate exists yet for their cohort.
    """
    result = await db.execute(
        select(User, UserInterest)
        .join(UserInterest, UserInterest.user_id == User.id)
        .where(User.id == user_id, UserInterest.category == category)
    )
    row = result.first()
    if row is None:
        return None
    user, interest = row
    if not is_opted_in(user):
        return None

    bracket = get_user_age_range(user.age_range_min, user.age_range_max)
    key = CohortKey(bracket.min, bracket.max, interest.category, interest.intent_level)
    stats = await get_cohort_stats(db, key)
    if stats is None or stats.user_count == 0:
        return None
    return _build_comparison(user, interest, stats, bracket)


async def get_all_user_comparisons(db: AsyncSession, user_id: str) -> list[CohortComparison]:
    """Comparisons for each of the user's interests that has cohort data."""
    result = await db.execute(
        select(UserInterest.category).where(UserInterest.user_id == user_id).order_by(UserInterest.category)
    )
    comparisons: list[CohortComparison] = []
    for category in result.scalars().all():
        comparison = await get_user_comparison(db, user_id, category)
        if comparison is not None:
            comparisons.append(comparison)
    return comparisons
