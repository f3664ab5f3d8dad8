"""Development helpers: seeding, synthetic cohort data and a database smoke test."""

from __future__ import annotations

import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete

from lifeleveling.auth.service import create_user
from lifeleveling.cohorts.buckets import average_level, cohort_key_for, cumulative_percentiles, get_age_brackets
from lifeleveling.cohorts.service import get_cohort_stats, update_cohort_statistics, update_user_comparison_preference
from lifeleveling.db.models import CohortStats
from lifeleveling.enums import CommitmentLevel, GoalType, RetrospectiveType, SkillLevel, Timeframe
from lifeleveling.goals.service import create_goal, update_goal_status
from lifeleveling.interests.service import upsert_interests
from lifeleveling.paths.service import clear_paths, seed_paths
from lifeleveling.retrospectives.service import create_retrospective

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SEED_ACTIONS = {
    "seed": "Populate the database with predefined paths",
    "clear": "Remove predefined paths and all cohort statistics",
    "generate-cohorts": "Generate synthetic cohort statistics for every bracket",
}

SYNTHETIC_COHORT_CATEGORIES = ("Music", "Sports", "Technical", "Math", "Communication", "Creativity", "Health")

_COMMITMENT_WEIGHT = {
    CommitmentLevel.CASUAL.value: 1.2,
    CommitmentLevel.AVERAGE.value: 1.0,
    CommitmentLevel.INVESTED.value: 0.6,
    CommitmentLevel.COMPETITIVE.value: 0.3,
}


async def clear_seed_data(db: AsyncSession) -> dict[str, int]:
    paths = await clear_paths(db)
    result = await db.execute(delete(CohortStats))
    logger.info("seed_data_cleared", paths=paths, cohorts=result.rowcount)
    return {"paths": paths, "cohorts": result.rowcount or 0}


def _synthetic_level_counts(age_min: int, commitment: str, rng: random.Random) -> dict[str, int]:
    """Younger, more casual cohorts are larger; each level up is ~30% smaller."""
    base = 100.0
    if age_min >= 18:
        base *= 0.7
    if age_min >= 36:
        base *= 0.5
    base *= _COMMITMENT_WEIGHT.get(commitment, 1.0)
    return {
        str(int(level)): max(10, int(base * 0.7 ** (int(level) - 1) + rng.random() * 50))
        for level in SkillLevel
    }


async def generate_cohort_stats(db: AsyncSession, rng: random.Random | None = None) -> int:
    """
    Write synthetic aggregates for every (bracket, category, commitment).

    Existing rows are overwritten. A later recompute of a cohort with no real
    members removes its synthetic row.
    """
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)
    generated = 0
    for bracket in get_age_brackets():
        for category in SYNTHETIC_COHORT_CATEGORIES:
            for commitment in CommitmentLevel:
                key = cohort_key_for(bracket.min, bracket.max, category, commitment.value)
                counts = _synthetic_level_counts(bracket.min, commitment.value, rng)
                stats = await get_cohort_stats(db, key)
                if stats is None:
                    stats = CohortStats(
                        age_range_min=key.age_min,
                        age_range_max=key.age_max,
                        interest_category=key.category,
                        intent_level=key.commitment,
                    )
                    db.add(stats)
                stats.user_count = sum(counts.values())
                stats.level_counts = counts
                stats.percentile_data = cumulative_percentiles(counts)
                stats.average_level = average_level(counts)
                stats.updated_at = now
                generated += 1
    await db.flush()
    logger.info("synthetic_cohorts_generated", cohorts=generated)
    return generated


async def run_seed_action(db: AsyncSession, action: str) -> dict[str, Any]:
    if action == "seed":
        return {"pathsInserted": await seed_paths(db)}
    if action == "clear":
        return await clear_seed_data(db)
    if action == "generate-cohorts":
        return {"cohortsGenerated": await generate_cohort_stats(db)}
    msg = f"Unknown seed action: {action}"
    raise ValueError(msg)


# ---------------------------------------------------------------------------
# Smoke test
# ---------------------------------------------------------------------------


async def run_smoke_test(db: AsyncSession) -> list[dict[str, Any]]:
    """
    Exercise the main write paths end to end, then roll everything back.

    Returns one entry per step. The first failing step raises; nothing is
    left behind either way.
    """
    steps: list[dict[str, Any]] = []

    def record(step: str, **info: Any) -> None:  # noqa: ANN401
        steps.append({"step": step, "ok": True, **info})

    try:
        user = await create_user(db, f"smoke-{uuid.uuid4().hex[:12]}@example.com", "smoke-test-pass-123", 16, 17)
        record("create_user", userId=user.id)

        upsert = await upsert_interests(
            db,
            user,
            [{"category": "Music", "subcategory": "Piano", "level": 2, "intent": CommitmentLevel.INVESTED.value}],
        )
        record("create_interest", interestId=upsert.interests[0].id)

        goal = await create_goal(
            db,
            user,
            {
                "interestCategory": "Music",
                "goalType": GoalType.SKILL_INCREASE.value,
                "title": "Learn advanced piano pieces",
                "description": "Master three intermediate pieces",
                "targetLevel": 3,
                "timeframe": Timeframe.MONTHLY.value,
                "targetDate": (datetime.now(timezone.utc) + timedelta(days=30)).isoformat(),
            },
        )
        await update_goal_status(db, user, goal.id, "completed")
        record("create_goal", goalId=goal.id)

        retro, _ = await create_retrospective(
            db,
            user,
            {
                "type": RetrospectiveType.WEEKLY.value,
                "insights": {"wins": "Practised every day"},
                "skillUpdates": {"Music": 3},
                "goalsReviewed": [goal.id],
            },
        )
        record("create_retrospective", retrospectiveId=retro.id)

        await update_user_comparison_preference(db, user, True)
        stats = await update_cohort_statistics(
            db, cohort_key_for(user.age_range_min, user.age_range_max, "Music", CommitmentLevel.INVESTED.value)
        )
        record("recompute_cohort", userCount=stats.user_count if stats else 0)
    finally:
        await db.rollback()

    logger.info("smoke_test_passed", steps=len(steps))
    return steps
