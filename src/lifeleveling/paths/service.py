"""Predefined paths: age filtering, recommendations, milestones and progress."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, select

from lifeleveling.cohorts.buckets import AgeRange
from lifeleveling.db.models import PredefinedPath, User, UserInterest, UserPathProgress
from lifeleveling.enums import CommitmentLevel, SkillLevel
from lifeleveling.errors import NotFoundError, ValidationFailedError
from lifeleveling.interests.service import list_user_interests
from lifeleveling.paths.seed import PREDEFINED_PATHS
from lifeleveling.validation import is_valid_uuid

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

DEFAULT_RECOMMENDATION_LIMIT = 10

# Number of stages offered per commitment level; None means all of them.
_STAGES_FOR_COMMITMENT: dict[str, int | None] = {
    CommitmentLevel.CASUAL.value: 3,
    CommitmentLevel.AVERAGE.value: 4,
    CommitmentLevel.INVESTED.value: None,
    CommitmentLevel.COMPETITIVE.value: None,
}


def path_to_dict(path: PredefinedPath) -> dict[str, Any]:
    return {
        "id": path.id,
        "interestCategory": path.interest_category,
        "pathName": path.path_name,
        "description": path.description,
        "ageRangeMin": path.age_range_min,
        "ageRangeMax": path.age_range_max,
        "intentLevels": path.intent_levels,
        "stages": path.stages,
        "synergies": path.synergies,
    }


def progress_to_dict(progress: UserPathProgress) -> dict[str, Any]:
    return {
        "id": progress.id,
        "userId": progress.user_id,
        "pathId": progress.path_id,
        "currentStage": progress.current_stage,
        "stagesCompleted": progress.stages_completed,
        "startedAt": progress.started_at.isoformat() if progress.started_at else None,
        "lastUpdated": progress.last_updated.isoformat() if progress.last_updated else None,
    }


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


async def list_paths(db: AsyncSession, category: str | None = None) -> list[PredefinedPath]:
    query = select(PredefinedPath)
    if category:
        query = query.where(PredefinedPath.interest_category == category)
    result = await db.execute(query.order_by(PredefinedPath.interest_category, PredefinedPath.path_name))
    return list(result.scalars().all())


async def list_paths_for_user(db: AsyncSession, user: User, category: str | None = None) -> list[PredefinedPath]:
    """Paths whose age range overlaps the user's."""
    return [
        path
        for path in await list_paths(db, category)
        if AgeRange(path.age_range_min, path.age_range_max).overlap(user.age_range_min, user.age_range_max) > 0
    ]


async def get_path(db: AsyncSession, path_id: str) -> PredefinedPath:
    path = None
    if is_valid_uuid(path_id):
        result = await db.execute(select(PredefinedPath).where(PredefinedPath.id == path_id))
        path = result.scalar_one_or_none()
    if path is None:
        msg = "Path not found"
        raise NotFoundError(msg)
    return path


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


def _first_stage_level(path: PredefinedPath) -> int:
    if path.stages:
        return int(path.stages[0].get("requirements", {}).get("level", SkillLevel.NOVICE))
    return int(SkillLevel.NOVICE)


def score_path(path: PredefinedPath, interest: UserInterest) -> int:
    """
    Relevance of a path to one of the user's interests.

    50 for the matching category, +30 when the path is offered at the user's
    commitment level, +20 when the user already meets the first stage's level
    (+10 when one level short).
    """
    score = 50
    if interest.intent_level in (path.intent_levels or []):
        score += 30
    first_level = _first_stage_level(path)
    if interest.current_level >= first_level:
        score += 20
    elif interest.current_level == first_level - 1:
        score += 10
    return score


def recommendation_reasons(path: PredefinedPath, interest: UserInterest) -> list[str]:
    reasons: list[str] = []
    if interest.intent_level in (path.intent_levels or []):
        reasons.append(f"Matches your {interest.intent_level} commitment level")
    first_level = _first_stage_level(path)
    if interest.current_level >= first_level:
        reasons.append("You're ready to start this path")
    else:
        reasons.append(f"You'll be ready after reaching level {first_level}")
    if path.synergies:
        reasons.append("This path has synergies with other skills")
    return reasons


@dataclass
class PathRecommendation:
    path: PredefinedPath
    relevance_score: int
    required_level: int
    current_user_level: int
    can_start: bool
    reasons: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "path": path_to_dict(self.path),
            "relevanceScore": self.relevance_score,
            "reasons": self.reasons,
            "requiredLevel": self.required_level,
            "currentUserLevel": self.current_user_level,
            "canStart": self.can_start,
        }


async def get_path_recommendations(
    db: AsyncSession, user: User, limit: int = DEFAULT_RECOMMENDATION_LIMIT
) -> list[PathRecommendation]:
    """Age-appropriate paths in the user's interest categories, best first."""
    interests = {interest.category: interest for interest in await list_user_interests(db, user.id)}
    recommendations: list[PathRecommendation] = []
    for path in await list_paths_for_user(db, user):
        interest = interests.get(path.interest_category)
        if interest is None:
            continue
        recommendations.append(
            PathRecommendation(
                path=path,
                relevance_score=score_path(path, interest),
                required_level=_first_stage_level(path),
                current_user_level=interest.current_level,
                can_start=interest.current_level >= SkillLevel.NOVICE,
                reasons=recommendation_reasons(path, interest),
            )
        )
    recommendations.sort(key=lambda r: r.relevance_score, reverse=True)
    return recommendations[:limit]


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------


def stages_for_commitment(stages: list[dict[str, Any]], commitment_level: str) -> list[dict[str, Any]]:
    count = _STAGES_FOR_COMMITMENT.get(commitment_level)
    return list(stages) if count is None else list(stages[:count])


def is_stage_unlocked(stage: dict[str, Any], user_level: int, current_stage: int, index: int) -> bool:
    required = int(stage.get("requirements", {}).get("level", SkillLevel.NOVICE))
    if index == 0:
        return user_level >= required
    return current_stage >= index and user_level >= required


async def get_path_progress(db: AsyncSession, user: User, path_id: str) -> UserPathProgress | None:
    if not is_valid_uuid(path_id):
        return None
    result = await db.execute(
        select(UserPathProgress).where(UserPathProgress.user_id == user.id, UserPathProgress.path_id == path_id)
    )
    return result.scalar_one_or_none()


async def list_path_progress(db: AsyncSession, user: User) -> list[UserPathProgress]:
    result = await db.execute(
        select(UserPathProgress).where(UserPathProgress.user_id == user.id).order_by(UserPathProgress.started_at)
    )
    return list(result.scalars().all())


async def get_path_milestones(db: AsyncSession, user: User, path_id: str) -> list[dict[str, Any]]:
    """
    The path's stages as milestones for this user.

    Stage count follows the user's commitment in the path's category. A stage
    unlocks once the user's skill level meets its requirement and, past the
    first, the user has progressed to it.

    Raises:
        NotFoundError: No such path.
        ValidationFailedError: The user has no interest in the path's category.
    """
    path = await get_path(db, path_id)
    interests = {interest.category: interest for interest in await list_user_interests(db, user.id)}
    interest = interests.get(path.interest_category)
    if interest is None:
        msg = "You don't have an interest in this path's category"
        raise ValidationFailedError(msg)

    progress = await get_path_progress(db, user, path.id)
    completed = set(progress.stages_completed) if progress else set()
    current_stage = progress.current_stage if progress else 0

    return [
        {
            "stageNumber": stage["stage"],
            "stageName": stage["name"],
            "description": stage.get("description"),
            "requirements": stage.get("requirements", {}),
            "isUnlocked": is_stage_unlocked(stage, interest.current_level, current_stage, index),
            "isCompleted": stage["stage"] in completed,
            "synergyBonuses": path.synergies,
        }
        for index, stage in enumerate(stages_for_commitment(path.stages, interest.intent_level))
    ]


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


async def start_path(db: AsyncSession, user: User, path_id: str) -> UserPathProgress:
    """Begin a path. Starting an already started path returns the existing progress."""
    path = await get_path(db, path_id)
    progress = await get_path_progress(db, user, path.id)
    if progress is not None:
        return progress
    progress = UserPathProgress(user_id=user.id, path_id=path.id, current_stage=0, stages_completed=[])
    db.add(progress)
    await db.flush()
    logger.info("path_started", user_id=user.id, path_id=path.id)
    return progress


async def complete_stage(db: AsyncSession, user: User, path_id: str, stage_number: Any) -> UserPathProgress:  # noqa: ANN401
    """
    Mark a stage complete, starting the path first if needed.

    ``current_stage`` only moves forward.
    """
    if isinstance(stage_number, bool) or not isinstance(stage_number, int):
        msg = "Stage number is required for completing a stage"
        raise ValidationFailedError(msg)

    path = await get_path(db, path_id)
    stage_numbers = {stage["stage"] for stage in path.stages}
    if stage_number not in stage_numbers:
        msg = f"Path has no stage {stage_number}"
        raise ValidationFailedError(msg)

    progress = await start_path(db, user, path.id)
    completed = list(progress.stages_completed or [])
    if stage_number not in completed:
        completed.append(stage_number)
    progress.stages_completed = sorted(completed)
    progress.current_stage = max(progress.current_stage, stage_number)
    await db.flush()
    logger.info("path_stage_completed", user_id=user.id, path_id=path.id, stage=stage_number)
    return progress


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------


async def seed_paths(db: AsyncSession) -> int:
    """Insert the predefined paths that are not already present (matched by name)."""
    result = await db.execute(select(PredefinedPath.interest_category, PredefinedPath.path_name))
    existing = {(row[0], row[1]) for row in result.all()}
    inserted = 0
    for entry in PREDEFINED_PATHS:
        if (entry["interest_category"], entry["path_name"]) in existing:
            continue
        db.add(PredefinedPath(**entry))
        inserted += 1
    await db.flush()
    logger.info("paths_seeded", inserted=inserted)
    return inserted


async def clear_paths(db: AsyncSession) -> int:
    """Remove the predefined paths (and any progress against them)."""
    names = [entry["path_name"] for entry in PREDEFINED_PATHS]
    result = await db.execute(select(PredefinedPath.id).where(PredefinedPath.path_name.in_(names)))
    ids = [row[0] for row in result.all()]
    if ids:
        await db.execute(delete(UserPathProgress).where(UserPathProgress.path_id.in_(ids)))
        await db.execute(delete(PredefinedPath).where(PredefinedPath.id.in_(ids)))
    logger.info("paths_cleared", removed=len(ids))
    return len(ids)
