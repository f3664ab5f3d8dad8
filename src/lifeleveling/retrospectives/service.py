"""Retrospective business logic.

A retrospective is append-only. Its ``skillUpdates`` map (category -> level)
is applied to the user's matching interests, each change recorded in skill
history against the retrospective.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from lifeleveling.cohorts.buckets import CohortKey, cohort_key_for
from lifeleveling.db.models import Retrospective, User
from lifeleveling.errors import ValidationFailedError
from lifeleveling.interests.service import list_user_interests, update_interest_level
from lifeleveling.validation import ensure_valid, is_retrospective_type, validate_retrospective

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def retrospective_to_dict(retro: Retrospective) -> dict[str, Any]:
    return {
        "id": retro.id,
        "userId": retro.user_id,
        "type": retro.type,
        "insights": retro.insights,
        "skillUpdates": retro.skill_updates,
        "goalsReviewed": retro.goals_reviewed,
        "completedAt": retro.completed_at.isoformat() if retro.completed_at else None,
    }


async def create_retrospective(
    db: AsyncSession, user: User, data: dict[str, Any]
) -> tuple[Retrospective, list[CohortKey]]:
    """
    Store a retrospective and apply its skill updates.

    Returns the retrospective and the cohorts whose aggregates changed.
    """
    ensure_valid(validate_retrospective(data))
    skill_updates: dict[str, int] = data.get("skillUpdates") or {}

    retro = Retrospective(
        user_id=user.id,
        type=data["type"],
        insights=data.get("insights") or {},
        skill_updates=skill_updates,
        goals_reviewed=data.get("goalsReviewed") or [],
        completed_at=datetime.now(timezone.utc),
    )
    db.add(retro)
    await db.flush()

    affected: list[CohortKey] = []
    interests = {interest.category: interest for interest in await list_user_interests(db, user.id)}
    for category, level in skill_updates.items():
        interest = interests.get(category)
        if interest is None:
            continue
        if await update_interest_level(db, interest, level, retrospective_id=retro.id):
            affected.append(
                cohort_key_for(user.age_range_min, user.age_range_max, interest.category, interest.intent_level)
            )

    logger.info("retrospective_created", user_id=user.id, retrospective_id=retro.id, skill_changes=len(affected))
    return retro, affected


async def list_retrospectives(db: AsyncSession, user: User, retro_type: str | None = None) -> list[Retrospective]:
    if retro_type is not None and not is_retrospective_type(retro_type):
        msg = "Invalid retrospective type"
        raise ValidationFailedError(msg, details=["type must be one of: weekly, monthly, yearly"])
    query = select(Retrospective).where(Retrospective.user_id == user.id)
    if retro_type is not None:
        query = query.where(Retrospective.type == retro_type)
    result = await db.execute(query.order_by(Retrospective.completed_at.desc()))
    return list(result.scalars().all())
