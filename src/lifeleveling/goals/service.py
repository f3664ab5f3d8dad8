"""Goal business logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from lifeleveling.db.models import Goal, User
from lifeleveling.enums import GoalStatus
from lifeleveling.errors import NotFoundError, ValidationFailedError
from lifeleveling.validation import (
    ensure_valid,
    is_goal_status,
    is_valid_uuid,
    parse_target_date,
    sanitize_string,
    validate_goal,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def goal_to_dict(goal: Goal) -> dict[str, Any]:
    return {
        "id": goal.id,
        "userId": goal.user_id,
        "interestCategory": goal.interest_category,
        "goalType": goal.goal_type,
        "title": goal.title,
        "description": goal.description,
        "targetLevel": goal.target_level,
        "timeframe": goal.timeframe,
        "status": goal.status,
        "createdAt": goal.created_at.isoformat() if goal.created_at else None,
        "targetDate": goal.target_date.isoformat() if goal.target_date else None,
        "completedAt": goal.completed_at.isoformat() if goal.completed_at else None,
    }


async def create_goal(db: AsyncSession, user: User, data: dict[str, Any]) -> Goal:
    """Validate and create an active goal from a camelCase payload."""
    ensure_valid(validate_goal(data))
    goal = Goal(
        user_id=user.id,
        interest_category=data["interestCategory"],
        goal_type=data["goalType"],
        title=sanitize_string(data["title"]),
        description=sanitize_string(data["description"]),
        target_level=data.get("targetLevel"),
        timeframe=data["timeframe"],
        status=GoalStatus.ACTIVE.value,
        created_at=datetime.now(timezone.utc),
        target_date=parse_target_date(data["targetDate"]) if data.get("targetDate") is not None else None,
    )
    db.add(goal)
    await db.flush()
    logger.info("goal_created", user_id=user.id, goal_id=goal.id, goal_type=goal.goal_type)
    return goal


async def list_goals(db: AsyncSession, user: User, status: str | None = None) -> list[Goal]:
    if status is not None and not is_goal_status(status):
        msg = "Invalid status filter"
        raise ValidationFailedError(msg, details=["status must be one of: active, completed, paused, cancelled"])
    query = select(Goal).where(Goal.user_id == user.id)
    if status is not None:
        query = query.where(Goal.status == status)
    result = await db.execute(query.order_by(Goal.created_at.desc()))
    return list(result.scalars().all())


async def update_goal_status(db: AsyncSession, user: User, goal_id: str, status: Any) -> Goal:  # noqa: ANN401
    """
    Set a goal's status. Any of the four statuses may follow any other.

    Raises:
        ValidationFailedError: Unknown status.
        NotFoundError: No such goal owned by the user.
    """
    if not is_goal_status(status):
        msg = "Invalid goal status"
        raise ValidationFailedError(msg, details=["status must be one of: active, completed, paused, cancelled"])

    goal = None
    if is_valid_uuid(goal_id):
        result = await db.execute(select(Goal).where(Goal.id == goal_id, Goal.user_id == user.id))
        goal = result.scalar_one_or_none()
    if goal is None:
        msg = "Goal not found"
        raise NotFoundError(msg)

    goal.status = status
    goal.completed_at = datetime.now(timezone.utc) if status == GoalStatus.COMPLETED.value else None
    await db.flush()
    logger.info("goal_status_changed", user_id=user.id, goal_id=goal.id, status=status)
    return goal
