"""Goal endpoints: /api/goals/*."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.auth.dependencies import get_current_user
from lifeleveling.database import get_session
from lifeleveling.db.models import User
from lifeleveling.goals.service import create_goal, goal_to_dict, list_goals, update_goal_status
from lifeleveling.responses import envelope

router = APIRouter(prefix="/api/goals", tags=["Goals"])


@router.get("")
async def get_goals(
    status: str | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    goals = await list_goals(db, user, status)
    return envelope({"goals": [goal_to_dict(g) for g in goals], "total": len(goals)})


@router.post("")
async def post_goal(
    body: dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Create a goal. Field-level problems come back as a 400 with ``details``."""
    goal = await create_goal(db, user, body)
    await db.commit()
    return envelope(goal_to_dict(goal), message="Goal created successfully")


@router.patch("/{goal_id}")
async def patch_goal(
    goal_id: str,
    body: dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    goal = await update_goal_status(db, user, goal_id, body.get("status"))
    await db.commit()
    return envelope(goal_to_dict(goal), message="Goal updated successfully")
