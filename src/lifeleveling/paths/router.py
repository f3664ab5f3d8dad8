"""Predefined path endpoints: /api/paths/*."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.auth.dependencies import get_current_user
from lifeleveling.database import get_session
from lifeleveling.db.models import User
from lifeleveling.paths.service import (
    get_path,
    get_path_milestones,
    get_path_recommendations,
    list_paths_for_user,
    path_to_dict,
)
from lifeleveling.responses import envelope

router = APIRouter(prefix="/api/paths", tags=["Paths"])


@router.get("")
async def get_paths(
    category: str | None = Query(None),
    recommendations: bool = Query(False),
    limit: int = Query(10, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Age-appropriate paths for the caller, or ranked recommendations."""
    if recommendations:
        ranked = await get_path_recommendations(db, user, limit)
        return envelope([r.as_dict() for r in ranked], message="Path recommendations retrieved successfully")

    paths = await list_paths_for_user(db, user, category)
    return envelope([path_to_dict(p) for p in paths], message="Paths retrieved successfully")


@router.get("/{path_id}")
async def get_path_detail(
    path_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    path = await get_path(db, path_id)
    return envelope(path_to_dict(path))


@router.get("/{path_id}/milestones")
async def get_milestones(
    path_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    milestones = await get_path_milestones(db, user, path_id)
    return envelope(milestones, message="Path milestones retrieved successfully")
