"""Peer comparison endpoints: /api/comparisons/*."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.auth.dependencies import get_current_user
from lifeleveling.cohorts.queue import CohortRecomputeQueue, get_recompute_queue
from lifeleveling.cohorts.service import (
    cohort_keys_for_user,
    get_all_user_comparisons,
    get_user_comparison,
    has_user_opted_into_comparisons,
    is_opted_in,
    update_user_comparison_preference,
)
from lifeleveling.database import get_session
from lifeleveling.db.models import User
from lifeleveling.errors import AuthorizationError, NotFoundError, ValidationFailedError
from lifeleveling.responses import envelope
from lifeleveling.validation import is_interest_category

router = APIRouter(prefix="/api/comparisons", tags=["Comparisons"])


class ComparisonPreferenceRequest(BaseModel):
    user_id: str | None = Field(None, alias="userId")
    allow_peer_comparisons: Any = Field(None, alias="allowPeerComparisons")


def _ensure_self(user: User, user_id: str | None) -> None:
    if user_id is not None and user_id != user.id:
        msg = "You can only access your own comparisons"
        raise AuthorizationError(msg)


async def _ensure_opted_in(db: AsyncSession, user: User) -> None:
    if not await has_user_opted_into_comparisons(db, user.id):
        msg = "Peer comparisons are disabled. Opt in to see how you compare."
        raise AuthorizationError(msg)


@router.get("")
async def list_comparisons(
    user_id: str | None = Query(None, alias="userId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Comparisons for every interest of the current user that has cohort data."""
    _ensure_self(user, user_id)
    await _ensure_opted_in(db, user)
    comparisons = await get_all_user_comparisons(db, user.id)
    return envelope({"comparisons": [c.as_dict() for c in comparisons], "total": len(comparisons)})


@router.get("/preferences")
async def get_preferences(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return envelope({"allowPeerComparisons": is_opted_in(user)})


@router.put("/preferences")
async def update_preferences(
    body: ComparisonPreferenceRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    queue: CohortRecomputeQueue = Depends(get_recompute_queue),
) -> dict[str, Any]:
    """
    Opt in or out of peer comparisons.

    A change moves the user into or out of each of their cohorts, so every
    one of those cohorts is scheduled for recompute.
    """
    _ensure_self(user, body.user_id)
    if not isinstance(body.allow_peer_comparisons, bool):
        msg = "allowPeerComparisons must be a boolean"
        raise ValidationFailedError(msg, details=[msg])

    changed = await update_user_comparison_preference(db, user, body.allow_peer_comparisons)
    keys = await cohort_keys_for_user(db, user) if changed else []
    await db.commit()
    await queue.enqueue_many(keys)

    return envelope(
        {"allowPeerComparisons": body.allow_peer_comparisons},
        message="Comparison preferences updated",
    )


@router.get("/{category}")
async def get_category_comparison(
    category: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    if not is_interest_category(category):
        msg = "Invalid interest category"
        raise ValidationFailedError(msg, details=[msg])
    await _ensure_opted_in(db, user)
    comparison = await get_user_comparison(db, user.id, category)
    if comparison is None:
        msg = "No comparison data available for this interest yet"
        raise NotFoundError(msg)
    return envelope(comparison.as_dict())
