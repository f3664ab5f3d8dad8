"""Current-user endpoints: /api/user/*."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.auth.dependencies import get_current_user
from lifeleveling.auth.schemas import InterestResponse, UserResponse
from lifeleveling.cohorts.queue import CohortRecomputeQueue, get_recompute_queue
from lifeleveling.cohorts.service import cohort_keys_for_user
from lifeleveling.database import get_session
from lifeleveling.db.models import User
from lifeleveling.errors import ValidationFailedError
from lifeleveling.interests.service import list_user_interests
from lifeleveling.paths.service import (
    complete_stage,
    get_path_progress,
    list_path_progress,
    path_to_dict,
    progress_to_dict,
    start_path,
)
from lifeleveling.responses import envelope
from lifeleveling.users.schemas import PathProgressRequest, PrivacyPreferences, ProfileUpdateRequest
from lifeleveling.users.service import (
    get_privacy_preferences,
    replace_privacy_preferences,
    set_family_mode,
    touch_last_active,
)

router = APIRouter(prefix="/api/user", tags=["User"])


def _interest_list(interests: list[Any]) -> list[dict[str, Any]]:
    return [InterestResponse.model_validate(i).model_dump(by_alias=True, mode="json") for i in interests]


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/profile")
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    await touch_last_active(db, user)
    await db.commit()
    interests = await list_user_interests(db, user.id)
    profile = UserResponse.model_validate(user).model_dump(by_alias=True, mode="json")
    profile["interests"] = _interest_list(interests)
    return envelope(profile)


@router.put("/profile")
async def update_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    if body.family_mode_enabled is None:
        msg = "No fields to update"
        raise ValidationFailedError(msg)
    await set_family_mode(db, user, body.family_mode_enabled)
    await db.commit()
    return envelope(
        {
            "id": user.id,
            "familyModeEnabled": user.family_mode_enabled,
            "lastActive": user.last_active.isoformat() if user.last_active else None,
        },
        message="Profile updated successfully",
    )


# ---------------------------------------------------------------------------
# Privacy
# ---------------------------------------------------------------------------


@router.get("/privacy")
async def get_privacy(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return envelope(get_privacy_preferences(user))


@router.put("/privacy")
async def update_privacy(
    body: PrivacyPreferences,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    queue: CohortRecomputeQueue = Depends(get_recompute_queue),
) -> dict[str, Any]:
    """Replace the full set of privacy preferences."""
    preferences = body.model_dump(by_alias=True)
    comparison_changed = await replace_privacy_preferences(db, user, preferences)
    keys = await cohort_keys_for_user(db, user) if comparison_changed else []
    await db.commit()
    await queue.enqueue_many(keys)
    return envelope(preferences, message="Privacy preferences updated successfully")


# ---------------------------------------------------------------------------
# Interests and path progress
# ---------------------------------------------------------------------------


@router.get("/interests")
async def get_interests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    interests = await list_user_interests(db, user.id)
    return envelope({"interests": _interest_list(interests), "total": len(interests)})


@router.get("/path-progress")
async def get_progress(
    path_id: str | None = Query(None, alias="pathId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Progress on one path, or every started path with its details."""
    if path_id is not None:
        progress = await get_path_progress(db, user, path_id)
        return envelope(progress_to_dict(progress) if progress else None)

    entries = []
    for progress in await list_path_progress(db, user):
        await db.refresh(progress, ["path"])
        entries.append({**progress_to_dict(progress), "path": path_to_dict(progress.path)})
    return envelope(entries)


@router.post("/path-progress")
async def post_progress(
    body: PathProgressRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    if body.action == "start":
        progress = await start_path(db, user, body.path_id)
        message = "Path started successfully"
    elif body.action == "complete_stage":
        progress = await complete_stage(db, user, body.path_id, body.stage_number)
        message = "Stage completed successfully"
    else:
        msg = "Invalid action. Supported actions: 'start', 'complete_stage'"
        raise ValidationFailedError(msg)
    await db.commit()
    return envelope(progress_to_dict(progress), message=message)
