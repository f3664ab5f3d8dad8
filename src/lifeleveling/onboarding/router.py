"""Onboarding endpoint: /api/onboarding/complete."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.auth.cookies import set_session_cookie
from lifeleveling.auth.dependencies import SessionContext, get_session_context
from lifeleveling.auth.schemas import InterestResponse
from lifeleveling.auth.service import reissue_session_token
from lifeleveling.cohorts.queue import CohortRecomputeQueue, get_recompute_queue
from lifeleveling.database import get_session, unit_of_work
from lifeleveling.interests.service import upsert_interests
from lifeleveling.responses import envelope
from lifeleveling.validation import ensure_valid, validate_onboarding_data

logger = structlog.get_logger()

router = APIRouter(prefix="/api/onboarding", tags=["Onboarding"])


@router.post("/complete")
async def complete_onboarding(
    response: Response,
    body: dict[str, Any] = Body(...),
    context: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_session),
    queue: CohortRecomputeQueue = Depends(get_recompute_queue),
) -> dict[str, Any]:
    """
    Save the user's initial interests and mark onboarding complete.

    The session token is reissued so its embedded snapshot reflects the
    completed onboarding.
    """
    interests_payload = body.get("interests")
    ensure_valid(validate_onboarding_data(interests_payload))
    user = context.user

    async with unit_of_work(db):
        upsert = await upsert_interests(db, user, interests_payload)
        interests = upsert.interests
        user.onboarding_completed = True
        await db.flush()
        token = await reissue_session_token(db, user, context.session_id)

    set_session_cookie(response, token)
    await queue.enqueue_many(upsert.affected)
    logger.info("onboarding_completed", user_id=user.id, interests=len(interests))

    return envelope(
        {
            "onboardingCompleted": True,
            "interests": [
                InterestResponse.model_validate(i).model_dump(by_alias=True, mode="json") for i in interests
            ],
            "token": token,
        },
        message="Onboarding completed successfully",
    )
