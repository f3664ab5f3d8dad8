"""Interest endpoints: /api/interests/*."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.auth.dependencies import get_current_user
from lifeleveling.auth.schemas import InterestResponse
from lifeleveling.cohorts.queue import CohortRecomputeQueue, get_recompute_queue
from lifeleveling.database import get_session
from lifeleveling.db.models import User
from lifeleveling.interests.service import update_commitment_level
from lifeleveling.responses import envelope

router = APIRouter(prefix="/api/interests", tags=["Interests"])


class CommitmentUpdateRequest(BaseModel):
    # Checked by update_commitment_level.
    commitment_level: Any = Field(None, alias="commitmentLevel")


@router.put("/{interest_id}/commitment")
async def update_commitment(
    interest_id: str,
    body: CommitmentUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    queue: CohortRecomputeQueue = Depends(get_recompute_queue),
) -> dict[str, Any]:
    """Change an interest's commitment level and schedule the affected cohort recomputes."""
    change = await update_commitment_level(db, user, interest_id, body.commitment_level)
    await db.commit()
    if change.changed:
        await queue.enqueue_many(change.affected)

    return envelope(
        InterestResponse.model_validate(change.interest).model_dump(by_alias=True, mode="json"),
        message="Commitment level updated" if change.changed else "Commitment level unchanged",
    )
