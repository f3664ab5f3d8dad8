"""Retrospective endpoints: /api/retrospectives."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.auth.dependencies import get_current_user
from lifeleveling.cohorts.queue import CohortRecomputeQueue, get_recompute_queue
from lifeleveling.database import get_session, unit_of_work
from lifeleveling.db.models import User
from lifeleveling.responses import envelope
from lifeleveling.retrospectives.service import create_retrospective, list_retrospectives, retrospective_to_dict

router = APIRouter(prefix="/api/retrospectives", tags=["Retrospectives"])


@router.get("")
async def get_retrospectives(
    retro_type: str | None = Query(None, alias="type"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    retros = await list_retrospectives(db, user, retro_type)
    return envelope({"retrospectives": [retrospective_to_dict(r) for r in retros], "total": len(retros)})


@router.post("")
async def post_retrospective(
    body: dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    queue: CohortRecomputeQueue = Depends(get_recompute_queue),
) -> dict[str, Any]:
    async with unit_of_work(db):
        retro, affected = await create_retrospective(db, user, body)
    await queue.enqueue_many(affected)
    return envelope(retrospective_to_dict(retro), message="Retrospective saved successfully")
