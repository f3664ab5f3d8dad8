"""Family endpoints: /api/family/*."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr, Field, StrictBool
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.auth.dependencies import get_current_user
from lifeleveling.database import get_session, unit_of_work
from lifeleveling.db.models import User
from lifeleveling.family.service import (
    DEFAULT_RELATIONSHIP_TYPE,
    get_activity_log,
    get_child_dashboard,
    list_pending_requests,
    list_relationships,
    remove_relationship,
    request_link,
    set_consent,
)
from lifeleveling.responses import envelope

router = APIRouter(prefix="/api/family", tags=["Family"])


class LinkRequest(BaseModel):
    child_email: EmailStr = Field(..., alias="childEmail")
    relationship_type: str = Field(DEFAULT_RELATIONSHIP_TYPE, alias="relationshipType", max_length=30)


class ConsentRequest(BaseModel):
    relationship_id: str = Field(..., alias="relationshipId", min_length=1)
    consent_given: StrictBool = Field(..., alias="consentGiven")


@router.post("/link")
async def link(
    body: LinkRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Request a link to a minor's account. The child must consent before it is active."""
    async with unit_of_work(db):
        relationship = await request_link(db, user, body.child_email, body.relationship_type)
    return envelope(
        {
            "relationshipId": relationship.id,
            "childConsentGiven": False,
            "status": "pending",
        },
        message="Family link requested. Waiting for the child's consent.",
    )


@router.post("/consent")
async def consent(
    body: ConsentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Child grants (activates) or denies (deletes) a pending link."""
    async with unit_of_work(db):
        result = await set_consent(db, user, body.relationship_id, body.consent_given)
    return envelope(
        {
            "relationshipId": result.relationship_id,
            "childConsentGiven": result.consent_given,
            "familyModeEnabled": user.family_mode_enabled,
        },
        message="Family mode activated successfully" if result.consent_given else "Family link request declined",
    )


@router.get("/consent")
async def pending_consents(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    requests = await list_pending_requests(db, user)
    return envelope({"pendingRequests": requests, "total": len(requests)})


@router.get("/relationships")
async def relationships(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    views = await list_relationships(db, user)
    return envelope({"relationships": views, "total": len(views)})


@router.delete("/relationships")
async def delete_relationship(
    relationship_id: str = Query(..., alias="relationshipId", min_length=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    async with unit_of_work(db):
        await remove_relationship(db, user, relationship_id)
    return envelope(message="Family relationship removed")


@router.get("/activity-log")
async def activity_log(
    relationship_id: str = Query(..., alias="relationshipId", min_length=1),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Audit trail for an active relationship. Pending links grant no visibility."""
    entries, total = await get_activity_log(db, user, relationship_id, limit=limit, offset=offset)
    return envelope(
        {
            "activities": entries,
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": offset + len(entries) < total,
            },
        }
    )


@router.get("/dashboard")
async def dashboard(
    child_user_id: str = Query(..., alias="childUserId", min_length=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Parent view of a linked child, limited by the child's sharing preferences."""
    async with unit_of_work(db):
        data = await get_child_dashboard(db, user, child_user_id)
    return envelope(data)
