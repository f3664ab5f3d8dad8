"""
Family linking and the child-consent state machine.

A relationship starts as *requested* (``child_consent_given`` false). The
child either grants consent, making it *active* and turning family mode on for
both users, or denies it, which deletes the row. Callers wrap each mutating
function in ``unit_of_work`` so flag changes and the consent write commit
together.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import aliased

from lifeleveling.auth.service import get_user_by_email
from lifeleveling.config import get_settings
from lifeleveling.db.models import FamilyActivityLog, FamilyRelationship, Goal, SkillHistory, User, UserInterest
from lifeleveling.enums import DEFAULT_PRIVACY_PREFERENCES, FamilyAction, GoalStatus
from lifeleveling.errors import AuthorizationError, ConflictError, NotFoundError, ValidationFailedError
from lifeleveling.goals.service import goal_to_dict
from lifeleveling.validation import is_valid_uuid

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

DEFAULT_RELATIONSHIP_TYPE = "parent_child"
RECENT_PROGRESS_LIMIT = 10


@dataclass
class ConsentResult:
    relationship_id: str
    consent_given: bool
    state_changed: bool


async def get_relationship(db: AsyncSession, relationship_id: str) -> FamilyRelationship | None:
    if not is_valid_uuid(relationship_id):
        return None
    result = await db.execute(select(FamilyRelationship).where(FamilyRelationship.id == relationship_id))
    return result.scalar_one_or_none()


async def _pair_exists(db: AsyncSession, user_a: str, user_b: str) -> bool:
    result = await db.execute(
        select(func.count())
        .select_from(FamilyRelationship)
        .where(
            or_(
                and_(FamilyRelationship.parent_user_id == user_a, FamilyRelationship.child_user_id == user_b),
                and_(FamilyRelationship.parent_user_id == user_b, FamilyRelationship.child_user_id == user_a),
            )
        )
    )
    return result.scalar_one() > 0


async def _has_active_relationship(db: AsyncSession, user_id: str) -> bool:
    result = await db.execute(
        select(func.count())
        .select_from(FamilyRelationship)
        .where(
            FamilyRelationship.child_consent_given.is_(True),
            or_(FamilyRelationship.parent_user_id == user_id, FamilyRelationship.child_user_id == user_id),
        )
    )
    return result.scalar_one() > 0


async def has_active_relationship(db: AsyncSession, user: User) -> bool:
    return await _has_active_relationship(db, user.id)


async def _log(
    db: AsyncSession,
    relationship_id: str,
    action: FamilyAction,
    performed_by: str,
    details: dict[str, Any] | None = None,
) -> FamilyActivityLog:
    entry = FamilyActivityLog(
        relationship_id=relationship_id,
        action_type=action.value,
        performed_by_user_id=performed_by,
        details={"timestamp": datetime.now(timezone.utc).isoformat(), **(details or {})},
    )
    db.add(entry)
    await db.flush()
    return entry


async def _reset_family_mode_if_unlinked(db: AsyncSession, user_ids: list[str]) -> None:
    """Turn family mode off for each user left without an active relationship."""
    for user_id in user_ids:
        if await _has_active_relationship(db, user_id):
            continue
        user = await db.get(User, user_id)
        if user is not None and user.family_mode_enabled:
            user.family_mode_enabled = False
            logger.info("family_mode_disabled", user_id=user_id)
    await db.flush()


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def request_link(
    db: AsyncSession,
    parent: User,
    child_email: str,
    relationship_type: str = DEFAULT_RELATIONSHIP_TYPE,
) -> FamilyRelationship:
    """
    Create a pending link from an adult to a minor.

    Raises:
        AuthorizationError: The requester is not an adult.
        NotFoundError: No account with ``child_email``.
        ValidationFailedError: The target is an adult or the requester themself.
        ConflictError: A relationship between the two already exists.
    """
    adult_age = get_settings().adult_age
    if parent.age_range_min < adult_age:
        msg = "Only adults can create family links"
        raise AuthorizationError(msg)

    child = await get_user_by_email(db, child_email)
    if child is None:
        msg = "Child account not found"
        raise NotFoundError(msg)
    if child.id == parent.id:
        msg = "You cannot link to your own account"
        raise ValidationFailedError(msg, details=[msg])
    if child.age_range_min >= adult_age:
        msg = "Family mode is only for linking with minors"
        raise ValidationFailedError(msg, details=[msg])
    if await _pair_exists(db, parent.id, child.id):
        msg = "Family relationship already exists"
        raise ConflictError(msg)

    relationship = FamilyRelationship(
        parent_user_id=parent.id,
        child_user_id=child.id,
        relationship_type=relationship_type or DEFAULT_RELATIONSHIP_TYPE,
        child_consent_given=False,
    )
    db.add(relationship)
    await db.flush()
    await _log(db, relationship.id, FamilyAction.LINK_REQUESTED, parent.id, {"childEmail": child.email})
    logger.info("family_link_requested", relationship_id=relationship.id, parent_id=parent.id, child_id=child.id)
    return relationship


async def set_consent(db: AsyncSession, child: User, relationship_id: str, consent_given: bool) -> ConsentResult:
    """
    Grant or deny consent on a relationship where ``child`` is the child party.

    Granting is idempotent. Denying deletes the relationship in any state.

    Raises:
        NotFoundError: No such relationship, or the caller is not its child party.
    """
    relationship = await get_relationship(db, relationship_id)
    if relationship is None or relationship.child_user_id != child.id:
        msg = "Family relationship not found or unauthorized"
        raise NotFoundError(msg)

    if consent_given:
        changed = not relationship.child_consent_given
        relationship.child_consent_given = True
        parent = await db.get(User, relationship.parent_user_id)
        for party in (parent, child):
            if party is not None:
                party.family_mode_enabled = True
        if changed:
            await _log(db, relationship.id, FamilyAction.CONSENT_GRANTED, child.id, {"consentGiven": True})
            logger.info("family_consent_granted", relationship_id=relationship.id, child_id=child.id)
        await db.flush()
        return ConsentResult(relationship.id, True, changed)

    parties = [relationship.parent_user_id, relationship.child_user_id]
    was_active = relationship.child_consent_given
    await db.delete(relationship)
    await db.flush()
    await _reset_family_mode_if_unlinked(db, parties)
    logger.info(
        "family_consent_denied", relationship_id=relationship_id, child_id=child.id, was_active=was_active
    )
    return ConsentResult(relationship_id, False, True)


async def remove_relationship(db: AsyncSession, user: User, relationship_id: str) -> None:
    """Delete a relationship the user is party to and reset family mode where needed."""
    relationship = await get_relationship(db, relationship_id)
    if relationship is None or user.id not in (relationship.parent_user_id, relationship.child_user_id):
        msg = "Family relationship not found or unauthorized"
        raise NotFoundError(msg)

    parties = [relationship.parent_user_id, relationship.child_user_id]
    await db.delete(relationship)
    await db.flush()
    await _reset_family_mode_if_unlinked(db, parties)
    logger.info("family_relationship_removed", relationship_id=relationship_id, removed_by=user.id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def _relationship_view(rel: FamilyRelationship, parent: User, child: User, viewer_id: str) -> dict[str, Any]:
    return {
        "id": rel.id,
        "relationshipType": rel.relationship_type,
        "childConsentGiven": rel.child_consent_given,
        "status": "active" if rel.child_consent_given else "pending",
        "role": "parent" if rel.parent_user_id == viewer_id else "child",
        "createdAt": rel.created_at.isoformat() if rel.created_at else None,
        "parent": {
            "id": parent.id,
            "email": parent.email,
            "ageRangeMin": parent.age_range_min,
            "ageRangeMax": parent.age_range_max,
        },
        "child": {
            "id": child.id,
            "email": child.email,
            "ageRangeMin": child.age_range_min,
            "ageRangeMax": child.age_range_max,
        },
    }


async def list_relationships(db: AsyncSession, user: User) -> list[dict[str, Any]]:
    """Relationships where the user is either parent or child, newest first."""
    parent_user = aliased(User)
    child_user = aliased(User)
    result = await db.execute(
        select(FamilyRelationship, parent_user, child_user)
        .join(parent_user, parent_user.id == FamilyRelationship.parent_user_id)
        .join(child_user, child_user.id == FamilyRelationship.child_user_id)
        .where(or_(FamilyRelationship.parent_user_id == user.id, FamilyRelationship.child_user_id == user.id))
        .order_by(FamilyRelationship.created_at.desc())
    )
    return [_relationship_view(rel, parent, child, user.id) for rel, parent, child in result.all()]


async def list_pending_requests(db: AsyncSession, child: User) -> list[dict[str, Any]]:
    """Requests awaiting the child's consent."""
    views = await list_relationships(db, child)
    return [v for v in views if v["role"] == "child" and not v["childConsentGiven"]]


async def get_activity_log(
    db: AsyncSession,
    user: User,
    relationship_id: str,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """
    Paginated audit entries for an active relationship the user is party to.

    Raises:
        AuthorizationError: Not a party, or the relationship is not active.
    """
    relationship = await get_relationship(db, relationship_id)
    if (
        relationship is None
        or user.id not in (relationship.parent_user_id, relationship.child_user_id)
        or not relationship.child_consent_given
    ):
        msg = "Access denied to this family activity log"
        raise AuthorizationError(msg)

    total_result = await db.execute(
        select(func.count()).select_from(FamilyActivityLog).where(FamilyActivityLog.relationship_id == relationship.id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(FamilyActivityLog, User.email)
        .join(User, User.id == FamilyActivityLog.performed_by_user_id)
        .where(FamilyActivityLog.relationship_id == relationship.id)
        .order_by(FamilyActivityLog.created_at.desc(), FamilyActivityLog.id.desc())
        .offset(offset)
        .limit(limit)
    )
    entries = [
        {
            "id": entry.id,
            "actionType": entry.action_type,
            "performedBy": entry.performed_by_user_id,
            "performedByEmail": email,
            "details": entry.details,
            "createdAt": entry.created_at.isoformat() if entry.created_at else None,
        }
        for entry, email in result.all()
    ]
    return entries, total


async def get_child_dashboard(db: AsyncSession, parent: User, child_user_id: str) -> dict[str, Any]:
    """
    A parent's view of a consenting child's interests, goals and progress.

    Interests are always included. Active goals need the child's
    ``shareGoalsWithFamily`` and recent skill history needs
    ``shareProgressWithFamily``. Each access is written to the activity log.

    Raises:
        AuthorizationError: No active relationship with the caller as parent,
            or the child has not allowed family viewing.
    """
    relationship = None
    if is_valid_uuid(child_user_id):
        result = await db.execute(
            select(FamilyRelationship).where(
                FamilyRelationship.parent_user_id == parent.id,
                FamilyRelationship.child_user_id == child_user_id,
                FamilyRelationship.child_consent_given.is_(True),
            )
        )
        relationship = result.scalar_one_or_none()
    if relationship is None:
        msg = "Family relationship not found or consent not given"
        raise AuthorizationError(msg)

    child = await db.get(User, child_user_id)
    privacy = {**DEFAULT_PRIVACY_PREFERENCES, **(child.privacy_preferences or {})}
    if privacy["allowFamilyViewing"] is not True:
        msg = "Child has not allowed family viewing"
        raise AuthorizationError(msg)
    share_goals = privacy["shareGoalsWithFamily"] is True
    share_progress = privacy["shareProgressWithFamily"] is True

    interests = (
        await db.execute(
            select(UserInterest).where(UserInterest.user_id == child.id).order_by(UserInterest.category)
        )
    ).scalars().all()

    goals: list[dict[str, Any]] = []
    if share_goals:
        goal_rows = await db.execute(
            select(Goal)
            .where(Goal.user_id == child.id, Goal.status == GoalStatus.ACTIVE.value)
            .order_by(Goal.created_at.desc())
        )
        goals = [goal_to_dict(goal) for goal in goal_rows.scalars()]

    progress: list[dict[str, Any]] = []
    if share_progress:
        history_rows = await db.execute(
            select(SkillHistory, UserInterest.category, UserInterest.subcategory)
            .join(UserInterest, UserInterest.id == SkillHistory.user_interest_id)
            .where(UserInterest.user_id == child.id)
            .order_by(SkillHistory.changed_at.desc(), SkillHistory.id.desc())
            .limit(RECENT_PROGRESS_LIMIT)
        )
        progress = [
            {
                "category": category,
                "subcategory": subcategory,
                "previousLevel": entry.previous_level,
                "newLevel": entry.new_level,
                "changedAt": entry.changed_at.isoformat() if entry.changed_at else None,
                "notes": entry.notes,
            }
            for entry, category, subcategory in history_rows.all()
        ]

    await _log(
        db,
        relationship.id,
        FamilyAction.DASHBOARD_ACCESSED,
        parent.id,
        {
            "childUserId": child.id,
            "dataAccessed": {"interests": True, "goals": share_goals, "progress": share_progress},
        },
    )
    logger.info("family_dashboard_accessed", relationship_id=relationship.id, parent_id=parent.id)

    return {
        "childInfo": {"email": child.email, "ageRange": f"{child.age_range_min}-{child.age_range_max}"},
        "interests": [
            {
                "category": interest.category,
                "subcategory": interest.subcategory,
                "currentLevel": interest.current_level,
                "intentLevel": interest.intent_level,
                "lastUpdated": interest.updated_at.isoformat() if interest.updated_at else None,
            }
            for interest in interests
        ],
        "goals": goals,
        "recentProgress": progress,
        "privacySettings": {
            "allowFamilyViewing": True,
            "shareGoalsWithFamily": share_goals,
            "shareProgressWithFamily": share_progress,
        },
    }
