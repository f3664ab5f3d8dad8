"""Profile and privacy preference logic for the current user."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog

from lifeleveling.cohorts.service import PEER_COMPARISON_FLAG
from lifeleveling.db.models import User
from lifeleveling.enums import DEFAULT_PRIVACY_PREFERENCES
from lifeleveling.errors import AuthorizationError
from lifeleveling.family.service import has_active_relationship

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def touch_last_active(db: AsyncSession, user: User) -> None:
    user.last_active = datetime.now(timezone.utc)
    await db.flush()


async def set_family_mode(db: AsyncSession, user: User, enabled: bool) -> User:
    """
    Toggle family mode.

    Turning it off is always allowed. Turning it on requires an active
    (consented) family relationship.
    """
    if enabled and not user.family_mode_enabled and not await has_active_relationship(db, user):
        msg = "Family mode requires an active family relationship"
        raise AuthorizationError(msg)
    user.family_mode_enabled = enabled
    user.last_active = datetime.now(timezone.utc)
    await db.flush()
    logger.info("family_mode_changed", user_id=user.id, enabled=enabled)
    return user


def get_privacy_preferences(user: User) -> dict[str, Any]:
    """Stored preferences over the defaults."""
    return {**DEFAULT_PRIVACY_PREFERENCES, **(user.privacy_preferences or {})}


async def replace_privacy_preferences(db: AsyncSession, user: User, preferences: dict[str, bool]) -> bool:
    """
    Store a complete set of privacy preferences.

    Returns True when the peer comparison flag changed.
    """
    previous = get_privacy_preferences(user).get(PEER_COMPARISON_FLAG) is True
    user.privacy_preferences = dict(preferences)
    user.last_active = datetime.now(timezone.utc)
    await db.flush()
    changed = preferences.get(PEER_COMPARISON_FLAG) is not previous
    logger.info("privacy_preferences_updated", user_id=user.id, comparison_flag_changed=changed)
    return changed
