"""
HS256 session tokens.

A session token embeds a snapshot of the user (age range, onboarding and
family-mode flags) so the request gate can route without a database read.
The ``jti`` claim points at the ``auth_sessions`` row used for revocation.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import jwt

from lifeleveling.config import get_settings

if TYPE_CHECKING:
    from lifeleveling.db.models import User

SESSION_TOKEN_TYPE = "session"


def user_snapshot(user: User) -> dict[str, Any]:
    """The user fields embedded in a session token."""
    return {
        "id": str(user.id),
        "email": user.email,
        "ageRangeMin": user.age_range_min,
        "ageRangeMax": user.age_range_max,
        "familyModeEnabled": bool(user.family_mode_enabled),
        "onboardingCompleted": bool(user.onboarding_completed),
    }


def create_session_token(user: User, *, session_id: str, now: datetime | None = None) -> str:
    """
    Create a signed session token.

    Args:
        user: The authenticated user.
        session_id: Id of the ``auth_sessions`` row (becomes the ``jti``).
        now: Issue time override.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    issued = now or datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "jti": session_id,
        "iat": issued,
        "exp": issued + timedelta(days=settings.session_expire_days),
        "iss": settings.jwt_issuer,
        "type": SESSION_TOKEN_TYPE,
        "user": user_snapshot(user),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_session_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a session token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or of the wrong type.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != SESSION_TOKEN_TYPE:
        msg = f"Expected token type '{SESSION_TOKEN_TYPE}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)
    if "jti" not in payload or not isinstance(payload.get("user"), dict):
        msg = "Malformed session token"
        raise jwt.InvalidTokenError(msg)

    return payload
