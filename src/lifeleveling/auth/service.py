"""
Authentication business logic.

Handles user creation (self and parent-initiated), credential checks and
the server-side session records behind session tokens.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from lifeleveling.auth.jwt import create_session_token
from lifeleveling.auth.password import (
    PasswordStrengthError,
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from lifeleveling.config import get_settings
from lifeleveling.db.models import AuthSession, User
from lifeleveling.enums import DEFAULT_PRIVACY_PREFERENCES
from lifeleveling.errors import ConflictError, InvalidCredentialsError, ValidationFailedError
from lifeleveling.validation import ensure_valid, sanitize_email, validate_user_registration

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    age_range_min: int,
    age_range_max: int,
    *,
    family_mode_enabled: bool = False,
) -> User:
    """
    Validate and insert a user row.

    Raises:
        ValidationFailedError: If email, password or age range are invalid.
        ConflictError: If the email is already registered.
    """
    ensure_valid(validate_user_registration(email, password, age_range_min, age_range_max))
    try:
        validate_password_strength(password)
    except PasswordStrengthError as e:
        raise ValidationFailedError(str(e), details=[str(e)]) from e

    if await get_user_by_email(db, email) is not None:
        msg = "User already exists with this email"
        raise ConflictError(msg)

    user = User(
        email=sanitize_email(email),
        password_hash=hash_password(password),
        age_range_min=age_range_min,
        age_range_max=age_range_max,
        family_mode_enabled=family_mode_enabled,
        onboarding_completed=False,
        privacy_preferences=dict(DEFAULT_PRIVACY_PREFERENCES),
        created_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id, family_mode=family_mode_enabled)
    return user


def check_parental_consent(age_range_min: int, parental_consent: bool) -> None:
    """Users whose range starts below the consent age need a parental consent flag."""
    consent_age = get_settings().parental_consent_age
    if age_range_min < consent_age and not parental_consent:
        msg = f"Parental consent is required for users under {consent_age}"
        raise ValidationFailedError(msg, details=[msg])


async def register_user(
    db: AsyncSession,
    email: str,
    password: str,
    age_range_min: int,
    age_range_max: int,
    *,
    parental_consent: bool = False,
) -> User:
    """Self-registration. Family mode starts disabled."""
    if await get_user_by_email(db, email) is not None:
        msg = "User already exists with this email"
        raise ConflictError(msg)
    check_parental_consent(age_range_min, parental_consent)
    return await create_user(db, email, password, age_range_min, age_range_max)


async def register_child_account(
    db: AsyncSession,
    parent_email: str,
    child_email: str,
    password: str,
    age_range_min: int,
    age_range_max: int,
    *,
    parental_consent: bool = False,
) -> User:
    """
    Parent-initiated registration of a child account.

    The child account is created with family mode enabled and no session is
    opened for it.
    """
    if await get_user_by_email(db, parent_email) is not None:
        msg = "User already exists with this email"
        raise ConflictError(msg)
    check_parental_consent(age_range_min, parental_consent)
    if await get_user_by_email(db, child_email) is not None:
        msg = "Child account already exists with this email"
        raise ConflictError(msg)
    user = await create_user(
        db, child_email, password, age_range_min, age_range_max, family_mode_enabled=True
    )
    logger.info("child_account_created", user_id=user.id)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Authenticate a user with email + password.

    Failed attempts are not throttled.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password.
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("login_failed", email_known=user is not None)
        raise InvalidCredentialsError

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)

    user.last_active = datetime.now(timezone.utc)
    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


async def create_auth_session(
    db: AsyncSession,
    user: User,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> str:
    """Persist a session row and return the signed token pointing at it."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    session = AuthSession(
        id=str(uuid.uuid4()),
        user_id=user.id,
        issued_at=now,
        expires_at=now + timedelta(days=settings.session_expire_days),
        ip_address=ip_address,
        user_agent=user_agent[:512] if user_agent else None,
    )
    db.add(session)
    await db.flush()
    logger.info("session_created", user_id=user.id, session_id=session.id)
    return create_session_token(user, session_id=session.id, now=now)


async def get_auth_session(db: AsyncSession, session_id: str) -> AuthSession | None:
    result = await db.execute(select(AuthSession).where(AuthSession.id == session_id))
    return result.scalar_one_or_none()


async def reissue_session_token(db: AsyncSession, user: User, session_id: str) -> str:
    """Sign a fresh token for an existing session so the embedded snapshot is current."""
    session = await get_auth_session(db, session_id)
    if session is None or session.is_revoked:
        return await create_auth_session(db, user)
    return create_session_token(user, session_id=session.id)


async def revoke_session(db: AsyncSession, session_id: str) -> bool:
    """Mark a session revoked. Returns False if it did not exist or was already revoked."""
    session = await get_auth_session(db, session_id)
    if session is None or session.is_revoked:
        return False
    session.is_revoked = True
    session.revoked_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("session_revoked", user_id=session.user_id, session_id=session_id)
    return True
