"""Authentication router: /api/auth/* endpoints."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.auth.cookies import clear_session_cookie, set_session_cookie
from lifeleveling.auth.dependencies import SessionContext, get_optional_session_context, get_session_context
from lifeleveling.auth.schemas import InterestResponse, LoginRequest, RegisterRequest, UserResponse
from lifeleveling.auth.service import (
    authenticate_user,
    create_auth_session,
    register_child_account,
    register_user,
    revoke_session,
)
from lifeleveling.database import get_session
from lifeleveling.db.models import User
from lifeleveling.errors import ValidationFailedError
from lifeleveling.interests.service import list_user_interests
from lifeleveling.responses import envelope
from lifeleveling.validation import parse_age_range

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _user_response(user: User) -> dict[str, Any]:
    return UserResponse.model_validate(user).model_dump(by_alias=True, mode="json")


def _client_info(request: Request) -> tuple[str | None, str | None]:
    return (request.client.host if request.client else None, request.headers.get("user-agent"))


@router.post("/register")
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Register a new account, or a child account on behalf of a parent."""
    try:
        age_min, age_max = parse_age_range(body.age_range)
    except ValueError as e:
        raise ValidationFailedError(str(e), details=[str(e)]) from e

    if body.is_parent_created and body.child_email:
        child = await register_child_account(
            db,
            body.email,
            body.child_email,
            body.password,
            age_min,
            age_max,
            parental_consent=body.parental_consent,
        )
        await db.commit()
        return envelope(
            {"userId": child.id, "email": child.email, "familyModeEnabled": True},
            message="Child account created successfully",
        )

    user = await register_user(
        db, body.email, body.password, age_min, age_max, parental_consent=body.parental_consent
    )
    ip_address, user_agent = _client_info(request)
    token = await create_auth_session(db, user, ip_address, user_agent)
    await db.commit()
    set_session_cookie(response, token)

    return envelope(
        {
            "userId": user.id,
            "email": user.email,
            "onboardingCompleted": user.onboarding_completed,
            "familyModeEnabled": user.family_mode_enabled,
            "token": token,
        },
        message="Account created successfully",
    )


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Login with email + password. Sets the session cookie."""
    user = await authenticate_user(db, body.email, body.password)
    ip_address, user_agent = _client_info(request)
    token = await create_auth_session(db, user, ip_address, user_agent)
    await db.commit()
    set_session_cookie(response, token)
    logger.info("user_logged_in", user_id=user.id)

    return envelope(
        {
            "userId": user.id,
            "email": user.email,
            "onboardingCompleted": user.onboarding_completed,
            "familyModeEnabled": user.family_mode_enabled,
            "token": token,
        },
        message="Login successful",
    )


@router.post("/logout")
async def logout(
    response: Response,
    context: SessionContext | None = Depends(get_optional_session_context),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Revoke the presented session (if any) and clear the cookie. Always succeeds."""
    if context is not None and await revoke_session(db, context.session_id):
        await db.commit()
        logger.info("user_logged_out", user_id=context.user.id)
    clear_session_cookie(response)
    return envelope(message="Logged out successfully")


@router.get("/me")
async def me(
    context: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Current user's profile with their interests."""
    interests = await list_user_interests(db, context.user.id)
    return envelope(
        {
            "user": _user_response(context.user),
            "interests": [
                InterestResponse.model_validate(i).model_dump(by_alias=True, mode="json") for i in interests
            ],
        }
    )
