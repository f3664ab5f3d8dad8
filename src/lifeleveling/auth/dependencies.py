"""FastAPI authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.auth.jwt import verify_session_token
from lifeleveling.auth.service import get_auth_session, get_user_by_id
from lifeleveling.config import get_settings
from lifeleveling.database import get_session
from lifeleveling.db.models import User
from lifeleveling.errors import AuthenticationError, NotAuthenticatedError

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class SessionContext:
    """The resolved user plus the id of the session that authenticated them."""

    user: User
    session_id: str


def extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None = None) -> str | None:
    """Session cookie first, then an ``Authorization: Bearer`` header."""
    token = request.cookies.get(get_settings().session_cookie_name)
    if token:
        return token
    if credentials is not None and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return None


async def get_session_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    db: AsyncSession = Depends(get_session),
) -> SessionContext:
    """
    Verify the session token and the server-side session row.

    Raises NotAuthenticatedError when no token is present and
    AuthenticationError when one is present but not valid.
    """
    token = extract_token(request, credentials)
    if token is None:
        raise NotAuthenticatedError

    try:
        payload = verify_session_token(token)
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(str(e)) from e

    session = await get_auth_session(db, payload["jti"])
    if session is None or session.is_revoked or session.user_id != payload["sub"]:
        msg = "Session is no longer valid"
        raise AuthenticationError(msg)

    user = await get_user_by_id(db, payload["sub"])
    if user is None:
        msg = "User not found"
        raise AuthenticationError(msg)
    return SessionContext(user=user, session_id=session.id)


async def get_current_user(context: SessionContext = Depends(get_session_context)) -> User:
    return context.user


async def get_optional_session_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    db: AsyncSession = Depends(get_session),
) -> SessionContext | None:
    """Same as get_session_context but returns None instead of raising."""
    try:
        return await get_session_context(request, credentials, db)
    except AuthenticationError:
        return None
