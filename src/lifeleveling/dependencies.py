"""Shared FastAPI dependencies."""

from __future__ import annotations

from lifeleveling.config import get_settings
from lifeleveling.database import get_session as _get_session
from lifeleveling.errors import AuthorizationError

get_db = _get_session


async def require_non_production() -> None:
    """Reject development-only endpoints when running in production."""
    if get_settings().is_production:
        msg = "This endpoint is not available in production"
        raise AuthorizationError(msg)
