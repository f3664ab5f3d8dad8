"""
Request gate: route-level authentication before handlers run.

Each path is classified by prefix. Pages get redirects (login, onboarding,
dashboard); protected API prefixes get a 401 envelope. Only the token
signature and its embedded user snapshot are checked here; handlers still
validate the session row.
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from urllib.parse import urlencode

import jwt
import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from lifeleveling.auth.jwt import verify_session_token
from lifeleveling.config import Settings, get_settings
from lifeleveling.responses import error_envelope

logger = structlog.get_logger()


class RouteClass(str, Enum):
    UNRESTRICTED = "unrestricted"
    PROTECTED_PAGE = "protected_page"
    PUBLIC_PAGE = "public_page"
    PROTECTED_API = "protected_api"
    ROOT = "root"


UNRESTRICTED_PREFIXES = (
    "/api/auth",
    "/api/health",
    "/api/init-db",
    "/api/seed-db",
    "/api/test-db",
    "/api/cohort-stats",
    "/docs",
    "/redoc",
    "/openapi.json",
)

PROTECTED_PAGE_PREFIXES = (
    "/dashboard",
    "/onboarding",
    "/goals",
    "/retrospectives",
    "/paths",
    "/comparisons",
    "/profile",
    "/family",
)

PUBLIC_PAGE_PREFIXES = ("/login", "/register")

PROTECTED_API_PREFIXES = (
    "/api/user",
    "/api/goals",
    "/api/interests",
    "/api/retrospectives",
    "/api/family",
    "/api/onboarding",
    "/api/comparisons",
    "/api/paths",
)


def _matches(path: str, prefixes: tuple[str, ...]) -> bool:
    # Whole segments only: "/paths" matches "/paths/x" but not "/pathsfinder".
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def classify_path(path: str) -> RouteClass:
    """Decide which gate rule applies to ``path``."""
    if _matches(path, UNRESTRICTED_PREFIXES) or "." in path.rsplit("/", 1)[-1]:
        return RouteClass.UNRESTRICTED
    if path == "/":
        return RouteClass.ROOT
    if _matches(path, PROTECTED_API_PREFIXES):
        return RouteClass.PROTECTED_API
    if _matches(path, PROTECTED_PAGE_PREFIXES):
        return RouteClass.PROTECTED_PAGE
    if _matches(path, PUBLIC_PAGE_PREFIXES):
        return RouteClass.PUBLIC_PAGE
    return RouteClass.UNRESTRICTED


def _token_from(request: Request, settings: Settings) -> str | None:
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def _snapshot(request: Request, settings: Settings) -> dict[str, Any] | None:
    """The user snapshot from a valid token, or None."""
    token = _token_from(request, settings)
    if token is None:
        return None
    try:
        return verify_session_token(token)["user"]
    except jwt.InvalidTokenError:
        return None


def _landing_path(snapshot: dict[str, Any], settings: Settings) -> str:
    return settings.dashboard_path if snapshot.get("onboardingCompleted") else settings.onboarding_path


class RequestGateMiddleware(BaseHTTPMiddleware):
    """Redirect or reject requests according to their route class."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        route_class = classify_path(path)
        if route_class is RouteClass.UNRESTRICTED:
            return await call_next(request)

        settings = get_settings()
        snapshot = _snapshot(request, settings)

        if route_class is RouteClass.PROTECTED_API:
            if snapshot is None:
                return JSONResponse(status_code=401, content=error_envelope("Authentication required"))
            return await call_next(request)

        if route_class is RouteClass.PROTECTED_PAGE:
            if snapshot is None:
                query = urlencode({"returnUrl": path})
                logger.debug("gate_login_redirect", path=path)
                return RedirectResponse(f"{settings.login_path}?{query}", status_code=307)
            if not snapshot.get("onboardingCompleted") and path != settings.onboarding_path:
                return RedirectResponse(settings.onboarding_path, status_code=307)
            return await call_next(request)

        # Public pages and the root send signed-in users to where they belong.
        if snapshot is not None:
            return RedirectResponse(_landing_path(snapshot, settings), status_code=307)
        return await call_next(request)
