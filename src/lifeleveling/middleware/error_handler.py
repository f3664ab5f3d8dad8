"""Global error handlers: every failure leaves as a JSON envelope."""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lifeleveling.errors import AppError
from lifeleveling.responses import error_envelope

logger = structlog.get_logger()


def _field_errors(exc: RequestValidationError) -> list[str]:
    """Flatten pydantic errors into "field: message" strings."""
    errors: list[str] = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc)
        errors.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return errors


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """Domain errors carry their own status code and message."""
        if exc.status_code >= 500:
            logger.error("app_error", path=request.url.path, error=exc.message, exc_info=exc)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.message, details=exc.details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions (404 routes, 405 methods) with the envelope."""
        detail: Any = exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(str(detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed bodies and bad query params are 400s with field details."""
        return JSONResponse(
            status_code=400,
            content=error_envelope("Validation failed", details=_field_errors(exc)),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content=error_envelope("Internal server error"),
        )
