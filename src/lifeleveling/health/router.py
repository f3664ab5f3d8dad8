"""Health and version endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.config import get_settings
from lifeleveling.database import get_session
from lifeleveling.responses import error_envelope

logger = structlog.get_logger()

router = APIRouter(prefix="/api/health", tags=["Health"])

CORE_TABLES = ("users", "user_interests", "goals", "retrospectives")


def _missing_tables(sync_conn: Any) -> list[str]:  # noqa: ANN401
    existing = set(inspect(sync_conn).get_table_names())
    return [name for name in CORE_TABLES if name not in existing]


@router.get("", response_model=None)
async def health(db: AsyncSession = Depends(get_session)) -> dict[str, Any] | JSONResponse:  # noqa: B008
    """Database connectivity and schema check. 503 when either fails."""
    timestamp = datetime.now(timezone.utc).isoformat()

    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("health_database_unreachable", error=str(exc))
        body = error_envelope("Database connection failed")
        body["timestamp"] = timestamp
        return JSONResponse(status_code=503, content=body)

    connection = await db.connection()
    missing = await connection.run_sync(_missing_tables)
    if missing:
        logger.warning("health_schema_incomplete", missing=missing)
        body = error_envelope("Database health check failed - missing tables", details=missing)
        body["timestamp"] = timestamp
        return JSONResponse(status_code=503, content=body)

    return {
        "success": True,
        "message": "All systems operational",
        "timestamp": timestamp,
        "services": {"database": "healthy"},
    }


@router.get("/version")
async def version() -> dict[str, Any]:
    """Return API version and environment."""
    settings = get_settings()
    return {"success": True, "data": {"version": settings.app_version, "environment": settings.environment}}
