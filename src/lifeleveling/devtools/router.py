"""Development-only database endpoints. All of them 403 in production."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.cohorts.service import update_all_cohort_statistics
from lifeleveling.database import Database, get_database, unit_of_work
from lifeleveling.dependencies import get_db, require_non_production
from lifeleveling.devtools.service import SEED_ACTIONS, run_seed_action, run_smoke_test
from lifeleveling.errors import ValidationFailedError
from lifeleveling.responses import envelope

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Development"], dependencies=[Depends(require_non_production)])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/init-db")
async def init_db(database: Database = Depends(get_database)) -> dict[str, Any]:
    """Create any missing tables."""
    await database.create_all()
    logger.info("database_initialized")
    return envelope({"timestamp": _now()}, message="Database initialized successfully")


@router.get("/seed-db")
async def describe_seed() -> dict[str, Any]:
    return envelope(
        {
            "actions": [
                {"action": action, "description": description, "method": "POST", "body": {"action": action}}
                for action, description in SEED_ACTIONS.items()
            ],
        },
        message="Seed API is available",
    )


@router.post("/seed-db")
async def seed_db(
    body: dict[str, Any] | None = Body(None),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    action = (body or {}).get("action", "seed")
    if action not in SEED_ACTIONS:
        msg = "Invalid action. Use 'seed', 'clear', or 'generate-cohorts'"
        raise ValidationFailedError(msg)
    async with unit_of_work(db):
        result = await run_seed_action(db, action)
    return envelope({"action": action, "result": result, "timestamp": _now()}, message=SEED_ACTIONS[action])


@router.get("/test-db")
async def describe_test() -> dict[str, Any]:
    return envelope(
        {"description": "POST to this endpoint to run the database smoke test", "timestamp": _now()},
        message="Database test API is available",
    )


@router.post("/test-db")
async def test_db(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Run the smoke test inside a transaction that is always rolled back."""
    steps = await run_smoke_test(db)
    return envelope(
        {"testResults": steps, "timestamp": _now()},
        message="All database operations tests passed successfully",
    )


@router.post("/cohort-stats")
async def refresh_cohort_stats(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Recompute every cohort synchronously."""
    async with unit_of_work(db):
        count = await update_all_cohort_statistics(db)
    return envelope({"cohortsUpdated": count}, message="Cohort statistics updated successfully")
