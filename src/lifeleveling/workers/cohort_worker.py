"""Cohort statistics arq worker.

Drains ``recompute_cohort`` jobs enqueued by the API and runs a periodic full
refresh so aggregates converge even if a job was lost.

Run with: ``arq lifeleveling.workers.cohort_worker.CohortWorkerSettings``
"""

from __future__ import annotations

import logging
from typing import Any

from arq import cron
from arq.connections import RedisSettings

from lifeleveling.cohorts.buckets import CohortKey
from lifeleveling.cohorts.service import update_all_cohort_statistics, update_cohort_statistics
from lifeleveling.config import get_settings
from lifeleveling.database import Database

logger = logging.getLogger(__name__)


async def cohort_startup(ctx: dict[str, Any]) -> None:
    """Open the database on worker startup."""
    settings = get_settings()
    ctx["database"] = Database.from_settings(settings)
    logger.info("Cohort worker started")


async def cohort_shutdown(ctx: dict[str, Any]) -> None:
    database: Database | None = ctx.get("database")
    if database is not None:
        await database.close()
    logger.info("Cohort worker stopped")


async def recompute_cohort(ctx: dict[str, Any], key: dict[str, Any]) -> int:
    """Recompute one cohort. Returns its member count (0 when the cohort emptied)."""
    cohort = CohortKey(int(key["age_min"]), int(key["age_max"]), key["category"], key["commitment"])
    database: Database = ctx["database"]
    try:
        async with database.session() as db:
            stats = await update_cohort_statistics(db, cohort)
            await db.commit()
    except Exception:
        logger.exception("Cohort recompute failed for %s", cohort)
        return 0
    return stats.user_count if stats is not None else 0


async def refresh_all_cohorts(ctx: dict[str, Any]) -> int:
    """Periodic task: recompute every cohort."""
    database: Database = ctx["database"]
    try:
        async with database.session() as db:
            total = await update_all_cohort_statistics(db)
            await db.commit()
    except Exception:
        logger.exception("Full cohort refresh failed")
        return 0
    logger.info("Full cohort refresh complete: %d cohorts", total)
    return total


def _refresh_minutes() -> set[int]:
    step = max(1, min(60, get_settings().cohort_refresh_cron_minutes))
    return set(range(0, 60, step))


class CohortWorkerSettings:
    """arq worker settings for cohort recomputation."""

    functions = [recompute_cohort, refresh_all_cohorts]
    cron_jobs = [cron(refresh_all_cohorts, minute=_refresh_minutes(), run_at_startup=False)]
    on_startup = cohort_startup
    on_shutdown = cohort_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 4
    job_timeout = 300
    # Results are not needed; dropping them frees the job id for the next enqueue.
    keep_result = 0
