"""
Cohort recompute queue.

Write paths enqueue the cohorts they touched and return immediately; a worker
drains the queue and refreshes ``cohort_stats``. Comparisons are therefore
eventually consistent with interest rows. Recompute failures are logged and
dropped, never surfaced to the request that triggered them.

Two backends:

- ``InProcessRecomputeQueue``: an asyncio queue drained by a task started in
  the app lifespan. Used in development and tests.
- ``ArqRecomputeQueue``: enqueues ``recompute_cohort`` jobs for the arq worker
  in ``lifeleveling.workers.cohort_worker``.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any

import structlog
from fastapi import Request

from lifeleveling.cohorts.buckets import CohortKey
from lifeleveling.cohorts.service import update_cohort_statistics

if TYPE_CHECKING:
    from arq.connections import ArqRedis
    from sqlalchemy.ext.asyncio import AsyncSession

    from lifeleveling.config import Settings
    from lifeleveling.database import Database

logger = structlog.get_logger()

RecomputeFn = Callable[["AsyncSession", CohortKey], Awaitable[Any]]

RECOMPUTE_JOB_NAME = "recompute_cohort"


def job_id_for(key: CohortKey) -> str:
    return f"cohort:{key.age_min}-{key.age_max}:{key.category}:{key.commitment}"


class CohortRecomputeQueue:
    """Interface shared by the queue backends."""

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    async def enqueue(self, key: CohortKey) -> None:
        raise NotImplementedError

    async def enqueue_many(self, keys: Iterable[CohortKey]) -> None:
        for key in dict.fromkeys(keys):
            await self.enqueue(key)

    async def join(self) -> None:
        """Wait until everything enqueued so far has been processed, where the backend can tell."""
        return None


class InProcessRecomputeQueue(CohortRecomputeQueue):
    """asyncio.Queue drained by a single background task."""

    def __init__(self, database: Database, recompute: RecomputeFn = update_cohort_statistics) -> None:
        self._database = database
        self._recompute = recompute
        self._queue: asyncio.Queue[CohortKey] = asyncio.Queue()
        self._pending: set[CohortKey] = set()
        self._task: asyncio.Task[None] | None = None
        self.processed = 0
        self.failed = 0

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="cohort-recompute")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def enqueue(self, key: CohortKey) -> None:
        # A key already waiting will pick up this change when it runs.
        if key in self._pending:
            return
        self._pending.add(key)
        self._queue.put_nowait(key)
        logger.debug("cohort_recompute_enqueued", **key.as_dict())

    async def join(self) -> None:
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            key = await self._queue.get()
            self._pending.discard(key)
            try:
                async with self._database.session() as db:
                    await self._recompute(db, key)
                    await db.commit()
                self.processed += 1
            except Exception:
                self.failed += 1
                logger.exception("cohort_recompute_failed", **key.as_dict())
            finally:
                self._queue.task_done()


class ArqRecomputeQueue(CohortRecomputeQueue):
    """Hands recompute jobs to the arq worker over Redis."""

    def __init__(self, redis_url: str) -> None:
        self._redis_url = redis_url
        self._pool: ArqRedis | None = None

    async def start(self) -> None:
        from arq import create_pool
        from arq.connections import RedisSettings

        self._pool = await create_pool(RedisSettings.from_dsn(self._redis_url))

    async def stop(self) -> None:
        if self._pool is not None:
            await self._pool.aclose()
            self._pool = None

    async def enqueue(self, key: CohortKey) -> None:
        if self._pool is None:
            logger.warning("cohort_recompute_dropped", reason="queue not started", **key.as_dict())
            return
        try:
            # Same job id while one is queued collapses duplicate requests.
            await self._pool.enqueue_job(RECOMPUTE_JOB_NAME, key.as_dict(), _job_id=job_id_for(key))
        except Exception:
            logger.exception("cohort_recompute_enqueue_failed", **key.as_dict())


def build_recompute_queue(settings: Settings, database: Database) -> CohortRecomputeQueue:
    if settings.cohort_queue_backend == "arq":
        return ArqRecomputeQueue(settings.arq_redis_url)
    if settings.cohort_queue_backend == "inprocess":
        return InProcessRecomputeQueue(database)
    msg = f"Unknown cohort_queue_backend: {settings.cohort_queue_backend!r}"
    raise ValueError(msg)


def get_recompute_queue(request: Request) -> CohortRecomputeQueue:
    """FastAPI dependency: the queue built at startup."""
    queue: CohortRecomputeQueue | None = getattr(request.app.state, "recompute_queue", None)
    if queue is None:
        msg = "Recompute queue not initialized. The application lifespan has not run."
        raise RuntimeError(msg)
    return queue
