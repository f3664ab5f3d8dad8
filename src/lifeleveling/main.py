"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from lifeleveling.auth.router import router as auth_router
from lifeleveling.cohorts.queue import build_recompute_queue
from lifeleveling.cohorts.router import router as comparisons_router
from lifeleveling.config import get_settings
from lifeleveling.database import Database
from lifeleveling.devtools.router import router as devtools_router
from lifeleveling.family.router import router as family_router
from lifeleveling.goals.router import router as goals_router
from lifeleveling.health.router import router as health_router
from lifeleveling.interests.router import router as interests_router
from lifeleveling.middleware import setup_middleware
from lifeleveling.onboarding.router import router as onboarding_router
from lifeleveling.paths.router import router as paths_router
from lifeleveling.retrospectives.router import router as retrospectives_router
from lifeleveling.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    database = Database.from_settings(settings)
    queue = build_recompute_queue(settings, database)
    app.state.database = database
    app.state.recompute_queue = queue

    await queue.start()
    logger.info("app_started", environment=settings.environment, queue_backend=settings.cohort_queue_backend)

    yield

    await queue.stop()
    await database.close()
    logger.info("app_stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Life Leveling API",
        description="Backend API for Life Leveling: goals, development paths, peer cohorts and family accounts",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(onboarding_router)
    app.include_router(interests_router)
    app.include_router(goals_router)
    app.include_router(retrospectives_router)
    app.include_router(paths_router)
    app.include_router(comparisons_router)
    app.include_router(family_router)
    app.include_router(devtools_router)

    return app


app = create_app()
