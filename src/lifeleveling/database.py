"""Async SQLAlchemy engine and session management.

A single ``Database`` is built at startup and kept on ``app.state``; handlers
receive sessions from it through the ``get_session`` dependency.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from lifeleveling.config import Settings


class Database:
    """Owns the async engine and session factory for one process."""

    def __init__(self, url: str, **engine_kwargs: Any) -> None:  # noqa: ANN401
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        """Build a Database with pool options suited to the configured driver."""
        kwargs: dict[str, Any] = {"pool_pre_ping": True, "echo": False}
        if settings.database_url.startswith("postgresql"):
            kwargs.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                connect_args={"statement_cache_size": 0},
            )
        return cls(settings.database_url, **kwargs)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session outside of a request (workers, startup tasks)."""
        async with self.session_factory() as session:
            yield session

    async def create_all(self) -> None:
        """Create every table known to the ORM metadata."""
        from lifeleveling.db import models  # noqa: F401
        from lifeleveling.db.base import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        from lifeleveling.db import models  # noqa: F401
        from lifeleveling.db.base import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        """Dispose of the engine."""
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    """Return the process-wide Database attached to the application."""
    database: Database | None = getattr(request.app.state, "database", None)
    if database is None:
        msg = "Database not initialized. The application lifespan has not run."
        raise RuntimeError(msg)
    return database


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    async with get_database(request).session_factory() as session:
        yield session


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise
