"""Shared test fixtures.

Every test gets its own SQLite database file and a freshly built app whose
lifespan has run, so the recompute queue and database live on app.state just
as they do in production.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from lifeleveling.config import get_settings
from lifeleveling.main import create_app

DEFAULT_PASSWORD = "SecurePass123"


@pytest.fixture
def test_env(tmp_path, monkeypatch) -> None:
    """Point settings at a throwaway SQLite database."""
    monkeypatch.setenv("LIFELEVEL_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("LIFELEVEL_ENVIRONMENT", "test")
    monkeypatch.setenv("LIFELEVEL_LOG_FORMAT", "console")
    monkeypatch.setenv("LIFELEVEL_COHORT_QUEUE_BACKEND", "inprocess")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def app(test_env) -> AsyncGenerator[FastAPI, None]:
    """Application with its lifespan running and all tables created."""
    application = create_app()
    async with application.router.lifespan_context(application):
        await application.state.database.create_all()
        yield application
        await application.state.recompute_queue.join()
        await application.state.database.drop_all()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP test client bound to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test assertions."""
    async with app.state.database.session() as session:
        yield session


@pytest_asyncio.fixture
async def drain_queue(app: FastAPI):
    """Wait for every queued cohort recompute to finish."""

    async def _drain() -> None:
        await app.state.recompute_queue.join()

    return _drain


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def register(
    client: AsyncClient,
    email: str,
    age_range: str = "16-18",
    password: str = DEFAULT_PASSWORD,
    **extra: Any,  # noqa: ANN401
) -> dict[str, Any]:
    """Register through the API and return the response data (including ``token``).

    The client's cookie jar is cleared so later requests authenticate only
    through the headers a test passes explicitly.
    """
    response = await client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "ageRange": age_range, **extra},
    )
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return response.json()["data"]


async def onboard(client: AsyncClient, token: str, interests: list[dict[str, Any]]) -> dict[str, Any]:
    response = await client.post(
        "/api/onboarding/complete", json={"interests": interests}, headers=auth_headers(token)
    )
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return response.json()["data"]


@pytest_asyncio.fixture
async def registered_user(client: AsyncClient) -> dict[str, Any]:
    """A teen user (16-18) who has not completed onboarding."""
    return await register(client, "teen@example.com")


@pytest_asyncio.fixture
async def onboarded_user(client: AsyncClient, registered_user: dict[str, Any]) -> dict[str, Any]:
    """The teen user after onboarding with Music (level 2, invested) and Sports (level 1, casual).

    ``token`` is the reissued token whose snapshot shows onboarding complete.
    """
    data = await onboard(
        client,
        registered_user["token"],
        [
            {"category": "Music", "subcategory": "Piano", "level": 2, "intent": "invested"},
            {"category": "Sports", "level": 1, "intent": "casual"},
        ],
    )
    return {**registered_user, "token": data["token"], "interests": data["interests"]}


@pytest.fixture
def headers(onboarded_user: dict[str, Any]) -> dict[str, str]:
    return auth_headers(onboarded_user["token"])
