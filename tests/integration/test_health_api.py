"""Health and version endpoint tests."""

import pytest
from sqlalchemy import text


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "All systems operational"
    assert data["services"] == {"database": "healthy"}
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_health_reports_missing_tables(app, client):
    async with app.state.database.engine.begin() as conn:
        await conn.execute(text("DROP TABLE retrospectives"))
    response = await client.get("/api/health")
    assert response.status_code == 503
    data = response.json()
    assert data["success"] is False
    assert data["details"] == ["retrospectives"]


@pytest.mark.asyncio
async def test_version(client):
    response = await client.get("/api/health/version")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["version"] == "0.1.0"
    assert data["environment"] == "test"


@pytest.mark.asyncio
async def test_request_id_header(client):
    response = await client.get("/api/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
