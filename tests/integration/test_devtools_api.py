"""Integration tests for the development-only database endpoints."""

import pytest
from sqlalchemy import func, select

from lifeleveling.config import get_settings
from lifeleveling.db.models import CohortStats, PredefinedPath, User

pytestmark = pytest.mark.asyncio


class TestSeed:
    async def test_describe(self, client):
        response = await client.get("/api/seed-db")
        assert response.status_code == 200
        actions = [a["action"] for a in response.json()["data"]["actions"]]
        assert actions == ["seed", "clear", "generate-cohorts"]

    async def test_seed_is_idempotent(self, client):
        first = await client.post("/api/seed-db", json={"action": "seed"})
        assert first.json()["data"]["result"] == {"pathsInserted": 10}
        second = await client.post("/api/seed-db")
        assert second.json()["data"]["result"] == {"pathsInserted": 0}

    async def test_clear(self, client, db_session):
        await client.post("/api/seed-db", json={"action": "seed"})
        await client.post("/api/seed-db", json={"action": "generate-cohorts"})
        response = await client.post("/api/seed-db", json={"action": "clear"})
        assert response.status_code == 200
        assert response.json()["data"]["result"]["paths"] == 10

        paths = await db_session.scalar(select(func.count()).select_from(PredefinedPath))
        cohorts = await db_session.scalar(select(func.count()).select_from(CohortStats))
        assert (paths, cohorts) == (0, 0)

    async def test_generate_cohorts(self, client, db_session):
        response = await client.post("/api/seed-db", json={"action": "generate-cohorts"})
        brackets = len(get_settings().cohort_age_brackets)
        assert response.json()["data"]["result"] == {"cohortsGenerated": brackets * 7 * 4}

        rows = (await db_session.execute(select(CohortStats))).scalars().all()
        assert all(row.user_count == sum(row.level_counts.values()) for row in rows)
        assert all(count >= 10 for row in rows for count in row.level_counts.values())

    async def test_invalid_action(self, client):
        response = await client.post("/api/seed-db", json={"action": "nuke"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action. Use 'seed', 'clear', or 'generate-cohorts'"


class TestSmokeTest:
    async def test_describe(self, client):
        response = await client.get("/api/test-db")
        assert response.status_code == 200

    async def test_runs_and_rolls_back(self, client, db_session):
        response = await client.post("/api/test-db")
        assert response.status_code == 200
        steps = response.json()["data"]["testResults"]
        assert [s["step"] for s in steps] == [
            "create_user",
            "create_interest",
            "create_goal",
            "create_retrospective",
            "recompute_cohort",
        ]
        assert steps[-1]["userCount"] == 1

        users = await db_session.scalar(select(func.count()).select_from(User))
        assert users == 0


class TestMaintenance:
    async def test_init_db(self, client):
        response = await client.post("/api/init-db")
        assert response.status_code == 200
        assert response.json()["message"] == "Database initialized successfully"

    async def test_cohort_stats_recompute(self, client, headers, drain_queue):
        await client.put("/api/comparisons/preferences", json={"allowPeerComparisons": True}, headers=headers)
        await drain_queue()
        response = await client.post("/api/cohort-stats")
        assert response.status_code == 200
        assert response.json()["data"]["cohortsUpdated"] == 2

    async def test_recompute_drops_synthetic_rows_without_members(self, client, db_session):
        await client.post("/api/seed-db", json={"action": "generate-cohorts"})
        response = await client.post("/api/cohort-stats")
        assert response.json()["data"]["cohortsUpdated"] > 0
        remaining = await db_session.scalar(select(func.count()).select_from(CohortStats))
        assert remaining == 0


class TestProductionGuard:
    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("POST", "/api/init-db"),
            ("GET", "/api/seed-db"),
            ("POST", "/api/seed-db"),
            ("POST", "/api/test-db"),
            ("POST", "/api/cohort-stats"),
        ],
    )
    async def test_forbidden_in_production(self, client, monkeypatch, method, path):
        monkeypatch.setenv("LIFELEVEL_ENVIRONMENT", "production")
        get_settings.cache_clear()
        response = await client.request(method, path)
        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "This endpoint is not available in production"}
