"""Integration tests for peer comparisons and the cohort recompute queue."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from tests.conftest import auth_headers, onboard, register

pytestmark = pytest.mark.asyncio


async def _opt_in(client, headers, allow=True):
    response = await client.put(
        "/api/comparisons/preferences", json={"allowPeerComparisons": allow}, headers=headers
    )
    assert response.status_code == 200, response.text
    return response


@pytest_asyncio.fixture
async def peer(client):
    """A second 16-18 user who plays Music at level 4, invested."""
    data = await register(client, "peer@example.com", age_range="16-17")
    onboarded = await onboard(client, data["token"], [{"category": "Music", "level": 4, "intent": "invested"}])
    return {**data, "token": onboarded["token"]}


class TestPreferences:
    async def test_default_is_opted_out(self, client, headers):
        response = await client.get("/api/comparisons/preferences", headers=headers)
        assert response.json()["data"] == {"allowPeerComparisons": False}

    async def test_opt_in(self, client, headers):
        response = await _opt_in(client, headers)
        assert response.json()["message"] == "Comparison preferences updated"
        prefs = await client.get("/api/comparisons/preferences", headers=headers)
        assert prefs.json()["data"]["allowPeerComparisons"] is True
        privacy = await client.get("/api/user/privacy", headers=headers)
        assert privacy.json()["data"]["allowPeerComparisons"] is True

    async def test_non_boolean_rejected(self, client, headers):
        response = await client.put(
            "/api/comparisons/preferences", json={"allowPeerComparisons": "yes"}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["error"] == "allowPeerComparisons must be a boolean"

    async def test_cannot_update_someone_else(self, client, headers, peer):
        response = await client.put(
            "/api/comparisons/preferences",
            json={"userId": peer["userId"], "allowPeerComparisons": True},
            headers=headers,
        )
        assert response.status_code == 403


class TestComparisons:
    async def test_opted_out_is_forbidden(self, client, headers):
        response = await client.get("/api/comparisons", headers=headers)
        assert response.status_code == 403
        response = await client.get("/api/comparisons/Music", headers=headers)
        assert response.status_code == 403

    async def test_other_user_id_is_forbidden(self, client, headers, peer):
        await _opt_in(client, headers)
        response = await client.get("/api/comparisons", params={"userId": peer["userId"]}, headers=headers)
        assert response.status_code == 403

    async def test_invalid_category(self, client, headers):
        response = await client.get("/api/comparisons/Cooking", headers=headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid interest category"

    async def test_no_data_for_untracked_category(self, client, headers, drain_queue):
        await _opt_in(client, headers)
        await drain_queue()
        response = await client.get("/api/comparisons/Math", headers=headers)
        assert response.status_code == 404

    async def test_percentiles_within_cohort(self, client, headers, peer, drain_queue):
        peer_headers = auth_headers(peer["token"])
        await _opt_in(client, headers)
        await _opt_in(client, peer_headers)
        await drain_queue()

        mine = (await client.get("/api/comparisons/Music", headers=headers)).json()["data"]
        assert mine["cohortSize"] == 2
        assert mine["currentLevel"] == 2
        assert mine["percentile"] == 1
        assert mine["ageRange"] == {"min": 16, "max": 18}
        assert mine["intentLevel"] == "invested"
        assert mine["encouragingMessage"].startswith("Every expert was once a beginner!")

        theirs = (await client.get("/api/comparisons/Music", headers=peer_headers)).json()["data"]
        assert theirs["percentile"] == 50
        assert theirs["userId"] == peer["userId"]

    async def test_list_covers_each_interest_with_data(self, client, headers, drain_queue):
        await _opt_in(client, headers)
        await drain_queue()
        response = await client.get("/api/comparisons", headers=headers)
        data = response.json()["data"]
        assert data["total"] == 2
        assert [c["interest"] for c in data["comparisons"]] == ["Music", "Sports"]
        assert all(c["cohortSize"] == 1 for c in data["comparisons"])

    async def test_opt_out_removes_user_from_cohort(self, client, headers, peer, drain_queue):
        peer_headers = auth_headers(peer["token"])
        await _opt_in(client, headers)
        await _opt_in(client, peer_headers)
        await drain_queue()

        await _opt_in(client, headers, allow=False)
        await drain_queue()
        theirs = (await client.get("/api/comparisons/Music", headers=peer_headers)).json()["data"]
        assert theirs["cohortSize"] == 1

    async def test_commitment_change_recomputes_both_cohorts(self, client, headers, onboarded_user, peer, drain_queue):
        peer_headers = auth_headers(peer["token"])
        await _opt_in(client, headers)
        await _opt_in(client, peer_headers)
        await drain_queue()

        music = next(i for i in onboarded_user["interests"] if i["category"] == "Music")
        response = await client.put(
            f"/api/interests/{music['id']}/commitment", json={"commitmentLevel": "competitive"}, headers=headers
        )
        assert response.status_code == 200
        await drain_queue()

        mine = (await client.get("/api/comparisons/Music", headers=headers)).json()["data"]
        assert mine["intentLevel"] == "competitive"
        assert mine["cohortSize"] == 1
        theirs = (await client.get("/api/comparisons/Music", headers=peer_headers)).json()["data"]
        assert theirs["cohortSize"] == 1
        assert theirs["percentile"] == 1


class TestRecomputeQueue:
    async def test_failure_is_counted_not_raised(self, app, client, headers, drain_queue):
        queue = app.state.recompute_queue
        await drain_queue()
        failed_before = queue.failed
        queue._recompute = AsyncMock(side_effect=RuntimeError("boom"))

        response = await _opt_in(client, headers)
        assert response.status_code == 200
        await drain_queue()
        assert queue.failed - failed_before == 2

    async def test_each_touched_cohort_recomputed_once(self, app, client, headers, drain_queue):
        queue = app.state.recompute_queue
        await drain_queue()
        before = queue.processed
        await _opt_in(client, headers)
        await drain_queue()
        assert queue.processed - before == 2
