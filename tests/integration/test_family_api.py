"""Integration tests for the family link and consent flow."""

import pytest
import pytest_asyncio

from tests.conftest import auth_headers, onboard, register

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def family(client):
    parent = await register(client, "parent@example.com", age_range="36-50")
    child = await register(client, "child@example.com", age_range="10-12", parentalConsent=True)
    return {
        "parent": parent,
        "child": child,
        "parent_headers": auth_headers(parent["token"]),
        "child_headers": auth_headers(child["token"]),
    }


async def _link(client, family):
    response = await client.post(
        "/api/family/link", json={"childEmail": "child@example.com"}, headers=family["parent_headers"]
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]["relationshipId"]


async def _consent(client, family, relationship_id, given=True):
    return await client.post(
        "/api/family/consent",
        json={"relationshipId": relationship_id, "consentGiven": given},
        headers=family["child_headers"],
    )


class TestLink:
    async def test_link_creates_pending_relationship(self, client, family):
        response = await client.post(
            "/api/family/link", json={"childEmail": "child@example.com"}, headers=family["parent_headers"]
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["childConsentGiven"] is False
        assert data["status"] == "pending"

        pending = await client.get("/api/family/consent", headers=family["child_headers"])
        body = pending.json()["data"]
        assert body["total"] == 1
        assert body["pendingRequests"][0]["id"] == data["relationshipId"]
        assert body["pendingRequests"][0]["parent"]["email"] == "parent@example.com"

    async def test_minor_cannot_link(self, client, family):
        response = await client.post(
            "/api/family/link", json={"childEmail": "parent@example.com"}, headers=family["child_headers"]
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Only adults can create family links"

    async def test_unknown_child(self, client, family):
        response = await client.post(
            "/api/family/link", json={"childEmail": "nobody@example.com"}, headers=family["parent_headers"]
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Child account not found"

    async def test_cannot_link_adult(self, client, family):
        await register(client, "adult@example.com", age_range="19-25")
        response = await client.post(
            "/api/family/link", json={"childEmail": "adult@example.com"}, headers=family["parent_headers"]
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Family mode is only for linking with minors"

    async def test_duplicate_link(self, client, family):
        await _link(client, family)
        response = await client.post(
            "/api/family/link", json={"childEmail": "child@example.com"}, headers=family["parent_headers"]
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Family relationship already exists"


class TestConsent:
    async def test_grant_activates_both_sides(self, client, family):
        relationship_id = await _link(client, family)
        response = await _consent(client, family, relationship_id)
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Family mode activated successfully"
        assert body["data"]["childConsentGiven"] is True
        assert body["data"]["familyModeEnabled"] is True

        for headers in (family["parent_headers"], family["child_headers"]):
            me = await client.get("/api/auth/me", headers=headers)
            assert me.json()["data"]["user"]["familyModeEnabled"] is True

        listing = await client.get("/api/family/relationships", headers=family["parent_headers"])
        relationship = listing.json()["data"]["relationships"][0]
        assert relationship["status"] == "active"
        assert relationship["role"] == "parent"

    async def test_grant_is_idempotent(self, client, family):
        relationship_id = await _link(client, family)
        await _consent(client, family, relationship_id)
        response = await _consent(client, family, relationship_id)
        assert response.status_code == 200

        log = await client.get(
            "/api/family/activity-log", params={"relationshipId": relationship_id}, headers=family["child_headers"]
        )
        actions = [a["actionType"] for a in log.json()["data"]["activities"]]
        assert sorted(actions) == ["consent_granted", "link_requested"]

    async def test_decline_deletes_relationship(self, client, family):
        relationship_id = await _link(client, family)
        response = await _consent(client, family, relationship_id, given=False)
        assert response.status_code == 200
        assert response.json()["message"] == "Family link request declined"

        listing = await client.get("/api/family/relationships", headers=family["parent_headers"])
        assert listing.json()["data"]["total"] == 0
        # Declining leaves room for a fresh request.
        await _link(client, family)

    async def test_parent_cannot_consent(self, client, family):
        relationship_id = await _link(client, family)
        response = await client.post(
            "/api/family/consent",
            json={"relationshipId": relationship_id, "consentGiven": True},
            headers=family["parent_headers"],
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Family relationship not found or unauthorized"

    async def test_consent_must_be_boolean(self, client, family):
        relationship_id = await _link(client, family)
        response = await client.post(
            "/api/family/consent",
            json={"relationshipId": relationship_id, "consentGiven": "yes"},
            headers=family["child_headers"],
        )
        assert response.status_code == 400


class TestRelationshipLifecycle:
    async def test_remove_resets_family_mode(self, client, family):
        relationship_id = await _link(client, family)
        await _consent(client, family, relationship_id)

        response = await client.delete(
            "/api/family/relationships",
            params={"relationshipId": relationship_id},
            headers=family["parent_headers"],
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Family relationship removed"

        for headers in (family["parent_headers"], family["child_headers"]):
            me = await client.get("/api/auth/me", headers=headers)
            assert me.json()["data"]["user"]["familyModeEnabled"] is False

    async def test_outsider_cannot_remove(self, client, family):
        relationship_id = await _link(client, family)
        outsider = await register(client, "outsider@example.com", age_range="26-35")
        response = await client.delete(
            "/api/family/relationships",
            params={"relationshipId": relationship_id},
            headers=auth_headers(outsider["token"]),
        )
        assert response.status_code == 404

    async def test_family_mode_toggle_after_consent(self, client, family):
        relationship_id = await _link(client, family)
        await _consent(client, family, relationship_id)
        off = await client.put(
            "/api/user/profile", json={"familyModeEnabled": False}, headers=family["child_headers"]
        )
        assert off.json()["data"]["familyModeEnabled"] is False
        on = await client.put("/api/user/profile", json={"familyModeEnabled": True}, headers=family["child_headers"])
        assert on.status_code == 200
        assert on.json()["data"]["familyModeEnabled"] is True


class TestActivityLog:
    async def test_pending_relationship_hides_log(self, client, family):
        relationship_id = await _link(client, family)
        response = await client.get(
            "/api/family/activity-log", params={"relationshipId": relationship_id}, headers=family["parent_headers"]
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Access denied to this family activity log"

    async def test_outsider_denied(self, client, family):
        relationship_id = await _link(client, family)
        await _consent(client, family, relationship_id)
        outsider = await register(client, "outsider@example.com", age_range="26-35")
        response = await client.get(
            "/api/family/activity-log",
            params={"relationshipId": relationship_id},
            headers=auth_headers(outsider["token"]),
        )
        assert response.status_code == 403

    async def test_pagination(self, client, family):
        relationship_id = await _link(client, family)
        await _consent(client, family, relationship_id)
        response = await client.get(
            "/api/family/activity-log",
            params={"relationshipId": relationship_id, "limit": 1},
            headers=family["parent_headers"],
        )
        data = response.json()["data"]
        assert len(data["activities"]) == 1
        assert data["pagination"] == {"total": 2, "limit": 1, "offset": 0, "hasMore": True}
        assert data["activities"][0]["performedByEmail"] in {"parent@example.com", "child@example.com"}


def _privacy(**overrides):
    preferences = {
        "allowPeerComparisons": False,
        "allowFamilyViewing": True,
        "shareGoalsWithFamily": False,
        "shareProgressWithFamily": False,
        "allowAnonymousDataCollection": True,
        "dataRetentionConsent": True,
    }
    preferences.update(overrides)
    return preferences


class TestDashboard:
    @pytest_asyncio.fixture
    async def linked(self, client, family):
        relationship_id = await _link(client, family)
        await _consent(client, family, relationship_id)
        await onboard(client, family["child"]["token"], [{"category": "Music", "level": 2, "intent": "invested"}])
        for title in ("Learn scales", "Play a recital"):
            response = await client.post(
                "/api/goals",
                json={
                    "interestCategory": "Music",
                    "goalType": "skill_increase",
                    "title": title,
                    "description": "Practice every day",
                    "timeframe": "monthly",
                },
                headers=family["child_headers"],
            )
            assert response.status_code == 200, response.text
        paused_id = response.json()["data"]["id"]
        await client.patch(f"/api/goals/{paused_id}", json={"status": "paused"}, headers=family["child_headers"])
        return relationship_id

    async def _get(self, client, family, child_user_id=None):
        return await client.get(
            "/api/family/dashboard",
            params={"childUserId": child_user_id or family["child"]["userId"]},
            headers=family["parent_headers"],
        )

    async def _set_privacy(self, client, family, **overrides):
        response = await client.put("/api/user/privacy", json=_privacy(**overrides), headers=family["child_headers"])
        assert response.status_code == 200, response.text

    async def test_requires_family_viewing(self, client, family, linked):
        response = await self._get(client, family)
        assert response.status_code == 403
        assert response.json()["error"] == "Child has not allowed family viewing"

    async def test_interests_only_by_default(self, client, family, linked):
        await self._set_privacy(client, family)
        response = await self._get(client, family)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["childInfo"] == {"email": "child@example.com", "ageRange": "10-12"}
        assert [i["category"] for i in data["interests"]] == ["Music"]
        assert data["interests"][0]["intentLevel"] == "invested"
        assert data["goals"] == []
        assert data["recentProgress"] == []
        assert data["privacySettings"] == {
            "allowFamilyViewing": True,
            "shareGoalsWithFamily": False,
            "shareProgressWithFamily": False,
        }

    async def test_shared_goals_are_active_only(self, client, family, linked):
        await self._set_privacy(client, family, shareGoalsWithFamily=True)
        data = (await self._get(client, family)).json()["data"]
        assert [g["title"] for g in data["goals"]] == ["Learn scales"]
        assert data["recentProgress"] == []

    async def test_shared_progress(self, client, family, linked):
        await self._set_privacy(client, family, shareProgressWithFamily=True)
        data = (await self._get(client, family)).json()["data"]
        assert data["goals"] == []
        assert len(data["recentProgress"]) == 1
        assert data["recentProgress"][0]["category"] == "Music"
        assert data["recentProgress"][0]["newLevel"] == 2

    async def test_access_is_logged(self, client, family, linked):
        await self._set_privacy(client, family, shareGoalsWithFamily=True)
        await self._get(client, family)
        log = await client.get(
            "/api/family/activity-log", params={"relationshipId": linked}, headers=family["child_headers"]
        )
        entries = log.json()["data"]["activities"]
        accessed = [e for e in entries if e["actionType"] == "dashboard_accessed"]
        assert len(accessed) == 1
        assert accessed[0]["performedByEmail"] == "parent@example.com"
        assert accessed[0]["details"]["dataAccessed"] == {"interests": True, "goals": True, "progress": False}

    async def test_pending_relationship_denied(self, client, family):
        await _link(client, family)
        await self._set_privacy(client, family)
        response = await self._get(client, family)
        assert response.status_code == 403
        assert response.json()["error"] == "Family relationship not found or consent not given"

    async def test_child_cannot_view_parent(self, client, family, linked):
        response = await client.get(
            "/api/family/dashboard",
            params={"childUserId": family["parent"]["userId"]},
            headers=family["child_headers"],
        )
        assert response.status_code == 403

    async def test_unknown_child_id(self, client, family, linked):
        response = await self._get(client, family, child_user_id="not-a-uuid")
        assert response.status_code == 403
