"""Integration tests for /api/interests/{id}/commitment."""

import pytest

from tests.conftest import auth_headers, onboard, register

pytestmark = pytest.mark.asyncio


def _music(onboarded_user):
    return next(i for i in onboarded_user["interests"] if i["category"] == "Music")


async def test_update_commitment(client, headers, onboarded_user):
    interest = _music(onboarded_user)
    response = await client.put(
        f"/api/interests/{interest['id']}/commitment", json={"commitmentLevel": "average"}, headers=headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Commitment level updated"
    assert body["data"]["intentLevel"] == "average"
    assert body["data"]["currentLevel"] == 2


async def test_same_level_is_unchanged(client, headers, onboarded_user):
    interest = _music(onboarded_user)
    response = await client.put(
        f"/api/interests/{interest['id']}/commitment", json={"commitmentLevel": "invested"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Commitment level unchanged"


async def test_invalid_level(client, headers, onboarded_user):
    interest = _music(onboarded_user)
    response = await client.put(
        f"/api/interests/{interest['id']}/commitment", json={"commitmentLevel": "obsessed"}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid commitment level"


async def test_unknown_interest(client, headers):
    response = await client.put(
        "/api/interests/00000000-0000-0000-0000-000000000000/commitment",
        json={"commitmentLevel": "casual"},
        headers=headers,
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Interest not found"


async def test_someone_elses_interest(client, onboarded_user):
    other = await register(client, "other@example.com")
    other_data = await onboard(client, other["token"], [{"category": "Math", "level": 1, "intent": "casual"}])
    response = await client.put(
        f"/api/interests/{_music(onboarded_user)['id']}/commitment",
        json={"commitmentLevel": "casual"},
        headers=auth_headers(other_data["token"]),
    )
    assert response.status_code == 403


async def test_level_is_normalized(client, headers, onboarded_user):
    interest = _music(onboarded_user)
    response = await client.put(
        f"/api/interests/{interest['id']}/commitment", json={"commitmentLevel": " Competitive "}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["intentLevel"] == "competitive"
