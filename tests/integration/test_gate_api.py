"""Integration tests for the request gate middleware."""

import pytest

from tests.conftest import auth_headers

pytestmark = pytest.mark.asyncio


async def test_protected_api_without_token_is_401(client):
    response = await client.get("/api/goals")
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Authentication required"}


async def test_protected_api_with_garbage_token_is_401(client):
    response = await client.get("/api/user/profile", headers=auth_headers("not-a-jwt"))
    assert response.status_code == 401


async def test_unrestricted_api_passes_without_token(client):
    response = await client.get("/api/health")
    assert response.status_code == 200


async def test_protected_page_redirects_to_login(client):
    response = await client.get("/dashboard")
    assert response.status_code == 307
    assert response.headers["location"] == "/login?returnUrl=%2Fdashboard"


async def test_protected_page_redirects_to_onboarding_until_complete(client, registered_user):
    response = await client.get("/goals", headers=auth_headers(registered_user["token"]))
    assert response.status_code == 307
    assert response.headers["location"] == "/onboarding"


async def test_onboarding_page_itself_is_not_redirected(client, registered_user):
    response = await client.get("/onboarding", headers=auth_headers(registered_user["token"]))
    assert response.status_code != 307


async def test_public_page_sends_signed_in_user_to_onboarding(client, registered_user):
    response = await client.get("/login", headers=auth_headers(registered_user["token"]))
    assert response.status_code == 307
    assert response.headers["location"] == "/onboarding"


async def test_root_sends_onboarded_user_to_dashboard(client, onboarded_user):
    response = await client.get("/", headers=auth_headers(onboarded_user["token"]))
    assert response.status_code == 307
    assert response.headers["location"] == "/dashboard"


async def test_protected_page_passes_for_onboarded_user(client, onboarded_user):
    response = await client.get("/dashboard", headers=auth_headers(onboarded_user["token"]))
    assert response.status_code != 307


async def test_public_page_passes_anonymous(client):
    response = await client.get("/register")
    assert response.status_code != 307


async def test_revoked_session_passes_gate_but_fails_handler(client, registered_user):
    headers = auth_headers(registered_user["token"])
    await client.post("/api/auth/logout", headers=headers)
    response = await client.get("/api/user/profile", headers=headers)
    assert response.status_code == 401
    assert response.json()["error"] == "Session is no longer valid"
