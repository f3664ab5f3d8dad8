"""Integration tests for /api/auth endpoints."""

import pytest
from sqlalchemy import func, select

from lifeleveling.db.models import User
from tests.conftest import DEFAULT_PASSWORD, auth_headers, register


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_success(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"email": "New@Example.com", "password": DEFAULT_PASSWORD, "ageRange": "19-25"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Account created successfully"
        data = body["data"]
        assert data["email"] == "new@example.com"
        assert data["onboardingCompleted"] is False
        assert data["familyModeEnabled"] is False
        assert data["token"]
        assert "auth-token" in response.cookies

    @pytest.mark.asyncio
    async def test_open_ended_age_range(self, client):
        data = await register(client, "adult@example.com", age_range="51+")
        me = await client.get("/api/auth/me", headers=auth_headers(data["token"]))
        user = me.json()["data"]["user"]
        assert (user["ageRangeMin"], user["ageRangeMax"]) == (51, 99)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client):
        await register(client, "dup@example.com")
        response = await client.post(
            "/api/auth/register",
            json={"email": "dup@example.com", "password": DEFAULT_PASSWORD, "ageRange": "16-18"},
        )
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "User already exists with this email"}

    @pytest.mark.asyncio
    async def test_under_thirteen_needs_consent(self, client, db_session):
        response = await client.post(
            "/api/auth/register",
            json={"email": "kid@example.com", "password": DEFAULT_PASSWORD, "ageRange": "10-12"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Parental consent is required for users under 13"
        users = await db_session.scalar(select(func.count()).select_from(User).where(User.email == "kid@example.com"))
        assert users == 0

    @pytest.mark.asyncio
    async def test_under_thirteen_with_consent(self, client):
        data = await register(client, "kid@example.com", age_range="10-12", parentalConsent=True)
        assert data["email"] == "kid@example.com"

    @pytest.mark.asyncio
    async def test_short_password(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"email": "short@example.com", "password": "abc", "ageRange": "16-18"},
        )
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_malformed_age_range(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"email": "age@example.com", "password": DEFAULT_PASSWORD, "ageRange": "teen"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_parent_created_child_account(self, client):
        response = await client.post(
            "/api/auth/register",
            json={
                "email": "parent@example.com",
                "password": DEFAULT_PASSWORD,
                "ageRange": "10-12",
                "parentalConsent": True,
                "isParentCreated": True,
                "childEmail": "child@example.com",
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Child account created successfully"
        assert body["data"]["email"] == "child@example.com"
        assert body["data"]["familyModeEnabled"] is True
        assert "token" not in body["data"]

        login = await client.post(
            "/api/auth/login", json={"email": "child@example.com", "password": DEFAULT_PASSWORD}
        )
        assert login.status_code == 200


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, client, registered_user):
        response = await client.post(
            "/api/auth/login", json={"email": "teen@example.com", "password": DEFAULT_PASSWORD}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["data"]["userId"] == registered_user["userId"]
        assert body["data"]["token"] != registered_user["token"]

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, registered_user):
        response = await client.post(
            "/api/auth/login", json={"email": "teen@example.com", "password": "WrongPass999"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unknown_email(self, client):
        response = await client.post(
            "/api/auth/login", json={"email": "ghost@example.com", "password": DEFAULT_PASSWORD}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"


class TestSession:
    @pytest.mark.asyncio
    async def test_me_with_bearer(self, client, registered_user):
        response = await client.get("/api/auth/me", headers=auth_headers(registered_user["token"]))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["email"] == "teen@example.com"
        assert "passwordHash" not in data["user"]
        assert data["interests"] == []

    @pytest.mark.asyncio
    async def test_me_with_cookie(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"email": "cookie@example.com", "password": DEFAULT_PASSWORD, "ageRange": "16-18"},
        )
        assert response.status_code == 200
        me = await client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["data"]["user"]["email"] == "cookie@example.com"

    @pytest.mark.asyncio
    async def test_me_without_token(self, client):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_logout_revokes_session(self, client, registered_user):
        headers = auth_headers(registered_user["token"])
        response = await client.post("/api/auth/logout", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}

        me = await client.get("/api/auth/me", headers=headers)
        assert me.status_code == 401
        assert me.json()["error"] == "Session is no longer valid"

    @pytest.mark.asyncio
    async def test_logout_without_session_still_succeeds(self, client):
        response = await client.post("/api/auth/logout")
        assert response.status_code == 200
