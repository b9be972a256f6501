# tests/test_auth.py — Registration, login and bearer token handling
import pytest
from httpx import AsyncClient

from auth import AuthService
from tests.conftest import get_auth_headers


@pytest.mark.asyncio
class TestRegistration:
    async def test_register_success(self, client: AsyncClient):
        res = await client.post("/api/register", json={
            "username": "newuser",
            "name": "New User",
            "email": "newuser@test.com",
            "password": "SecurePass123",
        })
        assert res.status_code == 200
        user = res.json()["user"]
        assert user["username"] == "newuser"
        assert user["email"] == "newuser@test.com"
        assert len(user["external_id"]) == 36
        assert "password" not in user and "password_hash" not in user

    async def test_register_duplicate_username(self, client: AsyncClient, test_user):
        res = await client.post("/api/register", json={
            "username": test_user.username,
            "name": "Someone Else",
            "email": "else@test.com",
            "password": "SecurePass123",
        })
        assert res.status_code == 400
        body = res.json()
        assert body["code"] == "BAD_REQUEST"
        assert body["detail"] == "User already exists"

    async def test_register_short_password(self, client: AsyncClient):
        res = await client.post("/api/register", json={
            "username": "weakling",
            "name": "Weak User",
            "email": "weak@test.com",
            "password": "short",
        })
        assert res.status_code == 400
        assert res.json()["code"] == "BAD_REQUEST"

    async def test_register_multibyte_password_over_byte_limit(self, client: AsyncClient):
        # 40 characters but 80 bytes in UTF-8
        res = await client.post("/api/register", json={
            "username": "accented",
            "name": "Accented User",
            "email": "accent@test.com",
            "password": "\u00e9" * 40,
        })
        assert res.status_code == 400
        assert res.json()["code"] == "BAD_REQUEST"

    async def test_register_multibyte_password_within_byte_limit(self, client: AsyncClient):
        res = await client.post("/api/register", json={
            "username": "accented",
            "name": "Accented User",
            "email": "accent@test.com",
            "password": "\u00e9" * 36,
        })
        assert res.status_code == 200
        login = await client.post("/api/login", json={"username": "accented", "password": "\u00e9" * 36})
        assert login.status_code == 200

    async def test_register_invalid_email(self, client: AsyncClient):
        res = await client.post("/api/register", json={
            "username": "bademail",
            "name": "Bad Email",
            "email": "not-an-email",
            "password": "SecurePass123",
        })
        assert res.status_code == 400

    async def test_register_short_username(self, client: AsyncClient):
        res = await client.post("/api/register", json={
            "username": "ab",
            "name": "Too Short",
            "email": "ab@test.com",
            "password": "SecurePass123",
        })
        assert res.status_code == 400


@pytest.mark.asyncio
class TestLogin:
    async def test_login_success_issues_verifiable_token(self, client: AsyncClient, test_user):
        res = await client.post("/api/login", json={
            "username": "alice",
            "password": "TestPassword123!",
        })
        assert res.status_code == 200
        data = res.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 24 * 60 * 60
        assert AuthService.verify_token(data["token"]) == test_user.external_id

    async def test_login_wrong_password(self, client: AsyncClient, test_user):
        res = await client.post("/api/login", json={
            "username": "alice",
            "password": "WrongPassword123!",
        })
        assert res.status_code == 400
        assert res.json()["detail"] == "Invalid credentials"

    async def test_login_nonexistent_user(self, client: AsyncClient):
        res = await client.post("/api/login", json={
            "username": "nobody",
            "password": "SomePassword123!",
        })
        assert res.status_code == 400
        assert res.json()["detail"] == "Invalid credentials"

    async def test_login_deleted_user(self, client: AsyncClient, test_user):
        headers = get_auth_headers(test_user)
        res = await client.delete(f"/api/user/{test_user.external_id}", headers=headers)
        assert res.status_code == 200

        res = await client.post("/api/login", json={
            "username": "alice",
            "password": "TestPassword123!",
        })
        assert res.status_code == 400

    async def test_register_then_login(self, client: AsyncClient):
        await client.post("/api/register", json={
            "username": "roundtrip",
            "name": "Round Trip",
            "email": "rt@test.com",
            "password": "SecurePass123",
        })
        res = await client.post("/api/login", json={
            "username": "roundtrip",
            "password": "SecurePass123",
        })
        assert res.status_code == 200
        token = res.json()["token"]

        me = await client.get("/api/user/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["user"]["username"] == "roundtrip"


@pytest.mark.asyncio
class TestTokens:
    async def test_access_protected_route(self, client: AsyncClient, test_user):
        res = await client.get("/api/user/me", headers=get_auth_headers(test_user))
        assert res.status_code == 200
        assert res.json()["user"]["email"] == "alice@kanbex.dev"

    async def test_access_without_token(self, client: AsyncClient):
        res = await client.get("/api/user/me")
        assert res.status_code == 401
        assert res.json()["code"] == "UNAUTHORIZED"
        assert res.headers["www-authenticate"] == "Bearer"

    async def test_access_with_invalid_token(self, client: AsyncClient):
        res = await client.get("/api/user/me", headers={
            "Authorization": "Bearer invalid.token.here"
        })
        assert res.status_code == 401

    async def test_access_with_non_bearer_scheme(self, client: AsyncClient, test_user):
        token = AuthService.create_access_token(test_user.external_id)
        res = await client.get("/api/user/me", headers={"Authorization": f"Basic {token}"})
        assert res.status_code == 401

    async def test_token_for_unknown_user(self, client: AsyncClient):
        token = AuthService.create_access_token("00000000-0000-4000-8000-000000000000")
        res = await client.get("/api/user/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401
