"""Authentication API endpoint tests.

Tests for: register, login, me.
"""

import pytest
from conftest import API
from httpx import AsyncClient

from blog_api.db.models import User

pytestmark = pytest.mark.asyncio


# =============================================================================
# Register
# =============================================================================


async def test_register_success(client: AsyncClient):
    resp = await client.post(f"{API}/auth/register", json={
        "email": "new@example.com",
        "username": "newuser",
        "password": "Valid1Pass",
    })
    assert resp.status_code == 201
    data = resp.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "new@example.com"
    assert data["user"]["role"] == "user"


async def test_register_invalid_email(client: AsyncClient):
    resp = await client.post(f"{API}/auth/register", json={
        "email": "not-an-email",
        "username": "validuser",
        "password": "Valid1Pass",
    })
    assert resp.status_code == 422


async def test_register_short_password(client: AsyncClient):
    resp = await client.post(f"{API}/auth/register", json={
        "email": "short@example.com",
        "username": "shortpw",
        "password": "short",
    })
    assert resp.status_code == 422


async def test_register_duplicate_email(client: AsyncClient, test_user: User):
    resp = await client.post(f"{API}/auth/register", json={
        "email": test_user.email,
        "username": "uniquename",
        "password": "Valid1Pass",
    })
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "Email already registered"


async def test_register_duplicate_username(client: AsyncClient, test_user: User):
    resp = await client.post(f"{API}/auth/register", json={
        "email": "unique@example.com",
        "username": test_user.username,
        "password": "Valid1Pass",
    })
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "Username already taken"


# =============================================================================
# Login
# =============================================================================


async def test_login_success(client: AsyncClient, test_user: User):
    resp = await client.post(f"{API}/auth/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == test_user.id


async def test_login_wrong_password(client: AsyncClient, test_user: User):
    resp = await client.post(f"{API}/auth/login", json={
        "email": "test@example.com",
        "password": "wrongpassword",
    })
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"


async def test_login_unknown_email(client: AsyncClient):
    resp = await client.post(f"{API}/auth/login", json={
        "email": "ghost@example.com",
        "password": "whatever123",
    })
    assert resp.status_code == 401


# =============================================================================
# Me
# =============================================================================


async def test_me(client: AsyncClient, auth_headers: dict[str, str]):
    resp = await client.get(f"{API}/auth/me", headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["username"] == "testuser"


async def test_me_without_token(client: AsyncClient):
    resp = await client.get(f"{API}/auth/me")
    assert resp.status_code == 401


async def test_me_with_garbage_token(client: AsyncClient):
    resp = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid or expired token"


async def test_token_from_login_works(client: AsyncClient, test_user: User):
    login = await client.post(f"{API}/auth/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    token = login.json()["access_token"]

    resp = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.json()["id"] == test_user.id
