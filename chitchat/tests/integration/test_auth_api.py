# chitchat/tests/integration/test_auth_api.py
import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_register_user(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "username": "newuser",
            "email": "newuser@example.com",
            "password": "newpassword",
            "display_name": "New User",
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert "id" in data
    assert data["username"] == "newuser"
    assert data["email"] == "newuser@example.com"
    assert data["display_name"] == "New User"
    assert data["is_active"] is True
    assert "password" not in data
    assert "hashed_password" not in data


async def test_register_duplicate_username(client: AsyncClient, test_user):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "username": test_user.username,
            "email": "another@example.com",
            "password": "newpassword",
        },
    )
    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"


async def test_register_duplicate_email(client: AsyncClient, test_user):
    response = await client.post(
        "/api/v1/auth/register",
        json={"username": "uniqueuser", "email": test_user.email, "password": "newpassword"},
    )
    assert response.status_code == 409
    assert response.json() == {
        "code": "CONFLICT",
        "message": "Username or email already registered",
    }


async def test_register_invalid_email(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/register",
        json={"username": "invaliduser", "email": "notanemail", "password": "newpassword"},
    )
    assert response.status_code == 422


async def test_register_short_password(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/register",
        json={"username": "shortpwuser", "email": "short@example.com", "password": "short"},
    )
    assert response.status_code == 422


async def test_login_user(client: AsyncClient, test_user):
    response = await client.post(
        "/api/v1/auth/login",
        data={"username": test_user.username, "password": "testpassword"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user_id"] == test_user.id
    assert data["access_token"]
    assert "expires_at" in data


async def test_login_with_email(client: AsyncClient, test_user):
    response = await client.post(
        "/api/v1/auth/login",
        data={"username": test_user.email, "password": "testpassword"},
    )
    assert response.status_code == 200
    assert response.json()["user_id"] == test_user.id


async def test_login_invalid_credentials(client: AsyncClient, test_user):
    response = await client.post(
        "/api/v1/auth/login",
        data={"username": "nonexistentuser", "password": "wrongpassword"},
    )
    assert response.status_code == 401
    assert "Incorrect username or password" in response.json()["detail"]

    response = await client.post(
        "/api/v1/auth/login",
        data={"username": test_user.username, "password": "wrongpassword"},
    )
    assert response.status_code == 401


async def test_login_inactive_user(client: AsyncClient, test_user, auth_header):
    response = await client.delete("/api/v1/users/me", headers=auth_header)
    assert response.status_code == 204

    response = await client.post(
        "/api/v1/auth/login",
        data={"username": test_user.username, "password": "testpassword"},
    )
    assert response.status_code == 401


async def test_token_of_deactivated_user_is_rejected(client: AsyncClient, auth_header):
    await client.delete("/api/v1/users/me", headers=auth_header)

    response = await client.get("/api/v1/users/me", headers=auth_header)
    assert response.status_code == 401


async def test_requests_without_token(client: AsyncClient):
    for path in ("/api/v1/users/me", "/api/v1/rooms/", "/api/v1/friends/"):
        response = await client.get(path)
        assert response.status_code == 401


async def test_invalid_token(client: AsyncClient):
    response = await client.get(
        "/api/v1/users/me", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


async def test_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Welcome to the ChitChat API"}
