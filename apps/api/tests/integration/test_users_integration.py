"""Integration tests for the users controller and session tokens."""

import pytest

from middleware.auth import REFRESH_TOKEN_COOKIE

pytestmark = [
    pytest.mark.integration,
    pytest.mark.domain_users,
]

API = "/api/v1/users"


class TestRegister:
    """POST /api/v1/users/register"""

    async def test_new_user_gets_default_balances(self, test_client, unique_email):
        response = await test_client.post(
            f"{API}/register",
            json={"name": "Hero", "email": unique_email(), "password": "password123"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["ok"] is True
        user = body["data"]["user"]
        assert (user["exp"], user["coins"], user["health"], user["level"]) == (50, 1000, 100, 1)
        assert "password_hash" not in user
        assert body["data"]["access_token"]
        assert REFRESH_TOKEN_COOKIE in response.headers.get("set-cookie", "")

    async def test_duplicate_email(self, test_client, unique_email):
        email = unique_email()
        payload = {"name": "Hero", "email": email, "password": "password123"}
        await test_client.post(f"{API}/register", json=payload)

        response = await test_client.post(f"{API}/register", json=payload)

        assert response.status_code == 409
        assert response.json()["success"] is False

    async def test_invalid_email(self, test_client):
        response = await test_client.post(
            f"{API}/register",
            json={"name": "Hero", "email": "nope", "password": "password123"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["errors"][0]["field"] == "email"


class TestLogin:
    """POST /api/v1/users/login"""

    async def test_login_then_me(self, test_client, create_test_user, unique_email):
        email = unique_email()
        user_id = await create_test_user(email=email)

        response = await test_client.post(f"{API}/login", json={"email": email, "password": "password123"})

        assert response.status_code == 200
        token = response.json()["data"]["access_token"]
        me = await test_client.get(f"{API}/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["data"]["id"] == user_id

    async def test_wrong_password(self, test_client, create_test_user, unique_email):
        email = unique_email()
        await create_test_user(email=email)

        response = await test_client.post(f"{API}/login", json={"email": email, "password": "wrong-password"})

        assert response.status_code == 401

    async def test_unknown_email(self, test_client, unique_email):
        response = await test_client.post(f"{API}/login", json={"email": unique_email(), "password": "password123"})

        assert response.status_code == 404


class TestSession:
    async def test_me_requires_token(self, test_client):
        response = await test_client.get(f"{API}/me")

        assert response.status_code == 401

    async def test_refresh_rotates_tokens(self, test_client, unique_email):
        register = await test_client.post(
            f"{API}/register",
            json={"name": "Hero", "email": unique_email(), "password": "password123"},
        )
        refresh_token = register.json()["data"]["refresh_token"]
        cookie = {"Cookie": f"{REFRESH_TOKEN_COOKIE}={refresh_token}"}

        first = await test_client.post(f"{API}/refresh-access-token", headers=cookie)
        second = await test_client.post(f"{API}/refresh-access-token", headers=cookie)

        assert first.status_code == 200
        assert first.json()["data"]["refresh_token"] != refresh_token
        assert second.status_code == 401

    async def test_refresh_without_cookie(self, test_client):
        response = await test_client.post(f"{API}/refresh-access-token")

        assert response.status_code == 401

    async def test_logout_revokes_access_token(self, test_client, authed_user):
        _, headers = authed_user

        response = await test_client.get(f"{API}/logout", headers=headers)

        assert response.status_code == 200
        assert (await test_client.get(f"{API}/me", headers=headers)).status_code == 401


class TestProfile:
    async def test_update_profile_keeps_balances(self, test_client, authed_user, fetch_balances):
        user_id, headers = authed_user

        response = await test_client.put(
            f"{API}/update-profile",
            json={"job": "Bard", "about": "Sings"},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["job"] == "Bard"
        assert (await fetch_balances(user_id))["coins"] == 1000

    async def test_update_password(self, test_client, authed_user):
        _, headers = authed_user

        wrong = await test_client.put(
            f"{API}/update-password",
            json={"prev_password": "nope", "new_password": "better-password"},
            headers=headers,
        )
        right = await test_client.put(
            f"{API}/update-password",
            json={"prev_password": "password123", "new_password": "better-password"},
            headers=headers,
        )

        assert wrong.status_code == 401
        assert right.status_code == 200
