"""Integration tests for authentication API endpoints"""

import pytest
from fastapi import status

pytestmark = pytest.mark.integration

API = "/api/v1/auth"


@pytest.fixture
def registration():
    return {
        "username": "new_candidate",
        "email": "new@example.com",
        "password": "SecurePass123!",
        "name": "New Candidate",
        "region": "east",
    }


class TestRegistration:

    @pytest.mark.asyncio
    async def test_register_creates_candidate(self, client, registration):
        response = await client.post(f"{API}/register", json=registration)

        assert response.status_code == status.HTTP_201_CREATED
        user = response.json()
        assert user["username"] == "new_candidate"
        assert user["role"] == "candidate"
        assert user["region"] == "east"
        assert "password" not in user and "password_hash" not in user

    @pytest.mark.asyncio
    async def test_role_cannot_be_chosen(self, client, registration):
        """Public registration ignores any requested role"""
        response = await client.post(f"{API}/register", json={**registration, "role": "admin"})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["role"] == "candidate"

    @pytest.mark.asyncio
    async def test_duplicate_username(self, client, registration):
        await client.post(f"{API}/register", json=registration)

        response = await client.post(f"{API}/register", json={**registration, "email": "other@example.com"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Username already registered"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, registration):
        await client.post(f"{API}/register", json=registration)

        response = await client.post(f"{API}/register", json={**registration, "username": "someone_else"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Email already registered"

    @pytest.mark.asyncio
    async def test_short_password(self, client, registration):
        response = await client.post(f"{API}/register", json={**registration, "password": "short"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_returns_tokens(self, client, hr_user):
        response = await client.post(f"{API}/login", json={"username": hr_user.username, "password": "testpassword123"})

        assert response.status_code == status.HTTP_200_OK
        tokens = response.json()
        assert tokens["token_type"] == "bearer"
        assert tokens["access_token"] != tokens["refresh_token"]

        me = await client.get(f"{API}/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
        assert me.status_code == status.HTTP_200_OK
        assert me.json()["role"] == "hr"

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, hr_user):
        response = await client.post(f"{API}/login", json={"username": hr_user.username, "password": "wrong-password"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_unknown_user(self, client):
        response = await client.post(f"{API}/login", json={"username": "nobody", "password": "whatever123"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestTokens:

    @pytest.mark.asyncio
    async def test_refresh(self, client, candidate_user):
        login = await client.post(
            f"{API}/login", json={"username": candidate_user.username, "password": "testpassword123"}
        )

        response = await client.post(f"{API}/refresh", json={"refresh_token": login.json()["refresh_token"]})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["access_token"]

    @pytest.mark.asyncio
    async def test_access_token_cannot_refresh(self, client, candidate_user, auth_headers):
        access_token = auth_headers(candidate_user)["Authorization"].split(" ", 1)[1]

        response = await client.post(f"{API}/refresh", json={"refresh_token": access_token})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestChangePassword:

    @pytest.mark.asyncio
    async def test_change_password(self, client, candidate_user, auth_headers):
        headers = auth_headers(candidate_user)

        response = await client.post(
            f"{API}/change-password",
            headers=headers,
            json={"current_password": "testpassword123", "new_password": "EvenBetter456!"},
        )
        assert response.status_code == status.HTTP_204_NO_CONTENT

        old = await client.post(f"{API}/login", json={"username": candidate_user.username, "password": "testpassword123"})
        new = await client.post(f"{API}/login", json={"username": candidate_user.username, "password": "EvenBetter456!"})
        assert old.status_code == status.HTTP_401_UNAUTHORIZED
        assert new.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, client, candidate_user, auth_headers):
        response = await client.post(
            f"{API}/change-password",
            headers=auth_headers(candidate_user),
            json={"current_password": "not-my-password", "new_password": "EvenBetter456!"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestCurrentUser:

    @pytest.mark.asyncio
    async def test_me(self, client, hr_user, auth_headers):
        response = await client.get(f"{API}/me", headers=auth_headers(hr_user))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["role"] == "hr"

    @pytest.mark.asyncio
    async def test_role_change_requires_new_sign_in(self, client, admin_user, hr_user, auth_headers):
        old_headers = auth_headers(hr_user)

        response = await client.put(
            f"/api/v1/admin/users/{hr_user.id}", headers=auth_headers(admin_user), json={"role": "manager"}
        )
        assert response.status_code == status.HTTP_200_OK

        response = await client.get(f"{API}/me", headers=old_headers)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Role has changed, sign in again"

        login = await client.post(f"{API}/login", json={"username": hr_user.username, "password": "testpassword123"})
        response = await client.get(
            f"{API}/me", headers={"Authorization": f"Bearer {login.json()['access_token']}"}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["role"] == "manager"
