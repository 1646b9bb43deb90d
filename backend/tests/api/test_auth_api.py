"""
Tests for authentication endpoints.
"""

import pytest

from tests.factories import register


@pytest.mark.asyncio
async def test_register_and_login_user(api_client, storage):
    register_response = await api_client.post(
        "/api/auth/register",
        json={"username": "asha", "email": "asha@example.com", "password": "secret123"},
    )
    assert register_response.status_code == 201
    assert register_response.json()["principal"]["userType"] == "user"

    login = await api_client.post(
        "/api/auth/login", json={"username": "asha", "password": "secret123"}
    )

    assert login.status_code == 200
    body = login.json()
    assert body["tokenType"] == "bearer"
    assert body["principal"]["redirectPath"] == "/user/dashboard"
    assert body["principal"]["isOrganization"] is False
    assert "token" in login.cookies
    user = await storage.get_user_by_username("asha")
    assert user.last_login_at is not None


@pytest.mark.asyncio
async def test_login_with_wrong_password(api_client):
    await register(api_client, "asha")

    response = await api_client.post(
        "/api/auth/login", json={"username": "asha", "password": "not-it"}
    )

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_register_organization_links_record(api_client, storage):
    response = await api_client.post(
        "/api/auth/register",
        json={
            "username": "water-desk",
            "email": "desk@water.example",
            "password": "secret123",
            "isOrganization": True,
            "organizationName": "BMC Water Supply Department",
        },
    )

    assert response.status_code == 201
    principal = response.json()["principal"]
    assert principal["isOrganization"] is True
    assert principal["organizationName"] == "bmc-water"
    assert principal["organization"]["departmentTypes"] == ["water_supply"]
    assert principal["redirectPath"] == "/organization/dashboard"
    assert storage.organizations["bmc-water"].uid == principal["uid"]


@pytest.mark.asyncio
async def test_organization_can_only_be_claimed_once(api_client):
    await register(api_client, "first-desk", organization="mseb")

    response = await api_client.post(
        "/api/auth/register",
        json={
            "username": "second-desk",
            "email": "second@example.com",
            "password": "secret123",
            "isOrganization": True,
            "organizationName": "mseb",
        },
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_register_validation(api_client):
    await register(api_client, "asha")

    duplicate = await api_client.post(
        "/api/auth/register",
        json={"username": "asha", "email": "other@example.com", "password": "secret123"},
    )
    short_password = await api_client.post(
        "/api/auth/register",
        json={"username": "ravi", "email": "ravi@example.com", "password": "123"},
    )
    org_without_name = await api_client.post(
        "/api/auth/register",
        json={"username": "ravi", "email": "ravi@example.com", "password": "secret123", "isOrganization": True},
    )

    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Username already exists"
    assert short_password.status_code == 422
    assert org_without_name.status_code == 422


@pytest.mark.asyncio
async def test_me_requires_token(api_client):
    response = await api_client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized - No token provided"


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(api_client):
    response = await api_client.get(
        "/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_update_profile_switches_role(api_client, storage):
    headers = await register(api_client, "asha")

    promoted = await api_client.post(
        "/api/auth/update-profile",
        json={"isOrganization": True, "organizationName": "sba"},
        headers=headers,
    )
    assert promoted.status_code == 200
    body = promoted.json()
    assert body["principal"]["userType"] == "organization"
    assert storage.organizations["sba"].uid == body["principal"]["uid"]

    # the old token still claims "user" but the stored profile wins
    me = await api_client.get("/api/auth/me", headers=headers)
    assert me.json()["isOrganization"] is True

    demoted = await api_client.post(
        "/api/auth/update-profile",
        json={"isOrganization": False},
        headers={"Authorization": f"Bearer {body['accessToken']}"},
    )
    assert demoted.json()["principal"]["userType"] == "user"
    assert storage.organizations["sba"].uid is None


@pytest.mark.asyncio
async def test_refresh_issues_new_tokens(api_client):
    response = await api_client.post(
        "/api/auth/register",
        json={"username": "asha", "email": "asha@example.com", "password": "secret123"},
    )
    tokens = response.json()

    refreshed = await api_client.post(
        "/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
    )
    wrong_type = await api_client.post(
        "/api/auth/refresh", json={"refreshToken": tokens["accessToken"]}
    )

    assert refreshed.status_code == 200
    assert refreshed.json()["principal"]["uid"] == tokens["principal"]["uid"]
    assert wrong_type.status_code == 401


@pytest.mark.asyncio
async def test_logout_clears_cookie(api_client):
    await api_client.post(
        "/api/auth/register",
        json={"username": "asha", "email": "asha@example.com", "password": "secret123"},
    )

    response = await api_client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"message": "Logged out successfully"}
    assert "Max-Age=0" in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_guard_endpoint(api_client):
    anonymous = await api_client.get("/api/auth/guard", params={"path": "/user/dashboard"})
    assert anonymous.json() == {
        "path": "/user/dashboard",
        "state": "unauthenticated",
        "allowed": False,
        "redirectTo": "/auth/login",
    }

    org = await register(api_client, "pwd-desk", organization="pwd")
    decision = await api_client.get(
        "/api/auth/guard", params={"path": "/user/dashboard"}, headers=org
    )
    assert decision.json()["state"] == "authenticated_organization"
    assert decision.json()["redirectTo"] == "/organization/dashboard"
