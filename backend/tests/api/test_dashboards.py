"""
Tests for per-role dashboard listings.
"""

import pytest

from tests.factories import register


async def _report(client, headers, category):
    response = await client.post(
        "/api/issues",
        json={"title": "t", "description": "d", "location": "l", "category": category},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_user_dashboard_requires_authentication(api_client):
    response = await api_client.get("/api/user/issues")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_organization_cannot_open_user_dashboard(api_client):
    org = await register(api_client, "pwd-desk", organization="pwd")
    response = await api_client.get("/api/user/issues", headers=org)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_user_cannot_open_organization_dashboard(api_client):
    citizen = await register(api_client, "asha")
    response = await api_client.get("/api/organization/issues", headers=citizen)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_dashboards_list_own_issues(api_client):
    asha = await register(api_client, "asha")
    ravi = await register(api_client, "ravi")
    pwd = await register(api_client, "pwd-desk", organization="pwd")
    road = await _report(api_client, asha, "roads")
    await _report(api_client, asha, "garbage")
    other_road = await _report(api_client, ravi, "roads")

    mine = await api_client.get("/api/user/issues", headers=ravi)
    assigned = await api_client.get("/api/organization/issues", headers=pwd)

    assert [i["id"] for i in mine.json()] == [other_road["id"]]
    assert [i["id"] for i in assigned.json()] == [other_road["id"], road["id"]]
