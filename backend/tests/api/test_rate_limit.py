"""Rate limiting integration tests."""

import uuid

import pytest
from fastapi import Request
from slowapi.util import get_remote_address

from civicconnect.core.config import settings
from civicconnect.core.rate_limiter import limiter
from civicconnect.main import app


def _test_key_func(request: Request) -> str:
    return request.headers.get("x-test-key", get_remote_address(request))


@app.post("/__limited")
@limiter.limit("3/minute", key_func=_test_key_func)
async def limited_endpoint(request: Request):  # pragma: no cover - exercised via tests
    return {"ok": True}


@pytest.mark.asyncio
async def test_per_endpoint_rate_limit(api_client):
    limiter.reset()
    headers = {"x-test-key": f"per-test-{uuid.uuid4()}"}
    for _ in range(3):
        response = await api_client.post("/__limited", headers=headers)
        assert response.status_code == 200

    response = await api_client.post("/__limited", headers=headers)
    assert response.status_code == 429
    assert response.json()["error"] == "rate_limited"


@pytest.mark.asyncio
async def test_login_is_rate_limited(api_client):
    limiter.reset()
    allowed = int(settings.AUTH_RATE_LIMIT.split("/")[0])
    credentials = {"username": "nobody", "password": "secret123"}

    for _ in range(allowed):
        response = await api_client.post("/api/auth/login", json=credentials)
        assert response.status_code == 401

    response = await api_client.post("/api/auth/login", json=credentials)
    assert response.status_code == 429

