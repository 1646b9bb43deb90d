"""
Tests for health endpoints.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from civicconnect.api.deps import get_role_cache, get_storage
from civicconnect.core.errors import UpstreamUnavailable
from civicconnect.core.redis import CacheService
from civicconnect.main import app


class _OverrideDependency:
    def __init__(self, dependency, replacement):
        self.dependency = dependency
        self.replacement = replacement

    def __enter__(self):
        self.original = app.dependency_overrides.get(self.dependency)
        app.dependency_overrides[self.dependency] = self.replacement

    def __exit__(self, *exc_info):
        if self.original is not None:
            app.dependency_overrides[self.dependency] = self.original
        else:
            app.dependency_overrides.pop(self.dependency, None)


@pytest.mark.asyncio
async def test_liveness_endpoint(api_client):
    response = await api_client.get("/api/health/liveness")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


@pytest.mark.asyncio
async def test_root_health(api_client):
    response = await api_client.get("/health")
    assert response.json() == {"status": "healthy", "service": "civicconnect-api"}


@pytest.mark.asyncio
async def test_readiness_healthy(api_client):
    response = await api_client.get("/api/health/readiness")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ready"
    assert payload["checks"]["database"]["status"] == "pass"
    assert payload["checks"]["redis"]["status"] == "skipped"


@pytest.mark.asyncio
async def test_readiness_database_failure(api_client):
    class FailingStorage:
        async def ping(self):
            raise UpstreamUnavailable("database timeout")

    async def failing_storage():
        return FailingStorage()

    with _OverrideDependency(get_storage, failing_storage):
        response = await api_client.get("/api/health/readiness")

    assert response.status_code == 503
    payload = response.json()
    assert payload["status"] == "not_ready"
    assert payload["checks"]["database"] == {"status": "fail", "reason": "database timeout"}


@pytest.mark.asyncio
async def test_readiness_redis_failure_is_reported_but_not_fatal(api_client):
    class FailingRedis:
        async def ping(self):
            raise RedisConnectionError("redis unreachable")

    async def failing_cache():
        return CacheService(FailingRedis())

    with _OverrideDependency(get_role_cache, failing_cache):
        response = await api_client.get("/api/health/readiness")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ready"
    assert payload["checks"]["redis"]["status"] == "fail"
