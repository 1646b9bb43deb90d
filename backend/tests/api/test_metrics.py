"""
Metrics instrumentation tests.
"""

from types import SimpleNamespace

import pytest
from prometheus_client import REGISTRY
from starlette.requests import Request

from civicconnect.core.metrics import _normalise_path
from civicconnect.core.redis import CacheService
from civicconnect.services.organization_directory import IssueCategory
from tests.factories import register


def _get_metric_value(metric: str, labels: dict) -> float:
    value = REGISTRY.get_sample_value(metric, labels)
    return value or 0.0


@pytest.mark.asyncio
async def test_http_metrics_and_request_id(api_client):
    labels = {"method": "GET", "path": "/api/health/liveness", "status": "200"}
    before = _get_metric_value("civicconnect_http_requests_total", labels)

    response = await api_client.get("/api/health/liveness")

    after = _get_metric_value("civicconnect_http_requests_total", labels)
    assert after == pytest.approx(before + 1)
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_is_echoed(api_client):
    response = await api_client.get("/api/health/liveness", headers={"X-Request-ID": "req-7"})
    assert response.headers["X-Request-ID"] == "req-7"


@pytest.mark.asyncio
async def test_http_error_metrics_use_route_template(api_client):
    labels = {"method": "GET", "path": "/api/issues/{issue_id}", "status": "404"}
    total_before = _get_metric_value("civicconnect_http_requests_total", labels)
    errors_before = _get_metric_value("civicconnect_http_request_errors_total", labels)

    response = await api_client.get("/api/issues/missing")

    assert response.status_code == 404
    assert _get_metric_value("civicconnect_http_requests_total", labels) == pytest.approx(total_before + 1)
    assert _get_metric_value("civicconnect_http_request_errors_total", labels) == pytest.approx(errors_before + 1)


@pytest.mark.parametrize(
    "root_path, template",
    [
        ("", "/api/issues/{issue_id}"),
        ("/api/issues", "/{issue_id}"),
    ],
)
def test_path_label_keeps_router_prefix(root_path, template):
    request = Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/api/issues/abc",
            "root_path": root_path,
            "headers": [],
            "route": SimpleNamespace(path_format=template),
        }
    )

    assert _normalise_path(request) == "/api/issues/{issue_id}"


@pytest.mark.asyncio
async def test_domain_metrics(api_client):
    created_labels = {"category": "garbage", "assigned": "true"}
    role_labels = {"kind": "user", "source": "user_record"}
    created_before = _get_metric_value("civicconnect_issues_created_total", created_labels)
    roles_before = _get_metric_value("civicconnect_role_resolutions_total", role_labels)

    headers = await register(api_client, "asha")
    await api_client.post(
        "/api/issues",
        json={"title": "Bins", "description": "Overflowing", "location": "Market", "category": "garbage"},
        headers=headers,
    )

    assert _get_metric_value("civicconnect_issues_created_total", created_labels) == pytest.approx(created_before + 1)
    assert _get_metric_value("civicconnect_role_resolutions_total", role_labels) >= roles_before + 2


@pytest.mark.asyncio
async def test_free_form_categories_share_one_label(api_client):
    other_labels = {"category": "other", "assigned": "false"}
    other_before = _get_metric_value("civicconnect_issues_created_total", other_labels)

    headers = await register(api_client, "asha")
    for index in range(5):
        response = await api_client.post(
            "/api/issues",
            json={"title": "t", "description": "d", "location": "l", "category": f"junk-{index}"},
            headers=headers,
        )
        assert response.status_code == 201

    categories = {
        sample.labels["category"]
        for metric in REGISTRY.collect()
        if metric.name == "civicconnect_issues_created"
        for sample in metric.samples
    }
    allowed = {c.value for c in IssueCategory} | {"other", "uncategorized"}
    assert categories <= allowed
    assert _get_metric_value("civicconnect_issues_created_total", other_labels) == pytest.approx(other_before + 5)


class InMemoryRedis:
    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0


@pytest.mark.asyncio
async def test_cache_metrics():
    cache = CacheService(InMemoryRedis())

    miss_before = _get_metric_value("civicconnect_cache_operations_total", {"operation": "miss"})
    await cache.get("missing")
    miss_after = _get_metric_value("civicconnect_cache_operations_total", {"operation": "miss"})
    assert miss_after == pytest.approx(miss_before + 1)

    set_before = _get_metric_value("civicconnect_cache_operations_total", {"operation": "set"})
    await cache.set("key", {"value": 1})
    set_after = _get_metric_value("civicconnect_cache_operations_total", {"operation": "set"})
    assert set_after == pytest.approx(set_before + 1)

    hit_before = _get_metric_value("civicconnect_cache_operations_total", {"operation": "hit"})
    assert await cache.get("key") == {"value": 1}
    hit_after = _get_metric_value("civicconnect_cache_operations_total", {"operation": "hit"})
    assert hit_after == pytest.approx(hit_before + 1)

    delete_before = _get_metric_value("civicconnect_cache_operations_total", {"operation": "delete"})
    assert await cache.delete("key") is True
    delete_after = _get_metric_value("civicconnect_cache_operations_total", {"operation": "delete"})
    assert delete_after == pytest.approx(delete_before + 1)
    assert cache.redis.store == {}
