"""
Health check endpoints.
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from civicconnect.api.deps import get_role_cache, get_storage
from civicconnect.core.errors import UpstreamUnavailable
from civicconnect.core.redis import CacheService
from civicconnect.storage.base import Storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", status_code=status.HTTP_200_OK)
@router.get("/liveness", status_code=status.HTTP_200_OK)
async def liveness() -> Dict[str, str]:
    """Simple liveness probe."""
    return {"status": "alive"}


@router.get("/readiness")
async def readiness(
    storage: Storage = Depends(get_storage),
    cache: Optional[CacheService] = Depends(get_role_cache),
):
    """
    Readiness probe that verifies the store and the role cache.

    Only the store decides readiness; an unreachable Redis is reported but
    roles are then resolved from the store.
    """
    checks: Dict[str, Dict[str, str]] = {}
    overall_status = status.HTTP_200_OK

    try:
        await storage.ping()
        checks["database"] = {"status": "pass"}
    except UpstreamUnavailable as exc:
        checks["database"] = {"status": "fail", "reason": exc.detail}
        overall_status = status.HTTP_503_SERVICE_UNAVAILABLE

    if cache is None:
        checks["redis"] = {"status": "skipped"}
    else:
        try:
            await cache.redis.ping()
            checks["redis"] = {"status": "pass"}
        except RedisError as exc:
            logger.warning("Redis readiness check failed: %s", exc)
            checks["redis"] = {"status": "fail", "reason": str(exc)}

    body = {
        "status": "ready" if overall_status == status.HTTP_200_OK else "not_ready",
        "checks": checks,
    }
    return JSONResponse(status_code=overall_status, content=body)
