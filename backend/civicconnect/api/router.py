"""
API router - aggregates all endpoint routers.
"""

from fastapi import APIRouter

from civicconnect.api.endpoints.auth import router as auth_router
from civicconnect.api.endpoints.dashboards import router as dashboards_router
from civicconnect.api.endpoints.health import router as health_router
from civicconnect.api.endpoints.issues import router as issues_router
from civicconnect.api.endpoints.organizations import router as organizations_router

api_router = APIRouter()

api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(issues_router, prefix="/issues", tags=["issues"])
api_router.include_router(
    organizations_router, prefix="/organizations", tags=["organizations"]
)
api_router.include_router(dashboards_router, tags=["dashboards"])
