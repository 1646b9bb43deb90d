"""
CivicConnect API - Main Application Entry Point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from prometheus_client import make_asgi_app

from civicconnect.api.router import api_router
from civicconnect.bootstrap import seed_organizations
from civicconnect.core.config import settings
from civicconnect.core.database import init_db
from civicconnect.core.errors import register_exception_handlers
from civicconnect.core.logging import RequestContextMiddleware, setup_logging
from civicconnect.core.metrics import MetricsMiddleware
from civicconnect.core.rate_limiter import (
    RateLimitExceeded,
    RateLimitMiddleware,
    limiter,
    rate_limit_handler,
)
from civicconnect.core.redis import close_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown."""
    # Startup
    setup_logging()
    await init_db()
    if settings.SEED_ORGANIZATIONS:
        await seed_organizations()
    logger.info("CivicConnect API started (environment=%s)", settings.ENVIRONMENT)
    yield
    # Shutdown
    await close_redis()


app = FastAPI(
    title="CivicConnect",
    description="Civic issue reporting: citizens report, organizations resolve",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
)

app.state.limiter = limiter
register_exception_handlers(app)
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

# Middleware (last added runs first)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)

# Mount Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Include API routes
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "civicconnect-api"}


@app.get("/")
async def root():
    """Root endpoint with system information."""
    return {
        "service": "CivicConnect API",
        "version": "1.0.0",
        "docs": f"{settings.API_PREFIX}/docs",
        "health": "/health",
        "metrics": "/metrics",
    }
