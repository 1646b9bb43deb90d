"""
Logging configuration with structured JSON logging and request context support.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

from fastapi import Request
from pythonjsonlogger import jsonlogger
from starlette.middleware.base import BaseHTTPMiddleware

from civicconnect.core.config import settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
user_agent_ctx: ContextVar[str] = ContextVar("user_agent", default="-")
principal_ctx: ContextVar[str] = ContextVar("principal", default="-")


class RequestContextFilter(logging.Filter):
    """Inject request and principal metadata into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get("-")
        record.user_agent = user_agent_ctx.get("-")
        record.principal = principal_ctx.get("-")
        return True


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Populate context variables for request scoped logging."""

    async def dispatch(self, request: Request, call_next) -> Any:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        user_agent = request.headers.get("user-agent", "unknown")

        request.state.request_id = request_id
        token_id = request_id_ctx.set(request_id)
        token_agent = user_agent_ctx.set(user_agent)

        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token_id)
            user_agent_ctx.reset(token_agent)

        response.headers["X-Request-ID"] = request_id
        return response


def bind_principal(uid: str) -> None:
    """Attach the authenticated principal uid to log records of this request."""
    principal_ctx.set(uid)


def _build_formatter() -> jsonlogger.JsonFormatter:
    return jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s %(pathname)s %(lineno)d "
        "%(request_id)s %(user_agent)s %(principal)s"
    )


def setup_logging():
    """Configure structured JSON logging."""
    level = getattr(logging, settings.LOG_LEVEL.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter())
    handler.addFilter(RequestContextFilter())
    root_logger.addHandler(handler)

    # Route uvicorn output through the JSON handler.
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(logger_name)
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(level)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


__all__ = [
    "RequestContextMiddleware",
    "RequestContextFilter",
    "bind_principal",
    "setup_logging",
    "request_id_ctx",
    "user_agent_ctx",
    "principal_ctx",
]
