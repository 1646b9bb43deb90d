"""
Error taxonomy shared by services and the HTTP layer.

Services raise these and never ``HTTPException``; ``register_exception_handlers``
maps them onto JSON responses.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CivicConnectError(Exception):
    """Base class for domain errors."""

    code: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = "") -> None:
        self.detail = detail or self.__class__.__name__
        super().__init__(self.detail)


class ValidationError(CivicConnectError):
    """Missing or malformed input."""

    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(CivicConnectError):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(CivicConnectError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(CivicConnectError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidAssignment(CivicConnectError):
    """The organization does not service the issue's category."""

    code = "invalid_assignment"
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamUnavailable(CivicConnectError):
    """A backing store call failed."""

    code = "upstream_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def civicconnect_error_handler(request: Request, exc: CivicConnectError) -> JSONResponse:
    """Render a domain error as ``{"detail": ..., "error": ...}``."""
    if exc.status_code >= 500:
        logger.error(
            "Request %s %s failed: %s", request.method, request.url.path, exc.detail
        )
    headers = None
    if isinstance(exc, Unauthorized):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.code},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CivicConnectError, civicconnect_error_handler)


__all__ = [
    "CivicConnectError",
    "ValidationError",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "InvalidAssignment",
    "UpstreamUnavailable",
    "register_exception_handlers",
]
