"""
Navigation guard for client routes.

The web client asks the API where a principal may go; every protected API
endpoint independently re-derives the role through ``require_principal_kind``
in ``civicconnect.api.deps``, so this table is advisory for navigation only.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from civicconnect.services.role_resolver import ResolvedRole

LOGIN_PATH = "/auth/login"
USER_DASHBOARD = "/user/dashboard"
ORGANIZATION_DASHBOARD = "/organization/dashboard"

PUBLIC_PATHS = frozenset({"/", "/community", "/auth/login", "/auth/register"})


class GuardState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_USER = "authenticated_user"
    AUTHENTICATED_ORGANIZATION = "authenticated_organization"


class RouteAccess(str, enum.Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    USER = "user"
    ORGANIZATION = "organization"


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    allowed: bool
    redirect_to: Optional[str] = None


def _normalize(path: str) -> str:
    path = "/" + (path or "").split("?", 1)[0].strip("/")
    return path


def classify_route(path: str) -> RouteAccess:
    """Access class of a client route; unknown routes require a login."""
    path = _normalize(path)
    if path in PUBLIC_PATHS:
        return RouteAccess.PUBLIC
    if path == "/user" or path.startswith("/user/"):
        return RouteAccess.USER
    if path == "/organization" or path.startswith("/organization/"):
        return RouteAccess.ORGANIZATION
    return RouteAccess.AUTHENTICATED


def guard_state(role: Optional[ResolvedRole]) -> GuardState:
    if role is None:
        return GuardState.UNAUTHENTICATED
    if role.is_organization:
        return GuardState.AUTHENTICATED_ORGANIZATION
    return GuardState.AUTHENTICATED_USER


def evaluate_navigation(path: str, role: Optional[ResolvedRole]) -> GuardDecision:
    """
    Decide whether a principal may open ``path``.

    Args:
        path: Client route, e.g. ``/organization/dashboard``
        role: Resolved role, or ``None`` for an anonymous visitor

    Returns:
        The decision with the redirect target when navigation is refused
    """
    state = guard_state(role)
    access = classify_route(path)

    if access is RouteAccess.PUBLIC:
        return GuardDecision(state, True)
    if state is GuardState.UNAUTHENTICATED:
        return GuardDecision(state, False, LOGIN_PATH)
    if access is RouteAccess.ORGANIZATION and state is GuardState.AUTHENTICATED_USER:
        return GuardDecision(state, False, USER_DASHBOARD)
    if access is RouteAccess.USER and state is GuardState.AUTHENTICATED_ORGANIZATION:
        return GuardDecision(state, False, ORGANIZATION_DASHBOARD)
    return GuardDecision(state, True)
