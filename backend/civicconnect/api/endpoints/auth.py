"""
Authentication endpoints: registration, login, token refresh and profile changes.

Tokens are returned in the body and also set as an http-only ``token`` cookie
so browser clients need no header handling.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request, Response, status

from civicconnect.api.deps import (
    get_actor,
    get_optional_actor,
    get_role_resolver,
    get_storage,
)
from civicconnect.core.config import settings
from civicconnect.core.errors import NotFound, Unauthorized, ValidationError
from civicconnect.core.rate_limiter import limiter
from civicconnect.core.security import (
    REFRESH_TOKEN_TYPE,
    Principal,
    build_claims,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from civicconnect.schemas.auth import (
    AuthResponse,
    GuardResponse,
    LoginRequest,
    OrganizationProfileResponse,
    PrincipalResponse,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
)
from civicconnect.schemas.records import UserRecord
from civicconnect.services.access_guard import evaluate_navigation
from civicconnect.services.organization_directory import DirectoryEntry, find_organization
from civicconnect.services.role_resolver import (
    Actor,
    OrganizationProfile,
    PrincipalKind,
    ResolvedRole,
    RoleResolver,
)
from civicconnect.storage.base import Storage

logger = logging.getLogger(__name__)

router = APIRouter()


def _principal_response(
    uid: str, email: Optional[str], user: Optional[UserRecord], role: ResolvedRole
) -> PrincipalResponse:
    organization = None
    if isinstance(role.profile, OrganizationProfile):
        organization = OrganizationProfileResponse(
            id=role.profile.id,
            name=role.profile.name,
            description=role.profile.description,
            department_types=role.profile.department_types,
        )
    return PrincipalResponse(
        uid=uid,
        email=user.email if user else email,
        username=user.username if user else None,
        is_organization=role.is_organization,
        organization_name=role.organization_id,
        organization=organization,
        user_type=role.kind.value,
        redirect_path=role.dashboard_path,
    )


def _issue_tokens(uid: str, email: Optional[str], role: ResolvedRole) -> Tuple[str, str]:
    claims = build_claims(uid, email, role.is_organization, role.organization_id)
    return create_access_token(claims), create_refresh_token(claims)


def _set_token_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=settings.TOKEN_COOKIE_NAME,
        value=access_token,
        httponly=True,
        samesite="lax",
        secure=settings.ENVIRONMENT == "production",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


async def _auth_response(
    response: Response, user: UserRecord, resolver: RoleResolver
) -> AuthResponse:
    role = await resolver.resolve(Principal(uid=user.uid, email=user.email))
    access_token, refresh_token = _issue_tokens(user.uid, user.email, role)
    _set_token_cookie(response, access_token)
    return AuthResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        principal=_principal_response(user.uid, user.email, user, role),
    )


async def _claimable_organization(
    storage: Storage, reference: Optional[str], uid: Optional[str]
) -> DirectoryEntry:
    entry = find_organization(reference)
    if entry is None:
        raise ValidationError(f"Unknown organization: {reference}")
    record = await storage.get_organization(entry.id)
    if record is not None and record.uid and record.uid != uid:
        raise ValidationError(f"Organization {entry.id} already has an account")
    return entry


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def register(
    request: Request,
    response: Response,
    payload: RegisterRequest,
    storage: Storage = Depends(get_storage),
    resolver: RoleResolver = Depends(get_role_resolver),
):
    """
    Register a citizen or organization principal and log them in.

    Organization registrations link the principal to a directory organization,
    which must not already be claimed.
    """
    if await storage.get_user_by_username(payload.username):
        raise ValidationError("Username already exists")
    if await storage.get_user_by_email(payload.email):
        raise ValidationError("Email already registered")

    entry = None
    if payload.is_organization:
        entry = await _claimable_organization(storage, payload.organization_name, None)

    async with storage.transaction():
        user = await storage.create_user(
            username=payload.username,
            email=payload.email,
            hashed_password=hash_password(payload.password),
            is_organization=entry is not None,
            organization_name=entry.id if entry else None,
            role=PrincipalKind.ORGANIZATION.value if entry else PrincipalKind.USER.value,
        )
        if entry is not None:
            await storage.ensure_organization(entry)
            await storage.set_organization_account(entry.id, user.uid, user.email)

    logger.info(
        "Registered %s account %s%s",
        "organization" if entry else "user",
        user.username,
        f" for {entry.id}" if entry else "",
    )
    return await _auth_response(response, user, resolver)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    storage: Storage = Depends(get_storage),
    resolver: RoleResolver = Depends(get_role_resolver),
):
    """
    Authenticate with username and password.

    The response carries ``redirectPath``: the dashboard matching the
    principal's resolved role.
    """
    user = await storage.get_user_by_username(credentials.username)
    if user is None or not verify_password(credentials.password, user.hashed_password):
        logger.info("Login failed for %s", credentials.username)
        raise Unauthorized("Invalid username or password")

    user = await storage.update_user(user.uid, last_login_at=datetime.now(timezone.utc)) or user
    result = await _auth_response(response, user, resolver)
    logger.info(
        "User %s logged in, redirecting to %s",
        user.username,
        result.principal.redirect_path,
    )
    return result


@router.post("/logout")
async def logout(response: Response):
    """Clear the token cookie; bearer tokens simply expire."""
    response.delete_cookie(settings.TOKEN_COOKIE_NAME)
    return {"message": "Logged out successfully"}


@router.post("/refresh", response_model=AuthResponse)
async def refresh_token(
    payload: RefreshRequest,
    response: Response,
    storage: Storage = Depends(get_storage),
    resolver: RoleResolver = Depends(get_role_resolver),
):
    """Exchange a refresh token for new tokens carrying current claims."""
    claims = decode_token(payload.refresh_token, expected_type=REFRESH_TOKEN_TYPE)
    uid = claims.get("sub")
    if not uid:
        raise Unauthorized("Invalid refresh token")
    user = await storage.get_user(uid)
    if user is None:
        raise Unauthorized("User not found")
    return await _auth_response(response, user, resolver)


@router.get("/me", response_model=PrincipalResponse)
async def me(
    actor: Actor = Depends(get_actor),
    storage: Storage = Depends(get_storage),
):
    """Current principal with its resolved role and profile."""
    user = await storage.get_user(actor.uid)
    return _principal_response(actor.uid, actor.principal.email, user, actor.role)


@router.post("/update-profile", response_model=AuthResponse)
async def update_profile(
    payload: ProfileUpdate,
    response: Response,
    actor: Actor = Depends(get_actor),
    storage: Storage = Depends(get_storage),
    resolver: RoleResolver = Depends(get_role_resolver),
):
    """
    Switch the caller between citizen and organization.

    The stored profile is rewritten, the cached role dropped and new tokens
    issued so the claims match the profile.
    """
    entry = None
    if payload.is_organization:
        if not payload.organization_name:
            raise ValidationError("Organization name is required")
        entry = await _claimable_organization(storage, payload.organization_name, actor.uid)

    async with storage.transaction():
        previous = await storage.get_organization_by_uid(actor.uid)
        if previous is not None and (entry is None or previous.id != entry.id):
            await storage.set_organization_account(previous.id, None)
        user = await storage.update_user(
            actor.uid,
            is_organization=entry is not None,
            organization_name=entry.id if entry else None,
            role=PrincipalKind.ORGANIZATION.value if entry else PrincipalKind.USER.value,
        )
        if user is None:
            raise NotFound("User not found")
        if entry is not None:
            await storage.ensure_organization(entry)
            await storage.set_organization_account(entry.id, user.uid, user.email)

    await resolver.invalidate(actor.uid)
    logger.info(
        "Profile of %s updated (organization=%s)", actor.uid, entry.id if entry else None
    )
    return await _auth_response(response, user, resolver)


@router.get("/guard", response_model=GuardResponse)
async def guard(
    path: str = Query(..., description="Client route to check"),
    actor: Optional[Actor] = Depends(get_optional_actor),
):
    """Navigation decision for a client route."""
    decision = evaluate_navigation(path, actor.role if actor else None)
    return GuardResponse(
        path=path,
        state=decision.state.value,
        allowed=decision.allowed,
        redirect_to=decision.redirect_to,
    )
