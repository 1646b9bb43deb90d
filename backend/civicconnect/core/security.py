"""
Authentication and security utilities using JWT.

Tokens issued by ``create_access_token`` carry the principal's custom claims
(``isOrganization``, ``organizationName``, ``role``). Claims are a cached view
of the stored profile and only change when a fresh token is issued, so
authorization decisions go through the role resolver rather than the claims.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext

from civicconnect.core.config import settings
from civicconnect.core.errors import Unauthorized
from civicconnect.core.logging import bind_principal

# Password hashing
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Bearer is optional; browsers send the token cookie instead.
security_scheme = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class Principal:
    """An authenticated identity decoded from a token."""

    uid: str
    email: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def claims_organization(self) -> bool:
        """True when the token claims mark the principal as an organization."""
        return (
            self.claims.get("isOrganization") is True
            or self.claims.get("role") == "organization"
        )


def hash_password(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return pwd_context.verify(plain_password, hashed_password)


def build_claims(
    uid: str,
    email: Optional[str],
    is_organization: bool,
    organization_name: Optional[str],
) -> Dict[str, Any]:
    """Assemble the claim set embedded in issued tokens."""
    return {
        "sub": uid,
        "email": email,
        "isOrganization": bool(is_organization),
        "organizationName": organization_name if is_organization else None,
        "role": "organization" if is_organization else "user",
    }


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary of claims to encode in the token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.setdefault("type", ACCESS_TOKEN_TYPE)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_refresh_token(data: dict) -> str:
    """Create a JWT refresh token with longer expiration."""
    payload = {**data, "type": REFRESH_TOKEN_TYPE}
    return create_access_token(payload, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> dict:
    """
    Decode and verify a JWT token.

    Raises:
        Unauthorized: If the token is invalid, expired or of the wrong type
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid authentication credentials")

    if payload.get("type", ACCESS_TOKEN_TYPE) != expected_type:
        raise Unauthorized("Invalid token type")
    return payload


def _extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    if credentials and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return request.cookies.get(settings.TOKEN_COOKIE_NAME)


def principal_from_token(token: str) -> Principal:
    payload = decode_token(token)
    uid = payload.get("sub")
    if not uid:
        raise Unauthorized("Invalid token payload")
    claims = {
        key: payload.get(key)
        for key in ("isOrganization", "organizationName", "role")
        if key in payload
    }
    return Principal(uid=uid, email=payload.get("email"), claims=claims)


async def get_optional_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> Optional[Principal]:
    """Principal for the request, or ``None`` when no token was sent."""
    token = _extract_token(request, credentials)
    if not token:
        return None
    principal = principal_from_token(token)
    bind_principal(principal.uid)
    return principal


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """
    Dependency to extract and validate the current principal.

    Raises:
        Unauthorized: If no token was provided or it is invalid
    """
    if principal is None:
        raise Unauthorized("Unauthorized - No token provided")
    return principal
