"""
Request/response models for authentication endpoints.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import EmailStr, Field, model_validator

from civicconnect.schemas.issue import CamelModel


class RegisterRequest(CamelModel):
    """Registration for a citizen or an organization principal."""

    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    is_organization: bool = False
    organization_name: Optional[str] = None

    @model_validator(mode="after")
    def organization_name_required(self):
        if self.is_organization and not self.organization_name:
            raise ValueError(
                "Organization name is required when registering as an organization"
            )
        return self


class LoginRequest(CamelModel):
    username: str
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str


class ProfileUpdate(CamelModel):
    """Role change after registration (sets the organization claims)."""

    is_organization: bool = False
    organization_name: Optional[str] = None


class OrganizationProfileResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    department_types: List[str] = Field(default_factory=list)


class PrincipalResponse(CamelModel):
    uid: str
    email: Optional[str]
    username: Optional[str] = None
    is_organization: bool
    organization_name: Optional[str] = None
    organization: Optional[OrganizationProfileResponse] = None
    user_type: str
    redirect_path: str


class AuthResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    principal: PrincipalResponse


class GuardResponse(CamelModel):
    path: str
    state: str
    allowed: bool
    redirect_to: Optional[str] = None
