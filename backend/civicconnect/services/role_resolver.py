"""
Role resolution for authenticated principals.

A principal's role is recorded in three places that drift apart: token claims,
the ``organizations`` store and the ``users`` store. ``RoleResolver`` is the
only component that reads all three, in this order:

1. Claims (``isOrganization`` or ``role == "organization"``) give a tentative
   kind.
2. An organization record linked to the uid is authoritative.
3. Otherwise a user record decides (organization only when the record itself
   says so).
4. Otherwise the tentative claims kind is used, defaulting to ``user``.

Stored profiles win over claims because claims only refresh when a new token
is issued. A failing store lookup falls through to the next step.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from civicconnect.core.errors import UpstreamUnavailable
from civicconnect.core.metrics import record_role_resolution
from civicconnect.core.redis import CacheService
from civicconnect.core.security import Principal
from civicconnect.schemas.records import OrganizationRecord, UserRecord
from civicconnect.services.organization_directory import find_organization
from civicconnect.storage.base import Storage

logger = logging.getLogger(__name__)


class PrincipalKind(str, enum.Enum):
    USER = "user"
    ORGANIZATION = "organization"


class RoleSource(str, enum.Enum):
    """Which step of the precedence order decided the kind."""
    ORGANIZATION_RECORD = "organization_record"
    USER_RECORD = "user_record"
    CLAIMS = "claims"
    DEFAULT = "default"


@dataclass(frozen=True)
class OrganizationProfile:
    id: str
    name: str
    description: Optional[str]
    department_types: List[str]

    @classmethod
    def from_record(cls, record: OrganizationRecord) -> "OrganizationProfile":
        return cls(record.id, record.name, record.description, list(record.issue_types))


@dataclass(frozen=True)
class UserProfile:
    uid: str
    username: str
    email: str

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserProfile":
        return cls(record.uid, record.username, record.email)


@dataclass(frozen=True)
class ResolvedRole:
    kind: PrincipalKind
    profile: Optional[Any] = None
    source: RoleSource = RoleSource.DEFAULT

    @property
    def is_organization(self) -> bool:
        return self.kind is PrincipalKind.ORGANIZATION

    @property
    def organization_id(self) -> Optional[str]:
        if isinstance(self.profile, OrganizationProfile):
            return self.profile.id
        return None

    @property
    def dashboard_path(self) -> str:
        return "/organization/dashboard" if self.is_organization else "/user/dashboard"

    def to_cache(self) -> Dict[str, Any]:
        profile = None
        if isinstance(self.profile, OrganizationProfile):
            profile = {"type": "organization", **vars(self.profile)}
        elif isinstance(self.profile, UserProfile):
            profile = {"type": "user", **vars(self.profile)}
        return {"kind": self.kind.value, "source": self.source.value, "profile": profile}

    @classmethod
    def from_cache(cls, data: Dict[str, Any]) -> "ResolvedRole":
        raw = dict(data.get("profile") or {})
        profile_type = raw.pop("type", None)
        profile: Optional[Any] = None
        if profile_type == "organization":
            profile = OrganizationProfile(**raw)
        elif profile_type == "user":
            profile = UserProfile(**raw)
        return cls(PrincipalKind(data["kind"]), profile, RoleSource(data["source"]))


@dataclass(frozen=True)
class Actor:
    """A principal together with its resolved role, as seen by services."""

    principal: Principal
    role: ResolvedRole

    @property
    def uid(self) -> str:
        return self.principal.uid

    @property
    def is_organization(self) -> bool:
        return self.role.is_organization

    @property
    def organization_id(self) -> Optional[str]:
        return self.role.organization_id


class RoleResolver:
    """Derive a single authoritative role for a principal."""

    def __init__(self, storage: Storage, cache: Optional[CacheService] = None):
        self.storage = storage
        self.cache = cache

    @staticmethod
    def _cache_key(uid: str) -> str:
        return f"role:{uid}"

    async def resolve(self, principal: Principal) -> ResolvedRole:
        tentative = (
            PrincipalKind.ORGANIZATION if principal.claims_organization else PrincipalKind.USER
        )

        stored = await self._cached(principal.uid)
        if stored is None:
            stored, complete = await self._from_store(principal.uid)
            # partial lookups are not cached so a recovered store is seen next time
            if stored is not None and complete and self.cache is not None:
                await self.cache.set(self._cache_key(principal.uid), stored.to_cache())

        if stored is not None:
            role = stored
        elif tentative is PrincipalKind.ORGANIZATION:
            role = ResolvedRole(tentative, self._claims_profile(principal), RoleSource.CLAIMS)
        else:
            role = ResolvedRole(PrincipalKind.USER, None, RoleSource.DEFAULT)

        record_role_resolution(role.kind.value, role.source.value)
        return role

    async def invalidate(self, uid: str) -> None:
        """Drop the cached role; call after every profile write."""
        if self.cache is not None:
            await self.cache.delete(self._cache_key(uid))

    async def _cached(self, uid: str) -> Optional[ResolvedRole]:
        if self.cache is None:
            return None
        data = await self.cache.get(self._cache_key(uid))
        if not data:
            return None
        try:
            return ResolvedRole.from_cache(data)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding malformed cached role for %s", uid)
            return None

    async def _from_store(self, uid: str) -> Tuple[Optional[ResolvedRole], bool]:
        """Return the store-derived role and whether every lookup succeeded."""
        complete = True
        try:
            organization = await self.storage.get_organization_by_uid(uid)
        except UpstreamUnavailable as exc:
            logger.warning("Organization lookup failed for %s: %s", uid, exc)
            organization = None
            complete = False
        if organization is not None:
            return (
                ResolvedRole(
                    PrincipalKind.ORGANIZATION,
                    OrganizationProfile.from_record(organization),
                    RoleSource.ORGANIZATION_RECORD,
                ),
                complete,
            )

        try:
            user = await self.storage.get_user(uid)
        except UpstreamUnavailable as exc:
            logger.warning("User lookup failed for %s: %s", uid, exc)
            user = None
            complete = False
        if user is None:
            return None, complete

        if user.is_organization or user.role == PrincipalKind.ORGANIZATION.value:
            role = ResolvedRole(
                PrincipalKind.ORGANIZATION,
                await self._organization_profile(user.organization_name),
                RoleSource.USER_RECORD,
            )
        else:
            role = ResolvedRole(
                PrincipalKind.USER, UserProfile.from_record(user), RoleSource.USER_RECORD
            )
        return role, complete

    async def _organization_profile(self, reference: Optional[str]) -> Optional[OrganizationProfile]:
        entry = find_organization(reference)
        if entry is None:
            return None
        try:
            record = await self.storage.get_organization(entry.id)
        except UpstreamUnavailable as exc:
            logger.warning("Organization profile lookup failed for %s: %s", entry.id, exc)
            record = None
        if record is not None:
            return OrganizationProfile.from_record(record)
        return OrganizationProfile(
            entry.id, entry.name, entry.description, list(entry.issue_types)
        )

    @staticmethod
    def _claims_profile(principal: Principal) -> Optional[OrganizationProfile]:
        entry = find_organization(principal.claims.get("organizationName"))
        if entry is None:
            return None
        return OrganizationProfile(entry.id, entry.name, entry.description, list(entry.issue_types))
