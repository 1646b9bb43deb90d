"""
FastAPI dependencies shared by the endpoint modules.

Every protected endpoint re-derives the caller's role through ``RoleResolver``
on each request; token claims alone never authorize a mutation.
"""

from typing import Callable, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.config import settings
from civicconnect.core.database import get_db
from civicconnect.core.errors import Forbidden
from civicconnect.core.redis import CacheService, get_redis
from civicconnect.core.security import Principal, get_current_principal, get_optional_principal
from civicconnect.services.issue_lifecycle import IssueLifecycleService
from civicconnect.services.role_resolver import Actor, PrincipalKind, RoleResolver
from civicconnect.storage import SQLAlchemyStorage, Storage


async def get_storage(db: AsyncSession = Depends(get_db)) -> Storage:
    """Store bound to the request's database session."""
    return SQLAlchemyStorage(db)


async def get_role_cache() -> Optional[CacheService]:
    if not settings.ROLE_CACHE_ENABLED:
        return None
    return CacheService(await get_redis())


async def get_role_resolver(
    storage: Storage = Depends(get_storage),
    cache: Optional[CacheService] = Depends(get_role_cache),
) -> RoleResolver:
    return RoleResolver(storage, cache)


async def get_issue_service(storage: Storage = Depends(get_storage)) -> IssueLifecycleService:
    return IssueLifecycleService(
        storage, organization_scoped_updates=settings.ORGANIZATION_SCOPED_UPDATES
    )


async def get_actor(
    principal: Principal = Depends(get_current_principal),
    resolver: RoleResolver = Depends(get_role_resolver),
) -> Actor:
    """Authenticated caller with a freshly resolved role (401 without a token)."""
    return Actor(principal, await resolver.resolve(principal))


async def get_optional_actor(
    principal: Optional[Principal] = Depends(get_optional_principal),
    resolver: RoleResolver = Depends(get_role_resolver),
) -> Optional[Actor]:
    if principal is None:
        return None
    return Actor(principal, await resolver.resolve(principal))


def require_principal_kind(kind: PrincipalKind) -> Callable:
    """
    Dependency factory restricting an endpoint to one principal kind.

    Usage:
        @router.get("/organization/issues")
        async def endpoint(actor: Actor = Depends(require_principal_kind(PrincipalKind.ORGANIZATION))):
            ...
    """

    async def kind_checker(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role.kind is not kind:
            raise Forbidden(f"Access restricted to {kind.value} accounts")
        return actor

    return kind_checker
