"""
Dashboard listings for the two principal kinds.

Both endpoints re-derive the caller's role; a citizen asking for the
organization listing (or the reverse) gets 403.
"""

from typing import List

from fastapi import APIRouter, Depends

from civicconnect.api.deps import get_issue_service, require_principal_kind
from civicconnect.core.errors import Forbidden
from civicconnect.schemas.issue import IssueResponse
from civicconnect.services.issue_lifecycle import IssueLifecycleService
from civicconnect.services.role_resolver import Actor, PrincipalKind

router = APIRouter()


@router.get("/user/issues", response_model=List[IssueResponse])
async def user_issues(
    actor: Actor = Depends(require_principal_kind(PrincipalKind.USER)),
    service: IssueLifecycleService = Depends(get_issue_service),
):
    """Issues reported by the caller."""
    return await service.present(await service.list_issues_for_user(actor.uid))


@router.get("/organization/issues", response_model=List[IssueResponse])
async def organization_issues(
    actor: Actor = Depends(require_principal_kind(PrincipalKind.ORGANIZATION)),
    service: IssueLifecycleService = Depends(get_issue_service),
):
    """Issues assigned to the caller's organization."""
    if actor.organization_id is None:
        raise Forbidden("Organization profile required")
    return await service.present(
        await service.list_issues_for_organization(actor.organization_id)
    )
