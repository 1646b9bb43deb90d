"""
Issue endpoints: community feed, reporting, transitions and comments.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from civicconnect.api.deps import get_actor, get_issue_service
from civicconnect.core.errors import ValidationError
from civicconnect.models.issue import IssueStatus
from civicconnect.schemas.issue import (
    AssignmentUpdate,
    CommentCreate,
    CommentResponse,
    IssueCreate,
    IssueResponse,
    IssueUpdate,
    PriorityUpdate,
    StatusUpdate,
)
from civicconnect.services.issue_lifecycle import IssueLifecycleService
from civicconnect.services.legacy import normalize_status
from civicconnect.services.role_resolver import Actor

router = APIRouter()


@router.get("", response_model=List[IssueResponse])
async def list_issues(
    status_filter: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = Query(None),
    service: IssueLifecycleService = Depends(get_issue_service),
):
    """Community feed, newest first; public."""
    status_value = None
    if status_filter:
        try:
            status_value = IssueStatus(normalize_status(status_filter))
        except ValueError:
            raise ValidationError(f"Unknown status: {status_filter}")
    issues = await service.list_issues(
        status=status_value, category=category.lower() if category else None
    )
    return await service.present(issues)


@router.post("", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
async def create_issue(
    payload: IssueCreate,
    actor: Actor = Depends(get_actor),
    service: IssueLifecycleService = Depends(get_issue_service),
):
    issue = await service.create_issue(actor, payload)
    return (await service.present([issue]))[0]


@router.get("/{issue_id}", response_model=IssueResponse)
async def get_issue(
    issue_id: str,
    service: IssueLifecycleService = Depends(get_issue_service),
):
    issue = await service.get_issue(issue_id)
    return (await service.present([issue]))[0]


@router.put("/{issue_id}", response_model=IssueResponse)
async def update_issue(
    issue_id: str,
    payload: IssueUpdate,
    actor: Actor = Depends(get_actor),
    service: IssueLifecycleService = Depends(get_issue_service),
):
    """Edit an issue's description fields (reporter only)."""
    issue = await service.update_issue(actor, issue_id, payload)
    return (await service.present([issue]))[0]


@router.delete("/{issue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_issue(
    issue_id: str,
    actor: Actor = Depends(get_actor),
    service: IssueLifecycleService = Depends(get_issue_service),
):
    await service.delete_issue(actor, issue_id)


@router.patch("/{issue_id}/status", response_model=IssueResponse)
async def update_status(
    issue_id: str,
    payload: StatusUpdate,
    actor: Actor = Depends(get_actor),
    service: IssueLifecycleService = Depends(get_issue_service),
):
    issue = await service.update_status(actor, issue_id, payload.status)
    return (await service.present([issue]))[0]


@router.patch("/{issue_id}/priority", response_model=IssueResponse)
async def update_priority(
    issue_id: str,
    payload: PriorityUpdate,
    actor: Actor = Depends(get_actor),
    service: IssueLifecycleService = Depends(get_issue_service),
):
    issue = await service.update_priority(actor, issue_id, payload.priority)
    return (await service.present([issue]))[0]


@router.patch("/{issue_id}/assign", response_model=IssueResponse)
async def assign_issue(
    issue_id: str,
    payload: AssignmentUpdate,
    actor: Actor = Depends(get_actor),
    service: IssueLifecycleService = Depends(get_issue_service),
):
    """Move the issue to another organization; ``assignedTo: null`` unassigns it."""
    issue = await service.reassign(actor, issue_id, payload.assigned_to)
    return (await service.present([issue]))[0]


@router.get("/{issue_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    issue_id: str,
    service: IssueLifecycleService = Depends(get_issue_service),
):
    return await service.list_comments(issue_id)


@router.post(
    "/{issue_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    issue_id: str,
    payload: CommentCreate,
    actor: Actor = Depends(get_actor),
    service: IssueLifecycleService = Depends(get_issue_service),
):
    return await service.add_comment(actor, issue_id, payload.content)
