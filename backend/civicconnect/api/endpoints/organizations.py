"""
Organization directory endpoints.
"""

from typing import List

from fastapi import APIRouter

from civicconnect.schemas.organization import OrganizationResponse
from civicconnect.services.organization_directory import (
    ORGANIZATIONS,
    DirectoryEntry,
    resolve_organizations,
)

router = APIRouter()


def _to_response(entry: DirectoryEntry) -> OrganizationResponse:
    return OrganizationResponse(
        id=entry.id,
        name=entry.name,
        description=entry.description,
        issue_types=list(entry.issue_types),
    )


@router.get("", response_model=List[OrganizationResponse])
async def list_organizations():
    """All predefined organizations in directory order."""
    return [_to_response(entry) for entry in ORGANIZATIONS]


@router.get("/{issue_type}", response_model=List[OrganizationResponse])
async def organizations_for_issue_type(issue_type: str):
    """Organizations that handle ``issue_type``; empty for an unknown type."""
    category = issue_type.strip().lower()
    return [_to_response(entry) for entry in resolve_organizations(category)]
