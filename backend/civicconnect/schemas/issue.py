"""
Pydantic schemas for issue and comment endpoints.

Payloads are exchanged in camelCase (``assignedTo``, ``createdAt``) to match
the web and mobile clients; snake_case input is accepted as well. Request
models run the legacy adapter before validation, so older field names and the
``reported``/``in-progress`` statuses are accepted too.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from civicconnect.models.issue import IssuePriority, IssueStatus
from civicconnect.services.legacy import normalize_issue_payload

COMMENT_MAX_LENGTH = 5000


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class _LegacyAwareModel(CamelModel):
    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy_shape(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return normalize_issue_payload(data)
        return data


class IssueCreate(_LegacyAwareModel):
    """Issue report submitted by a citizen.

    Required text fields are checked by the lifecycle service so that blank
    values produce the same validation error as missing ones.
    """

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    category: Optional[str] = Field(None, max_length=64)
    priority: Optional[IssuePriority] = None
    assigned_to: Optional[str] = Field(None, max_length=64)
    image_url: Optional[str] = Field(None, max_length=1024)


class IssueUpdate(_LegacyAwareModel):
    """Fields the creator may edit after submission."""

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    category: Optional[str] = Field(None, max_length=64)
    image_url: Optional[str] = Field(None, max_length=1024)


class StatusUpdate(_LegacyAwareModel):
    status: IssueStatus


class PriorityUpdate(_LegacyAwareModel):
    priority: IssuePriority


class AssignmentUpdate(_LegacyAwareModel):
    """Target organization; ``null`` unassigns the issue."""

    assigned_to: Optional[str] = None


class OrganizationSummary(CamelModel):
    id: str
    name: str


class IssueResponse(CamelModel):
    id: str
    title: str
    description: str
    location: str
    latitude: Optional[float]
    longitude: Optional[float]
    category: Optional[str]
    image_url: Optional[str]
    status: IssueStatus
    priority: IssuePriority
    user_id: str
    assigned_to: Optional[str]
    # None when the assignment is missing or not mirrored by the organization
    assigned_organization: Optional[OrganizationSummary] = None
    created_at: datetime
    updated_at: datetime


class CommentCreate(CamelModel):
    content: str = Field(..., max_length=COMMENT_MAX_LENGTH)


class CommentResponse(CamelModel):
    id: str
    content: str
    user_id: str
    issue_id: str
    created_at: datetime


class ReconcileReport(CamelModel):
    """Outcome of an assignment repair pass."""

    dangling_removed: List[str] = Field(default_factory=list)
    missing_added: List[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.dangling_removed or self.missing_added)
