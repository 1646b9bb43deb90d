"""
Canonical records exchanged between services and storage backends.

Storage implementations return these instead of ORM rows so services never
depend on a particular backend.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from civicconnect.models.issue import IssuePriority, IssueStatus


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserRecord(_Record):
    uid: str
    username: str
    email: str
    hashed_password: str
    is_organization: bool = False
    organization_name: Optional[str] = None
    role: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class OrganizationRecord(_Record):
    id: str
    name: str
    description: Optional[str] = None
    issue_types: List[str] = Field(default_factory=list)
    assigned_issues: List[str] = Field(default_factory=list)
    uid: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IssueRecord(_Record):
    id: str
    title: str
    description: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    status: IssueStatus = IssueStatus.OPEN
    priority: IssuePriority = IssuePriority.MEDIUM
    user_id: str
    assigned_to: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CommentRecord(_Record):
    id: str
    content: str
    user_id: str
    issue_id: str
    created_at: datetime
