"""
Storage capability shared by the role resolver and the issue lifecycle service.

Backends are constructed explicitly and injected; services never reach for a
module-level database handle. All methods return canonical records from
``civicconnect.schemas.records``.
"""

from __future__ import annotations

import abc
from contextlib import AbstractAsyncContextManager
from typing import Any, Dict, List, Optional

from civicconnect.models.issue import IssueStatus
from civicconnect.schemas.records import (
    CommentRecord,
    IssueRecord,
    OrganizationRecord,
    UserRecord,
)
from civicconnect.services.organization_directory import DirectoryEntry


class Storage(abc.ABC):
    """Persistence operations for users, organizations, issues and comments."""

    @abc.abstractmethod
    def transaction(self) -> AbstractAsyncContextManager["Storage"]:
        """
        Group writes so they commit together or not at all.

        Nested calls join the outermost transaction.
        """

    @abc.abstractmethod
    async def ping(self) -> None:
        """Raise ``UpstreamUnavailable`` when the backend cannot be reached."""

    # Users
    @abc.abstractmethod
    async def get_user(self, uid: str) -> Optional[UserRecord]: ...

    @abc.abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[UserRecord]: ...

    @abc.abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserRecord]: ...

    @abc.abstractmethod
    async def create_user(
        self,
        *,
        username: str,
        email: str,
        hashed_password: str,
        is_organization: bool = False,
        organization_name: Optional[str] = None,
        role: Optional[str] = None,
    ) -> UserRecord: ...

    @abc.abstractmethod
    async def update_user(self, uid: str, **fields: Any) -> Optional[UserRecord]: ...

    # Organizations
    @abc.abstractmethod
    async def get_organization(self, org_id: str) -> Optional[OrganizationRecord]: ...

    @abc.abstractmethod
    async def get_organization_by_uid(self, uid: str) -> Optional[OrganizationRecord]: ...

    @abc.abstractmethod
    async def list_organizations(self) -> List[OrganizationRecord]: ...

    @abc.abstractmethod
    async def ensure_organization(self, entry: DirectoryEntry) -> OrganizationRecord:
        """Insert the runtime record for a directory entry if it is missing."""

    @abc.abstractmethod
    async def set_organization_account(
        self, org_id: str, uid: Optional[str], email: Optional[str] = None
    ) -> OrganizationRecord:
        """
        Link (or with ``uid=None`` release) the principal managing an organization.

        Raises ``ValidationError`` when another principal already holds the
        organization; the check runs on the locked record.
        """

    @abc.abstractmethod
    async def add_assigned_issue(self, org_id: str, issue_id: str) -> None:
        """Add ``issue_id`` to the organization's set; adding twice is a no-op."""

    @abc.abstractmethod
    async def remove_assigned_issue(self, org_id: str, issue_id: str) -> None:
        """Remove ``issue_id`` from the organization's set if present."""

    @abc.abstractmethod
    async def detach_issue(self, issue_id: str) -> List[str]:
        """Remove ``issue_id`` from every organization's set; return the affected ids."""

    # Issues
    @abc.abstractmethod
    async def get_issue(self, issue_id: str) -> Optional[IssueRecord]: ...

    @abc.abstractmethod
    async def list_issues(
        self,
        *,
        status: Optional[IssueStatus] = None,
        category: Optional[str] = None,
        user_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> List[IssueRecord]:
        """Matching issues, newest first."""

    @abc.abstractmethod
    async def create_issue(self, fields: Dict[str, Any]) -> IssueRecord: ...

    @abc.abstractmethod
    async def update_issue(self, issue_id: str, fields: Dict[str, Any]) -> IssueRecord:
        """Apply ``fields`` and refresh ``updated_at``."""

    @abc.abstractmethod
    async def delete_issue(self, issue_id: str) -> bool: ...

    # Comments
    @abc.abstractmethod
    async def list_comments(self, issue_id: str) -> List[CommentRecord]:
        """Comments on an issue, newest first."""

    @abc.abstractmethod
    async def create_comment(self, *, issue_id: str, user_id: str, content: str) -> CommentRecord: ...

    @abc.abstractmethod
    async def delete_comments_for_issue(self, issue_id: str) -> int: ...
