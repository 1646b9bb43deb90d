"""
In-process storage backend.

Used for local development without PostgreSQL and as the store behind the
API tests. Transactions snapshot the whole state and restore it if the block
raises, which gives the same all-or-nothing behaviour as the SQL backend.
"""

from __future__ import annotations

import copy
import itertools
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional
from uuid import uuid4

from civicconnect.core.errors import NotFound, ValidationError
from civicconnect.models.issue import IssuePriority, IssueStatus
from civicconnect.schemas.records import (
    CommentRecord,
    IssueRecord,
    OrganizationRecord,
    UserRecord,
)
from civicconnect.services.organization_directory import ORGANIZATIONS, DirectoryEntry
from civicconnect.storage.base import Storage

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStorage(Storage):
    def __init__(self, seed_directory: bool = True):
        self.users: Dict[str, UserRecord] = {}
        self.organizations: Dict[str, OrganizationRecord] = {}
        self.issues: Dict[str, IssueRecord] = {}
        self.comments: Dict[str, CommentRecord] = {}
        # insertion order breaks created_at ties when sorting newest first
        self._sequence: Dict[str, int] = {}
        self._counter = itertools.count()
        self._depth = 0
        if seed_directory:
            for entry in ORGANIZATIONS:
                self.organizations[entry.id] = self._record_from_entry(entry)

    @staticmethod
    def _record_from_entry(entry: DirectoryEntry) -> OrganizationRecord:
        now = _now()
        return OrganizationRecord(
            id=entry.id,
            name=entry.name,
            description=entry.description,
            issue_types=list(entry.issue_types),
            assigned_issues=[],
            created_at=now,
            updated_at=now,
        )

    def _snapshot(self):
        return copy.deepcopy(
            (self.users, self.organizations, self.issues, self.comments, self._sequence)
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["MemoryStorage"]:
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        snapshot = self._snapshot()
        self._depth = 1
        try:
            yield self
        except BaseException:
            (
                self.users,
                self.organizations,
                self.issues,
                self.comments,
                self._sequence,
            ) = snapshot
            logger.debug("Rolled back in-memory transaction")
            raise
        finally:
            self._depth = 0

    async def ping(self) -> None:
        return None

    # Users
    async def get_user(self, uid: str) -> Optional[UserRecord]:
        return self.users.get(uid)

    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        return next((u for u in self.users.values() if u.username == username), None)

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return next((u for u in self.users.values() if u.email == email), None)

    async def create_user(
        self,
        *,
        username: str,
        email: str,
        hashed_password: str,
        is_organization: bool = False,
        organization_name: Optional[str] = None,
        role: Optional[str] = None,
    ) -> UserRecord:
        now = _now()
        user = UserRecord(
            uid=str(uuid4()),
            username=username,
            email=email,
            hashed_password=hashed_password,
            is_organization=is_organization,
            organization_name=organization_name,
            role=role,
            created_at=now,
            updated_at=now,
        )
        self.users[user.uid] = user
        return user

    async def update_user(self, uid: str, **fields: Any) -> Optional[UserRecord]:
        user = self.users.get(uid)
        if user is None:
            return None
        updated = user.model_copy(update={**fields, "updated_at": _now()})
        self.users[uid] = updated
        return updated

    # Organizations
    async def get_organization(self, org_id: str) -> Optional[OrganizationRecord]:
        return self.organizations.get(org_id)

    async def get_organization_by_uid(self, uid: str) -> Optional[OrganizationRecord]:
        return next((o for o in self.organizations.values() if o.uid == uid), None)

    async def list_organizations(self) -> List[OrganizationRecord]:
        return list(self.organizations.values())

    async def ensure_organization(self, entry: DirectoryEntry) -> OrganizationRecord:
        if entry.id not in self.organizations:
            self.organizations[entry.id] = self._record_from_entry(entry)
        return self.organizations[entry.id]

    def _require_organization(self, org_id: str) -> OrganizationRecord:
        org = self.organizations.get(org_id)
        if org is None:
            raise NotFound(f"Organization {org_id} not found")
        return org

    def _replace_organization(self, org: OrganizationRecord, **fields: Any) -> OrganizationRecord:
        updated = org.model_copy(update={**fields, "updated_at": _now()})
        self.organizations[org.id] = updated
        return updated

    async def set_organization_account(
        self, org_id: str, uid: Optional[str], email: Optional[str] = None
    ) -> OrganizationRecord:
        org = self._require_organization(org_id)
        if uid is not None and org.uid and org.uid != uid:
            raise ValidationError(f"Organization {org_id} already has an account")
        return self._replace_organization(org, uid=uid, email=email)

    async def add_assigned_issue(self, org_id: str, issue_id: str) -> None:
        org = self._require_organization(org_id)
        if issue_id not in org.assigned_issues:
            self._replace_organization(org, assigned_issues=[*org.assigned_issues, issue_id])

    async def remove_assigned_issue(self, org_id: str, issue_id: str) -> None:
        org = self.organizations.get(org_id)
        if org is not None and issue_id in org.assigned_issues:
            self._replace_organization(
                org, assigned_issues=[i for i in org.assigned_issues if i != issue_id]
            )

    async def detach_issue(self, issue_id: str) -> List[str]:
        affected = [o.id for o in self.organizations.values() if issue_id in o.assigned_issues]
        for org_id in affected:
            await self.remove_assigned_issue(org_id, issue_id)
        return affected

    # Issues
    async def get_issue(self, issue_id: str) -> Optional[IssueRecord]:
        return self.issues.get(issue_id)

    def _newest_first(self, records):
        return sorted(
            records,
            key=lambda r: (r.created_at, self._sequence.get(r.id, 0)),
            reverse=True,
        )

    async def list_issues(
        self,
        *,
        status: Optional[IssueStatus] = None,
        category: Optional[str] = None,
        user_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> List[IssueRecord]:
        matches = [
            issue
            for issue in self.issues.values()
            if (status is None or issue.status == status)
            and (category is None or issue.category == category)
            and (user_id is None or issue.user_id == user_id)
            and (assigned_to is None or issue.assigned_to == assigned_to)
        ]
        return self._newest_first(matches)

    async def create_issue(self, fields: Dict[str, Any]) -> IssueRecord:
        now = _now()
        data = {
            "status": IssueStatus.OPEN,
            "priority": IssuePriority.MEDIUM,
            **fields,
            "id": fields.get("id") or str(uuid4()),
            "created_at": now,
            "updated_at": now,
        }
        issue = IssueRecord(**data)
        self.issues[issue.id] = issue
        self._sequence[issue.id] = next(self._counter)
        return issue

    async def update_issue(self, issue_id: str, fields: Dict[str, Any]) -> IssueRecord:
        issue = self.issues.get(issue_id)
        if issue is None:
            raise NotFound("Issue not found")
        updated = issue.model_copy(update={**fields, "updated_at": _now()})
        self.issues[issue_id] = updated
        return updated

    async def delete_issue(self, issue_id: str) -> bool:
        self._sequence.pop(issue_id, None)
        return self.issues.pop(issue_id, None) is not None

    # Comments
    async def list_comments(self, issue_id: str) -> List[CommentRecord]:
        return self._newest_first(c for c in self.comments.values() if c.issue_id == issue_id)

    async def create_comment(self, *, issue_id: str, user_id: str, content: str) -> CommentRecord:
        comment = CommentRecord(
            id=str(uuid4()),
            content=content,
            user_id=user_id,
            issue_id=issue_id,
            created_at=_now(),
        )
        self.comments[comment.id] = comment
        self._sequence[comment.id] = next(self._counter)
        return comment

    async def delete_comments_for_issue(self, issue_id: str) -> int:
        doomed = [cid for cid, c in self.comments.items() if c.issue_id == issue_id]
        for cid in doomed:
            del self.comments[cid]
            self._sequence.pop(cid, None)
        return len(doomed)
