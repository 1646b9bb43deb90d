"""
SQLAlchemy-backed storage over an ``AsyncSession``.

Writes are flushed but not committed; ``transaction()`` commits (or rolls
back) the whole unit. Organization rows are read ``FOR UPDATE`` before their
``assigned_issues`` list is rewritten so concurrent assignments serialize.
"""

from __future__ import annotations

import functools
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.errors import NotFound, UpstreamUnavailable, ValidationError
from civicconnect.core.metrics import record_store_failure
from civicconnect.models import Comment, Issue, Organization, User
from civicconnect.models.issue import IssuePriority, IssueStatus
from civicconnect.schemas.records import (
    CommentRecord,
    IssueRecord,
    OrganizationRecord,
    UserRecord,
)
from civicconnect.services.organization_directory import DirectoryEntry
from civicconnect.storage.base import Storage

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _store_call(operation: str):
    """Translate driver errors into ``UpstreamUnavailable``."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except SQLAlchemyError as exc:
                record_store_failure(operation)
                logger.error("Store operation %s failed: %s", operation, exc)
                raise UpstreamUnavailable(f"Store operation {operation} failed") from exc

        return wrapper

    return decorator


def _issue_values(fields: Dict[str, Any]) -> Dict[str, Any]:
    values = dict(fields)
    for key in ("status", "priority"):
        if key in values and hasattr(values[key], "value"):
            values[key] = values[key].value
    return values


class SQLAlchemyStorage(Storage):
    def __init__(self, session: AsyncSession):
        self.session = session
        self._depth = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLAlchemyStorage"]:
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            record_store_failure("commit")
            logger.error("Transaction failed: %s", exc)
            raise UpstreamUnavailable("Store transaction failed") from exc
        except BaseException:
            await self.session.rollback()
            raise
        finally:
            self._depth = 0

    @_store_call("ping")
    async def ping(self) -> None:
        result = await self.session.execute(text("SELECT 1"))
        result.scalar()

    # Users
    async def _user_where(self, clause) -> Optional[UserRecord]:
        result = await self.session.execute(select(User).where(clause))
        user = result.scalar_one_or_none()
        return UserRecord.model_validate(user) if user else None

    @_store_call("get_user")
    async def get_user(self, uid: str) -> Optional[UserRecord]:
        return await self._user_where(User.uid == uid)

    @_store_call("get_user_by_username")
    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        return await self._user_where(User.username == username)

    @_store_call("get_user_by_email")
    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return await self._user_where(User.email == email)

    @_store_call("create_user")
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
        user = User(
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
        self.session.add(user)
        await self.session.flush()
        return UserRecord.model_validate(user)

    @_store_call("update_user")
    async def update_user(self, uid: str, **fields: Any) -> Optional[UserRecord]:
        user = await self.session.get(User, uid)
        if user is None:
            return None
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = _now()
        await self.session.flush()
        return UserRecord.model_validate(user)

    # Organizations
    async def _locked_organization(self, org_id: str) -> Optional[Organization]:
        result = await self.session.execute(
            select(Organization)
            .where(Organization.id == org_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @_store_call("get_organization")
    async def get_organization(self, org_id: str) -> Optional[OrganizationRecord]:
        org = await self.session.get(Organization, org_id)
        return OrganizationRecord.model_validate(org) if org else None

    @_store_call("get_organization_by_uid")
    async def get_organization_by_uid(self, uid: str) -> Optional[OrganizationRecord]:
        result = await self.session.execute(
            select(Organization).where(Organization.uid == uid)
        )
        org = result.scalar_one_or_none()
        return OrganizationRecord.model_validate(org) if org else None

    @_store_call("list_organizations")
    async def list_organizations(self) -> List[OrganizationRecord]:
        result = await self.session.execute(select(Organization).order_by(Organization.id))
        return [OrganizationRecord.model_validate(o) for o in result.scalars().all()]

    @_store_call("ensure_organization")
    async def ensure_organization(self, entry: DirectoryEntry) -> OrganizationRecord:
        org = await self.session.get(Organization, entry.id)
        if org is None:
            now = _now()
            org = Organization(
                id=entry.id,
                name=entry.name,
                description=entry.description,
                issue_types=list(entry.issue_types),
                assigned_issues=[],
                created_at=now,
                updated_at=now,
            )
            self.session.add(org)
            await self.session.flush()
            logger.info("Created organization record for %s", entry.id)
        return OrganizationRecord.model_validate(org)

    @_store_call("set_organization_account")
    async def set_organization_account(
        self, org_id: str, uid: Optional[str], email: Optional[str] = None
    ) -> OrganizationRecord:
        org = await self._locked_organization(org_id)
        if org is None:
            raise NotFound(f"Organization {org_id} not found")
        if uid is not None and org.uid and org.uid != uid:
            raise ValidationError(f"Organization {org_id} already has an account")
        org.uid = uid
        org.email = email
        org.updated_at = _now()
        await self.session.flush()
        return OrganizationRecord.model_validate(org)

    @_store_call("add_assigned_issue")
    async def add_assigned_issue(self, org_id: str, issue_id: str) -> None:
        org = await self._locked_organization(org_id)
        if org is None:
            raise NotFound(f"Organization {org_id} not found")
        current = list(org.assigned_issues or [])
        if issue_id not in current:
            # reassign the list so the JSON column is marked dirty
            org.assigned_issues = current + [issue_id]
            org.updated_at = _now()
            await self.session.flush()

    @_store_call("remove_assigned_issue")
    async def remove_assigned_issue(self, org_id: str, issue_id: str) -> None:
        org = await self._locked_organization(org_id)
        if org is None:
            return
        current = list(org.assigned_issues or [])
        if issue_id in current:
            org.assigned_issues = [i for i in current if i != issue_id]
            org.updated_at = _now()
            await self.session.flush()

    @_store_call("detach_issue")
    async def detach_issue(self, issue_id: str) -> List[str]:
        result = await self.session.execute(select(Organization).with_for_update())
        affected: List[str] = []
        for org in result.scalars().all():
            current = list(org.assigned_issues or [])
            if issue_id in current:
                org.assigned_issues = [i for i in current if i != issue_id]
                org.updated_at = _now()
                affected.append(org.id)
        if affected:
            await self.session.flush()
        return affected

    # Issues
    @_store_call("get_issue")
    async def get_issue(self, issue_id: str) -> Optional[IssueRecord]:
        issue = await self.session.get(Issue, issue_id)
        return IssueRecord.model_validate(issue) if issue else None

    @_store_call("list_issues")
    async def list_issues(
        self,
        *,
        status: Optional[IssueStatus] = None,
        category: Optional[str] = None,
        user_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> List[IssueRecord]:
        stmt = select(Issue)
        if status is not None:
            stmt = stmt.where(Issue.status == IssueStatus(status).value)
        if category is not None:
            stmt = stmt.where(Issue.category == category)
        if user_id is not None:
            stmt = stmt.where(Issue.user_id == user_id)
        if assigned_to is not None:
            stmt = stmt.where(Issue.assigned_to == assigned_to)
        stmt = stmt.order_by(Issue.created_at.desc())

        result = await self.session.execute(stmt)
        return [IssueRecord.model_validate(i) for i in result.scalars().all()]

    @_store_call("create_issue")
    async def create_issue(self, fields: Dict[str, Any]) -> IssueRecord:
        now = _now()
        values = {
            "status": IssueStatus.OPEN.value,
            "priority": IssuePriority.MEDIUM.value,
            **_issue_values(fields),
            "created_at": now,
            "updated_at": now,
        }
        values["id"] = values.get("id") or str(uuid4())
        issue = Issue(**values)
        self.session.add(issue)
        await self.session.flush()
        return IssueRecord.model_validate(issue)

    @_store_call("update_issue")
    async def update_issue(self, issue_id: str, fields: Dict[str, Any]) -> IssueRecord:
        issue = await self.session.get(Issue, issue_id)
        if issue is None:
            raise NotFound("Issue not found")
        for key, value in _issue_values(fields).items():
            setattr(issue, key, value)
        issue.updated_at = _now()
        await self.session.flush()
        return IssueRecord.model_validate(issue)

    @_store_call("delete_issue")
    async def delete_issue(self, issue_id: str) -> bool:
        issue = await self.session.get(Issue, issue_id)
        if issue is None:
            return False
        await self.session.delete(issue)
        await self.session.flush()
        return True

    # Comments
    @_store_call("list_comments")
    async def list_comments(self, issue_id: str) -> List[CommentRecord]:
        result = await self.session.execute(
            select(Comment)
            .where(Comment.issue_id == issue_id)
            .order_by(Comment.created_at.desc())
        )
        return [CommentRecord.model_validate(c) for c in result.scalars().all()]

    @_store_call("create_comment")
    async def create_comment(self, *, issue_id: str, user_id: str, content: str) -> CommentRecord:
        comment = Comment(
            id=str(uuid4()),
            content=content,
            user_id=user_id,
            issue_id=issue_id,
            created_at=_now(),
        )
        self.session.add(comment)
        await self.session.flush()
        return CommentRecord.model_validate(comment)

    @_store_call("delete_comments_for_issue")
    async def delete_comments_for_issue(self, issue_id: str) -> int:
        result = await self.session.execute(
            delete(Comment).where(Comment.issue_id == issue_id)
        )
        await self.session.flush()
        return result.rowcount or 0
