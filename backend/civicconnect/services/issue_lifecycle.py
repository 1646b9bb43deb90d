"""
Issue lifecycle service: reporting, transitions, assignment and cleanup.

Every write that touches both an issue and an organization's
``assigned_issues`` set runs inside one ``Storage.transaction()``, so the
issue/organization link is updated on both sides or not at all.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from civicconnect.core.errors import (
    Forbidden,
    InvalidAssignment,
    NotFound,
    UpstreamUnavailable,
    ValidationError,
)
from civicconnect.core.metrics import record_assignment_change, record_issue_created
from civicconnect.models.issue import IssuePriority, IssueStatus
from civicconnect.schemas.issue import (
    IssueCreate,
    IssueResponse,
    IssueUpdate,
    OrganizationSummary,
    ReconcileReport,
)
from civicconnect.schemas.records import CommentRecord, IssueRecord, OrganizationRecord
from civicconnect.services.organization_directory import (
    DirectoryEntry,
    find_organization,
    resolve_organizations,
)
from civicconnect.services.role_resolver import Actor
from civicconnect.storage.base import Storage

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


class IssueLifecycleService:
    """
    Service for managing issues and their organization assignment.

    Args:
        storage: Injected store
        organization_scoped_updates: When set, an organization principal may only
            change status/priority or reassign issues assigned to its own
            organization (or not validly assigned at all).
    """

    def __init__(self, storage: Storage, organization_scoped_updates: bool = True):
        self.storage = storage
        self.organization_scoped_updates = organization_scoped_updates

    # Reads
    async def get_issue(self, issue_id: str) -> IssueRecord:
        issue = await self.storage.get_issue(issue_id)
        if issue is None:
            raise NotFound("Issue not found")
        return issue

    async def list_issues(
        self, status: Optional[IssueStatus] = None, category: Optional[str] = None
    ) -> List[IssueRecord]:
        return await self.storage.list_issues(status=status, category=category)

    async def list_issues_for_organization(self, org_id: str) -> List[IssueRecord]:
        return await self.storage.list_issues(assigned_to=org_id)

    async def list_issues_for_user(self, user_id: str) -> List[IssueRecord]:
        return await self.storage.list_issues(user_id=user_id)

    # Creation
    async def create_issue(self, actor: Actor, payload: IssueCreate) -> IssueRecord:
        """
        Persist a new report and link it to the responsible organization.

        Without an explicit ``assigned_to`` the issue goes to the first
        organization servicing its category, or stays unassigned when none does.

        Raises:
            Forbidden: Organization principals cannot report issues
            ValidationError: Title, description or location is blank
            InvalidAssignment: The explicit organization is unknown or does
                not handle the category
        """
        if actor.is_organization:
            raise Forbidden("Only citizens can report issues")

        title = _clean(payload.title)
        description = _clean(payload.description)
        location = _clean(payload.location)
        if not (title and description and location):
            raise ValidationError("Title, description, and location are required")

        category = payload.category or None
        target = self._assignment_target(payload.assigned_to, category)

        fields = {
            "title": title,
            "description": description,
            "location": location,
            "latitude": payload.latitude,
            "longitude": payload.longitude,
            "category": category,
            "image_url": payload.image_url,
            "status": IssueStatus.OPEN,
            "priority": payload.priority or IssuePriority.MEDIUM,
            "user_id": actor.uid,
            "assigned_to": target.id if target else None,
        }

        async with self.storage.transaction():
            if target is not None:
                await self.storage.ensure_organization(target)
            issue = await self.storage.create_issue(fields)
            if target is not None:
                await self.storage.add_assigned_issue(target.id, issue.id)

        record_issue_created(category, target is not None)
        if target is not None:
            record_assignment_change("assign")
        logger.info(
            "Issue %s reported by %s (category=%s, assigned_to=%s)",
            issue.id,
            actor.uid,
            category,
            issue.assigned_to,
        )
        return issue

    def _assignment_target(
        self, requested: Optional[str], category: Optional[str]
    ) -> Optional[DirectoryEntry]:
        if requested:
            entry = find_organization(requested)
            if entry is None:
                raise InvalidAssignment("Invalid organization name")
            if category and not entry.handles(category):
                raise InvalidAssignment(
                    f"The selected organization does not handle {category} issues"
                )
            return entry

        matches = resolve_organizations(category)
        if not matches:
            logger.info("No organization handles category %s; leaving unassigned", category)
            return None
        return matches[0]

    # Updates
    async def update_issue(self, actor: Actor, issue_id: str, changes: IssueUpdate) -> IssueRecord:
        """
        Creator-only edit of the descriptive fields.

        A new category the current organization does not handle moves the
        issue to the first organization servicing it (or unassigns it).
        """
        issue = await self.get_issue(issue_id)
        if issue.user_id != actor.uid:
            raise Forbidden("Only the reporter can edit this issue")

        fields = changes.model_dump(exclude_unset=True)
        for key in ("title", "description", "location"):
            if key in fields:
                fields[key] = _clean(fields[key])
                if not fields[key]:
                    raise ValidationError(f"{key.capitalize()} cannot be empty")
        if not fields:
            return issue

        category = fields.get("category", issue.category)
        reroute = "category" in fields and category != issue.category
        if reroute and issue.assigned_to:
            current = find_organization(issue.assigned_to)
            reroute = not (current and category and current.handles(category))

        if not reroute:
            return await self.storage.update_issue(issue_id, fields)

        matches = resolve_organizations(category)
        target = matches[0] if matches else None
        fields["assigned_to"] = target.id if target else None
        async with self.storage.transaction():
            if issue.assigned_to:
                await self.storage.remove_assigned_issue(issue.assigned_to, issue_id)
            if target is not None:
                await self.storage.ensure_organization(target)
                await self.storage.add_assigned_issue(target.id, issue_id)
            updated = await self.storage.update_issue(issue_id, fields)

        record_assignment_change("assign" if target else "unassign")
        logger.info(
            "Issue %s recategorized to %s; assigned_to %s -> %s",
            issue_id,
            category,
            issue.assigned_to,
            updated.assigned_to,
        )
        return updated

    async def update_status(self, actor: Actor, issue_id: str, status: IssueStatus) -> IssueRecord:
        issue = await self.get_issue(issue_id)
        await self._authorize_transition(actor, issue)
        updated = await self.storage.update_issue(issue_id, {"status": IssueStatus(status)})
        logger.info("Issue %s status %s -> %s by %s", issue_id, issue.status.value, updated.status.value, actor.uid)
        return updated

    async def update_priority(
        self, actor: Actor, issue_id: str, priority: IssuePriority
    ) -> IssueRecord:
        issue = await self.get_issue(issue_id)
        await self._authorize_transition(actor, issue)
        updated = await self.storage.update_issue(issue_id, {"priority": IssuePriority(priority)})
        logger.info("Issue %s priority set to %s by %s", issue_id, updated.priority.value, actor.uid)
        return updated

    async def _authorize_transition(self, actor: Actor, issue: IssueRecord) -> None:
        if issue.user_id == actor.uid:
            return
        if not actor.is_organization:
            raise Forbidden("Unauthorized")
        await self._authorize_organization(actor, issue)

    async def _authorize_organization(self, actor: Actor, issue: IssueRecord) -> None:
        if not self.organization_scoped_updates:
            return
        if actor.organization_id is None:
            raise Forbidden("Organization profile required")
        if await self._effective_assignment(issue) in (None, actor.organization_id):
            return
        raise Forbidden("Issue is assigned to another organization")

    async def _effective_assignment(self, issue: IssueRecord) -> Optional[str]:
        """The issue's organization, or ``None`` when it points at a missing one."""
        if issue.assigned_to is None:
            return None
        org = await self.storage.get_organization(issue.assigned_to)
        return org.id if org is not None else None

    async def reassign(
        self, actor: Actor, issue_id: str, organization_id: Optional[str]
    ) -> IssueRecord:
        """
        Move an issue to another organization, or unassign it with ``None``.

        The previous organization's set loses the id, the new one gains it and
        the issue's ``assigned_to`` changes, all in one transaction.
        """
        if not actor.is_organization:
            raise Forbidden("Only organizations can assign issues")
        issue = await self.get_issue(issue_id)
        await self._authorize_organization(actor, issue)

        target: Optional[DirectoryEntry] = None
        if organization_id:
            target = find_organization(organization_id)
            if target is None:
                raise NotFound(f"Organization {organization_id} not found")
            if issue.category and not target.handles(issue.category):
                raise InvalidAssignment(
                    f"The selected organization does not handle {issue.category} issues"
                )

        new_org_id = target.id if target else None
        previous = issue.assigned_to

        async with self.storage.transaction():
            if previous is not None and previous != new_org_id:
                await self.storage.remove_assigned_issue(previous, issue_id)
            if target is not None:
                await self.storage.ensure_organization(target)
                await self.storage.add_assigned_issue(target.id, issue_id)
            if previous != new_org_id:
                issue = await self.storage.update_issue(issue_id, {"assigned_to": new_org_id})

        record_assignment_change("assign" if target else "unassign")
        logger.info("Issue %s reassigned %s -> %s by %s", issue_id, previous, new_org_id, actor.uid)
        return issue

    async def delete_issue(self, actor: Actor, issue_id: str) -> None:
        """Creator-only delete that also drops comments and assignment links."""
        issue = await self.get_issue(issue_id)
        if issue.user_id != actor.uid:
            raise Forbidden("Only the reporter can delete this issue")

        async with self.storage.transaction():
            removed_comments = await self.storage.delete_comments_for_issue(issue_id)
            detached = await self.storage.detach_issue(issue_id)
            await self.storage.delete_issue(issue_id)

        if detached:
            record_assignment_change("unassign")
        logger.info(
            "Issue %s deleted by %s (%d comments, detached from %s)",
            issue_id,
            actor.uid,
            removed_comments,
            detached,
        )

    # Comments
    async def list_comments(self, issue_id: str) -> List[CommentRecord]:
        await self.get_issue(issue_id)
        return await self.storage.list_comments(issue_id)

    async def add_comment(self, actor: Actor, issue_id: str, content: str) -> CommentRecord:
        text = _clean(content)
        if not text:
            raise ValidationError("Comment content is required")
        await self.get_issue(issue_id)
        return await self.storage.create_comment(issue_id=issue_id, user_id=actor.uid, content=text)

    # Presentation
    async def present(self, issues: Iterable[IssueRecord]) -> List[IssueResponse]:
        """
        Attach the assigned organization for display.

        An issue is shown as unassigned when its organization is missing or does
        not list the issue; ids an organization lists for other issues are ignored.
        """
        try:
            organizations = {o.id: o for o in await self.storage.list_organizations()}
        except UpstreamUnavailable as exc:
            logger.warning("Showing issues without assignments: %s", exc)
            organizations = {}
        return [self._present_one(issue, organizations) for issue in issues]

    @staticmethod
    def _present_one(
        issue: IssueRecord, organizations: Dict[str, OrganizationRecord]
    ) -> IssueResponse:
        org = organizations.get(issue.assigned_to) if issue.assigned_to else None
        summary = None
        if org is not None and issue.id in org.assigned_issues:
            summary = OrganizationSummary(id=org.id, name=org.name)
        return IssueResponse(
            **issue.model_dump(),
            assigned_organization=summary,
        )

    # Maintenance
    async def reconcile_assignments(self) -> ReconcileReport:
        """
        Repair the issue/organization link after interrupted writes.

        Drops ids from organization sets whose issue no longer points at that
        organization and adds ids missing from the set of an existing
        organization.
        """
        report = ReconcileReport()
        async with self.storage.transaction():
            organizations = {o.id: o for o in await self.storage.list_organizations()}
            issues = {i.id: i for i in await self.storage.list_issues()}

            for org in organizations.values():
                for issue_id in org.assigned_issues:
                    issue = issues.get(issue_id)
                    if issue is None or issue.assigned_to != org.id:
                        await self.storage.remove_assigned_issue(org.id, issue_id)
                        report.dangling_removed.append(f"{org.id}:{issue_id}")

            for issue in issues.values():
                org = organizations.get(issue.assigned_to) if issue.assigned_to else None
                if org is not None and issue.id not in org.assigned_issues:
                    await self.storage.add_assigned_issue(org.id, issue.id)
                    report.missing_added.append(f"{org.id}:{issue.id}")

        if report.changed:
            record_assignment_change("repair")
            logger.warning(
                "Repaired assignments: %d dangling removed, %d missing added",
                len(report.dangling_removed),
                len(report.missing_added),
            )
        return report
