"""Tests for the assignment reconcile job."""

import pytest

from civicconnect.tasks import assignment_reconcile_job
from civicconnect.tasks.assignment_reconcile_job import reconcile


@pytest.mark.asyncio
async def test_reconcile_repairs_memory_store(storage, citizen):
    from civicconnect.services.issue_lifecycle import IssueLifecycleService
    from civicconnect.schemas.issue import IssueCreate

    issue = await IssueLifecycleService(storage).create_issue(
        citizen,
        IssueCreate(title="Pothole", description="Deep", location="Main St", category="roads"),
    )
    await storage.remove_assigned_issue("pwd", issue.id)
    await storage.add_assigned_issue("mmrda", issue.id)

    report = await reconcile(storage)

    assert report.dangling_removed == [f"mmrda:{issue.id}"]
    assert report.missing_added == [f"pwd:{issue.id}"]
    assert (await storage.get_organization("pwd")).assigned_issues == [issue.id]


@pytest.mark.asyncio
async def test_job_uses_a_fresh_session(monkeypatch, sql_session):
    class SessionFactory:
        def __call__(self):
            return self

        async def __aenter__(self):
            return sql_session

        async def __aexit__(self, *exc_info):
            return False

    monkeypatch.setattr(assignment_reconcile_job, "AsyncSessionLocal", SessionFactory())

    report = await assignment_reconcile_job.run_assignment_reconcile_job()

    assert not report.changed
