"""Tests for the SQLAlchemy store against SQLite."""

import pytest
from sqlalchemy import text

from civicconnect.core.errors import NotFound, UpstreamUnavailable, ValidationError
from civicconnect.models.issue import IssuePriority, IssueStatus
from civicconnect.services.organization_directory import get_organization
from civicconnect.storage import SQLAlchemyStorage


def _fields(**overrides):
    data = {
        "title": "Overflowing bin",
        "description": "Not collected for a week",
        "location": "Market Rd",
        "category": "garbage",
        "user_id": "u1",
        "status": IssueStatus.OPEN,
        "priority": IssuePriority.HIGH,
    }
    data.update(overrides)
    return data


@pytest.fixture
def store(sql_session) -> SQLAlchemyStorage:
    return SQLAlchemyStorage(sql_session)


@pytest.mark.asyncio
async def test_issue_round_trip(store):
    async with store.transaction():
        await store.ensure_organization(get_organization("bmc-waste"))
        issue = await store.create_issue(_fields(assigned_to="bmc-waste"))
        await store.add_assigned_issue("bmc-waste", issue.id)

    fetched = await store.get_issue(issue.id)
    assert fetched.title == "Overflowing bin"
    assert fetched.status is IssueStatus.OPEN
    assert fetched.priority is IssuePriority.HIGH
    assert (await store.get_organization("bmc-waste")).assigned_issues == [issue.id]
    assert [i.id for i in await store.list_issues(assigned_to="bmc-waste")] == [issue.id]
    assert await store.list_issues(status=IssueStatus.RESOLVED) == []


@pytest.mark.asyncio
async def test_transaction_rollback_discards_writes(store):
    await store.ensure_organization(get_organization("pwd"))
    await store.session.commit()

    with pytest.raises(RuntimeError):
        async with store.transaction():
            issue = await store.create_issue(_fields(category="roads"))
            await store.add_assigned_issue("pwd", issue.id)
            raise RuntimeError("boom")

    assert await store.get_issue(issue.id) is None
    assert (await store.get_organization("pwd")).assigned_issues == []


@pytest.mark.asyncio
async def test_ensure_organization_is_idempotent(store):
    entry = get_organization("mseb")
    await store.ensure_organization(entry)
    await store.ensure_organization(entry)

    orgs = await store.list_organizations()
    assert [o.id for o in orgs] == ["mseb"]
    assert orgs[0].issue_types == ["streetlights"]


@pytest.mark.asyncio
async def test_organization_account_link(store):
    user = await store.create_user(
        username="tata",
        email="ops@tatapower.example",
        hashed_password="h",
        is_organization=True,
        organization_name="tata-power",
        role="organization",
    )
    await store.ensure_organization(get_organization("tata-power"))
    await store.set_organization_account("tata-power", user.uid, user.email)

    linked = await store.get_organization_by_uid(user.uid)
    assert linked.id == "tata-power"
    assert (await store.get_user_by_username("tata")).is_organization is True

    with pytest.raises(NotFound):
        await store.set_organization_account("missing", user.uid)


@pytest.mark.asyncio
async def test_claimed_organization_rejects_second_principal(store):
    await store.ensure_organization(get_organization("mseb"))
    async with store.transaction():
        await store.set_organization_account("mseb", "first-uid", "first@example.com")

    with pytest.raises(ValidationError):
        async with store.transaction():
            second = await store.create_user(
                username="second",
                email="second@example.com",
                hashed_password="h",
                is_organization=True,
                organization_name="mseb",
                role="organization",
            )
            await store.set_organization_account("mseb", second.uid, second.email)

    assert (await store.get_organization("mseb")).uid == "first-uid"
    assert await store.get_user_by_username("second") is None


@pytest.mark.asyncio
async def test_delete_issue_with_comments(store):
    await store.ensure_organization(get_organization("bmc-waste"))
    issue = await store.create_issue(_fields(assigned_to="bmc-waste"))
    await store.add_assigned_issue("bmc-waste", issue.id)
    await store.create_comment(issue_id=issue.id, user_id="u2", content="Same here")
    await store.create_comment(issue_id=issue.id, user_id="u3", content="+1")

    async with store.transaction():
        assert await store.delete_comments_for_issue(issue.id) == 2
        assert await store.detach_issue(issue.id) == ["bmc-waste"]
        assert await store.delete_issue(issue.id) is True

    assert await store.get_issue(issue.id) is None
    assert await store.list_comments(issue.id) == []
    assert (await store.get_organization("bmc-waste")).assigned_issues == []


@pytest.mark.asyncio
async def test_update_issue_refreshes_timestamp(store):
    issue = await store.create_issue(_fields())
    updated = await store.update_issue(issue.id, {"status": IssueStatus.IN_PROGRESS})

    assert updated.status is IssueStatus.IN_PROGRESS
    assert updated.updated_at >= issue.updated_at
    with pytest.raises(NotFound):
        await store.update_issue("missing", {"title": "x"})


@pytest.mark.asyncio
async def test_driver_errors_become_upstream_unavailable(store):
    await store.ping()
    await store.session.execute(text("DROP TABLE comments"))

    with pytest.raises(UpstreamUnavailable):
        await store.list_comments("anything")
