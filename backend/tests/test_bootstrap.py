"""Tests for application bootstrap helpers."""

import pytest
from sqlalchemy import func, select

from civicconnect.bootstrap import seed_organizations
from civicconnect.models.organization import Organization
from civicconnect.services.organization_directory import ORGANIZATIONS


@pytest.mark.asyncio
async def test_seed_organizations_inserts_missing_entries(sql_session):
    created = await seed_organizations(session=sql_session)

    count = await sql_session.scalar(select(func.count()).select_from(Organization))
    assert created == len(ORGANIZATIONS)
    assert count == len(ORGANIZATIONS)


@pytest.mark.asyncio
async def test_seed_organizations_skips_existing_entries(sql_session):
    await seed_organizations(session=sql_session)
    org = await sql_session.get(Organization, "pwd")
    org.uid = "desk-uid"
    await sql_session.commit()

    created = await seed_organizations(session=sql_session)

    assert created == 0
    assert (await sql_session.get(Organization, "pwd")).uid == "desk-uid"
