"""
Application bootstrap helpers (runs during startup).
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.database import AsyncSessionLocal
from civicconnect.services.organization_directory import ORGANIZATIONS, DirectoryEntry
from civicconnect.storage import SQLAlchemyStorage, Storage

logger = logging.getLogger(__name__)


async def _ensure_organizations(storage: Storage, entries: Iterable[DirectoryEntry]) -> int:
    """Insert runtime records for directory entries that are missing; return how many."""
    created = 0
    async with storage.transaction():
        for entry in entries:
            if await storage.get_organization(entry.id) is not None:
                continue
            await storage.ensure_organization(entry)
            created += 1
    return created


async def seed_organizations(session: AsyncSession | None = None) -> int:
    """
    Ensure every predefined organization has a runtime record.

    If a session is not provided, a temporary AsyncSession will be created.
    """
    if session is None:
        async with AsyncSessionLocal() as temp_session:
            created = await _ensure_organizations(SQLAlchemyStorage(temp_session), ORGANIZATIONS)
    else:
        created = await _ensure_organizations(SQLAlchemyStorage(session), ORGANIZATIONS)

    if created:
        logger.info("Seeded %d organization records", created)
    return created
