"""Background job repairing issue/organization assignment links."""

import asyncio
import logging

from civicconnect.core.config import settings
from civicconnect.core.database import AsyncSessionLocal
from civicconnect.schemas.issue import ReconcileReport
from civicconnect.services.issue_lifecycle import IssueLifecycleService
from civicconnect.storage import SQLAlchemyStorage, Storage

logger = logging.getLogger(__name__)


async def reconcile(storage: Storage) -> ReconcileReport:
    service = IssueLifecycleService(
        storage, organization_scoped_updates=settings.ORGANIZATION_SCOPED_UPDATES
    )
    report = await service.reconcile_assignments()
    logger.info(
        "Assignment reconcile completed dangling_removed=%s missing_added=%s",
        len(report.dangling_removed),
        len(report.missing_added),
    )
    return report


async def run_assignment_reconcile_job() -> ReconcileReport:
    """Entry point for scheduled job."""
    async with AsyncSessionLocal() as db:
        return await reconcile(SQLAlchemyStorage(db))


if __name__ == "__main__":
    from civicconnect.core.logging import setup_logging

    setup_logging()
    asyncio.run(run_assignment_reconcile_job())
