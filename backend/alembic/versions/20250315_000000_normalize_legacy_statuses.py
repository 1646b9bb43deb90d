"""Rewrite legacy issue statuses and priorities to the canonical vocabulary."""

revision = "20250315_000000"
down_revision = "20250301_000000"
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa

issues = sa.table(
    "issues",
    sa.column("status", sa.String),
    sa.column("priority", sa.String),
)

STATUS_REWRITES = {
    "reported": "open",
    "in-progress": "in_progress",
    "inprogress": "in_progress",
}


def upgrade():
    """Map ``reported``/``in-progress`` onto ``open``/``in_progress``."""
    for legacy, canonical in STATUS_REWRITES.items():
        op.execute(
            issues.update()
            .where(sa.func.lower(issues.c.status) == legacy)
            .values(status=canonical)
        )
    # older clients stored capitalised values
    op.execute(issues.update().values(status=sa.func.lower(issues.c.status)))
    op.execute(issues.update().values(priority=sa.func.lower(issues.c.priority)))


def downgrade():
    """Canonical values are valid legacy values; nothing to undo."""
