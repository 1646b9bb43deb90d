"""Initial schema: users, organizations, issues and comments."""

revision = "20250301_000000"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade():
    """Create principal, organization and issue tables."""
    op.create_table(
        "users",
        sa.Column("uid", sa.String(64), primary_key=True),
        sa.Column("username", sa.String(100), unique=True, nullable=False, index=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_organization", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("organization_name", sa.String(64)),
        sa.Column("role", sa.String(50)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "organizations",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), unique=True, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("issue_types", sa.JSON, nullable=False),
        sa.Column("assigned_issues", sa.JSON, nullable=False),
        sa.Column("uid", sa.String(64), unique=True, index=True),
        sa.Column("email", sa.String(255)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "issues",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("category", sa.String(64), index=True),
        sa.Column("image_url", sa.String(1024)),
        sa.Column("location", sa.Text, nullable=False),
        sa.Column("latitude", sa.Float),
        sa.Column("longitude", sa.Float),
        sa.Column("status", sa.String(32), nullable=False, server_default="open", index=True),
        sa.Column("priority", sa.String(32), nullable=False, server_default="medium"),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column("assigned_to", sa.String(64), sa.ForeignKey("organizations.id"), index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("issue_id", sa.String(64), sa.ForeignKey("issues.id"), nullable=False, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade():
    """Drop all tables."""
    op.drop_table("comments")
    op.drop_table("issues")
    op.drop_table("organizations")
    op.drop_table("users")
