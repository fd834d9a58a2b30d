"""add projects and slug redirects

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    project_status = sa.Enum("draft", "published", name="projectstatus")
    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("status", project_status, nullable=False, server_default="draft"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_projects_slug", "projects", ["slug"], unique=True)

    op.create_table(
        "slug_redirects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("old_slug", sa.String(length=100), nullable=False),
        sa.Column("new_slug", sa.String(length=100), nullable=False),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_slug_redirects_old_slug", "slug_redirects", ["old_slug"], unique=True)
    op.create_index("ix_slug_redirects_new_slug", "slug_redirects", ["new_slug"])
    op.create_index("ix_slug_redirects_project_id", "slug_redirects", ["project_id"])


def downgrade() -> None:
    op.drop_index("ix_slug_redirects_project_id", table_name="slug_redirects")
    op.drop_index("ix_slug_redirects_new_slug", table_name="slug_redirects")
    op.drop_index("ix_slug_redirects_old_slug", table_name="slug_redirects")
    op.drop_table("slug_redirects")
    op.drop_index("ix_projects_slug", table_name="projects")
    op.drop_table("projects")
    sa.Enum(name="projectstatus").drop(op.get_bind(), checkfirst=True)
