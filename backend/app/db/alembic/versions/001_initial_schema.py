"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates the dashboard table: one row per explicit save, listed newest first.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the dashboard table."""
    op.create_table(
        "dashboard",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("document_body", sa.Text(), nullable=False),
    )
    op.create_index("idx_dashboard_created", "dashboard", ["created_at"])


def downgrade() -> None:
    """Drop the dashboard table."""
    op.drop_index("idx_dashboard_created", table_name="dashboard")
    op.drop_table("dashboard")
