"""Add per-user order to notes

Revision ID: 0002
Revises: 0001
Create Date: 2024-05-06
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "notes",
        sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_notes_user_order", "notes", ["user_id", "order"])


def downgrade() -> None:
    op.drop_index("ix_notes_user_order", table_name="notes")
    op.drop_column("notes", "order")
