"""Initial schema baseline

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates the negative-result cache and the sampling history tables.
For databases created with init_db(), mark this migration as complete
without running it:
    alembic stamp 001
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # invalid_content_ids table
    op.create_table(
        "invalid_content_ids",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=False),
        sa.Column("content_id", sa.String(100), nullable=False),
        sa.Column("reason", sa.String(255), nullable=False, server_default=""),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("source_id", "content_id", name="uq_invalid_source_content"),
    )
    op.create_index("idx_invalid_created_at", "invalid_content_ids", ["created_at"])

    # sample_history table
    op.create_table(
        "sample_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=False),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("cache_hits", sa.Integer(), nullable=True, default=0),
        sa.Column("outcome", sa.Text(), nullable=False),
        sa.Column("content_id", sa.String(100), nullable=True),
        sa.Column("sampled_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_sample_history_source", "sample_history", ["source_id"])


def downgrade() -> None:
    op.drop_index("idx_sample_history_source", table_name="sample_history")
    op.drop_table("sample_history")
    op.drop_index("idx_invalid_created_at", table_name="invalid_content_ids")
    op.drop_table("invalid_content_ids")
