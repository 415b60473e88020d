"""Initial schema baseline

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates the watch position and player settings tables.
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
    # play_positions table
    op.create_table(
        "play_positions",
        sa.Column("session_key", sa.String(255), nullable=False),
        sa.Column("position", sa.Float(), nullable=False),
        sa.Column("duration", sa.Float(), nullable=False, server_default="0"),
        sa.Column("saved_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("session_key"),
    )

    # player_settings table
    op.create_table(
        "player_settings",
        sa.Column("profile", sa.Text(), nullable=False),
        sa.Column("play_mode", sa.Text(), nullable=False),
        sa.Column("auto_next", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("volume", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("profile"),
    )


def downgrade() -> None:
    op.drop_table("player_settings")
    op.drop_table("play_positions")
