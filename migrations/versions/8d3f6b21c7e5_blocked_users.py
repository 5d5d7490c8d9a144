"""blocked users

Revision ID: 8d3f6b21c7e5
Revises: 5c1e0a7d9b42
Create Date: 2026-10-19 14:37:05.912347

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "8d3f6b21c7e5"
down_revision: Union[str, Sequence[str], None] = "5c1e0a7d9b42"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add the table of user-to-user blocks."""
    op.create_table(
        "blocked_users",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("blocked_user_id", sa.String(length=64), nullable=False),
        sa.Column("blocked_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "blocked_user_id"),
    )


def downgrade() -> None:
    op.drop_table("blocked_users")
