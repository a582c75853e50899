"""Create guild_records and oauth_states tables

Revision ID: 5e1c0a7d2b93
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5e1c0a7d2b93"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create the per-guild document table and the OAuth state table."""
    op.create_table(
        "guild_records",
        sa.Column("guild_id", sa.String(32), primary_key=True),
        sa.Column("vouches", _JSON, nullable=True),
        sa.Column("next_id", sa.Integer(), nullable=True),
        sa.Column("vendors", _JSON, nullable=True),
        sa.Column("items", _JSON, nullable=True),
        sa.Column("payments", _JSON, nullable=True),
        sa.Column("products", _JSON, nullable=True),
        sa.Column("last_leaderboard", _JSON, nullable=True),
        sa.Column("last_products", _JSON, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=True,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=True,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "oauth_states",
        sa.Column("state", sa.String(128), primary_key=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=True,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_oauth_states_created_at", "oauth_states", ["created_at"])


def downgrade() -> None:
    """Drop both tables."""
    op.drop_index("ix_oauth_states_created_at", table_name="oauth_states")
    op.drop_table("oauth_states")
    op.drop_table("guild_records")
