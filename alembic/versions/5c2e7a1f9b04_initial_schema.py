"""Initial schema: config, auditlog, starboard_messages

Revision ID: 5c2e7a1f9b04
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c2e7a1f9b04"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create per-guild config, the audit trail, and the starboard mapping."""
    op.create_table(
        "config",
        sa.Column("guild_id", sa.String(20), primary_key=True),
        sa.Column("prefix", sa.Text(), nullable=True),
        sa.Column("starboard_channel", sa.String(20), nullable=True),
        sa.Column("starboard_threshold", sa.SmallInteger(), nullable=True),
    )

    op.create_table(
        "auditlog",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("guild_id", sa.String(20), nullable=False),
        sa.Column("user_id", sa.String(20), nullable=False),
        sa.Column("command_id", sa.Text(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_auditlog_guild_id", "auditlog", ["guild_id", "id"])

    op.create_table(
        "starboard_messages",
        sa.Column("guild_id", sa.String(20), nullable=False),
        sa.Column("source_message_id", sa.String(20), nullable=False),
        sa.Column("board_message_id", sa.String(20), nullable=False),
        sa.PrimaryKeyConstraint("guild_id", "source_message_id"),
    )
    op.create_index(
        "starboard_guild_source_pair",
        "starboard_messages",
        ["guild_id", "source_message_id"],
        unique=True,
    )


def downgrade() -> None:
    """Drop all PxlsBot tables."""
    op.drop_index("starboard_guild_source_pair", table_name="starboard_messages")
    op.drop_table("starboard_messages")
    op.drop_index("ix_auditlog_guild_id", table_name="auditlog")
    op.drop_table("auditlog")
    op.drop_table("config")
