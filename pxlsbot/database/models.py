"""
pxlsbot.database.models — SQLAlchemy 2.0 Data Models
=====================================================

Tables:
- config             — Per-guild settings (prefix, starboard channel/threshold)
- auditlog           — Append-only trail of configuration commands
- starboard_messages — Source message → mirrored starboard message

Discord snowflakes are stored as ``VARCHAR(20)`` strings.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    DateTime,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

SNOWFLAKE_LENGTH = 20


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all PxlsBot ORM models."""


# ---------------------------------------------------------------------------
# GuildConfig — one row per guild, one column per config key
# ---------------------------------------------------------------------------
class GuildConfig(Base):
    """Per-guild settings.

    A ``NULL`` column means "use the default" — see the column catalogue in
    :mod:`pxlsbot.services.config_service`.
    """
    __tablename__ = "config"

    guild_id: Mapped[str] = mapped_column(String(SNOWFLAKE_LENGTH), primary_key=True)
    prefix: Mapped[str | None] = mapped_column(Text, default=None)
    starboard_channel: Mapped[str | None] = mapped_column(
        String(SNOWFLAKE_LENGTH), default=None
    )
    starboard_threshold: Mapped[int | None] = mapped_column(SmallInteger, default=None)

    def __repr__(self) -> str:
        return f"<GuildConfig guild={self.guild_id} prefix={self.prefix!r}>"


# ---------------------------------------------------------------------------
# AuditLog — append-only command trail
# ---------------------------------------------------------------------------
class AuditLog(Base):
    __tablename__ = "auditlog"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[str] = mapped_column(String(SNOWFLAKE_LENGTH), nullable=False)
    user_id: Mapped[str] = mapped_column(String(SNOWFLAKE_LENGTH), nullable=False)
    command_id: Mapped[str | None] = mapped_column(Text, default=None)
    message: Mapped[str | None] = mapped_column(Text, default=None)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_auditlog_guild_id", "guild_id", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog id={self.id} guild={self.guild_id} "
            f"command={self.command_id!r}>"
        )


# ---------------------------------------------------------------------------
# StarboardMessage — source message → mirror mapping
# ---------------------------------------------------------------------------
class StarboardMessage(Base):
    """Links a starred source message to its copy in the starboard channel.

    At most one row per ``(guild_id, source_message_id)``; the unique index
    is the conflict target for the single-statement upsert in
    :mod:`pxlsbot.services.starboard_store`.
    """
    __tablename__ = "starboard_messages"

    guild_id: Mapped[str] = mapped_column(
        String(SNOWFLAKE_LENGTH), primary_key=True, nullable=False
    )
    source_message_id: Mapped[str] = mapped_column(
        String(SNOWFLAKE_LENGTH), primary_key=True, nullable=False
    )
    board_message_id: Mapped[str] = mapped_column(
        String(SNOWFLAKE_LENGTH), nullable=False
    )

    __table_args__ = (
        Index(
            "starboard_guild_source_pair",
            "guild_id", "source_message_id",
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<StarboardMessage guild={self.guild_id} "
            f"source={self.source_message_id} board={self.board_message_id}>"
        )
