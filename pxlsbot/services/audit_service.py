"""
pxlsbot.services.audit_service — Command Audit Trail
=====================================================

Records who ran which configuration command, with the full message text,
and reads the trail back for the ``auditlog`` command.

Writes never raise: a failed audit insert is logged and the command that
triggered it carries on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pxlsbot.constants import EMBED_DESCRIPTION_LIMIT
from pxlsbot.database.engine import get_session
from pxlsbot.database.models import AuditLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuditEntry:
    """Detached, read-only copy of an ``auditlog`` row."""

    id: int
    guild_id: str
    user_id: str
    command_id: str | None
    message: str | None
    timestamp: datetime


def _to_entry(row: AuditLog) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        guild_id=row.guild_id,
        user_id=row.user_id,
        command_id=row.command_id,
        message=row.message,
        timestamp=row.timestamp,
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def insert_audit_log(
    engine: Engine,
    *,
    guild_id: str,
    user_id: str,
    command_id: str,
    message: str,
) -> int | None:
    """Append an audit entry.  Returns its id, or ``None`` on failure."""
    try:
        with get_session(engine) as session:
            row = AuditLog(
                guild_id=guild_id,
                user_id=user_id,
                command_id=command_id,
                message=message,
            )
            session.add(row)
            session.flush()
            return row.id
    except SQLAlchemyError:
        logger.exception(
            "Could not insert audit log entry for guild %s user %s command %s",
            guild_id, user_id, command_id,
        )
        return None


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_audit_logs(engine: Engine, guild_id: str) -> list[AuditEntry]:
    """Every audit entry for the guild, oldest first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(AuditLog)
            .where(AuditLog.guild_id == guild_id)
            .order_by(AuditLog.id)
        ).all()
        return [_to_entry(r) for r in rows]


def get_audit_log(engine: Engine, guild_id: str, entry_id: int) -> AuditEntry | None:
    """A single entry, scoped to the guild so ids can't leak across servers."""
    with Session(engine) as session:
        row = session.scalar(
            select(AuditLog).where(
                AuditLog.guild_id == guild_id,
                AuditLog.id == entry_id,
            )
        )
        return _to_entry(row) if row is not None else None


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------
def format_timestamp(ts: datetime) -> str:
    """``YYYY-MM-DD hh:mm:ss TZ`` (UTC when the value is naive)."""
    return ts.strftime("%Y-%m-%d %H:%M:%S ") + (ts.tzname() or "UTC")


def format_audit_summary(entry: AuditEntry, user_tag: str) -> str:
    return (
        f"__**Audit Log #{entry.id}:**__ `{entry.command_id}`\n"
        f"**Time:** {format_timestamp(entry.timestamp)}\n"
        f"**User:** {user_tag}\n"
        f"({entry.user_id})"
    )


def paginate(chunks: list[str], limit: int = EMBED_DESCRIPTION_LIMIT) -> list[str]:
    """Pack newline-joined *chunks* into pages of at most *limit* characters.

    A chunk is never split; one longer than *limit* gets a page to itself.
    """
    pages: list[list[str]] = [[]]
    size = 0
    for chunk in chunks:
        extra = len(chunk) + (1 if pages[-1] else 0)
        if pages[-1] and size + extra > limit:
            pages.append([])
            size = 0
            extra = len(chunk)
        pages[-1].append(chunk)
        size += extra
    return ["\n".join(page) for page in pages if page]
