"""
pxlsbot.services.starboard_store — Starboard Mapping Store
============================================================

Persisted ``(guild, source message) → mirrored message`` lookups for the
starboard.  Every function opens its own session, issues one statement,
and closes the session on every exit path.  Call them through
:func:`~pxlsbot.database.engine.run_db` from async code.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select
from sqlalchemy.dialects import postgresql, sqlite

from pxlsbot.database.engine import get_session
from pxlsbot.database.models import StarboardMessage

logger = logging.getLogger(__name__)

_CONFLICT_COLUMNS = ("guild_id", "source_message_id")


def _insert_for(engine: Engine):
    """Return the dialect ``insert`` construct that supports ON CONFLICT."""
    if engine.dialect.name == "postgresql":
        return postgresql.insert
    if engine.dialect.name == "sqlite":
        return sqlite.insert
    raise RuntimeError(
        f"Unsupported database dialect for starboard upserts: {engine.dialect.name}"
    )


def get_board_message_id(
    engine: Engine, guild_id: str, source_message_id: str
) -> str | None:
    """Return the mirrored message id for a source message, or ``None``."""
    with get_session(engine) as session:
        return session.scalar(
            select(StarboardMessage.board_message_id).where(
                StarboardMessage.guild_id == guild_id,
                StarboardMessage.source_message_id == source_message_id,
            )
        )


def upsert_board_message(
    engine: Engine,
    guild_id: str,
    source_message_id: str,
    board_message_id: str,
) -> None:
    """Insert the mapping, or repoint it at *board_message_id* on conflict.

    A single ``INSERT … ON CONFLICT DO UPDATE`` statement, so two writers
    racing on the same key can never leave two rows behind.
    """
    insert = _insert_for(engine)
    stmt = insert(StarboardMessage).values(
        guild_id=guild_id,
        source_message_id=source_message_id,
        board_message_id=board_message_id,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=list(_CONFLICT_COLUMNS),
        set_={"board_message_id": stmt.excluded.board_message_id},
    )
    with get_session(engine) as session:
        session.execute(stmt)

    logger.debug(
        "Starboard mapping %s/%s → %s",
        guild_id, source_message_id, board_message_id,
    )


def delete_board_message(
    engine: Engine, guild_id: str, source_message_id: str
) -> bool:
    """Delete the mapping row.  Returns ``True`` if a row was removed."""
    with get_session(engine) as session:
        result = session.execute(
            delete(StarboardMessage).where(
                StarboardMessage.guild_id == guild_id,
                StarboardMessage.source_message_id == source_message_id,
            )
        )
        return bool(result.rowcount)
