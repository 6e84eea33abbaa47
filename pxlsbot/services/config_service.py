"""
pxlsbot.services.config_service — Per-Guild Configuration
==========================================================

Typed read/write access to the ``config`` table.  Each guild has one row
with one column per key in :data:`COLUMNS`; ``NULL`` means "use the
default".

The column catalogue also owns user-facing parsing and formatting, so the
``config`` command can accept ``#channel`` mentions or names and echo values
back the way users typed them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import discord
from sqlalchemy import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pxlsbot.constants import DEFAULT_STARBOARD_THRESHOLD, resolve_channel_id
from pxlsbot.database.engine import get_session
from pxlsbot.database.models import GuildConfig

logger = logging.getLogger(__name__)

SMALLINT_MAX = 32767
UNSET = "<unset>"


class ConfigValueError(ValueError):
    """Raised when a user-supplied config value can't be stored."""


# ---------------------------------------------------------------------------
# Column catalogue
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ConfigColumn:
    """How one config key is parsed, defaulted, and displayed."""

    name: str
    parse: Callable[[discord.Guild, str], Any]
    format: Callable[[discord.Guild, Any], str] = lambda _guild, value: str(value)
    default: Any = None


def _parse_prefix(_guild: discord.Guild, value: str) -> str:
    return value


def _find_channel(guild: discord.Guild, value: str) -> discord.abc.GuildChannel | None:
    channel_id = resolve_channel_id(value)
    if channel_id is not None:
        return guild.get_channel(int(channel_id))
    lowered = value.lower().lstrip("#")
    return discord.utils.find(lambda c: c.name.lower() == lowered, guild.channels)


def _parse_starboard_channel(guild: discord.Guild, value: str) -> str | None:
    if value.lower() == "none":
        return None
    channel = _find_channel(guild, value)
    if channel is None:
        raise ConfigValueError("channel not found")
    if not isinstance(channel, discord.TextChannel):
        raise ConfigValueError("channel must be a text channel")
    return str(channel.id)


def _format_starboard_channel(guild: discord.Guild, value: str) -> str:
    channel = guild.get_channel(int(value)) if guild is not None else None
    return f"#{channel.name}" if channel is not None else f"<#{value}>"


def _parse_starboard_threshold(_guild: discord.Guild, value: str) -> int:
    try:
        threshold = int(value)
    except ValueError:
        raise ConfigValueError("not a number") from None
    if threshold <= 1:
        raise ConfigValueError("threshold is too small")
    if threshold > SMALLINT_MAX:
        raise ConfigValueError("threshold is too big")
    return threshold


COLUMNS: dict[str, ConfigColumn] = {
    "prefix": ConfigColumn(name="prefix", parse=_parse_prefix),
    "starboard_channel": ConfigColumn(
        name="starboard_channel",
        parse=_parse_starboard_channel,
        format=_format_starboard_channel,
    ),
    "starboard_threshold": ConfigColumn(
        name="starboard_threshold",
        parse=_parse_starboard_threshold,
        default=DEFAULT_STARBOARD_THRESHOLD,
    ),
}


def parse_config_value(guild: discord.Guild, key: str, raw: str) -> Any:
    """Convert user input for *key* into the value stored in the DB.

    Raises
    ------
    KeyError
        If *key* is not a known column.
    ConfigValueError
        If *raw* is not acceptable for the column.
    """
    return COLUMNS[key].parse(guild, raw)


def format_config_value(guild: discord.Guild, key: str, value: Any) -> str:
    """Render a stored value for display, ``<unset>`` for ``None``."""
    if value is None:
        return UNSET
    return COLUMNS[key].format(guild, value)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_config_value(
    engine: Engine, guild_id: str, key: str, default: Any = None
) -> Any:
    """Return the stored value of *key* for the guild, or its default.

    *default* overrides the catalogue default (used for ``prefix``, whose
    default lives in ``config.yaml``).  Read errors are logged and the
    default is returned.
    """
    column = COLUMNS[key]
    fallback = default if default is not None else column.default
    try:
        with Session(engine) as session:
            row = session.get(GuildConfig, guild_id)
            if row is None:
                return fallback
            value = getattr(row, key)
    except SQLAlchemyError:
        logger.exception("Error getting %s config value for guild %s", key, guild_id)
        return fallback
    return fallback if value is None else value


def get_guild_config(engine: Engine, guild_id: str) -> dict[str, Any] | None:
    """Return every stored column for the guild, or ``None`` if no row."""
    with Session(engine) as session:
        row = session.get(GuildConfig, guild_id)
        if row is None:
            return None
        return {key: getattr(row, key) for key in COLUMNS}


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def ensure_guild_config(engine: Engine, guild_id: str) -> bool:
    """Create the default row for a guild.  Returns ``True`` if created."""
    with Session(engine) as session:
        if session.get(GuildConfig, guild_id) is not None:
            return False
        session.add(GuildConfig(guild_id=guild_id))
        try:
            session.commit()
        except IntegrityError:
            # Another writer created it first.
            session.rollback()
            return False
    logger.info("Generated default configuration for guild %s", guild_id)
    return True


def set_config_value(engine: Engine, guild_id: str, key: str, value: Any) -> bool:
    """Store *value* for *key*.  Returns ``False`` if the guild has no row."""
    if key not in COLUMNS:
        raise KeyError(key)
    with get_session(engine) as session:
        row = session.get(GuildConfig, guild_id)
        if row is None:
            return False
        setattr(row, key, value)
    logger.info("Guild %s config %s set to %r", guild_id, key, value)
    return True
