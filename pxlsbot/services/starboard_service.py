"""
pxlsbot.services.starboard_service — Starboard Mirror Reconciler
=================================================================

Given a normalised :class:`ReactionEvent`, brings the starboard channel in
line with the source message's live ⭐ count:

=================  =============  ==========================================
count              live mirror?   action
=================  =============  ==========================================
0                  yes            delete mirror, delete mapping row
0                  no             drop any stale mapping row
0 < n < threshold  no             nothing
n ≥ threshold      no             render, send, upsert mapping row
n > 0              yes            re-render, edit in place
=================  =============  ==========================================

The reconciler always re-fetches the source message, so replaying an event
(or processing them late) converges on the same state.  It is meant to run
inside :class:`~pxlsbot.services.message_queue.MessageQueue` keyed by the
source message id; nothing here is safe to run concurrently for one message.

Errors never propagate: they are logged with the guild/channel/message ids
and the event is dropped.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

import discord
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from pxlsbot.constants import DEFAULT_STARBOARD_THRESHOLD, STAR_EMOJI
from pxlsbot.database.engine import run_db
from pxlsbot.services.config_service import get_config_value
from pxlsbot.services.embeds import build_starboard_embed
from pxlsbot.services.starboard_store import (
    delete_board_message,
    get_board_message_id,
    upsert_board_message,
)

logger = logging.getLogger(__name__)


class ReactionKind(enum.StrEnum):
    ADD = "add"
    REMOVE = "remove"
    CLEAR = "clear"
    CLEAR_EMOJI = "clear_emoji"


class MirrorAction(enum.StrEnum):
    """What a reconciliation pass did to the starboard."""

    NONE = "none"
    CREATED = "created"
    EDITED = "edited"
    DELETED = "deleted"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ReactionEvent:
    """A star-relevant reaction change, stripped of gateway details."""

    kind: ReactionKind
    guild_id: int
    channel_id: int
    message_id: int
    emoji: str = STAR_EMOJI

    @property
    def is_bulk_clear(self) -> bool:
        return self.kind in (ReactionKind.CLEAR, ReactionKind.CLEAR_EMOJI)


@dataclass(frozen=True, slots=True)
class _Mirror:
    """Mapping row id plus the live mirror message (``None`` if gone)."""

    board_message_id: str | None
    message: discord.Message | None


def count_stars(message: discord.Message) -> int:
    for reaction in message.reactions:
        if str(reaction.emoji) == STAR_EMOJI:
            return reaction.count
    return 0


def can_manage_starboard(channel: discord.TextChannel) -> bool:
    """Whether the bot can view, post, read history and embed in *channel*."""
    perms = channel.permissions_for(channel.guild.me)
    return (
        perms.view_channel
        and perms.send_messages
        and perms.read_message_history
        and perms.embed_links
    )


async def _author_color(message: discord.Message) -> discord.Color | None:
    """Display colour of the message author as a guild member.

    REST-fetched messages carry a plain :class:`discord.User` author, so the
    member is fetched explicitly.  Webhook and departed authors get no colour.
    """
    if message.guild is None:
        return None
    try:
        member = await message.guild.fetch_member(message.author.id)
    except discord.HTTPException:
        return None
    return member.color


class StarboardService:
    """Reconciles starboard mirrors against live reaction state.

    Parameters
    ----------
    bot:
        Connected client used to resolve channels and send/edit/delete
        messages.
    engine:
        Engine holding the ``config`` and ``starboard_messages`` tables.
    """

    def __init__(self, bot: discord.Client, engine: Engine) -> None:
        self.bot = bot
        self.engine = engine

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    async def handle(self, event: ReactionEvent) -> MirrorAction:
        """Reconcile one event; never raises."""
        try:
            if event.is_bulk_clear:
                return await self._clear(event)
            return await self._reconcile(event)
        except Exception:
            logger.exception(
                "Could not handle star reaction %s on guild %s message %s-%s",
                event.kind, event.guild_id, event.channel_id, event.message_id,
            )
            return MirrorAction.FAILED

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------
    async def get_board_channel(self, guild_id: int) -> discord.TextChannel | None:
        """The guild's configured starboard, if set, reachable and usable."""
        channel_id = await run_db(
            get_config_value, self.engine, str(guild_id), "starboard_channel"
        )
        if channel_id is None:
            return None
        channel = self.bot.get_channel(int(channel_id))
        if not isinstance(channel, discord.TextChannel):
            logger.debug(
                "Starboard channel %s for guild %s is not a reachable text channel",
                channel_id, guild_id,
            )
            return None
        if not can_manage_starboard(channel):
            logger.debug(
                "Missing permissions to manage starboard %s in guild %s",
                channel.id, guild_id,
            )
            return None
        return channel

    async def _get_mirror(
        self, guild_id: int, message_id: int, board: discord.TextChannel
    ) -> _Mirror:
        board_message_id = await run_db(
            get_board_message_id, self.engine, str(guild_id), str(message_id)
        )
        if board_message_id is None:
            return _Mirror(None, None)
        try:
            message = await board.fetch_message(int(board_message_id))
        except discord.NotFound:
            # Deleted out of band; the stale row is overwritten or dropped later.
            message = None
        return _Mirror(board_message_id, message)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    async def _reconcile(self, event: ReactionEvent) -> MirrorAction:
        board = await self.get_board_channel(event.guild_id)
        if board is None:
            return MirrorAction.NONE
        if event.channel_id == board.id:
            return MirrorAction.NONE

        mirror = await self._get_mirror(event.guild_id, event.message_id, board)
        threshold = await run_db(
            get_config_value, self.engine, str(event.guild_id), "starboard_threshold",
        ) or DEFAULT_STARBOARD_THRESHOLD

        source = await self._fetch_source(event)
        count = count_stars(source) if source is not None else 0

        if count == 0:
            return await self._remove(event, mirror)

        if mirror.message is not None:
            await mirror.message.edit(embed=await self._render(source, count))
            logger.debug(
                "Updated starboard mirror %s (%d stars) for message %s",
                mirror.message.id, count, event.message_id,
            )
            return MirrorAction.EDITED

        if count < threshold:
            return MirrorAction.NONE

        sent = await board.send(embed=await self._render(source, count))
        try:
            await run_db(
                upsert_board_message,
                self.engine,
                str(event.guild_id),
                str(event.message_id),
                str(sent.id),
            )
        except SQLAlchemyError:
            logger.exception(
                "Sent starboard mirror %s for guild %s message %s-%s "
                "but could not record it; removing the mirror",
                sent.id, event.guild_id, event.channel_id, event.message_id,
            )
            await self._delete_quietly(sent)
            return MirrorAction.FAILED
        logger.info(
            "Starred message %s in guild %s (%d stars) → mirror %s",
            event.message_id, event.guild_id, count, sent.id,
        )
        return MirrorAction.CREATED

    async def _clear(self, event: ReactionEvent) -> MirrorAction:
        board = await self.get_board_channel(event.guild_id)
        if board is None:
            return MirrorAction.NONE
        if event.channel_id == board.id:
            return MirrorAction.NONE
        mirror = await self._get_mirror(event.guild_id, event.message_id, board)
        return await self._remove(event, mirror)

    async def _remove(self, event: ReactionEvent, mirror: _Mirror) -> MirrorAction:
        action = MirrorAction.NONE
        if mirror.message is not None:
            await mirror.message.delete()
            action = MirrorAction.DELETED
        if mirror.board_message_id is not None:
            await run_db(
                delete_board_message,
                self.engine,
                str(event.guild_id),
                str(event.message_id),
            )
            logger.info(
                "Removed starboard mirror %s for message %s in guild %s",
                mirror.board_message_id, event.message_id, event.guild_id,
            )
        return action

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _fetch_source(self, event: ReactionEvent) -> discord.Message | None:
        """Live copy of the starred message; ``None`` once it is deleted."""
        channel = self.bot.get_channel(event.channel_id)
        if channel is None:
            channel = await self.bot.fetch_channel(event.channel_id)
        try:
            return await channel.fetch_message(event.message_id)
        except discord.NotFound:
            return None

    @staticmethod
    async def _render(source: discord.Message, count: int) -> discord.Embed:
        return build_starboard_embed(source, count, await _author_color(source))

    @staticmethod
    async def _delete_quietly(message: discord.Message) -> None:
        try:
            await message.delete()
        except discord.HTTPException:
            logger.warning("Could not delete orphaned starboard mirror %s", message.id)
