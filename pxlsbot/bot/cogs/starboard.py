"""
pxlsbot.bot.cogs.starboard — Starboard Reaction Listeners
==========================================================

Listens for raw reaction events (so reactions on uncached messages still
count), keeps only the ones that can change a message's ⭐ tally, and
queues them per source message for the
:class:`~pxlsbot.services.starboard_service.StarboardService`.

Nothing in a listener awaits before the event is queued, so events for one
message are reconciled in the order the gateway delivered them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from pxlsbot.constants import STAR_EMOJI
from pxlsbot.services.message_queue import MessageQueue, TaskResult
from pxlsbot.services.starboard_service import (
    ReactionEvent,
    ReactionKind,
    StarboardService,
)

if TYPE_CHECKING:
    from pxlsbot.bot.core import PxlsBot

logger = logging.getLogger(__name__)

RawReactionPayload = (
    discord.RawReactionActionEvent
    | discord.RawReactionClearEvent
    | discord.RawReactionClearEmojiEvent
)


def normalize_reaction(
    kind: ReactionKind, payload: RawReactionPayload
) -> ReactionEvent | None:
    """Turn a raw gateway payload into a :class:`ReactionEvent`.

    Returns ``None`` for DMs and, except on a clear-all, for any emoji other
    than ⭐.
    """
    if payload.guild_id is None:
        return None
    if kind is not ReactionKind.CLEAR and str(payload.emoji) != STAR_EMOJI:
        return None
    return ReactionEvent(
        kind=kind,
        guild_id=payload.guild_id,
        channel_id=payload.channel_id,
        message_id=payload.message_id,
    )


class Starboard(commands.Cog, name="Starboard"):
    """Mirrors messages that collect enough ⭐ reactions."""

    def __init__(self, bot: PxlsBot) -> None:
        self.bot = bot
        self.service = StarboardService(bot, bot.engine)
        self.queue = MessageQueue(timeout=bot.cfg.starboard_task_timeout)

    async def submit(self, event: ReactionEvent | None) -> TaskResult | None:
        """Queue *event* behind earlier events for the same message."""
        if event is None:
            return None
        logger.debug(
            "Star reaction %s on message %s in guild %s",
            event.kind, event.message_id, event.guild_id,
        )
        return await self.queue.enqueue(
            event.message_id, lambda: self.service.handle(event)
        )

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        await self.submit(normalize_reaction(ReactionKind.ADD, payload))

    @commands.Cog.listener()
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        await self.submit(normalize_reaction(ReactionKind.REMOVE, payload))

    @commands.Cog.listener()
    async def on_raw_reaction_clear(self, payload: discord.RawReactionClearEvent) -> None:
        """Every reaction was removed from a message at once."""
        await self.submit(normalize_reaction(ReactionKind.CLEAR, payload))

    @commands.Cog.listener()
    async def on_raw_reaction_clear_emoji(
        self, payload: discord.RawReactionClearEmojiEvent
    ) -> None:
        await self.submit(normalize_reaction(ReactionKind.CLEAR_EMOJI, payload))


async def setup(bot: PxlsBot) -> None:
    await bot.add_cog(Starboard(bot))
