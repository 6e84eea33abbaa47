"""
pxlsbot.bot.cogs.coordinates — Canvas Coordinate Links
=======================================================

Replies with a canvas link whenever a message contains ``(x, y[, scale])``,
and provides ``coords x y [scale]`` / ``coords x,y[,scale]`` for the same
link on demand.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from pxlsbot.services.coordinates import (
    build_coordinates_url,
    find_coordinates,
    parse_coordinate_args,
)

if TYPE_CHECKING:
    from pxlsbot.bot.core import PxlsBot

logger = logging.getLogger(__name__)


class Coordinates(commands.Cog, name="Coordinates"):
    """Links to spots on the canvas."""

    def __init__(self, bot: PxlsBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """Link any parenthesised coordinates posted in chat."""
        if message.author.bot:
            return
        coords = find_coordinates(message.content)
        if coords is None:
            return
        try:
            await message.channel.send(build_coordinates_url(self.bot.cfg.game_url, coords))
        except discord.HTTPException:
            logger.exception(
                "Could not send coordinates link in channel %s", message.channel.id,
            )

    @commands.command(
        name="coords",
        aliases=["coordinates"],
        description="Prints Pxls coordinates.",
        usage="coords (x) (y) [zoom]",
        extras={
            "id": "coordinates",
            "category": "Utility",
            "permissions": discord.Permissions.none(),
        },
    )
    async def coords(self, ctx: commands.Context, *args: str) -> None:
        coords = parse_coordinate_args(list(args))
        if coords is None:
            return
        await ctx.send(build_coordinates_url(self.bot.cfg.game_url, coords))


async def setup(bot: PxlsBot) -> None:
    await bot.add_cog(Coordinates(bot))
