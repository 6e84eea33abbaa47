"""
pxlsbot.bot.cogs.ping — Gateway Latency
========================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from pxlsbot.services.embeds import build_ping_embed

if TYPE_CHECKING:
    from pxlsbot.bot.core import PxlsBot


class Ping(commands.Cog, name="Ping"):
    def __init__(self, bot: PxlsBot) -> None:
        self.bot = bot

    def shard_latencies(self) -> list[tuple[int, float]]:
        # Unsharded clients only expose the single websocket latency.
        latencies = getattr(self.bot, "latencies", None)
        if latencies:
            return list(latencies)
        return [(self.bot.shard_id or 0, self.bot.latency)]

    @commands.command(
        name="ping",
        description="Returns the ping to Discord.",
        usage="ping",
        extras={
            "id": "ping",
            "category": "Utility",
            "permissions": discord.Permissions.none(),
        },
    )
    async def ping(self, ctx: commands.Context) -> None:
        await ctx.send(embed=build_ping_embed(self.bot.latency, self.shard_latencies()))


async def setup(bot: PxlsBot) -> None:
    await bot.add_cog(Ping(bot))
