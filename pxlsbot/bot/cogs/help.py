"""
pxlsbot.bot.cogs.help — Help Command
=====================================

``help`` lists commands grouped by their ``extras["category"]``;
``help <command>`` shows description, usage (with this guild's prefix),
aliases and the permissions required to run it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from pxlsbot.services.embeds import build_command_help_embed, build_help_overview_embed

if TYPE_CHECKING:
    from pxlsbot.bot.core import PxlsBot

DEFAULT_CATEGORY = "Other"


def group_by_category(all_commands: list[commands.Command]) -> dict[str, list[str]]:
    """Command names per category, both in alphabetical order."""
    categories: dict[str, list[str]] = {}
    for command in sorted(all_commands, key=lambda c: c.name):
        if command.hidden:
            continue
        category = command.extras.get("category", DEFAULT_CATEGORY)
        categories.setdefault(category, []).append(command.name)
    return dict(sorted(categories.items()))


class Help(commands.Cog, name="Help"):
    """Command reference."""

    def __init__(self, bot: PxlsBot) -> None:
        self.bot = bot

    @commands.command(
        name="help",
        aliases=["?"],
        description=(
            "Returns a list of commands, or if specified, "
            "information about a specific command."
        ),
        usage="help [command]",
        extras={
            "id": "help",
            "category": "Utility",
            "permissions": discord.Permissions.none(),
        },
    )
    async def help(self, ctx: commands.Context, *, name: str | None = None) -> None:
        if name is None:
            await ctx.send(
                embed=build_help_overview_embed(
                    group_by_category(list(self.bot.commands)), ctx.clean_prefix
                )
            )
            return

        command = self.bot.get_command(name.lower())
        if command is None or command.hidden:
            await ctx.send(f'Could not find a command with the name or alias "{name}".')
            return

        await ctx.send(
            embed=build_command_help_embed(
                name=command.name,
                description=command.description or "No description.",
                usage=command.usage or command.name,
                aliases=[command.name, *command.aliases],
                permissions=command.extras.get("permissions", discord.Permissions.none()),
                prefix=ctx.clean_prefix,
            )
        )


async def setup(bot: PxlsBot) -> None:
    await bot.add_cog(Help(bot))
