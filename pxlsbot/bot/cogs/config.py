"""
pxlsbot.bot.cogs.config — Per-Guild Configuration Command
==========================================================

``config``                     — list every key and its current value
``config get <key>``           — show one key
``config set <key> <value>``   — validate, audit, and store a value

Every invocation first makes sure the guild has a ``config`` row.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands
from sqlalchemy.exc import SQLAlchemyError

from pxlsbot.database.engine import run_db
from pxlsbot.services.audit_service import insert_audit_log
from pxlsbot.services.config_service import (
    COLUMNS,
    ConfigValueError,
    ensure_guild_config,
    format_config_value,
    get_guild_config,
    parse_config_value,
    set_config_value,
)
from pxlsbot.services.embeds import (
    build_config_embed,
    build_config_set_embed,
    build_success_embed,
)

if TYPE_CHECKING:
    from pxlsbot.bot.core import PxlsBot

logger = logging.getLogger(__name__)

COMMAND_ID = "config"
MISSING_KEY_REPLY = "You must specify a config key."
UNKNOWN_KEY_REPLY = "The specified config key is not on the column whitelist."


class Config(commands.Cog, name="Config"):
    """Guild-level bot settings."""

    def __init__(self, bot: PxlsBot) -> None:
        self.bot = bot

    async def _ensure_config(self, ctx: commands.Context) -> None:
        created = await run_db(ensure_guild_config, self.bot.engine, str(ctx.guild.id))
        if created:
            await ctx.send(embed=build_success_embed("Default configuration has been generated."))

    def _format_line(self, guild: discord.Guild, key: str, value) -> str:
        return f"{key} : `{format_config_value(guild, key, value)}`"

    @commands.group(
        name="config",
        aliases=["configure"],
        invoke_without_command=True,
        description="Configures bot settings for the guild.",
        usage="config [get (key) | set (key) (value)]",
        extras={
            "id": COMMAND_ID,
            "category": "Utility",
            "permissions": discord.Permissions(manage_guild=True),
            "guild_only": True,
        },
    )
    async def config(self, ctx: commands.Context, action: str | None = None) -> None:
        """List every key, or reject an unknown subcommand."""
        if action is not None:
            await ctx.send(f"Unknown subcommand `{action}`.")
            return

        await self._ensure_config(ctx)
        try:
            values = await run_db(get_guild_config, self.bot.engine, str(ctx.guild.id)) or {}
        except SQLAlchemyError:
            logger.exception("Could not read config for guild %s", ctx.guild.id)
            await ctx.send("Could not get config. Details have been logged.")
            return
        lines = [self._format_line(ctx.guild, key, values.get(key)) for key in COLUMNS]
        await ctx.send(embed=build_config_embed(lines))

    @config.command(name="get", usage="config get (key)")
    async def config_get(self, ctx: commands.Context, key: str | None = None) -> None:
        if key is None:
            await ctx.send(MISSING_KEY_REPLY)
            return
        key = key.lower()
        if key not in COLUMNS:
            await ctx.send(UNKNOWN_KEY_REPLY)
            return

        await self._ensure_config(ctx)
        try:
            values = await run_db(get_guild_config, self.bot.engine, str(ctx.guild.id)) or {}
        except SQLAlchemyError:
            logger.exception("Could not read config key %s for guild %s", key, ctx.guild.id)
            await ctx.send("Could not get config key. Details have been logged.")
            return
        await ctx.send(embed=build_config_embed([self._format_line(ctx.guild, key, values.get(key))]))

    @config.command(name="set", usage="config set (key) (value)")
    async def config_set(
        self, ctx: commands.Context, key: str | None = None, *, value: str | None = None
    ) -> None:
        if key is None:
            await ctx.send(MISSING_KEY_REPLY)
            return
        key = key.lower()
        if key not in COLUMNS:
            await ctx.send(UNKNOWN_KEY_REPLY)
            return
        if value is None:
            await ctx.send("You must specify a value.")
            return

        try:
            parsed = parse_config_value(ctx.guild, key, value)
        except ConfigValueError as exc:
            await ctx.send(f"The specified value is invalid: {exc}.")
            return

        await self._ensure_config(ctx)
        await run_db(
            insert_audit_log,
            self.bot.engine,
            guild_id=str(ctx.guild.id),
            user_id=str(ctx.author.id),
            command_id=COMMAND_ID,
            message=ctx.message.content,
        )
        try:
            await run_db(set_config_value, self.bot.engine, str(ctx.guild.id), key, parsed)
        except SQLAlchemyError:
            logger.exception("Could not set config key %s for guild %s", key, ctx.guild.id)
            await ctx.send("Could not set config key. Details have been logged.")
            return
        await ctx.send(
            embed=build_config_set_embed(key, format_config_value(ctx.guild, key, parsed))
        )


async def setup(bot: PxlsBot) -> None:
    await bot.add_cog(Config(bot))
