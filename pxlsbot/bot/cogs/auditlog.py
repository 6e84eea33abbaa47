"""
pxlsbot.bot.cogs.auditlog — Audit Log Command
==============================================

``auditlog``        — every audited command run in this guild, paginated
``auditlog <id>``   — one entry in detail, including the full message text
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands
from sqlalchemy.exc import SQLAlchemyError

from pxlsbot.database.engine import run_db
from pxlsbot.services.audit_service import (
    format_audit_summary,
    get_audit_log,
    list_audit_logs,
    paginate,
)
from pxlsbot.services.embeds import build_audit_detail_embed, build_audit_page_embed

if TYPE_CHECKING:
    from pxlsbot.bot.core import PxlsBot

logger = logging.getLogger(__name__)


class AuditLog(commands.Cog, name="Audit Log"):
    """Who changed what, and when."""

    def __init__(self, bot: PxlsBot) -> None:
        self.bot = bot

    async def _resolve_user(self, user_id: str) -> discord.User | None:
        user = self.bot.get_user(int(user_id))
        if user is not None:
            return user
        try:
            return await self.bot.fetch_user(int(user_id))
        except discord.NotFound:
            return None

    @commands.command(
        name="auditlog",
        aliases=["al", "audit", "auditlogs"],
        description="Display actions taken with the bot.",
        usage="auditlog [id]",
        extras={
            "id": "auditlog",
            "category": "Utility",
            "permissions": discord.Permissions(manage_guild=True),
            "guild_only": True,
        },
    )
    async def auditlog(self, ctx: commands.Context, entry_id: str | None = None) -> None:
        if entry_id is None:
            await self._send_listing(ctx)
            return

        if not entry_id.isdigit():
            await ctx.send("You must specify a valid audit log ID - not a number.")
            return

        try:
            entry = await run_db(
                get_audit_log, self.bot.engine, str(ctx.guild.id), int(entry_id)
            )
        except SQLAlchemyError:
            logger.exception("Could not search for audit log by ID %s", entry_id)
            await ctx.send(f"Could not search for audit log by ID `{entry_id}`.")
            return
        if entry is None:
            await ctx.send(f"Could not find audit log by ID `{entry_id}`.")
            return

        user = await self._resolve_user(entry.user_id)
        await ctx.send(
            embed=build_audit_detail_embed(
                entry,
                user_tag=str(user) if user else "Unknown user",
                avatar_url=user.display_avatar.url if user else None,
            )
        )

    async def _send_listing(self, ctx: commands.Context) -> None:
        try:
            entries = await run_db(list_audit_logs, self.bot.engine, str(ctx.guild.id))
        except SQLAlchemyError:
            logger.exception("Could not list audit log for guild %s", ctx.guild.id)
            await ctx.send("Could not display audit log. Details have been logged.")
            return
        if not entries:
            await ctx.send("This server has no audit log entries.")
            return

        tags: dict[str, str] = {}
        summaries = []
        for entry in entries:
            if entry.user_id not in tags:
                user = await self._resolve_user(entry.user_id)
                tags[entry.user_id] = str(user) if user else "Unknown user"
            summaries.append(format_audit_summary(entry, tags[entry.user_id]))

        for page in paginate(summaries):
            await ctx.send(embed=build_audit_page_embed(page))


async def setup(bot: PxlsBot) -> None:
    await bot.add_cog(AuditLog(bot))
