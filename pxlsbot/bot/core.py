"""
pxlsbot.bot.core — Bot Instance & Cog Loader
=============================================

Defines :class:`PxlsBot`, a ``commands.Bot`` subclass that:

1. Stores the shared config (``bot.cfg``) and DB engine (``bot.engine``)
   so every Cog can reach them via ``self.bot.cfg`` / ``self.bot.engine``.
2. Resolves the command prefix per guild from the ``config`` table, falling
   back to ``bot_prefix`` from ``config.yaml`` (and always in DMs).
3. Enforces the per-command ``extras`` contract globally: commands marked
   ``guild_only`` are refused in DMs and ``permissions`` must be held by the
   invoking member.
4. Loads every Cog listed in :data:`EXTENSIONS`.
5. Applies the configured presence once connected.

Every command declares its metadata in ``extras``::

    @commands.command(
        name="config",
        extras={
            "id": "config",
            "category": "Utility",
            "permissions": discord.Permissions(manage_guild=True),
            "guild_only": True,
        },
    )
"""

from __future__ import annotations

import logging

import discord
from discord.ext import commands
from sqlalchemy import Engine

from pxlsbot.config import PresenceConfig, PxlsBotConfig
from pxlsbot.database.engine import run_db
from pxlsbot.services.config_service import get_config_value

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "pxlsbot.bot.cogs.starboard",
    "pxlsbot.bot.cogs.config",
    "pxlsbot.bot.cogs.auditlog",
    "pxlsbot.bot.cogs.help",
    "pxlsbot.bot.cogs.ping",
    "pxlsbot.bot.cogs.coordinates",
]

GUILD_ONLY_REPLY = "This command may only be run in a guild."
NO_PERMISSION_REPLY = "You do not have permission to run this command."
COMMAND_ERROR_REPLY = "An error occurred while running this command."


async def get_guild_prefix(bot: PxlsBot, message: discord.Message) -> str:
    """Prefix for *message*: the guild's stored prefix, else the global one."""
    if message.guild is None:
        return bot.cfg.bot_prefix
    return await run_db(
        get_config_value,
        bot.engine,
        str(message.guild.id),
        "prefix",
        bot.cfg.bot_prefix,
    )


def build_presence(
    presence: PresenceConfig,
) -> tuple[discord.Status, discord.BaseActivity | None]:
    """Translate the ``presence`` config block into discord.py objects.

    Raises
    ------
    ValueError
        If ``status`` or ``activity_type`` is not a known value.
    """
    status = discord.Status(presence.status)
    if not presence.activity_name:
        return status, None
    try:
        activity_type = discord.ActivityType[presence.activity_type]
    except KeyError:
        raise ValueError(f"unknown activity type {presence.activity_type!r}") from None
    return status, discord.Activity(type=activity_type, name=presence.activity_name)


class PxlsBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`PxlsBotConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine` connected to PostgreSQL.
    """

    def __init__(self, cfg: PxlsBotConfig, engine: Engine) -> None:
        # Privileged: MESSAGE_CONTENT (prefix commands, coordinate links).
        # Reactions and guild messages are in default().
        intents = discord.Intents.default()
        intents.message_content = True
        intents.presences = False

        super().__init__(
            command_prefix=get_guild_prefix,
            intents=intents,
            help_command=None,
            case_insensitive=True,
        )

        self.cfg = cfg
        self.engine = engine

        self.add_check(self.check_command_access)

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load all Cog extensions; a broken one is logged and skipped."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user, self.user.id)
        logger.info("Serving %d guilds", len(self.guilds))

        try:
            status, activity = build_presence(self.cfg.presence)
        except ValueError as exc:
            logger.warning("Invalid presence configuration, ignoring: %s", exc)
            return
        await self.change_presence(status=status, activity=activity)

    # -----------------------------------------------------------------------
    # Command access
    # -----------------------------------------------------------------------
    async def check_command_access(self, ctx: commands.Context) -> bool:
        """Global check applying each command's ``extras`` restrictions."""
        # Subcommands inherit the restrictions of their top-level command.
        command = (ctx.command.root_parent or ctx.command) if ctx.command else None
        extras = command.extras if command else {}
        if ctx.guild is None:
            if extras.get("guild_only"):
                raise commands.NoPrivateMessage(GUILD_ONLY_REPLY)
            return True

        required: discord.Permissions | None = extras.get("permissions")
        if required is None or required.value == 0:
            return True
        held = ctx.channel.permissions_for(ctx.author)
        if required <= held:
            return True
        missing = [name for name, value in required if value and not getattr(held, name)]
        logger.debug(
            "%s attempted to execute command %r in guild %r without permission",
            ctx.author, ctx.command.qualified_name, ctx.guild.name,
        )
        raise commands.MissingPermissions(missing)

    async def on_command(self, ctx: commands.Context) -> None:
        logger.debug(
            "%s is executing command %r in %s",
            ctx.author, ctx.command.qualified_name,
            f"guild {ctx.guild.name!r}" if ctx.guild else "DMs",
        )

    async def on_command_error(
        self, ctx: commands.Context, error: commands.CommandError
    ) -> None:
        """Short user-facing replies; details go to the log."""
        if isinstance(error, commands.CommandNotFound):
            return
        if isinstance(error, commands.NoPrivateMessage):
            await ctx.send(GUILD_ONLY_REPLY)
            return
        if isinstance(error, (commands.MissingPermissions, commands.CheckFailure)):
            await ctx.send(NO_PERMISSION_REPLY)
            return
        if isinstance(error, commands.UserInputError):
            await ctx.send(f"Usage: `{ctx.clean_prefix}{ctx.command.usage or ctx.command.name}`")
            return

        original = getattr(error, "original", error)
        logger.error(
            "Error running command %r (message %s)",
            ctx.command.qualified_name if ctx.command else None,
            ctx.message.id,
            exc_info=original,
        )
        await ctx.send(COMMAND_ERROR_REPLY)
