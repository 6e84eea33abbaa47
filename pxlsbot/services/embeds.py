"""
pxlsbot.services.embeds — Discord embed builders
=================================================

All embed construction lives here so cogs and the starboard reconciler
only supply data — no layout concerns.
"""

from __future__ import annotations

from collections.abc import Iterable

import discord

from pxlsbot.constants import (
    COLOR_GREEN,
    COLOR_RED,
    COLOR_SKYBLUE,
    EMBED_AUTHOR_LIMIT,
    EMBED_DESCRIPTION_LIMIT,
    EMBED_FIELD_NAME_LIMIT,
    EMBED_FIELD_VALUE_LIMIT,
    EMBED_MAX_MIRRORED_FIELDS,
    EMBED_TITLE_LIMIT,
    EMBED_TOTAL_LIMIT,
    STAR_EMOJI,
    ZERO_WIDTH_SPACE,
    lerp_color,
    truncate,
)
from pxlsbot.services.audit_service import AuditEntry

EMPTY_EMBED_PLACEHOLDER = "*<empty>*"


# ---------------------------------------------------------------------------
# Starboard
# ---------------------------------------------------------------------------
def _prominent_image_url(message: discord.Message) -> str | None:
    """First attachment, else the first source-embed image with a known size."""
    if message.attachments:
        return message.attachments[0].proxy_url
    for em in message.embeds:
        if em.image and em.image.width is not None:
            return em.image.proxy_url
    return None


def build_starboard_embed(
    message: discord.Message,
    star_count: int,
    color: discord.Color | None = None,
) -> discord.Embed:
    """Render the starboard copy of *message*.

    The whole embed (title, description, author, fields) is kept within
    Discord's 6000-character budget: source embeds are mirrored as fields
    until the budget runs out, and the field that would overflow is
    shortened to fit.
    """
    channel_name = getattr(message.channel, "name", "unknown")
    embed = discord.Embed(
        title=truncate(f"#{channel_name}", EMBED_TITLE_LIMIT),
        description=truncate(message.content or "", EMBED_DESCRIPTION_LIMIT),
        timestamp=message.created_at,
        color=color if color is not None and color.value else None,
    )
    author_name = truncate(str(message.author), EMBED_AUTHOR_LIMIT)
    embed.set_author(
        name=author_name,
        icon_url=message.author.display_avatar.with_size(32).url,
    )

    footer_name = ZERO_WIDTH_SPACE
    footer_value = f"\\{STAR_EMOJI} {star_count} • [Link]({message.jump_url})"

    used = (
        len(embed.title or "")
        + len(embed.description or "")
        + len(author_name)
        + len(footer_name)
        + len(footer_value)
    )

    source_embeds = message.embeds[:EMBED_MAX_MIRRORED_FIELDS]
    for idx, em in enumerate(source_embeds):
        name = "Embed" + (f" #{idx + 1}" if len(message.embeds) > 1 else "")
        em_title = em.title or (em.author.name if em.author else None)
        if em_title:
            name = truncate(f"{name} - {em_title}", EMBED_FIELD_NAME_LIMIT)
        value = truncate(em.description or EMPTY_EMBED_PLACEHOLDER, EMBED_FIELD_VALUE_LIMIT)

        room = EMBED_TOTAL_LIMIT - used - len(name)
        if room <= 0:
            break
        exceeded = len(value) > room
        if exceeded:
            value = truncate(value, room)
        embed.add_field(name=name, value=value, inline=False)
        if exceeded:
            break
        used += len(name) + len(value)

    image_url = _prominent_image_url(message)
    if image_url:
        embed.set_image(url=image_url)

    embed.add_field(name=footer_name, value=footer_value, inline=False)
    return embed


# ---------------------------------------------------------------------------
# Ping
# ---------------------------------------------------------------------------
def build_ping_embed(
    latency: float, shard_latencies: Iterable[tuple[int, float]]
) -> discord.Embed:
    """Average and per-shard gateway latency; green at 0 ms → red at 1 s."""
    shards = "\n".join(
        f"{shard_id}: {int(shard_latency * 1000)}ms"
        for shard_id, shard_latency in shard_latencies
    )
    return discord.Embed(
        description=(
            f"**Average Ping:** {int(latency * 1000)}ms\n\n"
            f"**Per Shard:**\n{shards}"
        ),
        color=lerp_color(latency, COLOR_GREEN, COLOR_RED),
    )


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------
def build_help_overview_embed(
    commands_by_category: dict[str, list[str]], prefix: str
) -> discord.Embed:
    embed = discord.Embed(
        description=(
            "For more information on a specific command, "
            f"try `{prefix}help [command]`."
        ),
        color=COLOR_SKYBLUE,
    )
    for category, names in commands_by_category.items():
        embed.add_field(name=category, value="\n".join(names), inline=True)
    return embed


def build_command_help_embed(
    *,
    name: str,
    description: str,
    usage: str,
    aliases: list[str],
    permissions: discord.Permissions,
    prefix: str,
) -> discord.Embed:
    """Description, usage, aliases and required permission flags."""
    flags = [flag for flag, enabled in permissions if enabled]
    lines = [
        f"**Description:** {description}",
        f"**Usage:** `{prefix}{usage}`",
        f"**Aliases:** [ `{'` | `'.join(aliases)}` ]",
        f"**Required Permissions:** {permissions.value}",
    ]
    lines.extend(f" - `{flag.upper()}`" for flag in flags)
    embed = discord.Embed(color=COLOR_SKYBLUE)
    embed.add_field(
        name=name,
        value=truncate("\n".join(lines), EMBED_FIELD_VALUE_LIMIT),
        inline=False,
    )
    return embed


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
def build_config_embed(lines: list[str]) -> discord.Embed:
    return discord.Embed(
        description=truncate("\n".join(lines), EMBED_DESCRIPTION_LIMIT),
        color=COLOR_SKYBLUE,
    )


def build_success_embed(description: str) -> discord.Embed:
    return discord.Embed(description=description, color=COLOR_GREEN)


def build_config_set_embed(key: str, display_value: str) -> discord.Embed:
    return build_success_embed(
        f"Config key `{key}` has been set to `{display_value}`."
    )


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------
def build_audit_page_embed(page: str) -> discord.Embed:
    return discord.Embed(description=page, color=COLOR_SKYBLUE)


def build_audit_detail_embed(
    entry: AuditEntry,
    *,
    user_tag: str,
    avatar_url: str | None,
) -> discord.Embed:
    embed = discord.Embed(
        title=f"Audit Log #{entry.id}",
        timestamp=entry.timestamp,
        color=COLOR_SKYBLUE,
    )
    embed.set_author(name=f"{user_tag} ({entry.user_id})", icon_url=avatar_url)
    embed.add_field(name="Command", value=f"`{entry.command_id}`", inline=False)
    embed.add_field(
        name="Message Text",
        value=truncate(
            f"```\n{entry.message or ''}```", EMBED_FIELD_VALUE_LIMIT, " ..."
        ),
        inline=False,
    )
    return embed
