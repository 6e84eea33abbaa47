"""
pxlsbot.constants — Shared Constants & Helpers
===============================================

Single source of truth for presentation constants, Discord embed limits,
and the small text helpers used by cogs and services.
"""

from __future__ import annotations

import re

import discord

# ---------------------------------------------------------------------------
# Starboard
# ---------------------------------------------------------------------------
STAR_EMOJI = "\u2b50"  # ⭐
ZERO_WIDTH_SPACE = "\u200b"
DEFAULT_STARBOARD_THRESHOLD = 4

# ---------------------------------------------------------------------------
# Discord embed limits
# ---------------------------------------------------------------------------
EMBED_TITLE_LIMIT = 256
EMBED_DESCRIPTION_LIMIT = 2048
EMBED_FIELD_NAME_LIMIT = 256
EMBED_FIELD_VALUE_LIMIT = 1024
EMBED_AUTHOR_LIMIT = 256
EMBED_TOTAL_LIMIT = 6000
EMBED_MAX_MIRRORED_FIELDS = 24

# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------
COLOR_SKYBLUE = discord.Color.from_rgb(0, 127, 255)
COLOR_GREEN = discord.Color.from_rgb(0, 255, 0)
COLOR_RED = discord.Color.from_rgb(255, 0, 0)


# ---------------------------------------------------------------------------
# Text processing helpers
# ---------------------------------------------------------------------------
def truncate(text: str, max_length: int, suffix: str = "…") -> str:
    """Shorten *text* to at most *max_length* characters.

    When the text is too long it is cut short by exactly enough characters
    to fit *suffix*, then the suffix is appended::

        truncate("abcdefg", 4)  ->  "abc…"
    """
    if len(text) <= max_length:
        return text
    cut = max(max_length - len(suffix), 0)
    return (text[:cut] + suffix)[:max_length]


def lerp_color(x: float, start: discord.Color, end: discord.Color) -> discord.Color:
    """Linear interpolation between two colours, *x* clamped to ``[0, 1]``."""
    x = min(max(x, 0.0), 1.0)

    def _mix(a: int, b: int) -> int:
        return int(min(max(a + (b - a) * x, 0), 255))

    return discord.Color.from_rgb(
        _mix(start.r, end.r),
        _mix(start.g, end.g),
        _mix(start.b, end.b),
    )


# ---------------------------------------------------------------------------
# Snowflakes & mentions
# ---------------------------------------------------------------------------
CHANNEL_MENTION_REGEX = re.compile(r"^<#(?P<id>\d+)>$")


def is_snowflake(value: str) -> bool:
    return value.isdigit() and 0 < len(value) <= 20


def resolve_channel_id(value: str) -> str | None:
    """Extract a channel id from a raw id or a ``<#id>`` mention."""
    if is_snowflake(value):
        return value
    match = CHANNEL_MENTION_REGEX.match(value)
    return match.group("id") if match else None
