"""
tests/test_starboard_service.py — Starboard Mirror Reconciler
==============================================================

Drives :class:`StarboardService` against an in-memory database and mocked
Discord channels: preconditions, the count/threshold decision table, stale
mappings, bulk clears, re-entry, and partial failures.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import discord
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from pxlsbot.constants import STAR_EMOJI
from pxlsbot.database.models import GuildConfig
from pxlsbot.services.starboard_service import (
    MirrorAction,
    ReactionEvent,
    ReactionKind,
    StarboardService,
    can_manage_starboard,
    count_stars,
)
from pxlsbot.services.starboard_store import get_board_message_id, upsert_board_message


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


GUILD_ID = 1000
BOARD_ID = 500
SOURCE_CHANNEL_ID = 42
SOURCE_ID = 7777
MIRROR_ID = 9000

FULL_PERMS = discord.Permissions(
    view_channel=True,
    send_messages=True,
    read_message_history=True,
    embed_links=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _not_found() -> discord.NotFound:
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Message")


def _configure(engine, *, channel: str | None = str(BOARD_ID), threshold: int | None = 3):
    with Session(engine) as session:
        session.add(GuildConfig(
            guild_id=str(GUILD_ID),
            starboard_channel=channel,
            starboard_threshold=threshold,
        ))
        session.commit()


AUTHOR_ID = 31
MEMBER_COLOR = discord.Color(0x3366FF)


def _make_source_message(stars: int) -> MagicMock:
    # A REST-fetched author is a plain User without a colour.
    author = MagicMock(spec=discord.User)
    author.id = AUTHOR_ID
    author.__str__.return_value = "painter"
    author.color = discord.Color.default()
    author.display_avatar.with_size.return_value.url = "https://cdn.example/avatar.png"

    msg = MagicMock(spec=discord.Message)
    msg.id = SOURCE_ID
    msg.guild = MagicMock(spec=discord.Guild)
    msg.guild.fetch_member = AsyncMock(return_value=SimpleNamespace(color=MEMBER_COLOR))
    msg.channel = SimpleNamespace(id=SOURCE_CHANNEL_ID, name="general")
    msg.content = "look at this"
    msg.created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    msg.author = author
    msg.embeds = []
    msg.attachments = []
    msg.jump_url = f"https://discord.com/channels/{GUILD_ID}/{SOURCE_CHANNEL_ID}/{SOURCE_ID}"
    msg.reactions = [SimpleNamespace(emoji=STAR_EMOJI, count=stars)] if stars else []
    return msg


def _make_mirror(message_id: int = MIRROR_ID) -> MagicMock:
    mirror = MagicMock(spec=discord.Message)
    mirror.id = message_id
    mirror.edit = AsyncMock()
    mirror.delete = AsyncMock()
    return mirror


def _make_env(*, stars: int, mirror: MagicMock | None = None, perms=FULL_PERMS):
    """Bot with a starboard channel and a source channel holding one message."""
    board = MagicMock(spec=discord.TextChannel)
    board.id = BOARD_ID
    board.guild = MagicMock()
    board.permissions_for.return_value = perms
    sent = _make_mirror(MIRROR_ID + 1)
    board.send = AsyncMock(return_value=sent)
    if mirror is None:
        board.fetch_message = AsyncMock(side_effect=_not_found())
    else:
        board.fetch_message = AsyncMock(return_value=mirror)

    source_channel = MagicMock(spec=discord.TextChannel)
    source_channel.id = SOURCE_CHANNEL_ID
    source_channel.fetch_message = AsyncMock(return_value=_make_source_message(stars))

    channels = {BOARD_ID: board, SOURCE_CHANNEL_ID: source_channel}
    bot = MagicMock()
    bot.get_channel = lambda channel_id: channels.get(channel_id)
    bot.fetch_channel = AsyncMock(side_effect=_not_found())
    return bot, board, source_channel, sent


def _event(kind: ReactionKind = ReactionKind.ADD, channel_id: int = SOURCE_CHANNEL_ID):
    return ReactionEvent(
        kind=kind,
        guild_id=GUILD_ID,
        channel_id=channel_id,
        message_id=SOURCE_ID,
    )


def _mapping(engine) -> str | None:
    return get_board_message_id(engine, str(GUILD_ID), str(SOURCE_ID))


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------
class TestHelpers:
    def test_count_stars_ignores_other_emoji(self):
        msg = SimpleNamespace(reactions=[
            SimpleNamespace(emoji="👍", count=9),
            SimpleNamespace(emoji=STAR_EMOJI, count=4),
        ])
        assert count_stars(msg) == 4

    def test_count_stars_zero_without_star(self):
        assert count_stars(SimpleNamespace(reactions=[])) == 0

    def test_can_manage_requires_every_permission(self):
        channel = MagicMock(spec=discord.TextChannel)
        channel.guild = MagicMock()
        channel.permissions_for.return_value = FULL_PERMS
        assert can_manage_starboard(channel)

        channel.permissions_for.return_value = discord.Permissions(
            view_channel=True, send_messages=True, read_message_history=True,
        )
        assert not can_manage_starboard(channel)


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------
class TestPreconditions:
    def test_no_starboard_configured(self, db_engine):
        _configure(db_engine, channel=None)
        bot, board, source_channel, _ = _make_env(stars=10)

        result = run_async(StarboardService(bot, db_engine).handle(_event()))

        assert result is MirrorAction.NONE
        board.send.assert_not_awaited()
        source_channel.fetch_message.assert_not_awaited()

    def test_no_config_row(self, db_engine):
        bot, board, _, _ = _make_env(stars=10)
        result = run_async(StarboardService(bot, db_engine).handle(_event()))
        assert result is MirrorAction.NONE
        board.send.assert_not_awaited()

    def test_channel_no_longer_exists(self, db_engine):
        _configure(db_engine, channel="123456")
        bot, board, _, _ = _make_env(stars=10)
        result = run_async(StarboardService(bot, db_engine).handle(_event()))
        assert result is MirrorAction.NONE
        board.send.assert_not_awaited()

    def test_missing_permissions(self, db_engine):
        _configure(db_engine)
        bot, board, _, _ = _make_env(
            stars=10, perms=discord.Permissions(view_channel=True, send_messages=True),
        )
        result = run_async(StarboardService(bot, db_engine).handle(_event()))
        assert result is MirrorAction.NONE
        board.send.assert_not_awaited()

    def test_stars_inside_starboard_are_ignored(self, db_engine):
        _configure(db_engine)
        bot, board, _, _ = _make_env(stars=10)

        result = run_async(
            StarboardService(bot, db_engine).handle(_event(channel_id=BOARD_ID))
        )

        assert result is MirrorAction.NONE
        board.send.assert_not_awaited()
        board.fetch_message.assert_not_awaited()
        assert _mapping(db_engine) is None


# ---------------------------------------------------------------------------
# Decision table
# ---------------------------------------------------------------------------
class TestDecisionTable:
    def test_below_threshold_without_mirror_does_nothing(self, db_engine):
        _configure(db_engine, threshold=3)
        bot, board, _, _ = _make_env(stars=2)

        result = run_async(StarboardService(bot, db_engine).handle(_event()))

        assert result is MirrorAction.NONE
        board.send.assert_not_awaited()
        assert _mapping(db_engine) is None

    def test_reaching_threshold_creates_mirror(self, db_engine):
        _configure(db_engine, threshold=3)
        bot, board, _, sent = _make_env(stars=3)

        result = run_async(StarboardService(bot, db_engine).handle(_event()))

        assert result is MirrorAction.CREATED
        board.send.assert_awaited_once()
        embed = board.send.await_args.kwargs["embed"]
        assert f"\\{STAR_EMOJI} 3 •" in embed.fields[-1].value
        assert _mapping(db_engine) == str(sent.id)

    def test_mirror_uses_member_display_colour(self, db_engine):
        _configure(db_engine, threshold=3)
        bot, board, source_channel, _ = _make_env(stars=3)
        source = source_channel.fetch_message.return_value

        run_async(StarboardService(bot, db_engine).handle(_event()))

        source.guild.fetch_member.assert_awaited_once_with(AUTHOR_ID)
        assert board.send.await_args.kwargs["embed"].color == MEMBER_COLOR

    def test_author_no_longer_a_member_has_no_colour(self, db_engine):
        _configure(db_engine, threshold=3)
        bot, board, source_channel, _ = _make_env(stars=3)
        source = source_channel.fetch_message.return_value
        source.guild.fetch_member = AsyncMock(side_effect=_not_found())

        result = run_async(StarboardService(bot, db_engine).handle(_event()))

        assert result is MirrorAction.CREATED
        assert board.send.await_args.kwargs["embed"].color is None

    def test_default_threshold_applies_when_unset(self, db_engine):
        _configure(db_engine, threshold=None)
        bot, board, _, _ = _make_env(stars=3)
        assert run_async(StarboardService(bot, db_engine).handle(_event())) is MirrorAction.NONE

        bot, board, _, _ = _make_env(stars=4)
        assert run_async(StarboardService(bot, db_engine).handle(_event())) is MirrorAction.CREATED

    def test_existing_mirror_is_edited(self, db_engine):
        _configure(db_engine, threshold=3)
        upsert_board_message(db_engine, str(GUILD_ID), str(SOURCE_ID), str(MIRROR_ID))
        mirror = _make_mirror()
        bot, board, _, _ = _make_env(stars=5, mirror=mirror)

        result = run_async(StarboardService(bot, db_engine).handle(_event()))

        assert result is MirrorAction.EDITED
        mirror.edit.assert_awaited_once()
        board.send.assert_not_awaited()
        assert _mapping(db_engine) == str(MIRROR_ID)

    def test_existing_mirror_kept_below_threshold(self, db_engine):
        _configure(db_engine, threshold=3)
        upsert_board_message(db_engine, str(GUILD_ID), str(SOURCE_ID), str(MIRROR_ID))
        mirror = _make_mirror()
        bot, _, _, _ = _make_env(stars=1, mirror=mirror)

        result = run_async(StarboardService(bot, db_engine).handle(_event(ReactionKind.REMOVE)))

        assert result is MirrorAction.EDITED
        mirror.delete.assert_not_awaited()
        assert "1 •" in mirror.edit.await_args.kwargs["embed"].fields[-1].value

    def test_zero_stars_removes_mirror_and_mapping(self, db_engine):
        _configure(db_engine)
        upsert_board_message(db_engine, str(GUILD_ID), str(SOURCE_ID), str(MIRROR_ID))
        mirror = _make_mirror()
        bot, _, _, _ = _make_env(stars=0, mirror=mirror)

        result = run_async(StarboardService(bot, db_engine).handle(_event(ReactionKind.REMOVE)))

        assert result is MirrorAction.DELETED
        mirror.delete.assert_awaited_once()
        assert _mapping(db_engine) is None

    def test_zero_stars_without_mirror_drops_stale_mapping(self, db_engine):
        _configure(db_engine)
        upsert_board_message(db_engine, str(GUILD_ID), str(SOURCE_ID), str(MIRROR_ID))
        bot, board, _, _ = _make_env(stars=0, mirror=None)

        result = run_async(StarboardService(bot, db_engine).handle(_event(ReactionKind.REMOVE)))

        assert result is MirrorAction.NONE
        board.send.assert_not_awaited()
        assert _mapping(db_engine) is None

    def test_deleted_mirror_is_recreated(self, db_engine):
        _configure(db_engine, threshold=3)
        upsert_board_message(db_engine, str(GUILD_ID), str(SOURCE_ID), str(MIRROR_ID))
        bot, board, _, sent = _make_env(stars=4, mirror=None)

        result = run_async(StarboardService(bot, db_engine).handle(_event()))

        assert result is MirrorAction.CREATED
        board.send.assert_awaited_once()
        assert _mapping(db_engine) == str(sent.id)

    def test_deleted_source_removes_mirror(self, db_engine):
        _configure(db_engine)
        upsert_board_message(db_engine, str(GUILD_ID), str(SOURCE_ID), str(MIRROR_ID))
        mirror = _make_mirror()
        bot, _, source_channel, _ = _make_env(stars=5, mirror=mirror)
        source_channel.fetch_message.side_effect = _not_found()

        result = run_async(StarboardService(bot, db_engine).handle(_event()))

        assert result is MirrorAction.DELETED
        assert _mapping(db_engine) is None


# ---------------------------------------------------------------------------
# Bulk clears
# ---------------------------------------------------------------------------
class TestBulkClear:
    def test_clear_all_removes_mirror(self, db_engine):
        _configure(db_engine)
        upsert_board_message(db_engine, str(GUILD_ID), str(SOURCE_ID), str(MIRROR_ID))
        mirror = _make_mirror()
        bot, _, source_channel, _ = _make_env(stars=9, mirror=mirror)

        result = run_async(StarboardService(bot, db_engine).handle(_event(ReactionKind.CLEAR)))

        assert result is MirrorAction.DELETED
        mirror.delete.assert_awaited_once()
        source_channel.fetch_message.assert_not_awaited()
        assert _mapping(db_engine) is None

    def test_clear_inside_starboard_is_ignored(self, db_engine):
        _configure(db_engine)
        upsert_board_message(db_engine, str(GUILD_ID), str(SOURCE_ID), str(MIRROR_ID))
        mirror = _make_mirror()
        bot, board, _, _ = _make_env(stars=0, mirror=mirror)

        result = run_async(
            StarboardService(bot, db_engine).handle(
                _event(ReactionKind.CLEAR, channel_id=BOARD_ID)
            )
        )

        assert result is MirrorAction.NONE
        board.fetch_message.assert_not_awaited()
        mirror.delete.assert_not_awaited()
        assert _mapping(db_engine) == str(MIRROR_ID)

    def test_clear_emoji_without_mapping_is_noop(self, db_engine):
        _configure(db_engine)
        bot, board, _, _ = _make_env(stars=0)

        result = run_async(
            StarboardService(bot, db_engine).handle(_event(ReactionKind.CLEAR_EMOJI))
        )

        assert result is MirrorAction.NONE
        board.fetch_message.assert_not_awaited()


# ---------------------------------------------------------------------------
# Re-entry and failures
# ---------------------------------------------------------------------------
class TestReentryAndFailures:
    def test_replaying_an_event_does_not_duplicate_mirror(self, db_engine):
        _configure(db_engine, threshold=3)
        bot, board, _, sent = _make_env(stars=3)
        service = StarboardService(bot, db_engine)

        first = run_async(service.handle(_event()))
        board.fetch_message = AsyncMock(return_value=sent)
        second = run_async(service.handle(_event()))

        assert (first, second) == (MirrorAction.CREATED, MirrorAction.EDITED)
        board.send.assert_awaited_once()
        sent.edit.assert_awaited_once()

    def test_mapping_write_failure_removes_fresh_mirror(self, db_engine):
        _configure(db_engine, threshold=3)
        bot, board, _, sent = _make_env(stars=3)

        with patch(
            "pxlsbot.services.starboard_service.upsert_board_message",
            side_effect=OperationalError("INSERT", {}, Exception("db down")),
        ):
            result = run_async(StarboardService(bot, db_engine).handle(_event()))

        assert result is MirrorAction.FAILED
        board.send.assert_awaited_once()
        sent.delete.assert_awaited_once()
        assert _mapping(db_engine) is None

    def test_platform_errors_are_contained(self, db_engine):
        _configure(db_engine, threshold=3)
        bot, board, _, _ = _make_env(stars=3)
        board.send.side_effect = RuntimeError("gateway hiccup")

        result = run_async(StarboardService(bot, db_engine).handle(_event()))

        assert result is MirrorAction.FAILED
        assert _mapping(db_engine) is None
