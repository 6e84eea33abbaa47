"""
pxlsbot.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` for the bot's soft settings (default prefix, game
URL, presence, logging, starboard tuning).  Secrets (``DISCORD_TOKEN``,
``DATABASE_URL``) stay in ``.env``.  Per-guild settings live in the
``config`` database table, see :mod:`pxlsbot.services.config_service`.

Usage::

    from pxlsbot.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.bot_prefix)        # "!"
    print(cfg.game_url)          # "https://pxls.space"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_GAME_HOST = "pxls.space"
DEFAULT_TASK_TIMEOUT = 30.0


# ---------------------------------------------------------------------------
# Typed settings objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PresenceConfig:
    """What the bot shows under its name once logged in."""

    status: str = "online"
    activity_type: str = "playing"
    activity_name: str | None = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: str = "INFO"
    save_to_file: bool = False
    directory: str = "logs"


@dataclass(frozen=True, slots=True)
class PxlsBotConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Discord
    bot_prefix: str

    # Game links
    game_url_secure: bool = True
    game_url_host: str = DEFAULT_GAME_HOST

    presence: PresenceConfig = field(default_factory=PresenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Seconds a single starboard task may run before it is abandoned.
    # None disables the limit.
    starboard_task_timeout: float | None = DEFAULT_TASK_TIMEOUT

    @property
    def game_url(self) -> str:
        scheme = "https" if self.game_url_secure else "http"
        return f"{scheme}://{self.game_url_host}"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> PxlsBotConfig:
    """Read *path* and return a :class:`PxlsBotConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return parse_config(raw)


def parse_config(raw: dict) -> PxlsBotConfig:
    """Build a :class:`PxlsBotConfig` from an already-parsed mapping."""
    game_url = raw.get("game_url") or {}
    presence = raw.get("presence") or {}
    log_cfg = raw.get("logging") or {}
    starboard = raw.get("starboard") or {}

    timeout = starboard.get("task_timeout", DEFAULT_TASK_TIMEOUT)

    return PxlsBotConfig(
        bot_prefix=str(raw["bot_prefix"]),
        game_url_secure=bool(game_url.get("secure", True)),
        game_url_host=str(game_url.get("host") or DEFAULT_GAME_HOST),
        presence=PresenceConfig(
            status=str(presence.get("status", "online")),
            activity_type=str(presence.get("activity_type", "playing")),
            activity_name=presence.get("activity_name"),
        ),
        logging=LoggingConfig(
            level=str(log_cfg.get("level", "INFO")).upper(),
            save_to_file=bool(log_cfg.get("save_to_file", False)),
            directory=str(log_cfg.get("directory", "logs")),
        ),
        starboard_task_timeout=float(timeout) if timeout else None,
    )
