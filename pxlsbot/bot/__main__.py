"""
pxlsbot.bot.__main__ — Entry point for ``python -m pxlsbot.bot``
================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings) and apply the logging section.
3. Create the SQLAlchemy engine and ensure tables exist.
4. Create the PxlsBot and hand it config + engine.
5. Start the bot (blocking — runs the asyncio event loop).

Run with::

    python -m pxlsbot.bot
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

from pxlsbot.bot.core import PxlsBot
from pxlsbot.config import LoggingConfig, load_config
from pxlsbot.database.engine import create_db_engine, init_db

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
LOG_DATEFMT = "%H:%M:%S"

logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
logger = logging.getLogger("pxlsbot")


def configure_logging(log_cfg: LoggingConfig) -> Path | None:
    """Apply the ``logging`` section of ``config.yaml``.

    Sets the root level and, when ``save_to_file`` is on, also writes to
    ``<directory>/YYYY-MM-DD.log``.  Returns the log file path, or ``None``
    when logging to the console only.
    """
    root = logging.getLogger()
    level = logging.getLevelName(log_cfg.level)
    if not isinstance(level, int):
        logger.warning("Unknown log level %r, using INFO", log_cfg.level)
        level = logging.INFO
    root.setLevel(level)

    if not log_cfg.save_to_file:
        return None

    directory = Path(log_cfg.directory)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error(
            "Could not create log directory %s (%s); logging to console only",
            directory, exc,
        )
        return None

    log_path = directory / f"{date.today().isoformat()}.log"
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    root.addHandler(handler)
    logger.info("Writing logs to %s", log_path)
    return log_path


def main() -> None:
    """Bootstrap and run PxlsBot."""

    # 1. Environment variables (secrets).
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    # 2. Soft configuration.
    cfg = load_config()
    configure_logging(cfg.logging)
    logger.info("Config loaded — default prefix %r, game %s", cfg.bot_prefix, cfg.game_url)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)

    # 4. Bot.
    bot = PxlsBot(cfg=cfg, engine=engine)

    # 5. Run (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting PxlsBot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
