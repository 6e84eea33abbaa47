"""
PxlsBot — Community Utility Bot for the Pxls Discord Servers
=============================================================
Coordinate links, per-guild configuration, an audit trail of admin
commands, and a starboard that mirrors highly-starred messages into a
dedicated channel.

Package layout::

    pxlsbot/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Shared constants + text helpers
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # ORM models (config, auditlog, starboard)
    ├── bot/
    │   ├── __main__.py    # Entry point
    │   ├── core.py        # Bot subclass, prefix resolution, command checks
    │   └── cogs/
    │       ├── starboard.py    # Reaction listeners → per-message queue
    │       ├── config.py       # config get/set
    │       ├── auditlog.py     # auditlog listing / detail
    │       ├── help.py         # help / ?
    │       ├── ping.py         # ping
    │       └── coordinates.py  # coords command + (x, y) listener
    └── services/
        ├── message_queue.py     # Per-key FIFO task chains
        ├── starboard_service.py # Mirror reconciliation
        ├── starboard_store.py   # (guild, source) → mirror mapping
        ├── config_service.py    # Per-guild config columns
        ├── audit_service.py     # Audit trail persistence + formatting
        ├── coordinates.py       # Coordinate parsing
        └── embeds.py            # Embed builders
"""

__version__ = "1.0.0"
