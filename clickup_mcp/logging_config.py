from __future__ import annotations

import logging
import sys

# HTTP client libraries log every ClickUp request at INFO.
CHATTY_LOGGERS = ("httpx", "httpcore")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_level(log_level: str) -> int:
    level = logging.getLevelName(log_level.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Send all server logs to stderr at `log_level` (INFO if unrecognised).

    stdout carries the stdio transport, so nothing may be written there.
    Request-level chatter from the HTTP client stays at WARNING unless
    the server runs at DEBUG.
    """
    level = _resolve_level(log_level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    return root
