"""
Logging helpers.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed by the command-line entry point through ``configure_logging``.
Notable events are logged as one-line JSON objects so they can be grepped or
shipped as structured records.
"""

from __future__ import annotations

import json
import logging
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Emit ``{"event": event, **fields}`` as a single JSON log message."""
    if not logger.isEnabledFor(level):
        return
    logger.log(level, json.dumps({"event": event, **fields}, default=str, sort_keys=True))


def configure_logging(level: str | int = "WARNING") -> logging.Logger:
    """Attach a console handler to the ``imgcache`` logger (idempotent)."""
    logger = logging.getLogger("imgcache")
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    if not any(getattr(h, "_imgcache_console", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._imgcache_console = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
