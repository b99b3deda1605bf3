"""
Logging setup for the ``memorylayer`` logger tree.

One handler is owned by the library. Calling ``setup_logging`` again only
changes levels; it never stacks handlers.
"""

from __future__ import annotations

import logging
from typing import TextIO

from memorylayer.log.context import ContextFilter

ROOT_LOGGER = "memorylayer"

LOG_FORMAT = (
    "%(asctime)s %(levelname)-5s %(name)s "
    "event=%(event)s session_id=%(session_id)s operation=%(operation)s - %(message)s"
)


class MemoryLayerHandler(logging.StreamHandler):
    """Stream handler installed by ``setup_logging``."""

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(stream)
        self.setFormatter(logging.Formatter(LOG_FORMAT))
        self.addFilter(ContextFilter())


def _to_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: str | int = "INFO", stream: TextIO | None = None) -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    numeric = _to_level(level)
    logger.setLevel(numeric)
    logger.propagate = False

    handler = next((h for h in logger.handlers if isinstance(h, MemoryLayerHandler)), None)
    if handler is None:
        handler = MemoryLayerHandler(stream)
        logger.addHandler(handler)
    elif stream is not None:
        handler.setStream(stream)
    handler.setLevel(numeric)
    return logger
