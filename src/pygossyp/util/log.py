from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "pygossyp"
ENV_LEVEL = "PYGOSSYP_LOG_LEVEL"
DEFAULT_LEVEL = logging.WARNING

_handler: RichHandler | None = None


def parse_level(value: str | int | None, default: int = DEFAULT_LEVEL) -> int:
    """Accepts a level name ("debug", "INFO") or number; anything else gives ``default``."""
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip():
        level = logging.getLevelName(value.strip().upper())
        if isinstance(level, int):
            return level
    return default


def configure_logging(level: str | int | None = None) -> None:
    """Route the ``pygossyp`` loggers to stderr through rich.

    The handler is installed once; later calls only change the level. With no
    explicit level the PYGOSSYP_LOG_LEVEL variable decides, then WARNING.
    """
    global _handler

    if level is None:
        level = os.environ.get(ENV_LEVEL)
    resolved = parse_level(level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)
    if _handler is None:
        _handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
        _handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(_handler)
    _handler.setLevel(resolved)
