"""Logging configuration for speedbench."""
from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "SPEEDBENCH_LOG_LEVEL"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def resolve_level(verbosity: int = 0) -> int:
    """Map ``-v`` count, then ``SPEEDBENCH_LOG_LEVEL``, to a logging level.

    Default is WARNING, so degraded probes and selection fallbacks are
    visible without drowning the report.
    """
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    return _LEVELS.get(name, logging.WARNING)


def configure_logging(verbosity: int = 0, console: Optional[Console] = None) -> int:
    """Route all log records through a rich handler on stderr.

    Returns the level that was applied.
    """
    level = resolve_level(verbosity)
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    logging.getLogger(__name__).debug("Logging configured: level=%s", logging.getLevelName(level))
    return level
