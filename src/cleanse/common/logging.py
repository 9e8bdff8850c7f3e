"""Logging setup for the command line."""

from __future__ import annotations

import logging
import os
from typing import Final

LOG_LEVEL_ENV: Final[str] = "CLEANSE_LOG_LEVEL"
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# chatty at INFO; only their warnings are interesting on a terminal
_QUIET_LOGGERS: Final[tuple[str, ...]] = ("alembic.runtime.migration", "sqlalchemy.engine")


def resolve_log_level(value: int | str | None, default: int = logging.INFO) -> int:
    """Turn ``"debug"``, ``"INFO"``, ``"10"`` or an int into a logging level."""

    if value is None:
        return default
    if isinstance(value, int):
        return value
    text = value.strip()
    if not text:
        return default
    if text.isdigit():
        return int(text)
    level = logging.getLevelNamesMapping().get(text.upper())
    if level is None:
        raise ValueError(f"Unknown log level: {value!r}")
    return level


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Initialise the root logger with a terse format suitable for CLI output.

    ``level`` falls back to ``CLEANSE_LOG_LEVEL`` and then to INFO. Pass
    ``force=True`` to replace handlers installed earlier.
    """

    resolved = resolve_log_level(level if level is not None else os.getenv(LOG_LEVEL_ENV))
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
