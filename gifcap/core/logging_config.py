"""Log output for the gifcap command line.

Handlers are attached to the ``gifcap`` package logger rather than the root
logger, so an application embedding the recorder keeps its own logging setup.
Encode workers log from their own threads, hence the thread name column.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from .logging_utils import MODULE_LOGGER_NAMESPACE

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 1024 * 1024
LOG_FILE_BACKUPS = 3

LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

_OWNED_ATTR = "_gifcap_owned"


def resolve_level(level: Union[int, str]) -> int:
    """Numeric level for a name from ``LOG_LEVELS`` or an int."""
    if isinstance(level, str):
        numeric = LOG_LEVELS.get(level.lower())
        if numeric is None:
            valid = ", ".join(sorted(LOG_LEVELS))
            raise ValueError(f"Unknown log level '{level}'. Choose from: {valid}")
        return numeric
    return int(level)


def _owned_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [handler for handler in logger.handlers if getattr(handler, _OWNED_ATTR, False)]


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    setattr(handler, _OWNED_ATTR, True)
    logger.addHandler(handler)


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    console: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    force: bool = False,
) -> logging.Logger:
    """Send gifcap logs to stdout and, optionally, a rotating log file.

    A second call only adjusts the level unless ``force`` is set, in which
    case the handlers added earlier are closed and rebuilt. Returns the
    package logger.
    """
    numeric_level = resolve_level(level)
    package = logging.getLogger(MODULE_LOGGER_NAMESPACE)
    package.setLevel(numeric_level)

    owned = _owned_handlers(package)
    if owned and not force:
        for handler in owned:
            handler.setLevel(numeric_level)
        return package

    for handler in owned:
        package.removeHandler(handler)
        handler.close()

    if console:
        _attach(package, logging.StreamHandler(sys.stdout), numeric_level)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        _attach(package, file_handler, numeric_level)

    return package


__all__ = ["configure_logging", "resolve_level", "LOG_FORMAT", "LOG_DATEFMT", "LOG_LEVELS"]
