"""Shared infrastructure: logging and asyncio helpers."""

from .asyncio_utils import add_task_exception_logger, create_logged_task
from .logging_config import configure_logging
from .logging_utils import LoggerLike, StructuredLogger, ensure_structured_logger, get_module_logger

__all__ = [
    "LoggerLike",
    "StructuredLogger",
    "add_task_exception_logger",
    "configure_logging",
    "create_logged_task",
    "ensure_structured_logger",
    "get_module_logger",
]
