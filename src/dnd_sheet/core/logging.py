"""Structured logging configuration for the character sheet engine.

Logging is built on structlog so that every rules decision can carry the
character and command it belongs to. Development output is rendered for
the console, production output as JSON lines.

Example:
    >>> from dnd_sheet.core.logging import get_logger, log_context
    >>> logger = get_logger(__name__)
    >>> with log_context(character_id="char-1", command="equip_item"):
    ...     logger.info("Item equipped", entry_id="inv-1", unequipped=["inv-2"])
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from dnd_sheet.core.config import Settings


APP_NAME = "dnd_sheet"

STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def add_app_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag every entry with the package name.

    Args:
        logger: The wrapped logger instance.
        method_name: Name of the logging method called.
        event_dict: The event dictionary to modify.

    Returns:
        The event dictionary with ``app`` set.
    """
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def _renderer(json_format: bool) -> list[Processor]:
    if json_format:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)]


def configure_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, render JSON lines instead of console output.
        log_file: Optional path that also receives standard library records.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_app_context,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *_renderer(json_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(format=STDLIB_FORMAT, level=log_level, handlers=handlers, force=True)

    # Worker pool shutdown chatter
    logging.getLogger("concurrent.futures").setLevel(logging.WARNING)


def configure_from_settings(settings: Settings) -> None:
    """Configure logging from the ``log_level`` and ``log_json`` settings."""
    configure_logging(level=settings.log_level, json_format=settings.log_json)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structlog logger, typically for ``__name__``."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind context variables for every entry logged inside the block.

    Context variables do not cross into worker threads, so code running
    on the sync pool binds its own context.

    Args:
        **kwargs: Key-value pairs added to each entry.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "log_context",
]
