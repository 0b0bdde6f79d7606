"""
Structured logging for pyionex.

The library only emits events through :func:`get_logger`; handlers and
rendering are set up by the application (the CLI calls
:func:`configure_logging` with the loaded settings).

Usage:
    from pyionex.utils.logging import get_logger

    logger = get_logger(__name__)
    logger.debug("Parsed IONEX header", maps=13, exponent=-1)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from pyionex.core.config import LoggingConfig


LOG_FILE_NAME = "pyionex.log"


def _handlers(
    log_level: int,
    log_dir: Path | str | None,
    log_to_file: bool,
    log_to_console: bool,
) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    # stderr keeps stdout clean for query results
    if log_to_console:
        handlers.append(logging.StreamHandler(sys.stderr))

    if log_to_file and log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path / LOG_FILE_NAME))

    for handler in handlers:
        handler.setLevel(log_level)
    return handlers


def _processors(json_format: bool) -> list[Any]:
    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def setup_logging(
    level: str = "INFO",
    log_dir: Path | str | None = None,
    log_to_file: bool = False,
    log_to_console: bool = True,
    json_format: bool = False,
) -> None:
    """Route structlog events through the standard logging module.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for ``pyionex.log``
        log_to_file: Whether to log to file (needs ``log_dir``)
        log_to_console: Whether to log to stderr
        json_format: Render events as JSON lines
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        handlers=_handlers(log_level, log_dir, log_to_file, log_to_console),
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=_processors(json_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(config: "LoggingConfig", level: str | None = None) -> None:
    """Apply a :class:`LoggingConfig`, optionally forcing another level."""
    setup_logging(
        level=level or config.level,
        log_dir=config.log_dir,
        log_to_file=config.log_to_file,
        log_to_console=config.log_to_console,
        json_format=config.json_format,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for a module (pass ``__name__``)."""
    return structlog.get_logger(name)
