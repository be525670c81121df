"""Logging setup for the Atelier request router.

Modules log through ``logging.getLogger(__name__)``; this module configures
the ``atelier`` logger those loggers propagate to.

Key Components:
    - AtelierLogFormatter: ``[TIMESTAMP] [LEVEL] [COMPONENT] message`` lines
    - AtelierLogAdapter: Logger adapter carrying a fixed component name
    - setup_logging: Configure stream and optional rotating file output
    - reset_logging: Remove configured handlers (for tests and reloads)

Example:
    [2026-10-19 10:15:32] [INFO] [CLASSIFIER] Task analyzed: simple -> connectors
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Optional, TextIO

from atelier.config.settings import AtelierSettings, get_settings


# =============================================================================
# Constants
# =============================================================================

ROOT_LOGGER_NAME = "atelier"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


# =============================================================================
# Custom Log Formatter
# =============================================================================


class AtelierLogFormatter(logging.Formatter):
    """Log formatter with a component column.

    Format:
        [TIMESTAMP] [LEVEL] [COMPONENT] Message

    The component defaults to the last segment of the logger name,
    upper-cased, e.g. ``atelier.routing.classifier`` -> ``CLASSIFIER``.
    """

    STANDARD_FORMAT = "[%(asctime)s] [%(levelname)s] [%(component)s] %(message)s"
    COMPACT_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self, include_component: bool = True) -> None:
        super().__init__(
            fmt=self.STANDARD_FORMAT if include_component else self.COMPACT_FORMAT,
            datefmt=self.DATE_FORMAT,
        )
        self.include_component = include_component

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "component"):
            record.component = record.name.split(".")[-1].upper()
        return super().format(record)


class AtelierLogAdapter(logging.LoggerAdapter):
    """Logger adapter that adds a component to every record.

    Example:
        >>> log = AtelierLogAdapter(logging.getLogger(__name__), {"component": "ROUTER"})
        >>> log.info("Route chosen")
    """

    def process(
        self,
        msg: str,
        kwargs: dict[str, Any],
    ) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


# =============================================================================
# Logging Setup
# =============================================================================

_configured_logger: Optional[logging.Logger] = None


def setup_logging(
    settings: Optional[AtelierSettings] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the ``atelier`` logger from settings.

    Adds a stream handler and, when ``settings.logging.log_file`` is set, a
    rotating file handler. Calling it again returns the configured logger
    unchanged; use reset_logging() first to reconfigure.

    Args:
        settings: Settings to read; defaults to get_settings().
        stream: Stream for console output (default stderr).

    Returns:
        The configured ``atelier`` logger.
    """
    global _configured_logger

    if _configured_logger is not None:
        return _configured_logger

    settings = settings or get_settings()
    level = LOG_LEVELS[settings.effective_log_level]
    formatter = AtelierLogFormatter(include_component=settings.logging.include_component)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_file = settings.logging.log_file
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=settings.logging.max_bytes,
            backupCount=settings.logging.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent duplicate output through the root logger
    logger.propagate = False

    _configured_logger = logger
    return logger


def reset_logging() -> None:
    """Remove handlers installed by setup_logging (for testing)."""
    global _configured_logger
    if _configured_logger is not None:
        for handler in list(_configured_logger.handlers):
            _configured_logger.removeHandler(handler)
            handler.close()
        _configured_logger.setLevel(logging.NOTSET)
        _configured_logger.propagate = True
    _configured_logger = None


__all__ = [
    "ROOT_LOGGER_NAME",
    "LOG_LEVELS",
    "AtelierLogFormatter",
    "AtelierLogAdapter",
    "setup_logging",
    "reset_logging",
]
