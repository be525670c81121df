"""Telemetry module for the Atelier request router.

Provides log formatting and logger configuration.

Example:
    >>> from atelier.telemetry import setup_logging
    >>> logger = setup_logging()
    >>> logger.name
    'atelier'
"""

from atelier.telemetry.logging import (
    AtelierLogAdapter,
    AtelierLogFormatter,
    reset_logging,
    setup_logging,
)

__all__ = [
    "AtelierLogAdapter",
    "AtelierLogFormatter",
    "reset_logging",
    "setup_logging",
]
