"""Core module for the Atelier request router.

Contains the exception hierarchy shared by every other module.

Usage:
    from atelier.core import AtelierError

    try:
        settings = get_settings()
    except AtelierError as e:
        print(f"Error: {e.code} - {e.message}")
"""

from atelier.core.exceptions import (
    AtelierError,
    CatalogError,
    ClassificationError,
    ClassifierDisposedError,
    ConfigurationError,
)

__all__ = [
    "AtelierError",
    "CatalogError",
    "ClassificationError",
    "ClassifierDisposedError",
    "ConfigurationError",
]
