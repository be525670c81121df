"""Configuration module for the Atelier request router.

Usage:
    from atelier.config import get_settings

    settings = get_settings()
    print(settings.routing.history_capacity)
"""

from atelier.config.settings import (
    AtelierSettings,
    RoutingSettings,
    LoggingSettings,
    get_settings,
    reload_settings,
    clear_settings_cache,
    DEFAULT_HISTORY_CAPACITY,
    DEFAULT_SIMPLE_SCORE_MAX,
    DEFAULT_MEDIUM_SCORE_MAX,
    DEFAULT_EMA_WEIGHT,
)

__all__ = [
    "AtelierSettings",
    "RoutingSettings",
    "LoggingSettings",
    "get_settings",
    "reload_settings",
    "clear_settings_cache",
    "DEFAULT_HISTORY_CAPACITY",
    "DEFAULT_SIMPLE_SCORE_MAX",
    "DEFAULT_MEDIUM_SCORE_MAX",
    "DEFAULT_EMA_WEIGHT",
]
