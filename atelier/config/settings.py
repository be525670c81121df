"""Pydantic settings for the Atelier request router.

This module defines the AtelierSettings class that loads configuration from
environment variables and .env files. It uses pydantic-settings for automatic
environment variable parsing and validation.

Settings Categories:
    - Core: debug mode, log level, deployment environment
    - Routing: history capacity, complexity score thresholds, learning rate
    - Logging: optional rotating log file

Environment Variables:
    ATELIER_DEBUG: Enable debug mode (default: false)
    ATELIER_LOG_LEVEL: Logging level (default: INFO)
    ATELIER_ENVIRONMENT: Deployment environment (default: development)
    ATELIER_ROUTING__HISTORY_CAPACITY: Analyses kept in history (default: 100)
    ATELIER_ROUTING__SIMPLE_SCORE_MAX: Highest score classed simple (default: 3)
    ATELIER_ROUTING__MEDIUM_SCORE_MAX: Highest score classed medium (default: 6)
    ATELIER_ROUTING__EMA_WEIGHT: Weight of a new execution time sample (default: 0.1)
    ATELIER_LOGGING__LOG_FILE: Path of the rotating log file (default: unset)

Usage:
    from atelier.config.settings import get_settings

    settings = get_settings()
    print(settings.routing.history_capacity)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from atelier.core.exceptions import ConfigurationError


# =============================================================================
# Default Constants
# =============================================================================

DEFAULT_HISTORY_CAPACITY = 100
"""Number of analyses retained before the oldest is evicted."""

DEFAULT_SIMPLE_SCORE_MAX = 3
"""Highest fallback score still classified as simple."""

DEFAULT_MEDIUM_SCORE_MAX = 6
"""Highest fallback score still classified as medium."""

DEFAULT_EMA_WEIGHT = 0.1
"""Weight given to a new execution time sample in the moving average."""


# =============================================================================
# Nested Settings Models
# =============================================================================


class RoutingSettings(BaseModel):
    """Settings for request classification and learning bookkeeping.

    Attributes:
        history_capacity: Maximum analyses kept in the FIFO history.
        simple_score_max: Scores at or below this value are simple.
        medium_score_max: Scores at or below this value (and above
            simple_score_max) are medium; higher scores are complex.
        ema_weight: Weight of the newest sample in the execution time
            moving average. The running average keeps ``1 - ema_weight``.
    """

    history_capacity: int = Field(
        default=DEFAULT_HISTORY_CAPACITY,
        ge=1,
        description="Analyses retained in history"
    )
    simple_score_max: int = Field(
        default=DEFAULT_SIMPLE_SCORE_MAX,
        ge=0,
        description="Highest score classified as simple"
    )
    medium_score_max: int = Field(
        default=DEFAULT_MEDIUM_SCORE_MAX,
        ge=0,
        description="Highest score classified as medium"
    )
    ema_weight: float = Field(
        default=DEFAULT_EMA_WEIGHT,
        gt=0.0,
        lt=1.0,
        description="Weight of a new sample in the execution time average"
    )

    @model_validator(mode="after")
    def validate_thresholds(self) -> "RoutingSettings":
        """Ensure the medium threshold sits above the simple threshold."""
        if self.medium_score_max <= self.simple_score_max:
            raise ValueError(
                f"medium_score_max ({self.medium_score_max}) must be greater than "
                f"simple_score_max ({self.simple_score_max})"
            )
        return self


class LoggingSettings(BaseModel):
    """Settings for log output.

    Attributes:
        log_file: Optional path for a rotating log file.
        max_bytes: Size at which the log file rotates.
        backup_count: Number of rotated files to keep.
        include_component: Whether to print the component column.
    """

    log_file: Optional[Path] = Field(
        default=None,
        description="Rotating log file path (stream only when unset)"
    )
    max_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Rotate the log file at this size"
    )
    backup_count: int = Field(
        default=5,
        ge=0,
        description="Rotated log files to keep"
    )
    include_component: bool = Field(
        default=True,
        description="Include the component column in log lines"
    )

    @field_validator("log_file", mode="before")
    @classmethod
    def convert_to_path(cls, v: Any) -> Optional[Path]:
        """Convert string paths to Path objects, treating blanks as unset."""
        if isinstance(v, str):
            return Path(v) if v.strip() else None
        return v


# =============================================================================
# Main Settings Class
# =============================================================================


class AtelierSettings(BaseSettings):
    """Main settings class for the Atelier request router.

    Environment variables use the ATELIER_ prefix and ``__`` as the nested
    delimiter, e.g. ``ATELIER_ROUTING__HISTORY_CAPACITY=50``.

    Attributes:
        debug: Enable debug mode for verbose logging.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        environment: Deployment environment (development, staging, production, test).
        routing: Classification and learning configuration.
        logging: Log output configuration.
    """

    model_config = SettingsConfigDict(
        env_prefix="ATELIER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    environment: str = Field(
        default="development",
        description="Deployment environment"
    )

    routing: RoutingSettings = Field(
        default_factory=RoutingSettings,
        description="Routing configuration"
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper().strip()
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        return normalized

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate and normalize environment."""
        valid_envs = {"development", "staging", "production", "test"}
        normalized = v.lower().strip()
        if normalized not in valid_envs:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {', '.join(sorted(valid_envs))}"
            )
        return normalized

    @property
    def effective_log_level(self) -> str:
        """Log level after applying debug mode."""
        return "DEBUG" if self.debug else self.log_level

    def to_dict(self) -> dict[str, Any]:
        """Export settings as a JSON-friendly dictionary."""
        return self.model_dump(mode="json")


# =============================================================================
# Singleton Pattern
# =============================================================================

_settings_instance: Optional[AtelierSettings] = None


def _load_settings() -> AtelierSettings:
    """Build settings from the environment, raising ConfigurationError on bad values."""
    try:
        return AtelierSettings()
    except ValidationError as e:
        first = e.errors()[0] if e.error_count() else {}
        config_key = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ConfigurationError(
            f"Invalid Atelier configuration: {first.get('msg', e)}",
            config_key=config_key,
            validation_details=str(e),
        ) from e


def get_settings() -> AtelierSettings:
    """Get the cached settings instance.

    The settings are created once and cached for subsequent calls to avoid
    repeated .env parsing and validation.

    Returns:
        The cached AtelierSettings instance.

    Raises:
        ConfigurationError: If the environment holds invalid values.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = _load_settings()
    return _settings_instance


def reload_settings() -> AtelierSettings:
    """Reload settings from environment, clearing the cache.

    Returns:
        A fresh AtelierSettings instance.

    Raises:
        ConfigurationError: If the environment holds invalid values; the
            cache is left empty.

    Example:
        ```python
        import os
        os.environ["ATELIER_DEBUG"] = "true"
        settings = reload_settings()
        assert settings.debug is True
        ```
    """
    global _settings_instance
    _settings_instance = None
    _settings_instance = _load_settings()
    return _settings_instance


def clear_settings_cache() -> None:
    """Clear the settings cache without creating a new instance."""
    global _settings_instance
    _settings_instance = None


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
