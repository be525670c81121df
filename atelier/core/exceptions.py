"""Custom exceptions for the Atelier request router.

This module defines the exception hierarchy used throughout the router. All
exceptions inherit from AtelierError, enabling catch-all handling while still
allowing specific exception types.

Exception Hierarchy:
    AtelierError (base)
    ├── ConfigurationError: Invalid configuration or settings
    ├── CatalogError: Invalid service catalog handed to a classifier
    └── ClassificationError: A classification stage failed
        └── ClassifierDisposedError: Classification after dispose()

Classification errors never reach callers of RequestClassifier.classify();
they are captured and turned into a degraded record. They remain useful to
tests and to code that calls the internal stages directly.
"""

from typing import Any, Optional


class AtelierError(Exception):
    """Base exception for all Atelier errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        context: Additional context information about the error
        recoverable: Whether the error is potentially recoverable
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "ATELIER_ERROR"
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_log_dict(self) -> dict[str, Any]:
        """Return structured dict for logging.

        Returns:
            Dictionary with error details suitable for structured logging
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ConfigurationError(AtelierError):
    """Raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that caused the error
        validation_details: Details about why validation failed
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        validation_details: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if config_key:
            context["config_key"] = config_key
        if validation_details:
            context["validation_details"] = validation_details
        super().__init__(message, code="CONFIG_ERROR", context=context, **kwargs)
        self.config_key = config_key
        self.validation_details = validation_details


class CatalogError(AtelierError):
    """Raised when a service catalog cannot be used for classification.

    Attributes:
        service_name: The offending service name, if any
    """

    def __init__(self, message: str, service_name: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if service_name:
            context["service_name"] = service_name
        super().__init__(message, code="CATALOG_ERROR", context=context, **kwargs)
        self.service_name = service_name


class ClassificationError(AtelierError):
    """Raised when a stage of request classification fails.

    Attributes:
        stage: Name of the stage that failed (services, actions, ...)
        request_text: The request being classified, when available
    """

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        request_text: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        code = kwargs.pop("code", "CLASSIFICATION_ERROR")
        if stage:
            context["stage"] = stage
        if request_text is not None:
            context["request_text"] = request_text
        kwargs.setdefault("recoverable", True)
        super().__init__(message, code=code, context=context, **kwargs)
        self.stage = stage
        self.request_text = request_text


class ClassifierDisposedError(ClassificationError):
    """Raised when a disposed classifier is asked to classify a request."""

    def __init__(self, message: str = "Classifier has been disposed", **kwargs: Any) -> None:
        kwargs.setdefault("recoverable", False)
        super().__init__(message, stage="lifecycle", code="CLASSIFIER_DISPOSED", **kwargs)


__all__ = [
    "AtelierError",
    "ConfigurationError",
    "CatalogError",
    "ClassificationError",
    "ClassifierDisposedError",
]
