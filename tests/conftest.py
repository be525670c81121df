"""Shared pytest fixtures for Atelier router tests.

Provides:
- Settings cache and logging isolation between tests
- A deterministic millisecond clock
- Classifier factories backed by the deterministic clock
"""

from __future__ import annotations

import itertools
from typing import Callable

import pytest

from atelier.config.settings import RoutingSettings, clear_settings_cache
from atelier.routing import RequestClassifier, clear_request_classifier
from atelier.telemetry import reset_logging


CLOCK_START_MS = 1_760_000_000_000


# -----------------------------------------------------------------------------
# Isolation Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_settings_cache():
    """Clear settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def clean_logging():
    """Undo any logging configuration a test installed."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def clean_shared_classifier():
    """Drop the process-level classifier between tests."""
    clear_request_classifier()
    yield
    clear_request_classifier()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove ATELIER_ environment variables for the duration of a test."""
    import os

    for key in list(os.environ):
        if key.upper().startswith("ATELIER_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


# -----------------------------------------------------------------------------
# Classifier Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def clock() -> Callable[[], int]:
    """Clock returning strictly increasing epoch milliseconds."""
    counter = itertools.count(CLOCK_START_MS)
    return lambda: next(counter)


@pytest.fixture
def routing_settings() -> RoutingSettings:
    """Default routing settings, independent of the environment."""
    return RoutingSettings()


@pytest.fixture
def classifier(routing_settings, clock) -> RequestClassifier:
    """A fresh classifier with default settings and a deterministic clock."""
    return RequestClassifier(routing_settings, clock=clock)


@pytest.fixture
def make_classifier(routing_settings, clock):
    """Factory for classifiers with custom keyword arguments."""

    def _make(settings: RoutingSettings | None = None, **kwargs) -> RequestClassifier:
        kwargs.setdefault("clock", clock)
        return RequestClassifier(settings or routing_settings, **kwargs)

    return _make
