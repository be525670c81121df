"""Atelier request router.

Decides whether a canvas request should run through lightweight service
connectors, the heavyweight orchestrator, or a hybrid path, and learns from
reported execution outcomes.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
