"""Static catalogs used by the request classifier.

This module holds every fixed table the classifier consults:

    ServiceDescriptor / SERVICE_CATALOG:
        Known external services, their integration weight and whether a
        lightweight connector exists for them.
    ActionType / ActionDescriptor / ACTION_WEIGHTS / ACTION_PATTERNS:
        The six action categories, their weights (monotonically increasing
        with operational cost) and the regex that detects each one.
    ComplexityTier / ExecutionRoute:
        Classification outputs.
    COMPLEXITY_PATTERNS:
        Ordered ``(tier, pattern)`` pairs evaluated first-match-wins.

Ordering of COMPLEXITY_PATTERNS is part of the contract: every simple pattern
is tested before any medium pattern, and every medium pattern before any
complex pattern. Within a tier, patterns are tested in the listed order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


# =============================================================================
# Enumerations
# =============================================================================


class ComplexityTier(Enum):
    """Coarse classification of how much work a request implies.

    HYBRID is part of the vocabulary shared with the routing layer but is
    never produced by complexity assessment.
    """

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    HYBRID = "hybrid"


class ExecutionRoute(Enum):
    """Execution path chosen for a request.

    Attributes:
        CONNECTORS: Lightweight pre-built service integrations.
        ORCHESTRATOR: Heavyweight general-purpose execution.
        HYBRID: Starts lightweight and may escalate.
    """

    CONNECTORS = "connectors"
    ORCHESTRATOR = "orchestrator"
    HYBRID = "hybrid"


class ActionType(Enum):
    """Categories of operation a request can ask for."""

    READ = "read"
    WRITE = "write"
    TRANSFORM = "transform"
    AGGREGATE = "aggregate"
    AUTOMATE = "automate"
    MONITOR = "monitor"


# =============================================================================
# Descriptors
# =============================================================================


@dataclass(frozen=True)
class ServiceDescriptor:
    """Catalog entry for an external service.

    Attributes:
        name: Canonical, lower-case service name (may contain one hyphen).
        weight: Integration cost, at least 1.
        has_connector: Whether a lightweight connector exists.
    """

    name: str
    weight: int
    has_connector: bool

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Service name must not be empty")
        if self.weight < 1:
            raise ValueError(f"Service weight must be >= 1, got {self.weight}")

    @property
    def name_variants(self) -> tuple[str, str, str]:
        """Hyphenated, space-separated and concatenated spellings of the name."""
        return (
            self.name,
            self.name.replace("-", " "),
            self.name.replace("-", ""),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "weight": self.weight,
            "has_connector": self.has_connector,
        }


@dataclass(frozen=True)
class ActionDescriptor:
    """An action category detected in a request.

    Attributes:
        type: The action category.
        weight: Operational cost, 1 (read) through 6 (monitor).
    """

    type: ActionType
    weight: int

    def __post_init__(self) -> None:
        if not 1 <= self.weight <= 6:
            raise ValueError(f"Action weight must be 1-6, got {self.weight}")

    def to_dict(self) -> dict:
        return {"type": self.type.value, "weight": self.weight}


# =============================================================================
# Service Catalog
# =============================================================================

CANVAS_SERVICE = ServiceDescriptor("atelier-canvas", weight=2, has_connector=False)
"""The canvas itself, also matched implicitly by "board" and "canvas"."""

SERVICE_CATALOG: tuple[ServiceDescriptor, ...] = (
    ServiceDescriptor("notion", weight=1, has_connector=True),
    ServiceDescriptor("google-drive", weight=1, has_connector=True),
    ServiceDescriptor("asana", weight=1, has_connector=True),
    ServiceDescriptor("filesystem", weight=1, has_connector=True),
    ServiceDescriptor("zapier", weight=2, has_connector=True),
    ServiceDescriptor("airtable", weight=1, has_connector=True),
    ServiceDescriptor("supabase", weight=2, has_connector=False),
    CANVAS_SERVICE,
    ServiceDescriptor("custom-api", weight=3, has_connector=False),
    ServiceDescriptor("database", weight=3, has_connector=False),
)

IMPLICIT_CANVAS_KEYWORDS: tuple[str, ...] = ("board", "canvas")


# =============================================================================
# Action Catalog
# =============================================================================

ACTION_WEIGHTS: dict[ActionType, int] = {
    ActionType.READ: 1,
    ActionType.WRITE: 2,
    ActionType.TRANSFORM: 3,
    ActionType.AGGREGATE: 4,
    ActionType.AUTOMATE: 5,
    ActionType.MONITOR: 6,
}

# Unanchored on purpose: "get" also fires inside "together", as in the UI.
ACTION_PATTERNS: tuple[tuple[ActionType, re.Pattern], ...] = (
    (ActionType.READ, re.compile(r"show|list|get|find|display|view|read|open", re.IGNORECASE)),
    (ActionType.WRITE, re.compile(r"create|add|insert|save|write|update|modify|edit", re.IGNORECASE)),
    (ActionType.TRANSFORM, re.compile(r"convert|transform|change|process|generate|analyze", re.IGNORECASE)),
    (ActionType.AGGREGATE, re.compile(r"combine|merge|aggregate|collect|gather|summarize", re.IGNORECASE)),
    (ActionType.AUTOMATE, re.compile(r"automate|schedule|trigger|when|if.*then", re.IGNORECASE)),
    (ActionType.MONITOR, re.compile(r"monitor|track|watch|observe|alert", re.IGNORECASE)),
)


# =============================================================================
# Complexity Patterns
# =============================================================================

_SIMPLE_PATTERNS = (
    r"^(show|list|get|find|display).+from.+(notion|drive|asana)",
    r"^(open|read|view).+file",
    r"^(create|add).+simple.+(note|task|file)",
    r"^(search|find).+in.+(notion|drive)",
)

_MEDIUM_PATTERNS = (
    r"^(analyze|process|transform).+from.+",
    r"^(export|import).+between.+",
    r"^(generate|create).+based.+on.+",
    r"^(sync|update).+across.+",
)

_COMPLEX_PATTERNS = (
    r"^(when|if).+then.+",
    r"^(create|build).+workflow.+",
    r"^(automate|schedule).+",
    # TODO: this fires on any sentence with two "and"s ("brand and band");
    # needs word boundaries once routing accuracy is measured on real traffic.
    r"^.+and.+and.+",
    r"^(aggregate|combine|merge).+from.+multiple.+",
    r"^(monitor|track).+continuously.+",
)

COMPLEXITY_PATTERNS: tuple[tuple[ComplexityTier, re.Pattern], ...] = tuple(
    (tier, re.compile(pattern, re.IGNORECASE))
    for tier, patterns in (
        (ComplexityTier.SIMPLE, _SIMPLE_PATTERNS),
        (ComplexityTier.MEDIUM, _MEDIUM_PATTERNS),
        (ComplexityTier.COMPLEX, _COMPLEX_PATTERNS),
    )
    for pattern in patterns
)


# =============================================================================
# Sample Requests
# =============================================================================

SAMPLE_REQUESTS: tuple[str, ...] = (
    "Show me my Notion pages",
    "Create a new board with files from Google Drive and add tasks to Asana",
    "When a board has more than 10 items, export to PDF and notify on Slack",
    "Analyze all project files and create summary report",
    "Find images in Drive and create thumbnails on canvas",
)
"""Representative requests used by ``RequestClassifier.run_samples``."""


__all__ = [
    "ComplexityTier",
    "ExecutionRoute",
    "ActionType",
    "ServiceDescriptor",
    "ActionDescriptor",
    "CANVAS_SERVICE",
    "SERVICE_CATALOG",
    "IMPLICIT_CANVAS_KEYWORDS",
    "ACTION_WEIGHTS",
    "ACTION_PATTERNS",
    "COMPLEXITY_PATTERNS",
    "SAMPLE_REQUESTS",
]
