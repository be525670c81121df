"""Request routing for Atelier.

Classifies free-text requests into a complexity tier and an execution route
(connectors, orchestrator or hybrid), and keeps the bounded history and
learning aggregates used to tune routing from reported outcomes.

Key Components:
    RequestClassifier: Classification pipeline with fail-open error handling.
    AnalysisRecord: One classified request.
    LearningStore: Thread-safe FIFO history and outcome aggregates.
    ComplexityTier / ExecutionRoute / ActionType: Classification vocabulary.
    ServiceDescriptor / ActionDescriptor: Catalog entries.

Usage:
    from atelier.routing import RequestClassifier, ExecutionRoute

    classifier = RequestClassifier()
    record = classifier.classify("Show me my Notion pages")
    if record.route == ExecutionRoute.CONNECTORS:
        ...
    classifier.report_outcome(record.timestamp_ms, True, 380)

Example:
    >>> from atelier.routing import RequestClassifier
    >>> record = RequestClassifier().classify("Show me my Notion pages")
    >>> record.complexity.value, record.route.value
    ('simple', 'connectors')
"""

from atelier.routing.catalog import (
    ActionDescriptor,
    ActionType,
    ComplexityTier,
    ExecutionRoute,
    SAMPLE_REQUESTS,
    SERVICE_CATALOG,
    ServiceDescriptor,
)
from atelier.routing.classifier import (
    RequestClassifier,
    clear_request_classifier,
    get_request_classifier,
)
from atelier.routing.learning import LearningStore
from atelier.routing.records import (
    AnalysisRecord,
    LearningAggregate,
    OutcomeReport,
    StatsSnapshot,
)

__all__ = [
    "ActionDescriptor",
    "ActionType",
    "ComplexityTier",
    "ExecutionRoute",
    "SAMPLE_REQUESTS",
    "SERVICE_CATALOG",
    "ServiceDescriptor",
    "RequestClassifier",
    "clear_request_classifier",
    "get_request_classifier",
    "LearningStore",
    "AnalysisRecord",
    "LearningAggregate",
    "OutcomeReport",
    "StatsSnapshot",
]
