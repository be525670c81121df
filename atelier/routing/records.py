"""Record types produced and kept by the request classifier.

Key Components:
    AnalysisRecord: One classified request with its routing decision.
    OutcomeReport: Execution result reported back for a record.
    LearningAggregate: Per ``"<complexity>-<route>"`` counters and timing.
    StatsSnapshot: Read-only view of classifier history and learning data.
    ClassificationResult: Tagged ok/error result used inside the classifier.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Optional

from atelier.core.exceptions import ClassificationError
from atelier.routing.catalog import (
    ActionDescriptor,
    ComplexityTier,
    ExecutionRoute,
    ServiceDescriptor,
)


def learning_key(complexity: ComplexityTier, route: ExecutionRoute) -> str:
    """Build the aggregate key for a complexity/route pair, e.g. ``simple-connectors``."""
    return f"{complexity.value}-{route.value}"


@dataclass(frozen=True)
class OutcomeReport:
    """Result of executing a routed request.

    Attributes:
        success: Whether the execution adapter completed the work.
        execution_time_ms: Elapsed execution time in milliseconds.
        error: Error message if the execution failed.
        reported_at_ms: Epoch milliseconds when the outcome was reported.
    """

    success: bool
    execution_time_ms: int
    error: Optional[str] = None
    reported_at_ms: int = 0

    def __post_init__(self) -> None:
        elapsed = self.execution_time_ms
        if isinstance(elapsed, bool) or not isinstance(elapsed, Real):
            raise TypeError(
                f"execution_time_ms must be a number, got {type(elapsed).__name__}"
            )
        if not math.isfinite(elapsed) or elapsed < 0:
            raise ValueError(f"execution_time_ms must be finite and >= 0, got {elapsed}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "execution_time_ms": self.execution_time_ms,
            "error": self.error,
            "reported_at_ms": self.reported_at_ms,
        }


@dataclass
class AnalysisRecord:
    """A single classified request.

    All fields are fixed at classification time except ``outcome``, which
    ``RequestClassifier.report_outcome`` fills in once execution finishes.
    Degraded records (produced when classification faults) have the same
    shape, carry ``error`` and are routed to connectors with confidence 0.1.

    Attributes:
        request_text: The raw request.
        timestamp_ms: Epoch milliseconds at classification; the lookup key
            for outcome reports.
        context: Copy of the caller-supplied context.
        services: Matched services in catalog order.
        actions: Matched action categories in declaration order.
        complexity: Assessed complexity tier.
        route: Chosen execution route.
        confidence: Heuristic confidence in [0, 1].
        reasoning: Human-readable justification lines.
        analysis_duration_ms: Time spent classifying.
        error: Fault message for degraded records.
        outcome: Execution outcome, once reported.
    """

    request_text: str
    timestamp_ms: int
    context: dict[str, Any] = field(default_factory=dict)
    services: tuple[ServiceDescriptor, ...] = ()
    actions: tuple[ActionDescriptor, ...] = ()
    complexity: ComplexityTier = ComplexityTier.SIMPLE
    route: ExecutionRoute = ExecutionRoute.CONNECTORS
    confidence: float = 0.0
    reasoning: tuple[str, ...] = ()
    analysis_duration_ms: int = 0
    error: Optional[str] = None
    outcome: Optional[OutcomeReport] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0.0-1.0, got {self.confidence}")

    @property
    def is_degraded(self) -> bool:
        """True when this record came from the fail-open path."""
        return self.error is not None

    @property
    def learning_key(self) -> str:
        return learning_key(self.complexity, self.route)

    def to_dict(self) -> dict[str, Any]:
        """Convert the record to a JSON-friendly dictionary."""
        return {
            "request_text": self.request_text,
            "timestamp_ms": self.timestamp_ms,
            "context": self.context,
            "services": [s.to_dict() for s in self.services],
            "actions": [a.to_dict() for a in self.actions],
            "complexity": self.complexity.value,
            "route": self.route.value,
            "confidence": self.confidence,
            "reasoning": list(self.reasoning),
            "analysis_duration_ms": self.analysis_duration_ms,
            "error": self.error,
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }


@dataclass
class LearningAggregate:
    """Outcome statistics for one complexity/route pair.

    Attributes:
        count: Number of classifications with this pair.
        success: Number of successful outcomes reported.
        avg_execution_time_ms: Exponential moving average of reported
            execution times, starting from 0.
    """

    count: int = 0
    success: int = 0
    avg_execution_time_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        if self.count == 0:
            return 0.0
        return self.success / self.count

    def record_outcome(self, success: bool, execution_time_ms: float, weight: float) -> None:
        """Fold one outcome into the counters.

        Args:
            success: Whether the execution succeeded.
            execution_time_ms: Elapsed execution time.
            weight: Weight of the new sample; the previous average keeps
                ``1 - weight``.
        """
        # Average first so a bad sample leaves both counters untouched
        average = self.avg_execution_time_ms * (1.0 - weight) + execution_time_ms * weight
        self.avg_execution_time_ms = average
        if success:
            self.success += 1

    def copy(self) -> "LearningAggregate":
        return LearningAggregate(
            count=self.count,
            success=self.success,
            avg_execution_time_ms=self.avg_execution_time_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "success": self.success,
            "avg_execution_time_ms": self.avg_execution_time_ms,
            "success_rate": self.success_rate,
        }


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time statistics over classifier history.

    Attributes:
        total_analyses: Records currently held in history.
        route_distribution: Route value -> record count.
        complexity_distribution: Complexity value -> record count.
        average_analysis_time_ms: Mean classification time, 0 when empty.
        learning: Aggregate key -> copy of the aggregate.
    """

    total_analyses: int
    route_distribution: dict[str, int]
    complexity_distribution: dict[str, int]
    average_analysis_time_ms: float
    learning: dict[str, LearningAggregate]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_analyses": self.total_analyses,
            "route_distribution": dict(self.route_distribution),
            "complexity_distribution": dict(self.complexity_distribution),
            "average_analysis_time_ms": self.average_analysis_time_ms,
            "learning": {key: agg.to_dict() for key, agg in self.learning.items()},
        }


@dataclass(frozen=True)
class ClassificationResult:
    """Tagged result of the internal classification pipeline.

    Exactly one of ``record`` and ``error`` is set.
    """

    record: Optional[AnalysisRecord] = None
    error: Optional[ClassificationError] = None

    def __post_init__(self) -> None:
        if (self.record is None) == (self.error is None):
            raise ValueError("ClassificationResult needs exactly one of record or error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, record: AnalysisRecord) -> "ClassificationResult":
        return cls(record=record)

    @classmethod
    def failure(cls, error: ClassificationError) -> "ClassificationResult":
        return cls(error=error)


__all__ = [
    "learning_key",
    "OutcomeReport",
    "AnalysisRecord",
    "LearningAggregate",
    "StatsSnapshot",
    "ClassificationResult",
]
