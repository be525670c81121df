"""Request classification and execution routing.

RequestClassifier turns a free-text request into an AnalysisRecord that tells
the caller which execution path should carry out the work:

    raw request -> service extraction -> action extraction
        -> complexity assessment -> route decision -> confidence
        -> reasoning -> history recording

Every step is synchronous and deterministic apart from the timestamp. The
public ``classify`` method never raises: a fault in any stage produces a
degraded record routed to connectors with confidence 0.1, the cheapest and
lowest-risk path.

Outcomes reported through ``report_outcome`` feed per complexity/route
aggregates that dashboards read through ``get_statistics``.

Usage:
    from atelier.routing import RequestClassifier

    classifier = RequestClassifier()
    record = classifier.classify("Show me my Notion pages")
    record.route              # ExecutionRoute.CONNECTORS
    classifier.report_outcome(record.timestamp_ms, success=True, execution_time_ms=420)
    classifier.get_statistics().learning["simple-connectors"].success   # 1
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from atelier.config.settings import RoutingSettings, get_settings
from atelier.core.exceptions import (
    CatalogError,
    ClassificationError,
    ClassifierDisposedError,
)
from atelier.routing.catalog import (
    ACTION_PATTERNS,
    ACTION_WEIGHTS,
    CANVAS_SERVICE,
    COMPLEXITY_PATTERNS,
    IMPLICIT_CANVAS_KEYWORDS,
    SAMPLE_REQUESTS,
    SERVICE_CATALOG,
    ActionDescriptor,
    ComplexityTier,
    ExecutionRoute,
    ServiceDescriptor,
)
from atelier.routing.learning import LearningStore
from atelier.routing.records import (
    AnalysisRecord,
    ClassificationResult,
    OutcomeReport,
    StatsSnapshot,
)


# =============================================================================
# Module Logger
# =============================================================================

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

BASE_CONFIDENCE = 0.5
CLEAR_PATTERN_BONUS = 0.3
CONNECTOR_BONUS = 0.2
HYBRID_PENALTY = 0.1
DEGRADED_CONFIDENCE = 0.1

# Service counts used by routing and confidence rules
CONNECTOR_SERVICE_LIMIT = 2
ORCHESTRATOR_SERVICE_THRESHOLD = 3

ROUTE_EXPLANATIONS: dict[ExecutionRoute, str] = {
    ExecutionRoute.CONNECTORS: "→ Connectors: Simple task with supported services",
    ExecutionRoute.ORCHESTRATOR: "→ Orchestrator: Complex workflow or unsupported services",
    ExecutionRoute.HYBRID: "→ Hybrid: Mixed complexity, connectors first with escalation",
}

DEGRADED_REASONING = "Error in analysis, falling back to connectors"

FaultHook = Callable[[str], None]
"""Called with the stage name before each stage runs; raising simulates a fault."""


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


# =============================================================================
# Request Classifier
# =============================================================================


class RequestClassifier:
    """Classifies requests into complexity tiers and execution routes.

    Each instance owns its own history and learning aggregates, so tests and
    independent callers never share hidden state.

    Routing Rules (first match wins):
        1. simple, every service has a connector, at most 2 services
           -> connectors
        2. complex, any service without a connector, or more than 3 services
           -> orchestrator
        3. medium, or connector and non-connector services mixed -> hybrid
        4. otherwise -> connectors

    Attributes:
        settings: Routing settings (thresholds, history capacity, EMA weight).
        services: Service catalog consulted during extraction.

    Example:
        >>> classifier = RequestClassifier()
        >>> record = classifier.classify("Create a new board with files from "
        ...                              "Google Drive and add tasks to Asana")
        >>> [s.name for s in record.services]
        ['google-drive', 'asana', 'atelier-canvas']
        >>> record.route
        <ExecutionRoute.ORCHESTRATOR: 'orchestrator'>
    """

    STAGES = (
        "context",
        "services",
        "actions",
        "complexity",
        "route",
        "confidence",
        "reasoning",
        "record",
    )

    def __init__(
        self,
        settings: Optional[RoutingSettings] = None,
        *,
        services: Optional[Sequence[ServiceDescriptor]] = None,
        clock: Optional[Callable[[], int]] = None,
        fault_hook: Optional[FaultHook] = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            settings: Routing settings; defaults to ``get_settings().routing``.
            services: Service catalog; defaults to SERVICE_CATALOG.
            clock: Returns the current time in epoch milliseconds.
            fault_hook: Test hook invoked before every stage.

        Raises:
            CatalogError: If the service catalog repeats a service name.
        """
        self.settings = settings if settings is not None else get_settings().routing
        self.services: tuple[ServiceDescriptor, ...] = tuple(
            SERVICE_CATALOG if services is None else services
        )
        self._validate_catalog(self.services)
        self._canvas = next(
            (s for s in self.services if s.name == CANVAS_SERVICE.name),
            CANVAS_SERVICE,
        )
        self._clock = clock or _epoch_ms
        self._fault_hook = fault_hook
        self._store = LearningStore(
            capacity=self.settings.history_capacity,
            ema_weight=self.settings.ema_weight,
        )
        self._disposed = False
        logger.debug(
            "RequestClassifier initialized (services=%d, history_capacity=%d)",
            len(self.services),
            self.settings.history_capacity,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def disposed(self) -> bool:
        return self._disposed

    def reset(self) -> None:
        """Forget all history and learning data."""
        self._store.clear()
        logger.debug("RequestClassifier state reset")

    def dispose(self) -> None:
        """Release state; later classifications return degraded records."""
        self._store.clear()
        self._disposed = True
        logger.debug("RequestClassifier disposed")

    def __enter__(self) -> "RequestClassifier":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def classify(
        self,
        request_text: str,
        context: Optional[dict[str, Any]] = None,
    ) -> AnalysisRecord:
        """Classify a request and record the analysis.

        Args:
            request_text: The raw user request. Empty text is accepted and
                falls through to the simple/connectors defaults.
            context: Optional caller context, copied into the record.

        Returns:
            The AnalysisRecord. On any internal fault a degraded record with
            ``route=connectors`` and ``confidence=0.1`` is returned instead.
        """
        result = self._analyze(request_text, context)
        if result.ok:
            record = result.record
            logger.info(
                "Task analyzed: %s -> %s (services=%d, actions=%d, confidence=%.2f, %dms)",
                record.complexity.value,
                record.route.value,
                len(record.services),
                len(record.actions),
                record.confidence,
                record.analysis_duration_ms,
            )
            return record

        error = result.error
        logger.error(
            "Classification failed at stage %s: %s",
            error.stage,
            error.message,
            exc_info=error,
        )
        return self._degraded_record(request_text, error)

    def report_outcome(
        self,
        analysis_timestamp: int,
        success: bool,
        execution_time_ms: int,
        error: Optional[Union[BaseException, str]] = None,
    ) -> None:
        """Feed an execution outcome back into the learning aggregates.

        Outcome reporting is best-effort and never raises: an unknown
        timestamp is ignored, and an invalid report (e.g. a non-numeric
        execution time) is logged and leaves learning state unchanged.

        Args:
            analysis_timestamp: ``timestamp_ms`` of the analysed record.
            success: Whether execution succeeded.
            execution_time_ms: Elapsed execution time in milliseconds.
            error: Optional error raised by the execution adapter.
        """
        try:
            outcome = OutcomeReport(
                success=bool(success),
                execution_time_ms=execution_time_ms,
                error=str(error) if error is not None else None,
                reported_at_ms=self._now_ms(),
            )
            record = self._store.record_outcome(analysis_timestamp, outcome)
        except Exception as exc:
            logger.error(
                "Outcome report for analysis %s rejected: %s: %s",
                analysis_timestamp,
                type(exc).__name__,
                exc,
                exc_info=exc,
            )
            return

        if record is None:
            logger.debug("No analysis with timestamp %s; outcome ignored", analysis_timestamp)
            return

        logger.info(
            "Learning updated: %s (success=%s, execution_time=%dms, error=%s)",
            record.learning_key,
            success,
            execution_time_ms,
            outcome.error,
        )

    def get_statistics(self) -> StatsSnapshot:
        """Return distributions, timing and learning data over history."""
        return self._store.snapshot()

    @property
    def history(self) -> list[AnalysisRecord]:
        """Records currently held, oldest first."""
        return self._store.records()

    def run_samples(self, requests: Iterable[str] = SAMPLE_REQUESTS) -> list[AnalysisRecord]:
        """Classify a batch of requests, by default the built-in sample set."""
        return [self.classify(request) for request in requests]

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def _analyze(
        self,
        request_text: str,
        context: Optional[dict[str, Any]],
    ) -> ClassificationResult:
        """Run every stage, returning a tagged result instead of raising."""
        if self._disposed:
            return ClassificationResult.failure(ClassifierDisposedError(request_text=request_text))

        started = time.perf_counter()
        stage = self.STAGES[0]
        try:
            self._enter_stage(stage)
            context_copy = dict(context) if context is not None else {}

            stage = "services"
            self._enter_stage(stage)
            services = self.extract_services(request_text)

            stage = "actions"
            self._enter_stage(stage)
            actions = self.extract_actions(request_text)

            stage = "complexity"
            self._enter_stage(stage)
            complexity = self.assess_complexity(request_text, services, actions)

            stage = "route"
            self._enter_stage(stage)
            route = self.determine_route(complexity, services)

            stage = "confidence"
            self._enter_stage(stage)
            confidence = self.calculate_confidence(complexity, services, route)

            stage = "reasoning"
            self._enter_stage(stage)
            reasoning = self.generate_reasoning(complexity, services, actions, route)

            stage = "record"
            self._enter_stage(stage)
            record = AnalysisRecord(
                request_text=request_text,
                timestamp_ms=self._clock(),
                context=context_copy,
                services=services,
                actions=actions,
                complexity=complexity,
                route=route,
                confidence=confidence,
                reasoning=reasoning,
                analysis_duration_ms=int((time.perf_counter() - started) * 1000),
            )
            self._store.append(record)
        except Exception as exc:
            error = ClassificationError(
                f"{type(exc).__name__}: {exc}",
                stage=stage,
                request_text=request_text if isinstance(request_text, str) else None,
            )
            error.__cause__ = exc
            return ClassificationResult.failure(error)

        return ClassificationResult.success(record)

    def _enter_stage(self, stage: str) -> None:
        if self._fault_hook is not None:
            self._fault_hook(stage)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def extract_services(self, request_text: str) -> tuple[ServiceDescriptor, ...]:
        """Find catalog services named in the request.

        Each service matches on its hyphenated, space-separated or
        concatenated name. "board" or "canvas" implies the canvas service.
        """
        text = request_text.lower()
        matched: list[ServiceDescriptor] = []
        for service in self.services:
            if any(variant in text for variant in service.name_variants):
                matched.append(service)

        if self._canvas not in matched and any(kw in text for kw in IMPLICIT_CANVAS_KEYWORDS):
            matched.append(self._canvas)

        return tuple(matched)

    def extract_actions(self, request_text: str) -> tuple[ActionDescriptor, ...]:
        """Detect action categories; each category is tested independently."""
        text = request_text.lower()
        return tuple(
            ActionDescriptor(type=action_type, weight=ACTION_WEIGHTS[action_type])
            for action_type, pattern in ACTION_PATTERNS
            if pattern.search(text)
        )

    def assess_complexity(
        self,
        request_text: str,
        services: Sequence[ServiceDescriptor],
        actions: Sequence[ActionDescriptor],
    ) -> ComplexityTier:
        """Assess complexity from canned patterns, falling back to a weight score.

        Patterns run against the original-case text in COMPLEXITY_PATTERNS
        order. Without a match the tier comes from the summed service and
        action weights. HYBRID is never returned.
        """
        for tier, pattern in COMPLEXITY_PATTERNS:
            if pattern.search(request_text):
                logger.debug("Complexity pattern matched: %s (%s)", pattern.pattern, tier.value)
                return tier

        score = sum(s.weight for s in services) + sum(a.weight for a in actions)
        if score <= self.settings.simple_score_max:
            tier = ComplexityTier.SIMPLE
        elif score <= self.settings.medium_score_max:
            tier = ComplexityTier.MEDIUM
        else:
            tier = ComplexityTier.COMPLEX
        logger.debug("Complexity score %d -> %s", score, tier.value)
        return tier

    def determine_route(
        self,
        complexity: ComplexityTier,
        services: Sequence[ServiceDescriptor],
    ) -> ExecutionRoute:
        """Pick the execution route; rules are evaluated in priority order."""
        all_connectors = all(s.has_connector for s in services)
        any_connector = any(s.has_connector for s in services)
        count = len(services)

        if (
            complexity == ComplexityTier.SIMPLE
            and all_connectors
            and count <= CONNECTOR_SERVICE_LIMIT
        ):
            return ExecutionRoute.CONNECTORS

        if (
            complexity == ComplexityTier.COMPLEX
            or not all_connectors
            or count > ORCHESTRATOR_SERVICE_THRESHOLD
        ):
            return ExecutionRoute.ORCHESTRATOR

        if complexity == ComplexityTier.MEDIUM or (any_connector and not all_connectors):
            return ExecutionRoute.HYBRID

        return ExecutionRoute.CONNECTORS

    def calculate_confidence(
        self,
        complexity: ComplexityTier,
        services: Sequence[ServiceDescriptor],
        route: ExecutionRoute,
    ) -> float:
        """Score confidence in the routing decision, clamped to [0, 1]."""
        count = len(services)
        confidence = BASE_CONFIDENCE

        if complexity == ComplexityTier.SIMPLE and count <= CONNECTOR_SERVICE_LIMIT:
            confidence += CLEAR_PATTERN_BONUS
        # Independent of the bonus above; both can apply.
        if complexity == ComplexityTier.COMPLEX or count > ORCHESTRATOR_SERVICE_THRESHOLD:
            confidence += CLEAR_PATTERN_BONUS
        if all(s.has_connector for s in services):
            confidence += CONNECTOR_BONUS
        if route == ExecutionRoute.HYBRID:
            confidence -= HYBRID_PENALTY

        return round(min(max(confidence, 0.0), 1.0), 3)

    def generate_reasoning(
        self,
        complexity: ComplexityTier,
        services: Sequence[ServiceDescriptor],
        actions: Sequence[ActionDescriptor],
        route: ExecutionRoute,
    ) -> tuple[str, ...]:
        """Explain the decision in four human-readable lines."""
        service_names = ", ".join(s.name for s in services)
        action_names = ", ".join(a.type.value for a in actions)
        return (
            f"Task complexity: {complexity.value}",
            f"Services needed: {len(services)} ({service_names})",
            f"Actions: {action_names}",
            ROUTE_EXPLANATIONS[route],
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _degraded_record(self, request_text: Any, error: ClassificationError) -> AnalysisRecord:
        """Build the fail-open record returned when classification faults."""
        if isinstance(request_text, str):
            text = request_text
        else:
            text = "" if request_text is None else str(request_text)
        return AnalysisRecord(
            request_text=text,
            timestamp_ms=self._now_ms(),
            complexity=ComplexityTier.SIMPLE,
            route=ExecutionRoute.CONNECTORS,
            confidence=DEGRADED_CONFIDENCE,
            reasoning=(DEGRADED_REASONING,),
            error=error.message,
        )

    def _now_ms(self) -> int:
        """Read the injected clock, falling back to wall time if it fails."""
        try:
            return self._clock()
        except Exception as exc:
            logger.warning("Clock failed (%s); using wall clock", exc)
            return _epoch_ms()

    @staticmethod
    def _validate_catalog(services: Sequence[ServiceDescriptor]) -> None:
        seen: set[str] = set()
        for service in services:
            if service.name in seen:
                raise CatalogError(
                    f"Service '{service.name}' appears more than once in the catalog",
                    service_name=service.name,
                )
            seen.add(service.name)


# =============================================================================
# Process-level Instance
# =============================================================================

_classifier_instance: Optional[RequestClassifier] = None


def get_request_classifier() -> RequestClassifier:
    """Get the shared classifier, creating it from settings on first use.

    Application code that wants one classifier per process uses this;
    tests and libraries should build their own RequestClassifier.
    """
    global _classifier_instance
    if _classifier_instance is None or _classifier_instance.disposed:
        _classifier_instance = RequestClassifier()
    return _classifier_instance


def clear_request_classifier() -> None:
    """Dispose and forget the shared classifier."""
    global _classifier_instance
    if _classifier_instance is not None:
        _classifier_instance.dispose()
    _classifier_instance = None


__all__ = [
    "RequestClassifier",
    "FaultHook",
    "ROUTE_EXPLANATIONS",
    "DEGRADED_REASONING",
    "DEGRADED_CONFIDENCE",
    "get_request_classifier",
    "clear_request_classifier",
]
