"""Bounded analysis history and learning aggregates.

LearningStore owns the two pieces of mutable state behind a classifier:

    - a FIFO history of AnalysisRecord objects (oldest evicted first once
      capacity is reached)
    - a map of LearningAggregate objects keyed by ``"<complexity>-<route>"``

Every read and write goes through a single lock so the eviction order and the
moving average stay exact when classifiers are shared between threads.

Example:
    >>> store = LearningStore(capacity=2)
    >>> store.append(record_a)
    >>> store.append(record_b)
    >>> store.append(record_c)   # record_a is evicted
    >>> [r.request_text for r in store.records()]
    ['b', 'c']
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Optional

from atelier.config.settings import DEFAULT_EMA_WEIGHT, DEFAULT_HISTORY_CAPACITY
from atelier.routing.records import (
    AnalysisRecord,
    LearningAggregate,
    OutcomeReport,
    StatsSnapshot,
)


logger = logging.getLogger(__name__)


class LearningStore:
    """Thread-safe history and learning bookkeeping for one classifier.

    Attributes:
        capacity: Maximum number of records kept in history.
        ema_weight: Weight of a new execution time sample.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
        ema_weight: float = DEFAULT_EMA_WEIGHT,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be >= 1, got {capacity}")
        if not 0.0 < ema_weight < 1.0:
            raise ValueError(f"ema_weight must be between 0 and 1, got {ema_weight}")
        self.capacity = capacity
        self.ema_weight = ema_weight
        self._history: deque[AnalysisRecord] = deque()
        self._aggregates: dict[str, LearningAggregate] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

    def append(self, record: AnalysisRecord) -> None:
        """Add a record to history and count it in its aggregate.

        Evicts the oldest record when the history is full.
        """
        with self._lock:
            self._history.append(record)
            while len(self._history) > self.capacity:
                evicted = self._history.popleft()
                logger.debug("Evicted analysis %d from history", evicted.timestamp_ms)

            aggregate = self._aggregates.setdefault(record.learning_key, LearningAggregate())
            aggregate.count += 1

    def record_outcome(
        self,
        timestamp_ms: int,
        outcome: OutcomeReport,
    ) -> Optional[AnalysisRecord]:
        """Attach an outcome to a record and fold it into the aggregate.

        The oldest record with the timestamp wins. The aggregate is updated
        on a copy and swapped in together with ``record.outcome``, so a
        failed update changes nothing.

        Args:
            timestamp_ms: Timestamp of the analysis the outcome belongs to.
            outcome: The reported outcome.

        Returns:
            The updated record, or None if no record has this timestamp.
        """
        with self._lock:
            record = self._find_locked(timestamp_ms)
            if record is None:
                return None

            current = self._aggregates.get(record.learning_key)
            updated = current.copy() if current is not None else LearningAggregate()
            updated.record_outcome(outcome.success, outcome.execution_time_ms, self.ema_weight)

            self._aggregates[record.learning_key] = updated
            record.outcome = outcome
            return record

    def records(self) -> list[AnalysisRecord]:
        """Return history in insertion order (oldest first)."""
        with self._lock:
            return list(self._history)

    def aggregates(self) -> dict[str, LearningAggregate]:
        """Return copies of the learning aggregates."""
        with self._lock:
            return {key: agg.copy() for key, agg in self._aggregates.items()}

    def snapshot(self) -> StatsSnapshot:
        """Compute statistics over the current history."""
        with self._lock:
            route_distribution: dict[str, int] = {}
            complexity_distribution: dict[str, int] = {}
            total_time = 0
            for record in self._history:
                route = record.route.value
                complexity = record.complexity.value
                route_distribution[route] = route_distribution.get(route, 0) + 1
                complexity_distribution[complexity] = complexity_distribution.get(complexity, 0) + 1
                total_time += record.analysis_duration_ms

            total = len(self._history)
            return StatsSnapshot(
                total_analyses=total,
                route_distribution=route_distribution,
                complexity_distribution=complexity_distribution,
                average_analysis_time_ms=total_time / total if total else 0.0,
                learning={key: agg.copy() for key, agg in self._aggregates.items()},
            )

    def clear(self) -> None:
        """Drop all history and aggregates."""
        with self._lock:
            self._history.clear()
            self._aggregates.clear()

    def _find_locked(self, timestamp_ms: int) -> Optional[AnalysisRecord]:
        for record in self._history:
            if record.timestamp_ms == timestamp_ms:
                return record
        return None


__all__ = ["LearningStore"]
