"""Tests for the request classifier.

Test Coverage:
- Service and action extraction
- Complexity patterns, their ordering and the score fallback
- Route priority rules and confidence scoring
- Reasoning lines
- Fail-open behaviour on injected faults and malformed input
- Lifecycle (reset, dispose, context manager) and the shared instance
"""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from atelier.config.settings import RoutingSettings
from atelier.core.exceptions import CatalogError
from atelier.routing import (
    ActionType,
    ComplexityTier,
    ExecutionRoute,
    RequestClassifier,
    SAMPLE_REQUESTS,
    ServiceDescriptor,
    get_request_classifier,
    clear_request_classifier,
)
from atelier.routing.catalog import CANVAS_SERVICE
from atelier.routing.classifier import (
    DEGRADED_CONFIDENCE,
    DEGRADED_REASONING,
    ROUTE_EXPLANATIONS,
)


NOTION = ServiceDescriptor("notion", weight=1, has_connector=True)
ASANA = ServiceDescriptor("asana", weight=1, has_connector=True)
AIRTABLE = ServiceDescriptor("airtable", weight=1, has_connector=True)
DRIVE = ServiceDescriptor("google-drive", weight=1, has_connector=True)


def _names(record):
    return [s.name for s in record.services]


def _action_types(record):
    return [a.type for a in record.actions]


# =============================================================================
# Test: Reference Scenarios
# =============================================================================


class TestScenarios:
    """End-to-end classification of representative requests."""

    def test_simple_connector_route(self, classifier):
        record = classifier.classify("Show me my Notion pages")

        assert _names(record) == ["notion"]
        assert record.services[0].has_connector is True
        assert _action_types(record) == [ActionType.READ]
        assert record.complexity == ComplexityTier.SIMPLE
        assert record.route == ExecutionRoute.CONNECTORS
        assert record.confidence == pytest.approx(1.0)
        assert not record.is_degraded

    def test_orchestrator_route_on_many_services(self, classifier):
        record = classifier.classify(
            "Create a new board with files from Google Drive and add tasks to Asana"
        )

        assert _names(record) == ["google-drive", "asana", "atelier-canvas"]
        assert _action_types(record) == [ActionType.WRITE]
        assert record.complexity == ComplexityTier.MEDIUM
        assert record.route == ExecutionRoute.ORCHESTRATOR
        assert record.confidence == pytest.approx(0.5)

    def test_complex_automation(self, classifier):
        record = classifier.classify(
            "When a board has more than 10 items, export to PDF and notify on Slack"
        )

        assert _names(record) == ["atelier-canvas"]
        assert _action_types(record) == [ActionType.AUTOMATE]
        assert record.complexity == ComplexityTier.COMPLEX
        assert record.route == ExecutionRoute.ORCHESTRATOR
        assert record.confidence == pytest.approx(0.8)

    def test_medium_request_goes_hybrid(self, classifier):
        record = classifier.classify("Analyze all project files and create summary report")

        assert record.services == ()
        assert _action_types(record) == [ActionType.WRITE, ActionType.TRANSFORM]
        assert record.complexity == ComplexityTier.MEDIUM
        assert record.route == ExecutionRoute.HYBRID
        assert record.confidence == pytest.approx(0.6)

    def test_simple_pattern_with_canvas_goes_to_orchestrator(self, classifier):
        record = classifier.classify("Find images in Drive and create thumbnails on canvas")

        assert _names(record) == ["atelier-canvas"]
        assert record.complexity == ComplexityTier.SIMPLE
        assert record.route == ExecutionRoute.ORCHESTRATOR
        assert record.confidence == pytest.approx(0.8)

    def test_no_signals_defaults_to_simple_connectors(self, classifier):
        record = classifier.classify("hello there")

        assert record.services == ()
        assert record.actions == ()
        assert record.complexity == ComplexityTier.SIMPLE
        assert record.route == ExecutionRoute.CONNECTORS

    def test_empty_request_is_accepted(self, classifier):
        record = classifier.classify("")

        assert not record.is_degraded
        assert record.complexity == ComplexityTier.SIMPLE
        assert record.route == ExecutionRoute.CONNECTORS
        assert len(classifier.history) == 1


# =============================================================================
# Test: Service Extraction
# =============================================================================


class TestServiceExtraction:
    """Test service name matching."""

    @pytest.mark.parametrize("text", [
        "open google-drive",
        "open Google Drive",
        "open my googledrive folder",
    ])
    def test_name_variants(self, classifier, text):
        assert [s.name for s in classifier.extract_services(text)] == ["google-drive"]

    def test_each_service_added_once(self, classifier):
        services = classifier.extract_services("notion, Notion and NOTION")
        assert [s.name for s in services] == ["notion"]

    def test_catalog_order_is_preserved(self, classifier):
        services = classifier.extract_services("copy airtable rows into notion")
        assert [s.name for s in services] == ["notion", "airtable"]

    @pytest.mark.parametrize("text", ["tidy the board", "clear the Canvas"])
    def test_implicit_canvas(self, classifier, text):
        assert classifier.extract_services(text) == (CANVAS_SERVICE,)

    def test_explicit_canvas_not_duplicated(self, classifier):
        services = classifier.extract_services("Open the atelier canvas board")
        assert services == (CANVAS_SERVICE,)

    def test_custom_catalog(self, make_classifier):
        slack = ServiceDescriptor("slack", weight=1, has_connector=True)
        classifier = make_classifier(services=[slack])

        services = classifier.extract_services("notify on Slack and Notion")
        assert services == (slack,)

    def test_duplicate_catalog_names_rejected(self, make_classifier):
        with pytest.raises(CatalogError) as exc_info:
            make_classifier(services=[NOTION, NOTION])
        assert exc_info.value.service_name == "notion"


# =============================================================================
# Test: Action Extraction
# =============================================================================


class TestActionExtraction:
    """Test action category detection."""

    def test_multiple_categories_in_declaration_order(self, classifier):
        actions = classifier.extract_actions("Monitor and summarize the board when it changes")

        assert [a.type for a in actions] == [
            ActionType.TRANSFORM,
            ActionType.AGGREGATE,
            ActionType.AUTOMATE,
            ActionType.MONITOR,
        ]
        assert [a.weight for a in actions] == [3, 4, 5, 6]

    @pytest.mark.parametrize("text,expected", [
        ("list my notes", ActionType.READ),
        ("save this", ActionType.WRITE),
        ("convert to pdf", ActionType.TRANSFORM),
        ("gather the notes", ActionType.AGGREGATE),
        ("if it rains then ping me", ActionType.AUTOMATE),
        ("watch the folder", ActionType.MONITOR),
    ])
    def test_single_category(self, classifier, text, expected):
        assert [a.type for a in classifier.extract_actions(text)] == [expected]

    def test_case_insensitive(self, classifier):
        assert [a.type for a in classifier.extract_actions("SHOW ME")] == [ActionType.READ]

    def test_no_actions(self, classifier):
        assert classifier.extract_actions("hello there") == ()


# =============================================================================
# Test: Complexity Assessment
# =============================================================================


class TestComplexityAssessment:
    """Test canned patterns and score fallback."""

    def test_medium_pattern(self, classifier):
        record = classifier.classify("Export data between Notion and Airtable")
        assert record.complexity == ComplexityTier.MEDIUM
        assert record.route == ExecutionRoute.HYBRID
        assert record.confidence == pytest.approx(0.6)

    def test_complex_pattern(self, classifier):
        record = classifier.classify("Automate weekly reports")
        assert record.complexity == ComplexityTier.COMPLEX
        assert record.route == ExecutionRoute.ORCHESTRATOR
        assert record.confidence == pytest.approx(1.0)

    def test_simple_patterns_checked_before_complex(self, classifier):
        # Also matches the complex "and ... and" pattern
        record = classifier.classify("Show tasks from Asana and Notion and Drive")
        assert record.complexity == ComplexityTier.SIMPLE
        assert record.route == ExecutionRoute.CONNECTORS

    def test_medium_patterns_checked_before_complex(self, classifier):
        record = classifier.classify("Analyze data from Notion and Asana and Drive")
        assert record.complexity == ComplexityTier.MEDIUM

    def test_broad_conjunction_pattern_is_complex(self, classifier):
        tier = classifier.assess_complexity("Sand and band and land", (), ())
        assert tier == ComplexityTier.COMPLEX

    @pytest.mark.parametrize("services,actions_text,expected", [
        ((), "", ComplexityTier.SIMPLE),                    # 0
        ((NOTION,), "save", ComplexityTier.SIMPLE),         # 1 + 2 = 3
        ((NOTION, ASANA), "save", ComplexityTier.MEDIUM),   # 2 + 2 = 4
        ((CANVAS_SERVICE,), "gather", ComplexityTier.MEDIUM),  # 2 + 4 = 6
        ((CANVAS_SERVICE,), "watch", ComplexityTier.COMPLEX),  # 2 + 6 = 8
    ])
    def test_score_thresholds(self, classifier, services, actions_text, expected):
        actions = classifier.extract_actions(actions_text)
        assert classifier.assess_complexity("zzz", services, actions) == expected

    def test_thresholds_from_settings(self, make_classifier):
        classifier = make_classifier(RoutingSettings(simple_score_max=1, medium_score_max=2))
        record = classifier.classify("Show me my Notion pages")
        assert record.complexity == ComplexityTier.MEDIUM
        assert record.route == ExecutionRoute.HYBRID

    def test_hybrid_tier_never_assessed(self, classifier):
        tiers = {classifier.classify(text).complexity for text in SAMPLE_REQUESTS}
        assert ComplexityTier.HYBRID not in tiers


# =============================================================================
# Test: Route Determination
# =============================================================================


class TestRouteDetermination:
    """Test the priority-ordered routing rules."""

    @pytest.mark.parametrize("complexity,services,expected", [
        (ComplexityTier.SIMPLE, (NOTION,), ExecutionRoute.CONNECTORS),
        (ComplexityTier.SIMPLE, (), ExecutionRoute.CONNECTORS),
        (ComplexityTier.SIMPLE, (CANVAS_SERVICE,), ExecutionRoute.ORCHESTRATOR),
        (ComplexityTier.SIMPLE, (NOTION, ASANA, AIRTABLE, DRIVE), ExecutionRoute.ORCHESTRATOR),
        (ComplexityTier.SIMPLE, (NOTION, ASANA, AIRTABLE), ExecutionRoute.CONNECTORS),
        (ComplexityTier.MEDIUM, (NOTION,), ExecutionRoute.HYBRID),
        (ComplexityTier.MEDIUM, (), ExecutionRoute.HYBRID),
        (ComplexityTier.MEDIUM, (NOTION, CANVAS_SERVICE), ExecutionRoute.ORCHESTRATOR),
        (ComplexityTier.COMPLEX, (), ExecutionRoute.ORCHESTRATOR),
        (ComplexityTier.HYBRID, (), ExecutionRoute.CONNECTORS),
    ])
    def test_route_rules(self, classifier, complexity, services, expected):
        assert classifier.determine_route(complexity, services) == expected


# =============================================================================
# Test: Confidence
# =============================================================================


class TestConfidence:
    """Test confidence scoring."""

    @pytest.mark.parametrize("complexity,services,route,expected", [
        (ComplexityTier.SIMPLE, (), ExecutionRoute.CONNECTORS, 1.0),
        (ComplexityTier.COMPLEX, (CANVAS_SERVICE,), ExecutionRoute.ORCHESTRATOR, 0.8),
        (ComplexityTier.MEDIUM, (NOTION,), ExecutionRoute.HYBRID, 0.6),
        (ComplexityTier.MEDIUM, (CANVAS_SERVICE,), ExecutionRoute.ORCHESTRATOR, 0.5),
        (ComplexityTier.MEDIUM, (CANVAS_SERVICE,), ExecutionRoute.HYBRID, 0.4),
        (ComplexityTier.COMPLEX, (NOTION, ASANA, AIRTABLE, DRIVE), ExecutionRoute.ORCHESTRATOR, 1.0),
    ])
    def test_confidence_values(self, classifier, complexity, services, route, expected):
        assert classifier.calculate_confidence(complexity, services, route) == pytest.approx(expected)

    @pytest.mark.parametrize("text", [
        "",
        "x" * 2000,
        "Monitor notion, asana, airtable, supabase, database and zapier continuously forever",
        "When the board changes then merge everything from multiple canvas sources",
        *SAMPLE_REQUESTS,
    ])
    def test_confidence_bounds(self, classifier, text):
        record = classifier.classify(text)
        assert 0.0 <= record.confidence <= 1.0


# =============================================================================
# Test: Reasoning
# =============================================================================


class TestReasoning:
    """Test human-readable reasoning lines."""

    def test_reasoning_lines(self, classifier):
        record = classifier.classify("Show me my Notion pages")
        assert record.reasoning == (
            "Task complexity: simple",
            "Services needed: 1 (notion)",
            "Actions: read",
            ROUTE_EXPLANATIONS[ExecutionRoute.CONNECTORS],
        )

    @pytest.mark.parametrize("route", list(ExecutionRoute))
    def test_route_specific_closing_line(self, classifier, route):
        reasoning = classifier.generate_reasoning(ComplexityTier.MEDIUM, (), (), route)
        assert reasoning[-1] == ROUTE_EXPLANATIONS[route]
        assert reasoning[1] == "Services needed: 0 ()"


# =============================================================================
# Test: Determinism and Recording
# =============================================================================


class TestDeterminismAndRecording:
    """Test repeatability and bookkeeping performed by classify."""

    @pytest.mark.parametrize("text", SAMPLE_REQUESTS)
    def test_deterministic_for_fresh_state(self, make_classifier, text):
        first = make_classifier().classify(text, {"board": "b1"})
        second = make_classifier().classify(text, {"board": "b1"})

        for attr in ("services", "actions", "complexity", "route", "confidence", "reasoning"):
            assert getattr(first, attr) == getattr(second, attr)

    def test_context_is_copied(self, classifier):
        context = {"board": "b1"}
        record = classifier.classify("Show me my Notion pages", context)
        context["board"] = "b2"
        assert record.context == {"board": "b1"}

    def test_timestamp_from_clock(self, classifier):
        first = classifier.classify("a")
        second = classifier.classify("b")
        assert second.timestamp_ms == first.timestamp_ms + 1

    def test_history_keeps_most_recent(self, make_classifier):
        classifier = make_classifier()
        requests = [f"request {i}" for i in range(105)]
        for request in requests:
            classifier.classify(request)

        history = classifier.history
        assert len(history) == 100
        assert [r.request_text for r in history] == requests[5:]

    def test_learning_count_incremented(self, classifier):
        classifier.classify("Show me my Notion pages")
        classifier.classify("List notion pages")

        learning = classifier.get_statistics().learning
        assert learning["simple-connectors"].count == 2
        assert learning["simple-connectors"].success == 0

    def test_info_log_per_classification(self, classifier, caplog):
        with caplog.at_level(logging.INFO, logger="atelier"):
            classifier.classify("Show me my Notion pages")
        assert "Task analyzed: simple -> connectors" in caplog.text


# =============================================================================
# Test: Fail-open Behaviour
# =============================================================================


class TestFailOpen:
    """Test degraded records on internal faults."""

    @pytest.mark.parametrize("stage", RequestClassifier.STAGES)
    def test_injected_fault_degrades(self, make_classifier, stage):
        def hook(current):
            if current == stage:
                raise RuntimeError(f"fault in {current}")

        classifier = make_classifier(fault_hook=hook)
        record = classifier.classify("Create a workflow across Notion and Supabase")

        assert record.route == ExecutionRoute.CONNECTORS
        assert record.confidence == DEGRADED_CONFIDENCE
        assert record.reasoning == (DEGRADED_REASONING,)
        assert record.is_degraded
        assert f"fault in {stage}" in record.error
        assert classifier.history == []

    def test_hook_sees_every_stage_in_order(self, make_classifier):
        hook = MagicMock()
        make_classifier(fault_hook=hook).classify("Show me my Notion pages")
        assert [c.args[0] for c in hook.call_args_list] == list(RequestClassifier.STAGES)

    def test_malformed_context(self, classifier):
        record = classifier.classify("Show me my Notion pages", context=42)

        assert record.is_degraded
        assert record.route == ExecutionRoute.CONNECTORS
        assert record.confidence == DEGRADED_CONFIDENCE
        assert record.request_text == "Show me my Notion pages"
        assert record.context == {}

    def test_non_string_request(self, classifier):
        record = classifier.classify(None)
        assert record.is_degraded
        assert record.request_text == ""
        assert record.route == ExecutionRoute.CONNECTORS

    def test_degraded_record_has_full_shape(self, classifier):
        record = classifier.classify(None)
        data = record.to_dict()
        assert data["route"] == "connectors"
        assert data["complexity"] == "simple"
        assert data["services"] == []
        assert data["error"]

    def test_fault_is_logged(self, make_classifier, caplog):
        hook = MagicMock(side_effect=ValueError("bad"))
        with caplog.at_level(logging.ERROR, logger="atelier"):
            make_classifier(fault_hook=hook).classify("anything")
        assert "Classification failed at stage context" in caplog.text

    def test_failing_clock_still_returns_record(self, make_classifier):
        classifier = make_classifier(clock=MagicMock(side_effect=OSError("clock")))
        record = classifier.classify("Show me my Notion pages")
        assert record.is_degraded
        assert record.timestamp_ms > 0


# =============================================================================
# Test: Lifecycle
# =============================================================================


class TestLifecycle:
    """Test reset, dispose and the shared instance."""

    def test_reset_clears_state(self, classifier):
        classifier.classify("Show me my Notion pages")
        classifier.reset()

        stats = classifier.get_statistics()
        assert stats.total_analyses == 0
        assert stats.learning == {}
        assert not classifier.disposed

    def test_dispose_fails_open(self, classifier):
        classifier.classify("Show me my Notion pages")
        classifier.dispose()

        record = classifier.classify("Show me my Notion pages")
        assert classifier.disposed
        assert record.is_degraded
        assert "disposed" in record.error
        assert classifier.history == []

    def test_context_manager_disposes(self, make_classifier):
        with make_classifier() as classifier:
            assert classifier.classify("Show me my Notion pages").route == ExecutionRoute.CONNECTORS
        assert classifier.disposed

    def test_run_samples(self, classifier):
        records = classifier.run_samples()
        assert [r.request_text for r in records] == list(SAMPLE_REQUESTS)
        assert len(classifier.history) == len(SAMPLE_REQUESTS)

    def test_shared_instance(self, clean_env):
        first = get_request_classifier()
        assert get_request_classifier() is first

        clear_request_classifier()
        assert first.disposed
        assert get_request_classifier() is not first

    def test_defaults_from_settings(self, clean_env):
        clean_env.setenv("ATELIER_ROUTING__HISTORY_CAPACITY", "2")
        classifier = RequestClassifier()
        for text in ("a", "b", "c"):
            classifier.classify(text)
        assert [r.request_text for r in classifier.history] == ["b", "c"]
