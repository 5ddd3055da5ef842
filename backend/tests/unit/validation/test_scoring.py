"""Tests for ScoringEngine."""

from datetime import datetime, timedelta, timezone

import pytest

from factories import make_result
from sourcecheck.storage.memory import InMemoryValidationStore
from sourcecheck.validation.models import (
    DiscrepancyType,
    ValidationRun,
    ValidationRunStatus,
    ValidationStatus,
    make_discrepancy,
)
from sourcecheck.validation.scoring import (
    DEFAULT_COMPONENT_WEIGHTS,
    HealthStatus,
    ScoreBreakdown,
    ScoringEngine,
)


@pytest.fixture
def engine() -> ScoringEngine:
    return ScoringEngine()


class TestWeightedScore:
    def test_empty(self, engine: ScoringEngine) -> None:
        assert engine.calculate_weighted_score([], {}) == 0

    def test_type_weights_applied(self, engine: ScoringEngine) -> None:
        results = [
            make_result(ValidationStatus.VALID, component_id="db"),
            make_result(ValidationStatus.INVALID, component_id="cache"),
        ]
        score = engine.calculate_weighted_score(results, {"db": "DATABASE", "cache": "CACHE"})
        assert score == pytest.approx(1.3 / 2.2 * 100)

    def test_unknown_and_missing_types_use_default(self, engine: ScoringEngine) -> None:
        results = [
            make_result(ValidationStatus.VALID, component_id="a"),
            make_result(ValidationStatus.INVALID, component_id="b"),
        ]
        assert engine.calculate_weighted_score(results, {"a": "SPACESHIP"}) == pytest.approx(50)

    def test_zero_confidence_everywhere(self, engine: ScoringEngine) -> None:
        results = [make_result(ValidationStatus.VALID, confidence=0.0)]
        assert engine.calculate_weighted_score(results, {}) == 0


class TestScoreBreakdown:
    def test_clean_results_score_full_marks(self, engine: ScoringEngine) -> None:
        breakdown = engine.calculate_score_breakdown([make_result(), make_result(component_id="c2")])
        assert breakdown == ScoreBreakdown()

    def test_empty(self, engine: ScoringEngine) -> None:
        assert engine.calculate_score_breakdown([]) == ScoreBreakdown()

    def test_issues_split_across_categories(self, engine: ScoringEngine) -> None:
        results = [
            make_result(
                ValidationStatus.WARNING,
                discrepancies=[make_discrepancy(DiscrepancyType.CONTENT_MISMATCH, message="x")],
            ),
            make_result(ValidationStatus.UNVERIFIABLE, component_id="c2"),
        ]

        breakdown = engine.calculate_score_breakdown(results)

        assert breakdown.content_accuracy == pytest.approx(50)
        assert breakdown.data_completeness == pytest.approx(50)
        assert breakdown.source_consistency == 100
        assert breakdown.freshness == 100

    def test_category_never_negative(self, engine: ScoringEngine) -> None:
        discrepancies = [
            make_discrepancy(DiscrepancyType.CONFLICTING_SOURCES, message=str(i)) for i in range(5)
        ]
        breakdown = engine.calculate_score_breakdown(
            [make_result(ValidationStatus.INVALID, discrepancies=discrepancies)]
        )
        assert breakdown.source_consistency == 0


class TestHealthStatus:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (100, HealthStatus.EXCELLENT),
            (90, HealthStatus.EXCELLENT),
            (89.9, HealthStatus.GOOD),
            (89, HealthStatus.GOOD),
            (75, HealthStatus.GOOD),
            (74, HealthStatus.FAIR),
            (60, HealthStatus.FAIR),
            (59, HealthStatus.POOR),
            (40, HealthStatus.POOR),
            (39, HealthStatus.CRITICAL),
            (0, HealthStatus.CRITICAL),
        ],
    )
    def test_bands(self, engine: ScoringEngine, score: float, expected: HealthStatus) -> None:
        assert engine.get_health_status(score) == expected


class TestRecommendations:
    def test_all_valid(self, engine: ScoringEngine) -> None:
        recommendations = engine.generate_recommendations([make_result()])
        assert len(recommendations) == 1
        assert recommendations[0].startswith("All components are valid")

    def test_one_line_per_problem_kind(self, engine: ScoringEngine) -> None:
        results = [
            make_result(
                ValidationStatus.WARNING,
                discrepancies=[make_discrepancy(DiscrepancyType.CONTENT_MISMATCH, message="x")],
            ),
            make_result(ValidationStatus.STALE, component_id="c2"),
            make_result(ValidationStatus.UNVERIFIABLE, component_id="c3"),
            make_result(ValidationStatus.UNVERIFIABLE, component_id="c4"),
        ]

        recommendations = engine.generate_recommendations(results)

        assert recommendations == [
            "Review 1 component(s) with content mismatches against source documents.",
            "Update 1 component(s) that reference outdated source documents.",
            "Link 2 component(s) to source documents for verification.",
        ]

    def test_invalid_components_prioritized(self, engine: ScoringEngine) -> None:
        results = [
            make_result(
                ValidationStatus.INVALID,
                discrepancies=[make_discrepancy(DiscrepancyType.CONFLICTING_SOURCES, message="x")],
            )
        ]
        recommendations = engine.generate_recommendations(results)
        assert recommendations[-1] == "Prioritize fixing 1 invalid component(s) with critical issues."
        assert any("conflicting information" in r for r in recommendations)


class TestWeights:
    def test_defaults(self, engine: ScoringEngine) -> None:
        assert engine.get_component_weights() == DEFAULT_COMPONENT_WEIGHTS

    def test_overrides_merge_over_defaults(self) -> None:
        engine = ScoringEngine(component_weights={"CACHE": 2.0})
        weights = engine.get_component_weights()
        assert weights["CACHE"] == 2.0
        assert weights["DATABASE"] == 1.3

    def test_set_component_weights(self, engine: ScoringEngine) -> None:
        engine.set_component_weights({"QUEUE": 0.5})
        engine.get_component_weights()["QUEUE"] = 99
        assert engine.get_component_weights()["QUEUE"] == 0.5


class TestDeltasAndComponentScores:
    def test_score_delta(self, engine: ScoringEngine) -> None:
        previous = [make_result(ValidationStatus.WARNING)]
        current = [make_result(ValidationStatus.VALID)]
        assert engine.calculate_score_delta(current, previous) == pytest.approx(30)
        assert engine.calculate_score_delta(previous, current) == pytest.approx(-30)

    def test_component_scores(self, engine: ScoringEngine) -> None:
        results = [
            make_result(ValidationStatus.WARNING, confidence=0.5, component_id="a"),
            make_result(ValidationStatus.INVALID, component_id="b"),
        ]
        assert engine.get_component_scores(results) == {"a": pytest.approx(35), "b": 0}


class TestTrendsAndReport:
    async def test_trends_without_store(self, engine: ScoringEngine) -> None:
        assert await engine.get_validation_trends("diag-1") == []

    async def test_trends_latest_completed_oldest_first(self) -> None:
        store = InMemoryValidationStore()
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for day in range(4):
            await store.create_run(ValidationRun(
                diagram_id="diag-1",
                status=ValidationRunStatus.COMPLETED,
                score=50 + day,
                validated_components=day,
                started_at=base + timedelta(days=day),
                completed_at=base + timedelta(days=day, minutes=5),
            ))
        await store.create_run(ValidationRun(diagram_id="diag-1", status=ValidationRunStatus.FAILED))
        await store.create_run(ValidationRun(diagram_id="other", status=ValidationRunStatus.COMPLETED, score=1))

        trends = await ScoringEngine(store=store).get_validation_trends("diag-1", limit=3)

        assert [t.score for t in trends] == [51, 52, 53]
        assert [t.component_count for t in trends] == [1, 2, 3]

    async def test_report(self, engine: ScoringEngine) -> None:
        results = [make_result(), make_result(ValidationStatus.UNVERIFIABLE, confidence=0.3, component_id="c2")]

        report = await engine.generate_scoring_report(results)

        assert report.overall_score == pytest.approx(1.09 / 1.3 * 100)
        assert report.health_status == HealthStatus.GOOD
        assert report.summary.valid_count == 1
        assert report.summary.unverifiable_count == 1
        assert report.trends is None
        assert report.recommendations == ["Link 1 component(s) to source documents for verification."]

    async def test_report_with_trends(self) -> None:
        store = InMemoryValidationStore()
        engine = ScoringEngine(store=store)

        report = await engine.generate_scoring_report([], diagram_id="diag-1", include_trends=True)

        assert report.trends == []
        assert report.health_status == HealthStatus.CRITICAL
