"""Scoring engine: weighted diagram scores, health bands and recommendations."""

from datetime import datetime
from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from sourcecheck.validation.models import (
    STATUS_WEIGHTS,
    DiscrepancyType,
    ValidationResult,
    ValidationRunStatus,
    ValidationStatus,
    ValidationSummary,
    calculate_validation_score,
    create_validation_summary,
    utcnow,
)

logger = structlog.get_logger()


class HealthStatus(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    CRITICAL = "CRITICAL"


# Inclusive lower bounds, checked top-down
HEALTH_THRESHOLDS = [
    (HealthStatus.EXCELLENT, 90),
    (HealthStatus.GOOD, 75),
    (HealthStatus.FAIR, 60),
    (HealthStatus.POOR, 40),
]

DEFAULT_COMPONENT_WEIGHTS = {
    "USER_ACTION": 1.0,
    "SYSTEM": 1.2,
    "EXTERNAL_SYSTEM": 1.1,
    "DATABASE": 1.3,
    "QUEUE": 1.0,
    "CACHE": 0.9,
    "DEFAULT": 1.0,
}

# Each discrepancy type counts against exactly one category
DISCREPANCY_CATEGORY_MAP = {
    DiscrepancyType.CONTENT_MISMATCH: "content_accuracy",
    DiscrepancyType.MISSING_DATA: "data_completeness",
    DiscrepancyType.CONFLICTING_SOURCES: "source_consistency",
    DiscrepancyType.OUTDATED_REFERENCE: "freshness",
    DiscrepancyType.SCHEMA_VIOLATION: "freshness",
}

# Statuses that count as an issue on their own
STATUS_CATEGORY_MAP = {
    ValidationStatus.STALE: "freshness",
    ValidationStatus.UNVERIFIABLE: "data_completeness",
}


class ScoreBreakdown(BaseModel):
    """Score by category. Each starts at 100 and loses its share of issues."""

    content_accuracy: float = 100.0
    data_completeness: float = 100.0
    source_consistency: float = 100.0
    freshness: float = 100.0


class TrendDataPoint(BaseModel):
    date: datetime
    score: float
    component_count: int


class ScoringReport(BaseModel):
    overall_score: float
    health_status: HealthStatus
    breakdown: ScoreBreakdown
    summary: ValidationSummary
    recommendations: list[str] = Field(default_factory=list)
    trends: Optional[list[TrendDataPoint]] = None


class ScoringEngine:
    """Turns a set of validation results into scores and a report.

    The store is only needed for trends; everything else is computed from
    the results passed in.
    """

    def __init__(self, store=None, component_weights: Optional[dict[str, float]] = None):
        self.store = store
        self._component_weights = {**DEFAULT_COMPONENT_WEIGHTS, **(component_weights or {})}

    def calculate_weighted_score(
        self,
        results: list[ValidationResult],
        component_types: dict[str, str],
    ) -> float:
        """Like calculate_validation_score, but each result also scaled by its component type weight."""
        if not results:
            return 0.0

        total_weighted_score = 0.0
        total_weight = 0.0

        for result in results:
            type_weight = self._type_weight(component_types.get(result.component_id))
            status_score = STATUS_WEIGHTS[ValidationStatus(result.status)] * result.confidence
            total_weighted_score += status_score * type_weight
            total_weight += result.confidence * type_weight

        return (total_weighted_score / total_weight) * 100 if total_weight > 0 else 0.0

    def calculate_score_breakdown(self, results: list[ValidationResult]) -> ScoreBreakdown:
        breakdown = ScoreBreakdown()
        if not results:
            return breakdown

        issues = {category: 0 for category in ScoreBreakdown.model_fields}
        total_discrepancies = 0

        for result in results:
            for discrepancy in result.discrepancies:
                total_discrepancies += 1
                category = DISCREPANCY_CATEGORY_MAP.get(DiscrepancyType(discrepancy.type))
                if category:
                    issues[category] += 1

            status_category = STATUS_CATEGORY_MAP.get(ValidationStatus(result.status))
            if status_category:
                issues[status_category] += 1
                total_discrepancies += 1

        if total_discrepancies == 0:
            return breakdown

        issue_weight = total_discrepancies / len(results)
        for category, count in issues.items():
            penalty = (count / total_discrepancies) * issue_weight * 100
            setattr(breakdown, category, max(0.0, 100 - penalty))

        return breakdown

    def get_health_status(self, score: float) -> HealthStatus:
        for status, threshold in HEALTH_THRESHOLDS:
            if score >= threshold:
                return status
        return HealthStatus.CRITICAL

    def generate_recommendations(self, results: list[ValidationResult]) -> list[str]:
        recommendations = []

        discrepancy_counts = self._count_discrepancies_by_type(results)
        status_counts = self._count_by_status(results)

        if discrepancy_counts[DiscrepancyType.CONTENT_MISMATCH]:
            recommendations.append(
                f"Review {discrepancy_counts[DiscrepancyType.CONTENT_MISMATCH]} component(s) "
                f"with content mismatches against source documents."
            )

        if discrepancy_counts[DiscrepancyType.MISSING_DATA]:
            recommendations.append(
                f"Add descriptions or source links to {discrepancy_counts[DiscrepancyType.MISSING_DATA]} "
                f"component(s) with missing data."
            )

        if discrepancy_counts[DiscrepancyType.CONFLICTING_SOURCES]:
            recommendations.append(
                f"Resolve conflicting information in {discrepancy_counts[DiscrepancyType.CONFLICTING_SOURCES]} "
                f"component(s) by updating source documents."
            )

        if status_counts[ValidationStatus.STALE]:
            recommendations.append(
                f"Update {status_counts[ValidationStatus.STALE]} component(s) that reference outdated source documents."
            )

        if status_counts[ValidationStatus.UNVERIFIABLE]:
            recommendations.append(
                f"Link {status_counts[ValidationStatus.UNVERIFIABLE]} component(s) to source documents for verification."
            )

        if status_counts[ValidationStatus.INVALID]:
            recommendations.append(
                f"Prioritize fixing {status_counts[ValidationStatus.INVALID]} invalid component(s) with critical issues."
            )

        if not recommendations:
            recommendations.append(
                "All components are valid. Consider scheduling regular validation runs to maintain quality."
            )

        return recommendations

    async def get_validation_trends(self, diagram_id: str, limit: int = 10) -> list[TrendDataPoint]:
        """Scores of the latest completed runs, oldest first."""
        if self.store is None:
            return []

        runs = [
            run for run in await self.store.list_runs(diagram_id)
            if run.status == ValidationRunStatus.COMPLETED and run.score is not None and run.completed_at
        ]
        latest = sorted(runs, key=lambda r: r.completed_at, reverse=True)[:limit]

        return [
            TrendDataPoint(
                date=run.completed_at,
                score=run.score,
                component_count=run.validated_components,
            )
            for run in reversed(latest)
        ]

    async def generate_scoring_report(
        self,
        results: list[ValidationResult],
        diagram_id: Optional[str] = None,
        include_trends: bool = False,
    ) -> ScoringReport:
        overall_score = calculate_validation_score(results)

        report = ScoringReport(
            overall_score=overall_score,
            health_status=self.get_health_status(overall_score),
            breakdown=self.calculate_score_breakdown(results),
            summary=create_validation_summary(results, utcnow()),
            recommendations=self.generate_recommendations(results),
        )

        if include_trends and diagram_id:
            report.trends = await self.get_validation_trends(diagram_id)

        logger.info(
            "scoring_report_generated",
            diagram_id=diagram_id,
            overall_score=round(overall_score, 1),
            health_status=report.health_status.value,
            results=len(results),
        )
        return report

    def calculate_score_delta(
        self,
        current_results: list[ValidationResult],
        previous_results: list[ValidationResult],
    ) -> float:
        return calculate_validation_score(current_results) - calculate_validation_score(previous_results)

    def get_component_scores(self, results: list[ValidationResult]) -> dict[str, float]:
        """Per-component score in [0, 100]: status weight × 100 × confidence."""
        return {
            result.component_id: STATUS_WEIGHTS[ValidationStatus(result.status)] * 100 * result.confidence
            for result in results
        }

    def set_component_weights(self, weights: dict[str, float]) -> None:
        """Override type weights. Unnamed types keep their default weight."""
        self._component_weights = {**DEFAULT_COMPONENT_WEIGHTS, **weights}

    def get_component_weights(self) -> dict[str, float]:
        return dict(self._component_weights)

    # ── Helper Methods ──

    def _type_weight(self, component_type: Optional[str]) -> float:
        default = self._component_weights.get("DEFAULT", 1.0)
        if component_type is None:
            return default
        return self._component_weights.get(component_type, default)

    @staticmethod
    def _count_discrepancies_by_type(results: list[ValidationResult]) -> dict[DiscrepancyType, int]:
        counts = {kind: 0 for kind in DiscrepancyType}
        for result in results:
            for discrepancy in result.discrepancies:
                counts[DiscrepancyType(discrepancy.type)] += 1
        return counts

    @staticmethod
    def _count_by_status(results: list[ValidationResult]) -> dict[ValidationStatus, int]:
        counts = {status: 0 for status in ValidationStatus}
        for result in results:
            counts[ValidationStatus(result.status)] += 1
        return counts
