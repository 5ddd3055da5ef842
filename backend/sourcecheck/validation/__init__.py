"""Validation engine: discrepancy detection and scoring.

The orchestrator depends on storage, so it is imported from its own module.

Usage:
    from sourcecheck.validation import ScoringEngine
    from sourcecheck.validation.orchestrator import ValidationOrchestrator

    run_id = await orchestrator.create_validation_run(diagram_id)
    results = await orchestrator.validate_diagram(run_id, diagram_id)
    report = await scoring_engine.generate_scoring_report(results, diagram_id, include_trends=True)
"""

from sourcecheck.validation.discrepancy_detector import (
    DiscrepancyDetector,
    OverallSeverity,
    SuggestedFix,
    SuggestedFixType,
)
from sourcecheck.validation.models import (
    ComponentSnapshot,
    Discrepancy,
    DiscrepancyType,
    Severity,
    SourceDocument,
    ValidationResult,
    ValidationRun,
    ValidationRunStatus,
    ValidationStatus,
    ValidationSummary,
    calculate_validation_score,
    create_validation_summary,
    determine_validation_status,
    get_discrepancy_severity,
)
from sourcecheck.validation.prompts import ValidationContext
from sourcecheck.validation.scoring import HealthStatus, ScoreBreakdown, ScoringEngine, ScoringReport

__all__ = [
    "ComponentSnapshot",
    "Discrepancy",
    "DiscrepancyDetector",
    "DiscrepancyType",
    "HealthStatus",
    "OverallSeverity",
    "ScoreBreakdown",
    "ScoringEngine",
    "ScoringReport",
    "Severity",
    "SourceDocument",
    "SuggestedFix",
    "SuggestedFixType",
    "ValidationContext",
    "ValidationResult",
    "ValidationRun",
    "ValidationRunStatus",
    "ValidationStatus",
    "ValidationSummary",
    "calculate_validation_score",
    "create_validation_summary",
    "determine_validation_status",
    "get_discrepancy_severity",
]
