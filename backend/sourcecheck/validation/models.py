"""Validation models and the pure scoring primitives built on them.

Everything in this module is pure: the functions below take results or
discrepancies and return values, with no storage or LLM access.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class ValidationStatus(str, Enum):
    """Outcome of validating a single component."""

    VALID = "VALID"
    WARNING = "WARNING"
    INVALID = "INVALID"
    UNVERIFIABLE = "UNVERIFIABLE"  # No source document to compare against
    STALE = "STALE"                # Source document too old to trust


class ValidationRunStatus(str, Enum):
    """Lifecycle of a validation run. COMPLETED and FAILED are terminal."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class DiscrepancyType(str, Enum):
    CONTENT_MISMATCH = "CONTENT_MISMATCH"
    MISSING_DATA = "MISSING_DATA"
    CONFLICTING_SOURCES = "CONFLICTING_SOURCES"
    OUTDATED_REFERENCE = "OUTDATED_REFERENCE"
    SCHEMA_VIOLATION = "SCHEMA_VIOLATION"


class Severity(str, Enum):
    """Discrepancy severity levels."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Severity is a deterministic function of the discrepancy type
DISCREPANCY_SEVERITY = {
    DiscrepancyType.CONTENT_MISMATCH: Severity.HIGH,
    DiscrepancyType.MISSING_DATA: Severity.MEDIUM,
    DiscrepancyType.CONFLICTING_SOURCES: Severity.CRITICAL,
    DiscrepancyType.OUTDATED_REFERENCE: Severity.LOW,
    DiscrepancyType.SCHEMA_VIOLATION: Severity.HIGH,
}

# Contribution of each status to the overall score, scaled by confidence
STATUS_WEIGHTS = {
    ValidationStatus.VALID: 1.0,
    ValidationStatus.WARNING: 0.7,
    ValidationStatus.STALE: 0.5,
    ValidationStatus.UNVERIFIABLE: 0.3,
    ValidationStatus.INVALID: 0.0,
}


class ComponentSnapshot(BaseModel):
    """Read-only view of a diagram component as seen by the engine."""

    id: str
    title: str
    description: Optional[str] = None
    component_type: str = "DEFAULT"
    source_document_id: Optional[str] = None
    source_excerpt: Optional[str] = None
    status: str = "ACTIVE"
    updated_at: datetime


class SourceDocument(BaseModel):
    """A source document linked to one or more components."""

    id: str
    content: str
    filename: str = ""
    updated_at: Optional[datetime] = None


class Discrepancy(BaseModel):
    """A single typed mismatch between a component and its source material."""

    type: DiscrepancyType
    severity: Severity
    message: str
    expected_value: Optional[str] = None
    actual_value: Optional[str] = None
    source_document_id: Optional[str] = None

    model_config = {"use_enum_values": True, "frozen": True}


class ValidationResult(BaseModel):
    """Outcome for one component in one run. Written once, never mutated."""

    id: str = Field(default_factory=new_id)
    validation_run_id: str
    component_id: str
    status: ValidationStatus
    discrepancies: list[Discrepancy] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"use_enum_values": True, "frozen": True}


class ValidationRun(BaseModel):
    """A validation pass over every component of a diagram."""

    id: str = Field(default_factory=new_id)
    diagram_id: str
    status: ValidationRunStatus = ValidationRunStatus.PENDING
    total_components: int = 0
    validated_components: int = 0
    score: Optional[float] = None
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    model_config = {"use_enum_values": True}

    @property
    def progress(self) -> float:
        """Percentage of components validated so far."""
        if self.total_components <= 0:
            return 0.0
        return self.validated_components / self.total_components * 100

    @property
    def is_active(self) -> bool:
        return self.status in (ValidationRunStatus.PENDING, ValidationRunStatus.RUNNING)


class ValidationSummary(BaseModel):
    """Derived counts per status. Never persisted."""

    total_components: int = 0
    valid_count: int = 0
    warning_count: int = 0
    invalid_count: int = 0
    unverifiable_count: int = 0
    stale_count: int = 0
    overall_score: float = 0.0
    last_validated_at: Optional[datetime] = None


def normalize_discrepancy_type(value: Union[str, DiscrepancyType, None]) -> DiscrepancyType:
    """Map arbitrary input onto a known discrepancy type, defaulting to CONTENT_MISMATCH."""
    try:
        return DiscrepancyType(value)
    except (ValueError, TypeError):
        return DiscrepancyType.CONTENT_MISMATCH


def get_discrepancy_severity(discrepancy_type: Union[str, DiscrepancyType, None]) -> Severity:
    """Severity for a discrepancy type. Unknown types are treated as high."""
    try:
        return DISCREPANCY_SEVERITY[DiscrepancyType(discrepancy_type)]
    except (ValueError, TypeError):
        return Severity.HIGH


def make_discrepancy(
    discrepancy_type: DiscrepancyType,
    message: str,
    severity: Optional[Severity] = None,
    expected_value: Optional[str] = None,
    actual_value: Optional[str] = None,
    source_document_id: Optional[str] = None,
) -> Discrepancy:
    """Build a Discrepancy, deriving severity from the type unless overridden."""
    return Discrepancy(
        type=discrepancy_type,
        severity=severity or get_discrepancy_severity(discrepancy_type),
        message=message,
        expected_value=expected_value,
        actual_value=actual_value,
        source_document_id=source_document_id,
    )


def calculate_validation_score(results: list[ValidationResult]) -> float:
    """Confidence-weighted score in [0, 100]. Empty input scores 0."""
    if not results:
        return 0.0

    total_score = sum(STATUS_WEIGHTS[ValidationStatus(r.status)] * r.confidence for r in results)
    max_score = sum(r.confidence for r in results)

    return (total_score / max_score) * 100 if max_score > 0 else 0.0


def determine_validation_status(discrepancies: list[Discrepancy]) -> ValidationStatus:
    """Derive a component status from its discrepancies.

    Any critical discrepancy makes the component INVALID. High or medium
    discrepancies produce a WARNING. Low-only (or none) is VALID.
    """
    if not discrepancies:
        return ValidationStatus.VALID

    severities = {Severity(d.severity) for d in discrepancies}

    if Severity.CRITICAL in severities:
        return ValidationStatus.INVALID
    if Severity.HIGH in severities or Severity.MEDIUM in severities:
        return ValidationStatus.WARNING

    return ValidationStatus.VALID


def create_validation_summary(
    results: list[ValidationResult],
    last_validated_at: Optional[datetime] = None,
) -> ValidationSummary:
    """Count results per status and attach the overall score."""
    counts = {status: 0 for status in ValidationStatus}
    for result in results:
        counts[ValidationStatus(result.status)] += 1

    return ValidationSummary(
        total_components=len(results),
        valid_count=counts[ValidationStatus.VALID],
        warning_count=counts[ValidationStatus.WARNING],
        invalid_count=counts[ValidationStatus.INVALID],
        unverifiable_count=counts[ValidationStatus.UNVERIFIABLE],
        stale_count=counts[ValidationStatus.STALE],
        overall_score=calculate_validation_score(results),
        last_validated_at=last_validated_at,
    )
