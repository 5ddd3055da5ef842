"""Validation Orchestrator — owns the validation run lifecycle.

Usage:
    orchestrator = ValidationOrchestrator(store, components, documents, assessor)
    run_id = await orchestrator.create_validation_run(diagram_id)
    results = await orchestrator.validate_diagram(run_id, diagram_id)

Components are validated strictly one after another so that
validated_components is a monotonic progress signal and results come back
in component order. A run is never retried or reopened.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import time

import structlog
from pydantic import BaseModel

from sourcecheck.config import Settings, get_settings
from sourcecheck.models.errors import InvalidRunStateError, ValidationRunNotFoundError
from sourcecheck.models.events import (
    ComponentValidatedEvent,
    ValidationCompletedEvent,
    ValidationFailedEvent,
    ValidationStartedEvent,
)
from sourcecheck.services.event_bus import RunEventBus
from sourcecheck.storage.base import ComponentSource, DocumentSource, ValidationStore
from sourcecheck.validation.discrepancy_detector import (
    DiscrepancyDetector,
    OverallSeverity,
    SuggestedFix,
)
from sourcecheck.validation.models import (
    ComponentSnapshot,
    Discrepancy,
    DiscrepancyType,
    Severity,
    ValidationResult,
    ValidationRun,
    ValidationRunStatus,
    ValidationStatus,
    ValidationSummary,
    calculate_validation_score,
    create_validation_summary,
    determine_validation_status,
    make_discrepancy,
    utcnow,
)
from sourcecheck.validation.prompts import (
    ValidationContext,
    AssessmentResult,
    build_validation_prompt,
    parse_validation_response,
)

logger = structlog.get_logger()

UNVERIFIABLE_CONFIDENCE = 0.3
STALE_CONFIDENCE = 0.5
FALLBACK_CONFIDENCE = 0.5


class ComponentReport(BaseModel):
    """A stored result decorated with its overall severity and suggested fixes."""

    result: ValidationResult
    overall_severity: OverallSeverity
    suggested_fixes: list[SuggestedFix]


class ValidationReport(BaseModel):
    """A run with its results and derived summary."""

    run: ValidationRun
    summary: ValidationSummary
    components: list[ComponentReport]


class ValidationRunPage(BaseModel):
    runs: list[ValidationRun]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.runs) < self.total


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ValidationOrchestrator:
    """Creates runs, validates each component, persists results and the final score."""

    def __init__(
        self,
        store: ValidationStore,
        components: ComponentSource,
        documents: DocumentSource,
        assessor,
        settings: Optional[Settings] = None,
        event_bus: Optional[RunEventBus] = None,
        detector: Optional[DiscrepancyDetector] = None,
    ):
        """
        Args:
            store: Persistence for runs and results
            components: Ordered component snapshots per diagram
            documents: Source document lookup
            assessor: Object with async complete(prompt, max_tokens, temperature) -> str
            settings: Thresholds and assessor parameters; defaults to get_settings()
            event_bus: Optional sink for progress events
            detector: Used to decorate reports with severities and suggested fixes
        """
        self.settings = settings or get_settings()
        self.store = store
        self.components = components
        self.documents = documents
        self.assessor = assessor
        self.event_bus = event_bus
        self.detector = detector or DiscrepancyDetector(
            fuzzy_match_threshold=self.settings.FUZZY_MATCH_THRESHOLD,
        )
        self.staleness_threshold = timedelta(days=self.settings.STALENESS_THRESHOLD_DAYS)
        self.drift_threshold = timedelta(hours=self.settings.COMPONENT_DRIFT_THRESHOLD_HOURS)

    # ── Run lifecycle ──

    async def create_validation_run(self, diagram_id: str) -> str:
        """Insert a PENDING run for the diagram and return its id.

        Whether the diagram exists is the caller's concern.
        """
        total = await self.components.count_components(diagram_id)
        run = ValidationRun(diagram_id=diagram_id, total_components=total)
        await self.store.create_run(run)

        logger.info("validation_run_created", run_id=run.id, diagram_id=diagram_id, total_components=total)
        return run.id

    async def validate_diagram(self, run_id: str, diagram_id: str) -> list[ValidationResult]:
        """Validate every component of the diagram under the given run.

        Raises:
            ValidationRunNotFoundError: unknown run id.
            InvalidRunStateError: the run is not PENDING.
            Exception: anything raised while processing; the run is marked
                FAILED first and results already written are kept.
        """
        run = await self.get_validation_run(run_id)
        if run.status != ValidationRunStatus.PENDING:
            raise InvalidRunStateError(run_id, run.status)

        start_time = time.perf_counter()
        results: list[ValidationResult] = []

        try:
            run = await self.store.update_run(run_id, status=ValidationRunStatus.RUNNING)
            components = await self.components.list_components(diagram_id)

            # Components may have changed since the run was created
            if len(components) != run.total_components:
                logger.info(
                    "validation_component_count_changed",
                    run_id=run_id,
                    expected=run.total_components,
                    actual=len(components),
                )
                run = await self.store.update_run(run_id, total_components=len(components))

            await self._publish(ValidationStartedEvent(
                run_id=run_id,
                diagram_id=diagram_id,
                total_components=run.total_components,
            ))

            for index, component in enumerate(components, start=1):
                result = await self.validate_component(run_id, component)
                results.append(result)
                await self.store.update_run(run_id, validated_components=index)

                await self._publish(ComponentValidatedEvent(
                    run_id=run_id,
                    component_id=component.id,
                    status=result.status,
                    confidence=result.confidence,
                    validated_components=index,
                    total_components=run.total_components,
                ))

            score = calculate_validation_score(results)
            await self.store.update_run(
                run_id,
                status=ValidationRunStatus.COMPLETED,
                score=score,
                completed_at=utcnow(),
            )
        except Exception as e:
            logger.error(
                "validation_run_failed",
                run_id=run_id,
                diagram_id=diagram_id,
                validated_components=len(results),
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._mark_failed(run_id)
            await self._publish(ValidationFailedEvent(
                run_id=run_id,
                message=str(e),
                validated_components=len(results),
            ))
            raise

        duration = time.perf_counter() - start_time
        await self._publish(ValidationCompletedEvent(
            run_id=run_id,
            score=score,
            validated_components=len(results),
            duration_seconds=round(duration, 2),
        ))

        logger.info(
            "validation_run_completed",
            run_id=run_id,
            diagram_id=diagram_id,
            score=round(score, 1),
            summary=create_validation_summary(results).model_dump(exclude={"last_validated_at"}),
            duration_ms=round(duration * 1000, 2),
        )
        return results

    async def validate_component(self, run_id: str, component: ComponentSnapshot) -> ValidationResult:
        """Assess one component and append exactly one result row."""
        context = await self.build_validation_context(component)

        discrepancies: list[Discrepancy] = []

        if not context.document_content:
            status = ValidationStatus.UNVERIFIABLE
            confidence = UNVERIFIABLE_CONFIDENCE

        elif self.detect_staleness(context):
            status = ValidationStatus.STALE
            confidence = STALE_CONFIDENCE
            discrepancies.append(make_discrepancy(
                DiscrepancyType.OUTDATED_REFERENCE,
                message="Source document may be outdated",
                source_document_id=component.source_document_id,
            ))

        else:
            try:
                assessment = await self.perform_assessment(context)
                discrepancies = assessment.discrepancies
                status = determine_validation_status(discrepancies)
                confidence = assessment.confidence
            except Exception as e:
                # Degrade rather than fail the run
                logger.warning(
                    "component_assessment_failed",
                    run_id=run_id,
                    component_id=component.id,
                    error=str(e),
                )
                status = ValidationStatus.WARNING
                confidence = FALLBACK_CONFIDENCE
                discrepancies = [make_discrepancy(
                    DiscrepancyType.MISSING_DATA,
                    severity=Severity.MEDIUM,
                    message="Unable to perform full validation",
                )]

        result = ValidationResult(
            validation_run_id=run_id,
            component_id=component.id,
            status=status,
            discrepancies=discrepancies,
            confidence=confidence,
        )
        await self.store.append_result(result)

        logger.debug(
            "component_validated",
            run_id=run_id,
            component_id=component.id,
            status=result.status,
            confidence=confidence,
            discrepancies=len(discrepancies),
        )
        return result

    async def build_validation_context(self, component: ComponentSnapshot) -> ValidationContext:
        context = ValidationContext(component=component)

        if component.source_document_id:
            document = await self.documents.get_document(component.source_document_id)
            if document is not None:
                context.document_content = document.content
                context.document_updated_at = document.updated_at

        return context

    def detect_staleness(self, context: ValidationContext, now: Optional[datetime] = None) -> bool:
        """Decide whether the linked document is too old to trust.

        Stale when the document is older than the staleness threshold, or when
        the component was edited more than the drift threshold after it.
        """
        if context.document_updated_at is None:
            return False

        document_date = _as_utc(context.document_updated_at)
        component_date = _as_utc(context.component.updated_at)
        now = _as_utc(now) if now else utcnow()

        if now - document_date > self.staleness_threshold:
            return True

        if component_date - document_date > self.drift_threshold:
            return True

        return False

    async def perform_assessment(self, context: ValidationContext) -> AssessmentResult:
        """Single assessor call; exceptions propagate to validate_component."""
        prompt = self.build_validation_prompt(context)
        response = await self.assessor.complete(
            prompt,
            max_tokens=self.settings.ASSESSOR_MAX_TOKENS,
            temperature=self.settings.ASSESSOR_TEMPERATURE,
        )
        return self.parse_validation_response(response, context)

    def build_validation_prompt(self, context: ValidationContext) -> str:
        return build_validation_prompt(context, document_limit=self.settings.DOCUMENT_EXCERPT_LIMIT)

    def parse_validation_response(self, text: str, context: ValidationContext) -> AssessmentResult:
        return parse_validation_response(text, context)

    # ── Read side ──

    async def get_validation_run(self, run_id: str) -> ValidationRun:
        run = await self.store.get_run(run_id)
        if run is None:
            raise ValidationRunNotFoundError(run_id)
        return run

    async def get_validation_results(self, run_id: str) -> list[ValidationResult]:
        return await self.store.list_results(run_id)

    async def get_active_run(self, diagram_id: str) -> Optional[ValidationRun]:
        """The diagram's PENDING or RUNNING run, if any."""
        for run in reversed(await self.store.list_runs(diagram_id)):
            if run.is_active:
                return run
        return None

    async def list_validation_runs(self, diagram_id: str, limit: int = 10, offset: int = 0) -> ValidationRunPage:
        """Newest-first page of a diagram's runs."""
        runs = list(reversed(await self.store.list_runs(diagram_id)))
        return ValidationRunPage(
            runs=runs[offset:offset + limit],
            total=len(runs),
            limit=limit,
            offset=offset,
        )

    async def get_validation_report(self, run_id: str) -> ValidationReport:
        run = await self.get_validation_run(run_id)
        results = await self.get_validation_results(run_id)

        components = [
            ComponentReport(
                result=result,
                overall_severity=self.detector.calculate_overall_severity(result.discrepancies),
                suggested_fixes=self.detector.generate_suggested_fixes(result.discrepancies),
            )
            for result in results
        ]

        return ValidationReport(
            run=run,
            summary=create_validation_summary(results, run.completed_at),
            components=components,
        )

    # ── Helpers ──

    async def _mark_failed(self, run_id: str) -> None:
        try:
            await self.store.update_run(run_id, status=ValidationRunStatus.FAILED)
        except Exception as e:
            # The original error is re-raised by the caller
            logger.error("validation_run_mark_failed_error", run_id=run_id, error=str(e))

    async def _publish(self, event) -> None:
        if self.event_bus is None:
            return
        try:
            await self.event_bus.publish(event.run_id, event.model_dump())
        except Exception as e:
            logger.warning("validation_event_publish_failed", run_id=event.run_id, error=str(e))
