"""Builders and static sources shared by the test suite."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sourcecheck.storage.base import ComponentSource, DocumentSource
from sourcecheck.validation.models import (
    ComponentSnapshot,
    Discrepancy,
    SourceDocument,
    ValidationResult,
    ValidationStatus,
)

VALID_RESPONSE = '{"isValid": true, "confidence": 0.9, "discrepancies": []}'


class StaticComponentSource(ComponentSource):
    """Components held in a dict of diagram id -> ordered list."""

    def __init__(self, diagrams: Optional[dict[str, list[ComponentSnapshot]]] = None) -> None:
        self.diagrams = diagrams or {}

    async def list_components(self, diagram_id: str) -> list[ComponentSnapshot]:
        return list(self.diagrams.get(diagram_id, []))


class StaticDocumentSource(DocumentSource):
    def __init__(self, documents: Optional[dict[str, SourceDocument]] = None) -> None:
        self.documents = documents or {}

    async def get_document(self, document_id: str) -> Optional[SourceDocument]:
        return self.documents.get(document_id)


def make_component(
    component_id: str = "c1",
    title: str = "Payment Service",
    description: Optional[str] = "Handles card payments",
    component_type: str = "SYSTEM",
    source_document_id: Optional[str] = None,
    source_excerpt: Optional[str] = None,
    updated_at: Optional[datetime] = None,
) -> ComponentSnapshot:
    return ComponentSnapshot(
        id=component_id,
        title=title,
        description=description,
        component_type=component_type,
        source_document_id=source_document_id,
        source_excerpt=source_excerpt,
        updated_at=updated_at or datetime.now(timezone.utc) - timedelta(hours=2),
    )


def make_document(
    document_id: str = "d1",
    content: str = "The Payment Service handles card payments for checkout.",
    filename: str = "architecture.md",
    updated_at: Optional[datetime] = None,
) -> SourceDocument:
    return SourceDocument(
        id=document_id,
        content=content,
        filename=filename,
        updated_at=updated_at or datetime.now(timezone.utc) - timedelta(hours=1),
    )


def make_result(
    status: ValidationStatus = ValidationStatus.VALID,
    confidence: float = 1.0,
    component_id: str = "c1",
    discrepancies: Optional[list[Discrepancy]] = None,
    run_id: str = "run-1",
) -> ValidationResult:
    return ValidationResult(
        validation_run_id=run_id,
        component_id=component_id,
        status=status,
        confidence=confidence,
        discrepancies=discrepancies or [],
    )
