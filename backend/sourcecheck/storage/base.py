"""Storage interfaces for runs and results, plus the read-only component and document sources."""

from abc import ABC, abstractmethod
from typing import Optional

from sourcecheck.validation.models import (
    ComponentSnapshot,
    SourceDocument,
    ValidationResult,
    ValidationRun,
)


class ValidationStore(ABC):
    """Persists validation runs and their results.

    Contract:
        - every write is an independent statement, there is no transaction
        - results are append-only and returned in insertion order
        - runs for a diagram are returned in started_at order
    """

    @abstractmethod
    async def create_run(self, run: ValidationRun) -> None:
        ...

    @abstractmethod
    async def get_run(self, run_id: str) -> Optional[ValidationRun]:
        ...

    @abstractmethod
    async def update_run(self, run_id: str, **changes) -> ValidationRun:
        """Apply field changes to a run and return the updated run.

        Raises:
            ValidationRunNotFoundError: if the run does not exist.
        """
        ...

    @abstractmethod
    async def append_result(self, result: ValidationResult) -> None:
        ...

    @abstractmethod
    async def list_results(self, run_id: str) -> list[ValidationResult]:
        ...

    @abstractmethod
    async def list_runs(self, diagram_id: str) -> list[ValidationRun]:
        ...


class ComponentSource(ABC):
    """Read-only access to a diagram's components, in stored order."""

    @abstractmethod
    async def list_components(self, diagram_id: str) -> list[ComponentSnapshot]:
        ...

    async def count_components(self, diagram_id: str) -> int:
        return len(await self.list_components(diagram_id))


class DocumentSource(ABC):
    """Read-only lookup of source documents by id."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Optional[SourceDocument]:
        ...
