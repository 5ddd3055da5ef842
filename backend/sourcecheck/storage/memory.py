"""In-memory validation store.

For production with multiple instances, swap to the Redis-backed store.
"""

from collections import defaultdict
from typing import Optional

from sourcecheck.models.errors import ValidationRunNotFoundError
from sourcecheck.storage.base import ValidationStore
from sourcecheck.validation.models import ValidationResult, ValidationRun


class InMemoryValidationStore(ValidationStore):
    """Dict-backed store, suitable for tests and single-process use."""

    def __init__(self):
        self._runs: dict[str, ValidationRun] = {}
        self._results: dict[str, list[ValidationResult]] = defaultdict(list)

    async def create_run(self, run: ValidationRun) -> None:
        self._runs[run.id] = run.model_copy()

    async def get_run(self, run_id: str) -> Optional[ValidationRun]:
        run = self._runs.get(run_id)
        return run.model_copy() if run else None

    async def update_run(self, run_id: str, **changes) -> ValidationRun:
        current = self._runs.get(run_id)
        if current is None:
            raise ValidationRunNotFoundError(run_id)

        updated = ValidationRun.model_validate({**current.model_dump(), **changes})
        self._runs[run_id] = updated
        return updated.model_copy()

    async def append_result(self, result: ValidationResult) -> None:
        # Rows are copied in and out; stored history never changes
        self._results[result.validation_run_id].append(result.model_copy(deep=True))

    async def list_results(self, run_id: str) -> list[ValidationResult]:
        return [r.model_copy(deep=True) for r in self._results.get(run_id, [])]

    async def list_runs(self, diagram_id: str) -> list[ValidationRun]:
        runs = [r.model_copy() for r in self._runs.values() if r.diagram_id == diagram_id]
        return sorted(runs, key=lambda r: r.started_at)
