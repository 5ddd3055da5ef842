"""Tests for InMemoryValidationStore."""

from datetime import datetime, timedelta, timezone

import pytest

from factories import make_result
from sourcecheck.models.errors import ValidationRunNotFoundError
from sourcecheck.storage.memory import InMemoryValidationStore
from sourcecheck.validation.models import (
    DiscrepancyType,
    ValidationRun,
    ValidationRunStatus,
    ValidationStatus,
    make_discrepancy,
)


class TestInMemoryValidationStore:
    async def test_create_and_get(self, store: InMemoryValidationStore) -> None:
        run = ValidationRun(diagram_id="diag-1", total_components=3)
        await store.create_run(run)

        fetched = await store.get_run(run.id)

        assert fetched == run
        assert fetched is not run

    async def test_get_missing(self, store: InMemoryValidationStore) -> None:
        assert await store.get_run("missing") is None

    async def test_update_run(self, store: InMemoryValidationStore) -> None:
        run = ValidationRun(diagram_id="diag-1")
        await store.create_run(run)

        updated = await store.update_run(run.id, status=ValidationRunStatus.RUNNING, validated_components=2)

        assert updated.status == ValidationRunStatus.RUNNING
        assert (await store.get_run(run.id)).validated_components == 2

    async def test_returned_copies_do_not_leak(self, store: InMemoryValidationStore) -> None:
        run = ValidationRun(diagram_id="diag-1")
        await store.create_run(run)

        fetched = await store.get_run(run.id)
        fetched.score = 99

        assert (await store.get_run(run.id)).score is None

    async def test_update_missing(self, store: InMemoryValidationStore) -> None:
        with pytest.raises(ValidationRunNotFoundError):
            await store.update_run("missing", score=1)

    async def test_results_in_append_order(self, store: InMemoryValidationStore) -> None:
        first = make_result(component_id="a")
        second = make_result(component_id="b")
        await store.append_result(first)
        await store.append_result(second)
        await store.append_result(make_result(run_id="run-2"))

        assert await store.list_results("run-1") == [first, second]
        assert await store.list_results("nothing") == []

    async def test_list_runs_by_start_time(self, store: InMemoryValidationStore) -> None:
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        late = ValidationRun(diagram_id="diag-1", started_at=base + timedelta(hours=1))
        early = ValidationRun(diagram_id="diag-1", started_at=base)
        await store.create_run(late)
        await store.create_run(early)
        await store.create_run(ValidationRun(diagram_id="other"))

        assert [r.id for r in await store.list_runs("diag-1")] == [early.id, late.id]

    async def test_written_results_cannot_be_changed(self, store: InMemoryValidationStore) -> None:
        result = make_result()
        await store.append_result(result)

        result.discrepancies.append(
            make_discrepancy(DiscrepancyType.CONFLICTING_SOURCES, message="added after write")
        )
        (await store.list_results("run-1"))[0].discrepancies.clear()
        listed = await store.list_results("run-1")
        listed[0].discrepancies.append(make_discrepancy(DiscrepancyType.MISSING_DATA, message="x"))

        stored = await store.list_results("run-1")
        assert stored[0].discrepancies == []
        assert stored[0].status == ValidationStatus.VALID
