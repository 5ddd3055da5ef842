"""Redis-backed validation store.

Layout (all values are JSON strings):
    {prefix}run:{run_id}              the run record
    {prefix}run:{run_id}:results      list of result records, append-only
    {prefix}diagram:{diagram_id}:runs list of run ids in creation order
"""

from typing import Optional

import structlog

from sourcecheck.models.errors import ValidationRunNotFoundError
from sourcecheck.storage.base import ValidationStore
from sourcecheck.validation.models import ValidationResult, ValidationRun

logger = structlog.get_logger()


class RedisValidationStore(ValidationStore):
    """Stores runs and results in Redis via a redis.asyncio client."""

    def __init__(self, redis_client, prefix: str = "sourcecheck:"):
        self.redis = redis_client
        self._prefix = prefix

    def _run_key(self, run_id: str) -> str:
        return f"{self._prefix}run:{run_id}"

    def _results_key(self, run_id: str) -> str:
        return f"{self._prefix}run:{run_id}:results"

    def _diagram_key(self, diagram_id: str) -> str:
        return f"{self._prefix}diagram:{diagram_id}:runs"

    async def create_run(self, run: ValidationRun) -> None:
        await self.redis.set(self._run_key(run.id), run.model_dump_json())
        await self.redis.rpush(self._diagram_key(run.diagram_id), run.id)
        logger.debug("run_stored", run_id=run.id, diagram_id=run.diagram_id)

    async def get_run(self, run_id: str) -> Optional[ValidationRun]:
        data = await self.redis.get(self._run_key(run_id))
        if data is None:
            return None
        return ValidationRun.model_validate_json(data)

    async def update_run(self, run_id: str, **changes) -> ValidationRun:
        current = await self.get_run(run_id)
        if current is None:
            raise ValidationRunNotFoundError(run_id)

        updated = ValidationRun.model_validate({**current.model_dump(), **changes})
        await self.redis.set(self._run_key(run_id), updated.model_dump_json())
        return updated

    async def append_result(self, result: ValidationResult) -> None:
        # Discrepancies are serialized inside the result record
        await self.redis.rpush(self._results_key(result.validation_run_id), result.model_dump_json())

    async def list_results(self, run_id: str) -> list[ValidationResult]:
        rows = await self.redis.lrange(self._results_key(run_id), 0, -1)
        return [ValidationResult.model_validate_json(row) for row in rows]

    async def list_runs(self, diagram_id: str) -> list[ValidationRun]:
        run_ids = await self.redis.lrange(self._diagram_key(diagram_id), 0, -1)
        if not run_ids:
            return []

        # Expired run records come back as None
        rows = await self.redis.mget([self._run_key(run_id) for run_id in run_ids])
        runs = [ValidationRun.model_validate_json(row) for row in rows if row is not None]
        return sorted(runs, key=lambda r: r.started_at)
