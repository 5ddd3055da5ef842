"""sourcecheck composition root.

Builds the service objects once at process start. Callers (an API layer, a
worker) hold on to the returned bundle and pass its members where needed.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as aioredis
import structlog

from sourcecheck.config import Settings, get_settings
from sourcecheck.services.event_bus import RunEventBus
from sourcecheck.services.llm_assessor import LLMAssessor
from sourcecheck.storage.base import ComponentSource, DocumentSource, ValidationStore
from sourcecheck.storage.memory import InMemoryValidationStore
from sourcecheck.storage.redis_store import RedisValidationStore
from sourcecheck.validation.discrepancy_detector import DiscrepancyDetector
from sourcecheck.validation.orchestrator import ValidationOrchestrator
from sourcecheck.validation.scoring import ScoringEngine

logger = structlog.get_logger()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure structured logging."""
    settings = settings or get_settings()
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if settings.DEBUG else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


@dataclass
class ValidationServices:
    store: ValidationStore
    orchestrator: ValidationOrchestrator
    scoring_engine: ScoringEngine
    detector: DiscrepancyDetector
    event_bus: RunEventBus
    redis: Optional[object] = None


def create_redis_client(settings: Settings):
    return aioredis.from_url(settings.REDIS_URL, decode_responses=True, encoding="utf-8")


def build_services(
    components: ComponentSource,
    documents: DocumentSource,
    settings: Optional[Settings] = None,
    assessor=None,
    redis_client=None,
    store: Optional[ValidationStore] = None,
) -> ValidationServices:
    """Wire the orchestrator, scoring engine and detector around one store.

    Store selection: an explicit store wins, then a given redis client, and
    otherwise an in-memory store.
    """
    settings = settings or get_settings()

    if store is None:
        if redis_client is not None:
            store = RedisValidationStore(redis_client, prefix=settings.REDIS_KEY_PREFIX)
        else:
            store = InMemoryValidationStore()

    detector = DiscrepancyDetector(fuzzy_match_threshold=settings.FUZZY_MATCH_THRESHOLD)
    event_bus = RunEventBus(
        max_history=settings.EVENT_HISTORY_PER_RUN,
        max_finished_runs=settings.EVENT_HISTORY_MAX_FINISHED_RUNS,
    )

    orchestrator = ValidationOrchestrator(
        store=store,
        components=components,
        documents=documents,
        assessor=assessor or LLMAssessor(model_name=settings.ASSESSOR_MODEL, api_key=settings.OPENAI_API_KEY),
        settings=settings,
        event_bus=event_bus,
        detector=detector,
    )
    scoring_engine = ScoringEngine(store=store, component_weights=settings.COMPONENT_WEIGHTS)

    logger.info(
        "validation_services_built",
        store=type(store).__name__,
        assessor_model=settings.ASSESSOR_MODEL,
    )

    return ValidationServices(
        store=store,
        orchestrator=orchestrator,
        scoring_engine=scoring_engine,
        detector=detector,
        event_bus=event_bus,
        redis=redis_client,
    )
