"""Shared test fixtures."""

from unittest.mock import AsyncMock

import pytest

from factories import VALID_RESPONSE, StaticComponentSource, StaticDocumentSource
from sourcecheck.config import Settings
from sourcecheck.services.event_bus import RunEventBus
from sourcecheck.storage.memory import InMemoryValidationStore
from sourcecheck.validation.orchestrator import ValidationOrchestrator


@pytest.fixture
def settings() -> Settings:
    return Settings(OPENAI_API_KEY="test-key", REDIS_URL="redis://localhost:6379/15")


@pytest.fixture
def store() -> InMemoryValidationStore:
    return InMemoryValidationStore()


@pytest.fixture
def component_source() -> StaticComponentSource:
    return StaticComponentSource()


@pytest.fixture
def document_source() -> StaticDocumentSource:
    return StaticDocumentSource()


@pytest.fixture
def assessor() -> AsyncMock:
    """Assessor that reports a clean component at 0.9 confidence."""
    mock = AsyncMock()
    mock.complete.return_value = VALID_RESPONSE
    return mock


@pytest.fixture
def event_bus() -> RunEventBus:
    return RunEventBus()


@pytest.fixture
def orchestrator(
    store: InMemoryValidationStore,
    component_source: StaticComponentSource,
    document_source: StaticDocumentSource,
    assessor: AsyncMock,
    settings: Settings,
    event_bus: RunEventBus,
) -> ValidationOrchestrator:
    return ValidationOrchestrator(
        store=store,
        components=component_source,
        documents=document_source,
        assessor=assessor,
        settings=settings,
        event_bus=event_bus,
    )
