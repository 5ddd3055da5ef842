"""Progress event models published while a validation run executes."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel


class BaseEvent(BaseModel):
    """Base event model for all run events."""

    type: str
    run_id: str
    timestamp: datetime = None

    def model_post_init(self, __context):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)

    def model_dump(self, **kwargs):
        """Override to always serialize datetimes as ISO strings for JSON safety."""
        kwargs.setdefault("mode", "json")
        return super().model_dump(**kwargs)


class ValidationStartedEvent(BaseEvent):
    """Emitted when a run moves to RUNNING."""

    type: Literal["validation_started"] = "validation_started"
    diagram_id: str
    total_components: int


class ComponentValidatedEvent(BaseEvent):
    """Emitted after each component result is persisted."""

    type: Literal["component_validated"] = "component_validated"
    component_id: str
    status: str
    confidence: float
    validated_components: int
    total_components: int


class ValidationCompletedEvent(BaseEvent):
    type: Literal["validation_completed"] = "validation_completed"
    score: float
    validated_components: int
    duration_seconds: float


class ValidationFailedEvent(BaseEvent):
    type: Literal["validation_failed"] = "validation_failed"
    message: str
    validated_components: Optional[int] = None
