"""Persistence for validation runs and read-only component/document sources."""

from sourcecheck.storage.base import ComponentSource, DocumentSource, ValidationStore
from sourcecheck.storage.memory import InMemoryValidationStore
from sourcecheck.storage.redis_store import RedisValidationStore

__all__ = [
    "ComponentSource",
    "DocumentSource",
    "ValidationStore",
    "InMemoryValidationStore",
    "RedisValidationStore",
]
