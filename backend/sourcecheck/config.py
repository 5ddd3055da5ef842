"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    OPENAI_API_KEY: str = ""

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "sourcecheck:"

    # Logging
    DEBUG: bool = False
    LOG_LEVEL: str = "info"

    # Assessor
    ASSESSOR_MODEL: str = "gpt-4o-mini"
    ASSESSOR_MAX_TOKENS: int = 1000
    ASSESSOR_TEMPERATURE: float = 0.3
    DOCUMENT_EXCERPT_LIMIT: int = 3000

    # Heuristics
    STALENESS_THRESHOLD_DAYS: float = 7
    COMPONENT_DRIFT_THRESHOLD_HOURS: float = 24
    FUZZY_MATCH_THRESHOLD: float = 0.8

    # Scoring (merged over the default component weight table)
    COMPONENT_WEIGHTS: dict[str, float] = {}

    # Progress events
    EVENT_HISTORY_PER_RUN: int = 100
    EVENT_HISTORY_MAX_FINISHED_RUNS: int = 50

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
