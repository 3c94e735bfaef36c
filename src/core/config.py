"""Worker configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Redis - queue transport for tagging and search indexing jobs
    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")

    # Completion provider. An empty key disables tag inference entirely.
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    openai_base_url: str | None = Field(default=None, validation_alias="OPENAI_BASE_URL")
    inference_model: str = Field(
        default="gpt-3.5-turbo-0125",
        validation_alias="INFERENCE_MODEL",
    )
    inference_timeout_seconds: float = Field(
        default=30.0,
        validation_alias="INFERENCE_TIMEOUT_SECONDS",
    )

    # Queues
    tagging_queue_name: str = Field(default="openai_queue", validation_alias="TAGGING_QUEUE_NAME")
    search_indexing_queue_name: str = Field(
        default="searching_indexing",
        validation_alias="SEARCH_INDEXING_QUEUE_NAME",
    )

    # Worker loop
    worker_concurrency: int = Field(default=4, validation_alias="WORKER_CONCURRENCY")
    worker_poll_timeout_seconds: float = Field(
        default=5.0,
        validation_alias="WORKER_POLL_TIMEOUT_SECONDS",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("inference_timeout_seconds")
    @classmethod
    def validate_inference_timeout(cls, v: float) -> float:
        """Reject non-positive timeouts so a provider call can never hang a worker."""
        if v <= 0:
            raise ValueError("INFERENCE_TIMEOUT_SECONDS must be greater than 0")
        return v

    @field_validator("worker_concurrency")
    @classmethod
    def validate_worker_concurrency(cls, v: int) -> int:
        """At least one job must be able to run."""
        if v < 1:
            raise ValueError("WORKER_CONCURRENCY must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level names to upper case."""
        return v.upper()

    @property
    def inference_enabled(self) -> bool:
        """Whether a provider credential is configured."""
        return bool(self.openai_api_key.strip())


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
