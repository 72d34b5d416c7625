"""Application settings."""

from enum import StrEnum
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MetaSourceBackend(StrEnum):
    """Available source catalog adapters."""

    IN_MEMORY = "in_memory"
    HTTP = "http"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Bulk Table Migration Metadata"
    api_prefix: str = ""
    host: str = "0.0.0.0"
    port: int = 8080
    meta_root_dir: Path = Path(".migration_meta")
    meta_source_backend: MetaSourceBackend = MetaSourceBackend.IN_MEMORY
    meta_source_endpoint: str | None = None
    meta_source_timeout_seconds: float = 10.0
    default_retry_times_limit: int = 1
    default_partition_group_size: int = 10

    @model_validator(mode="after")
    def validate_meta_source_settings(self) -> "Settings":
        """Ensure backend-specific settings are valid."""

        if self.meta_source_backend == MetaSourceBackend.HTTP and not self.meta_source_endpoint:
            raise ValueError(
                "BTM_META_SOURCE_ENDPOINT is required when BTM_META_SOURCE_BACKEND=http."
            )
        if self.meta_source_timeout_seconds <= 0:
            raise ValueError("BTM_META_SOURCE_TIMEOUT_SECONDS must be > 0.")
        if self.default_retry_times_limit < 0:
            raise ValueError("BTM_DEFAULT_RETRY_TIMES_LIMIT must be >= 0.")
        if self.default_partition_group_size < 1:
            raise ValueError("BTM_DEFAULT_PARTITION_GROUP_SIZE must be >= 1.")
        return self

    model_config = SettingsConfigDict(env_prefix="BTM_", extra="ignore")


__all__ = ["MetaSourceBackend", "Settings"]
