"""Domain entities."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bulk_table_migration.domain.job_types import JobIdentity, MigrationStatus


class ConfigModel(BaseModel):
    """Base model for persisted job configuration."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class AdditionalTableConfig(ConfigModel):
    """Per-job tunables supplied by the caller."""

    partition_filter: str | None = Field(default=None, alias="partitionFilter")
    table_properties: dict[str, str] | None = Field(default=None, alias="tableProperties")
    partition_group_size: int = Field(default=10, alias="partitionGroupSize")
    retry_times_limit: int = Field(default=1, ge=0, alias="retryTimesLimit")


class TableMigrationConfig(ConfigModel):
    """Source and destination of one table migration plus its tunables."""

    source_namespace: str = Field(alias="sourceNamespace")
    source_table: str = Field(alias="sourceTable")
    dest_project: str = Field(alias="destProject")
    dest_table: str = Field(alias="destTable")
    partition_values_list: list[list[str]] | None = Field(
        default=None, alias="partitionValuesList"
    )
    additional_config: AdditionalTableConfig = Field(
        default_factory=AdditionalTableConfig, alias="additionalConfig"
    )

    @field_validator("source_namespace", "source_table", "dest_project", "dest_table")
    @classmethod
    def ensure_not_blank(cls, value: str) -> str:
        """Reject empty identifiers."""

        if not value.strip():
            raise ValueError("Identifier cannot be blank.")
        return value

    @property
    def identity(self) -> JobIdentity:
        """Job identity derived from the source table."""

        return JobIdentity(self.source_namespace, self.source_table)


@dataclass(slots=True, frozen=True)
class JobRecord:
    """Durable status record of one migration job."""

    identity: JobIdentity
    status: MigrationStatus
    retry_count: int
    config: TableMigrationConfig

    @property
    def retry_times_limit(self) -> int:
        """Maximum number of job-level failures tolerated before FAILED."""

        return self.config.additional_config.retry_times_limit


@dataclass(slots=True, frozen=True)
class PartitionProgress:
    """Partition counters of one job."""

    total: int
    succeeded: int
    failed: int
    pending: int


__all__ = [
    "AdditionalTableConfig",
    "JobRecord",
    "PartitionProgress",
    "TableMigrationConfig",
]
