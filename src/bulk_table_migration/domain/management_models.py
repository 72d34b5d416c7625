"""Request and response models for the management API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from bulk_table_migration.domain.catalog_models import TableMetaModel
from bulk_table_migration.domain.entities import (
    AdditionalTableConfig,
    JobRecord,
    PartitionProgress,
    TableMigrationConfig,
)
from bulk_table_migration.domain.job_types import MigrationStatus


class ManagementModel(BaseModel):
    """Base model for management routes."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class AddMigrationJobRequest(ManagementModel):
    """Create or restart one table migration."""

    source_namespace: str = Field(alias="sourceNamespace")
    source_table: str = Field(alias="sourceTable")
    dest_project: str = Field(alias="destProject")
    dest_table: str = Field(alias="destTable")
    partition_values_list: list[list[str]] | None = Field(
        default=None, alias="partitionValuesList"
    )
    additional_config: AdditionalTableConfig | None = Field(
        default=None, alias="additionalConfig"
    )

    def to_config(self, default_additional_config: AdditionalTableConfig) -> TableMigrationConfig:
        return TableMigrationConfig(
            source_namespace=self.source_namespace,
            source_table=self.source_table,
            dest_project=self.dest_project,
            dest_table=self.dest_table,
            partition_values_list=self.partition_values_list,
            additional_config=self.additional_config or default_additional_config,
        )


class JobStatusUpdateRequest(ManagementModel):
    """Job-level outcome reported by a worker."""

    status: MigrationStatus


class PartitionStatusUpdateRequest(ManagementModel):
    """Partition-level outcomes reported by a worker."""

    partition_values_list: list[list[str]] = Field(alias="partitionValuesList")
    status: MigrationStatus


class PartitionProgressResponse(ManagementModel):
    """Partition counters of one job."""

    total: int
    succeeded: int
    failed: int
    pending: int

    @classmethod
    def from_progress(cls, progress: PartitionProgress) -> PartitionProgressResponse:
        return cls(
            total=progress.total,
            succeeded=progress.succeeded,
            failed=progress.failed,
            pending=progress.pending,
        )


class MigrationJobInfoResponse(ManagementModel):
    """Single job management payload."""

    namespace: str
    table: str
    status: MigrationStatus
    retry_count: int = Field(alias="retryCount")
    retry_times_limit: int = Field(alias="retryTimesLimit")
    config: TableMigrationConfig
    partitions: PartitionProgressResponse | None = None

    @classmethod
    def from_record(
        cls,
        record: JobRecord,
        progress: PartitionProgress | None = None,
    ) -> MigrationJobInfoResponse:
        return cls(
            namespace=record.identity.namespace,
            table=record.identity.table,
            status=record.status,
            retry_count=record.retry_count,
            retry_times_limit=record.retry_times_limit,
            config=record.config,
            partitions=None if progress is None else PartitionProgressResponse.from_progress(progress),
        )


class MigrationJobListResponse(ManagementModel):
    """Collection wrapper for the job list endpoint."""

    jobs: list[MigrationJobInfoResponse]


class PendingTablesResponse(ManagementModel):
    """Table views the scheduler may dispatch."""

    tables: list[TableMetaModel]


__all__ = [
    "AddMigrationJobRequest",
    "JobStatusUpdateRequest",
    "MigrationJobInfoResponse",
    "MigrationJobListResponse",
    "PartitionProgressResponse",
    "PartitionStatusUpdateRequest",
    "PendingTablesResponse",
]
