"""Ports for the source catalog and the migration job store."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from bulk_table_migration.domain.catalog_models import TableMetaModel
from bulk_table_migration.domain.entities import (
    JobRecord,
    PartitionProgress,
    TableMigrationConfig,
)
from bulk_table_migration.domain.job_types import MigrationStatus


@runtime_checkable
class MetaSource(Protocol):
    """Source catalog that enumerates tables, schemas and partitions."""

    def list_tables(self, namespace: str) -> list[str]:
        """Return table names of one namespace."""

    def has_table(self, namespace: str, table: str) -> bool:
        """Return whether the catalog knows a table."""

    def get_table_meta(self, namespace: str, table: str) -> TableMetaModel:
        """Return columns, partition columns and current partitions."""


class MigrationJobStore(Protocol):
    """Durable job metadata consumed by the scheduler and its workers."""

    def add_migration_job(self, config: TableMigrationConfig) -> JobRecord:
        """Create a job, or restart a terminal one."""

    def remove_migration_job(self, namespace: str, table: str) -> None:
        """Delete all state of a job."""

    def has_migration_job(self, namespace: str, table: str) -> bool:
        """Return whether a job exists."""

    def list_migration_jobs(self, status: MigrationStatus | None = None) -> list[JobRecord]:
        """Return job records, optionally filtered by status."""

    def update_status(self, namespace: str, table: str, status: MigrationStatus) -> JobRecord:
        """Report a job-level outcome."""

    def update_partition_status(
        self,
        namespace: str,
        table: str,
        partition_values_list: Sequence[Sequence[str]],
        status: MigrationStatus,
    ) -> None:
        """Report partition-level outcomes."""

    def get_job(self, namespace: str, table: str) -> JobRecord:
        """Return the stored record of a job."""

    def get_status(self, namespace: str, table: str) -> MigrationStatus:
        """Return the stored job status."""

    def get_config(self, namespace: str, table: str) -> TableMigrationConfig:
        """Return the config attached to a job."""

    def get_partition_progress(self, namespace: str, table: str) -> PartitionProgress:
        """Return partition counters of a job."""

    def get_pending_tables(self) -> list[TableMetaModel]:
        """Return table views for every PENDING job."""


__all__ = ["MetaSource", "MigrationJobStore"]
