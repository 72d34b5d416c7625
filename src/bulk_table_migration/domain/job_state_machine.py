"""Bounded-retry status machine for migration jobs."""

from __future__ import annotations

from dataclasses import replace

from bulk_table_migration.domain.entities import JobRecord, TableMigrationConfig
from bulk_table_migration.domain.errors import InvalidTransitionError
from bulk_table_migration.domain.job_types import MigrationStatus

_ALLOWED_SOURCES: dict[MigrationStatus, frozenset[MigrationStatus]] = {
    MigrationStatus.PENDING: frozenset({MigrationStatus.PENDING}),
    MigrationStatus.RUNNING: frozenset({MigrationStatus.PENDING, MigrationStatus.RUNNING}),
    MigrationStatus.SUCCEEDED: frozenset(
        {MigrationStatus.PENDING, MigrationStatus.RUNNING, MigrationStatus.SUCCEEDED}
    ),
    MigrationStatus.FAILED: frozenset(
        {MigrationStatus.PENDING, MigrationStatus.RUNNING, MigrationStatus.FAILED}
    ),
}


def apply_status_update(record: JobRecord, requested: MigrationStatus) -> JobRecord:
    """Return the record that results from reporting `requested` for a job.

    A requested FAILED consumes one unit of retry budget. While the budget
    is not exhausted the stored status becomes PENDING so the job is picked
    up again; otherwise it becomes FAILED.
    """

    current = record.status
    if current not in _ALLOWED_SOURCES[requested]:
        raise InvalidTransitionError(current.value, requested.value)

    if current == requested:
        return record

    if requested is MigrationStatus.FAILED:
        retry_count = record.retry_count + 1
        if retry_count <= record.retry_times_limit:
            return replace(record, status=MigrationStatus.PENDING, retry_count=retry_count)
        return replace(record, status=MigrationStatus.FAILED, retry_count=retry_count)

    return replace(record, status=requested)


def reset_for_restart(record: JobRecord, config: TableMigrationConfig) -> JobRecord:
    """Return a fresh PENDING record carrying the replacement config."""

    return replace(record, status=MigrationStatus.PENDING, retry_count=0, config=config)


__all__ = ["apply_status_update", "reset_for_restart"]
