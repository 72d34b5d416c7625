"""Migration job metadata use-case service."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, replace
from pathlib import Path

from bulk_table_migration.domain.catalog_models import PartitionMetaModel, TableMetaModel
from bulk_table_migration.domain.entities import (
    JobRecord,
    PartitionProgress,
    TableMigrationConfig,
)
from bulk_table_migration.domain.errors import (
    InvalidArgumentError,
    JobAlreadyExistsError,
    JobNotFoundError,
    MetaSourceError,
)
from bulk_table_migration.domain.job_state_machine import apply_status_update, reset_for_restart
from bulk_table_migration.domain.job_types import (
    PARTITION_STATUSES,
    TERMINAL_MIGRATION_STATUSES,
    JobIdentity,
    MigrationStatus,
    PartitionKey,
    parse_status,
    to_partition_key,
    to_partition_keys,
)
from bulk_table_migration.domain.partition_sets import PartitionSets
from bulk_table_migration.domain.ports import MetaSource, MigrationJobStore
from bulk_table_migration.infrastructure.persistence import (
    PARTITION_FIELDS,
    JobDirectoryLayout,
    JobField,
    JobFileCodec,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class _IndexedJob:
    record: JobRecord
    partitions: PartitionSets


class MigrationMetaManager(MigrationJobStore):
    """File-backed store of migration jobs with an in-memory index.

    Mutations of one job run under that job's lock and follow the order
    compute, persist, publish: the index entry is swapped only after every
    file write succeeded, so a failed write leaves the index as it was.
    Index entries are immutable and replaced wholesale, which lets readers
    take point-in-time snapshots without holding any job lock.
    """

    def __init__(self, root_dir: str | Path, meta_source: MetaSource) -> None:
        self._codec = JobFileCodec(JobDirectoryLayout(root_dir))
        self._meta_source = meta_source
        self._index: dict[JobIdentity, _IndexedJob] = {}
        self._index_lock = threading.Lock()
        self._job_locks: dict[JobIdentity, threading.Lock] = {}
        self.recover()

    @property
    def root_dir(self) -> Path:
        return self._codec.layout.root_dir

    def recover(self) -> int:
        """Rebuild the index from the job directory tree.

        The constructor calls this before the manager is shared. The swap
        takes no job locks, so calling it again while other threads mutate
        jobs can drop their updates from the index.
        """

        index: dict[JobIdentity, _IndexedJob] = {}
        for identity in self._codec.layout.scan():
            index[identity] = _IndexedJob(
                record=self._codec.load_record(identity),
                partitions=self._codec.load_partition_sets(identity),
            )
        with self._index_lock:
            self._index = index
        logger.info("Recovered %d migration jobs from %s.", len(index), self.root_dir)
        return len(index)

    def add_migration_job(self, config: TableMigrationConfig) -> JobRecord:
        """Create a job, or restart it when it already reached a terminal status."""

        identity = config.identity
        explicit_keys = (
            None
            if config.partition_values_list is None
            else to_partition_keys(config.partition_values_list)
        )
        with self._job_lock(identity):
            existing = self._lookup(identity)
            if existing is None:
                return self._create_job(identity, config, explicit_keys)
            if existing.record.status not in TERMINAL_MIGRATION_STATUSES:
                raise JobAlreadyExistsError(
                    f"Migration job {identity} already exists with status "
                    f"{existing.record.status}."
                )
            return self._restart_job(existing, config, explicit_keys)

    def remove_migration_job(self, namespace: str, table: str) -> None:
        """Delete a job. Removing an unknown job raises `JobNotFoundError`."""

        identity = JobIdentity(namespace, table)
        with self._job_lock(identity):
            self._require(identity)
            try:
                self._codec.remove_all(identity)
            finally:
                # a directory without metadata is gone for recovery too
                if not self._codec.has_status(identity):
                    with self._index_lock:
                        self._index.pop(identity, None)
        logger.info("Removed migration job %s.", identity)

    def has_migration_job(self, namespace: str, table: str) -> bool:
        return self._lookup(JobIdentity(namespace, table)) is not None

    def list_migration_jobs(self, status: MigrationStatus | None = None) -> list[JobRecord]:
        """Return job records sorted by identity."""

        records = [entry.record for entry in self._snapshot()]
        if status is not None:
            records = [record for record in records if record.status is status]
        return sorted(records, key=lambda record: record.identity)

    def update_status(self, namespace: str, table: str, status: MigrationStatus) -> JobRecord:
        """Apply a job-level status report and return the stored record."""

        identity = JobIdentity(namespace, table)
        status = parse_status(status)
        with self._job_lock(identity):
            entry = self._require(identity)
            updated = apply_status_update(entry.record, status)
            if updated is entry.record:
                return updated
            self._codec.write_status(identity, updated.status, updated.retry_count)
            self._publish(identity, _IndexedJob(record=updated, partitions=entry.partitions))
        logger.debug(
            "Migration job %s: requested %s, stored %s (retry %d/%d).",
            identity,
            status,
            updated.status,
            updated.retry_count,
            updated.retry_times_limit,
        )
        return updated

    def update_partition_status(
        self,
        namespace: str,
        table: str,
        partition_values_list: Sequence[Sequence[str]],
        status: MigrationStatus,
    ) -> None:
        """Record partition outcomes without touching the job status."""

        status = parse_status(status)
        if status not in PARTITION_STATUSES:
            raise InvalidArgumentError(
                f"Partition status must be SUCCEEDED or FAILED, got {status}."
            )
        identity = JobIdentity(namespace, table)
        keys = to_partition_keys(partition_values_list)
        with self._job_lock(identity):
            entry = self._require(identity)
            unknown = entry.partitions.missing_from_all(keys)
            if unknown:
                logger.warning(
                    "Migration job %s: %d reported partitions are not known, first %s.",
                    identity,
                    len(unknown),
                    list(unknown[0]),
                )
            new_keys = entry.partitions.missing_from(status, keys)
            if not new_keys:
                return
            self._codec.append_partitions(identity, PARTITION_FIELDS[status], new_keys)
            self._publish(
                identity,
                _IndexedJob(
                    record=entry.record,
                    partitions=entry.partitions.with_status(status, new_keys),
                ),
            )

    def get_job(self, namespace: str, table: str) -> JobRecord:
        return self._require(JobIdentity(namespace, table)).record

    def get_status(self, namespace: str, table: str) -> MigrationStatus:
        return self._require(JobIdentity(namespace, table)).record.status

    def get_retry_count(self, namespace: str, table: str) -> int:
        return self._require(JobIdentity(namespace, table)).record.retry_count

    def get_config(self, namespace: str, table: str) -> TableMigrationConfig:
        return self._require(JobIdentity(namespace, table)).record.config

    def get_pending_partitions(self, namespace: str, table: str) -> list[PartitionKey]:
        """Return known partitions not yet succeeded, in discovery order."""

        return self._require(JobIdentity(namespace, table)).partitions.pending()

    def get_partition_progress(self, namespace: str, table: str) -> PartitionProgress:
        return self._require(JobIdentity(namespace, table)).partitions.progress()

    def get_pending_tables(self) -> list[TableMetaModel]:
        """Return a table view for every PENDING job.

        Tables the catalog cannot describe right now are skipped for this
        call. The result is unordered and may be stale as soon as it returns.
        """

        views: list[TableMetaModel] = []
        for entry in self._snapshot():
            if entry.record.status is not MigrationStatus.PENDING:
                continue
            identity = entry.record.identity
            try:
                table_meta = self._meta_source.get_table_meta(identity.namespace, identity.table)
            except MetaSourceError as exc:
                logger.warning("Skipping pending migration job %s: %s", identity, exc)
                continue
            views.append(self._table_view(entry, table_meta))
        return views

    def _create_job(
        self,
        identity: JobIdentity,
        config: TableMigrationConfig,
        explicit_keys: list[PartitionKey] | None,
    ) -> JobRecord:
        keys = self._discover_partition_keys(identity, explicit_keys)
        partitions = PartitionSets.from_keys(all_keys=keys)
        record = JobRecord(
            identity=identity,
            status=MigrationStatus.PENDING,
            retry_count=0,
            config=config,
        )
        self._codec.layout.ensure_job_dir(identity)
        self._codec.write_config(identity, config)
        self._codec.write_partitions(identity, JobField.PARTITIONS_ALL, partitions.all)
        self._codec.write_partitions(identity, JobField.PARTITIONS_SUCCEEDED, ())
        self._codec.write_partitions(identity, JobField.PARTITIONS_FAILED, ())
        # metadata last: a directory without it is ignored on recovery
        self._codec.write_status(identity, record.status, record.retry_count)
        self._publish(identity, _IndexedJob(record=record, partitions=partitions))
        logger.info("Added migration job %s with %d partitions.", identity, len(keys))
        return record

    def _restart_job(
        self,
        existing: _IndexedJob,
        config: TableMigrationConfig,
        explicit_keys: list[PartitionKey] | None,
    ) -> JobRecord:
        identity = existing.record.identity
        new_keys = existing.partitions.missing_from_all(
            self._discover_partition_keys(identity, explicit_keys)
        )
        record = reset_for_restart(existing.record, config)

        # the index follows each file that reached disk, even if a later write fails
        stored_record, stored_partitions = existing.record, existing.partitions
        try:
            self._codec.append_partitions(identity, JobField.PARTITIONS_ALL, new_keys)
            stored_partitions = existing.partitions.with_all(new_keys)
            self._codec.write_config(identity, config)
            stored_record = replace(existing.record, config=config)
            self._codec.write_status(identity, record.status, record.retry_count)
            stored_record = record
        finally:
            self._publish(
                identity, _IndexedJob(record=stored_record, partitions=stored_partitions)
            )
        logger.info(
            "Restarted migration job %s (was %s), %d new partitions.",
            identity,
            existing.record.status,
            len(new_keys),
        )
        return record

    def _table_view(self, entry: _IndexedJob, table_meta: TableMetaModel) -> TableMetaModel:
        config = entry.record.config
        partitions = (
            [PartitionMetaModel(partition_values=list(key)) for key in entry.partitions.pending()]
            if table_meta.is_partitioned
            else []
        )
        return table_meta.model_copy(
            update={
                "dest_project": config.dest_project,
                "dest_table": config.dest_table,
                "partitions": partitions,
            }
        )

    def _discover_partition_keys(
        self,
        identity: JobIdentity,
        explicit_keys: list[PartitionKey] | None,
    ) -> list[PartitionKey]:
        """Explicit keys when given, else the catalog's partitions."""

        table_meta = self._meta_source.get_table_meta(identity.namespace, identity.table)
        if not table_meta.is_partitioned:
            if explicit_keys:
                raise InvalidArgumentError(
                    f"Table {identity} is not partitioned but partitions were given."
                )
            return []
        if explicit_keys is not None:
            return explicit_keys
        return [to_partition_key(partition.partition_values) for partition in table_meta.partitions]

    def _job_lock(self, identity: JobIdentity) -> threading.Lock:
        # entries outlive removal so a re-added job reuses its lock
        with self._index_lock:
            lock = self._job_locks.get(identity)
            if lock is None:
                lock = threading.Lock()
                self._job_locks[identity] = lock
            return lock

    def _lookup(self, identity: JobIdentity) -> _IndexedJob | None:
        with self._index_lock:
            return self._index.get(identity)

    def _require(self, identity: JobIdentity) -> _IndexedJob:
        entry = self._lookup(identity)
        if entry is None:
            raise JobNotFoundError(f"Migration job {identity} does not exist.")
        return entry

    def _snapshot(self) -> list[_IndexedJob]:
        with self._index_lock:
            return list(self._index.values())

    def _publish(self, identity: JobIdentity, entry: _IndexedJob) -> None:
        with self._index_lock:
            self._index[identity] = entry


__all__ = ["MigrationMetaManager"]
