"""Plain-text codec for per-job state files."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO
from uuid import uuid4

from pydantic import ValidationError

from bulk_table_migration.domain.entities import JobRecord, TableMigrationConfig
from bulk_table_migration.domain.errors import JobNotFoundError, PersistenceError
from bulk_table_migration.domain.job_types import (
    JobIdentity,
    MigrationStatus,
    PartitionKey,
    decode_partition_key,
    encode_partition_key,
)
from bulk_table_migration.domain.partition_sets import PartitionSets
from bulk_table_migration.infrastructure.persistence.job_directory import (
    TEMP_FILE_SUFFIX,
    JobDirectoryLayout,
    JobField,
)

_ENCODING = "utf-8"

logger = logging.getLogger(__name__)

PARTITION_FIELDS = {
    MigrationStatus.SUCCEEDED: JobField.PARTITIONS_SUCCEEDED,
    MigrationStatus.FAILED: JobField.PARTITIONS_FAILED,
}


def encode_status_record(status: MigrationStatus, retry_count: int) -> str:
    """Render the `metadata` file: status name and retry count on two lines."""

    return f"{status.value}\n{retry_count}"


def decode_status_record(text: str) -> tuple[MigrationStatus, int]:
    """Parse the `metadata` file."""

    lines = text.splitlines()
    if len(lines) != 2:
        raise ValueError(f"expected 2 lines, got {len(lines)}")
    retry_count = int(lines[1])
    if retry_count < 0:
        raise ValueError(f"negative retry count {retry_count}")
    return MigrationStatus(lines[0].strip()), retry_count


class JobFileCodec:
    """Reads and writes job fields below a `JobDirectoryLayout`.

    Whole-field writes go to a temp file that is fsynced and renamed over the
    target, so a crash leaves either the old or the new content. Partition
    sets are append-only logs; a trailing line without newline is a torn
    append and is dropped on read.
    """

    def __init__(self, layout: JobDirectoryLayout) -> None:
        self._layout = layout

    @property
    def layout(self) -> JobDirectoryLayout:
        return self._layout

    def write(self, identity: JobIdentity, field: JobField, text: str) -> None:
        """Atomically replace one field."""

        job_dir = self._layout.ensure_job_dir(identity)
        target = job_dir / field.value
        temp_path = job_dir / f".{field.value}.{uuid4().hex}{TEMP_FILE_SUFFIX}"
        try:
            with open(temp_path, "w", encoding=_ENCODING, newline="") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, target)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to write {target}: {exc}") from exc

    def read(self, identity: JobIdentity, field: JobField) -> str:
        """Return the content of one field."""

        path = self._layout.field_path(identity, field)
        try:
            with open(path, encoding=_ENCODING, newline="") as handle:
                return handle.read()
        except FileNotFoundError as exc:
            raise JobNotFoundError(f"No {field.value} file for migration job {identity}.") from exc
        except OSError as exc:
            raise PersistenceError(f"Failed to read {path}: {exc}") from exc

    def append_lines(self, identity: JobIdentity, field: JobField, lines: Iterable[str]) -> None:
        """Append newline-terminated lines to one field."""

        payload = "".join(f"{line}\n" for line in lines).encode(_ENCODING)
        if not payload:
            return
        path = self._layout.field_path(identity, field)
        try:
            with open(path, "ab", buffering=0) as handle:
                offset = handle.seek(0, os.SEEK_END)
                try:
                    remaining = memoryview(payload)
                    while remaining:
                        remaining = remaining[handle.write(remaining) :]
                    os.fsync(handle.fileno())
                except OSError:
                    self._rollback_append(handle, path, offset)
                    raise
        except OSError as exc:
            raise PersistenceError(f"Failed to append to {path}: {exc}") from exc

    def _rollback_append(self, handle: BinaryIO, path: Path, offset: int) -> None:
        try:
            handle.truncate(offset)
        except OSError as exc:
            logger.error("Failed to roll back partial append to %s: %s", path, exc)

    def read_lines(self, identity: JobIdentity, field: JobField) -> list[str]:
        """Return complete lines of a field; a missing file reads as empty.

        A torn trailing line is cut from the file so later appends start on a
        fresh line.
        """

        try:
            text = self.read(identity, field)
        except JobNotFoundError:
            return []
        lines = text.split("\n")
        tail = lines.pop()
        if tail:
            logger.warning(
                "Dropping incomplete trailing line of %s for migration job %s.",
                field.value,
                identity,
            )
            self.write(identity, field, "".join(f"{line}\n" for line in lines))
        return lines

    def remove_all(self, identity: JobIdentity) -> bool:
        """Delete the job directory. The metadata file goes first so an
        interrupted removal is never mistaken for a live job on recovery."""

        metadata_path = self._layout.field_path(identity, JobField.METADATA)
        try:
            metadata_path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Failed to remove {metadata_path}: {exc}") from exc
        return self._layout.remove_job_dir(identity)

    def has_status(self, identity: JobIdentity) -> bool:
        return self._layout.field_path(identity, JobField.METADATA).is_file()

    def write_status(self, identity: JobIdentity, status: MigrationStatus, retry_count: int) -> None:
        self.write(identity, JobField.METADATA, encode_status_record(status, retry_count))

    def read_status(self, identity: JobIdentity) -> tuple[MigrationStatus, int]:
        text = self.read(identity, JobField.METADATA)
        try:
            return decode_status_record(text)
        except ValueError as exc:
            raise PersistenceError(f"Corrupt metadata file for migration job {identity}: {exc}") from exc

    def write_config(self, identity: JobIdentity, config: TableMigrationConfig) -> None:
        self.write(identity, JobField.CONFIG, config.model_dump_json(by_alias=True, indent=2))

    def read_config(self, identity: JobIdentity) -> TableMigrationConfig:
        text = self.read(identity, JobField.CONFIG)
        try:
            return TableMigrationConfig.model_validate_json(text)
        except ValidationError as exc:
            raise PersistenceError(f"Corrupt config file for migration job {identity}: {exc}") from exc

    def write_partitions(
        self, identity: JobIdentity, field: JobField, keys: Iterable[PartitionKey]
    ) -> None:
        """Atomically replace a partition set file."""

        self.write(identity, field, "".join(f"{encode_partition_key(key)}\n" for key in keys))

    def append_partitions(
        self, identity: JobIdentity, field: JobField, keys: Iterable[PartitionKey]
    ) -> None:
        self.append_lines(identity, field, (encode_partition_key(key) for key in keys))

    def read_partitions(self, identity: JobIdentity, field: JobField) -> list[PartitionKey]:
        """Return the de-duplicated keys of a partition set file in file order."""

        keys = (decode_partition_key(line) for line in self.read_lines(identity, field) if line)
        return list(dict.fromkeys(keys))

    def load_record(self, identity: JobIdentity) -> JobRecord:
        status, retry_count = self.read_status(identity)
        return JobRecord(
            identity=identity,
            status=status,
            retry_count=retry_count,
            config=self.read_config(identity),
        )

    def load_partition_sets(self, identity: JobIdentity) -> PartitionSets:
        return PartitionSets.from_keys(
            all_keys=self.read_partitions(identity, JobField.PARTITIONS_ALL),
            succeeded=self.read_partitions(identity, JobField.PARTITIONS_SUCCEEDED),
            failed=self.read_partitions(identity, JobField.PARTITIONS_FAILED),
        )


__all__ = [
    "JobFileCodec",
    "PARTITION_FIELDS",
    "decode_status_record",
    "encode_status_record",
]
