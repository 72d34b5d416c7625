"""On-disk directory layout of migration jobs."""

from __future__ import annotations

import contextlib
import logging
import shutil
from collections.abc import Iterator
from enum import StrEnum
from pathlib import Path

from bulk_table_migration.domain.errors import InvalidArgumentError, PersistenceError
from bulk_table_migration.domain.job_types import JobIdentity

TEMP_FILE_SUFFIX = ".tmp"

logger = logging.getLogger(__name__)


class JobField(StrEnum):
    """Files stored per job directory."""

    METADATA = "metadata"
    CONFIG = "config"
    PARTITIONS_ALL = "partitions_all"
    PARTITIONS_SUCCEEDED = "partitions_succeeded"
    PARTITIONS_FAILED = "partitions_failed"


class JobDirectoryLayout:
    """Maps job identities to `<root>/<namespace>/<table>` directories."""

    def __init__(self, root_dir: str | Path) -> None:
        self._root_dir = Path(root_dir).expanduser().resolve()

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    def job_dir(self, identity: JobIdentity) -> Path:
        """Return the directory of one job; the path is not created."""

        return self._root_dir / identity.namespace / identity.table

    def field_path(self, identity: JobIdentity, field: JobField) -> Path:
        return self.job_dir(identity) / field.value

    def ensure_job_dir(self, identity: JobIdentity) -> Path:
        """Create the job directory tree when missing."""

        path = self.job_dir(identity)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Failed to create job directory {path}: {exc}") from exc
        return path

    def remove_job_dir(self, identity: JobIdentity) -> bool:
        """Delete a job directory subtree and its namespace directory once empty.

        Returns False if the job directory did not exist.
        """

        path = self.job_dir(identity)
        if not path.exists():
            return False
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise PersistenceError(f"Failed to remove job directory {path}: {exc}") from exc
        # rmdir fails while the namespace still holds other jobs
        with contextlib.suppress(OSError):
            path.parent.rmdir()
        return True

    def scan(self) -> Iterator[JobIdentity]:
        """Yield every job that has a metadata file, sorted by identity.

        Temp files left behind by an interrupted write are removed.
        """

        if not self._root_dir.is_dir():
            return
        try:
            table_dirs = [
                table_dir
                for namespace_dir in sorted(self._root_dir.iterdir())
                if namespace_dir.is_dir()
                for table_dir in sorted(namespace_dir.iterdir())
                if table_dir.is_dir()
            ]
            for table_dir in table_dirs:
                self._remove_stale_temp_files(table_dir)
        except OSError as exc:
            raise PersistenceError(f"Failed to scan {self._root_dir}: {exc}") from exc

        for table_dir in table_dirs:
            if not (table_dir / JobField.METADATA.value).is_file():
                logger.warning("Skipping job directory without metadata: %s", table_dir)
                continue
            try:
                identity = JobIdentity(table_dir.parent.name, table_dir.name)
            except InvalidArgumentError:
                logger.warning("Skipping job directory with invalid name: %s", table_dir)
                continue
            yield identity

    def _remove_stale_temp_files(self, table_dir: Path) -> None:
        for temp_file in table_dir.glob(f"*{TEMP_FILE_SUFFIX}"):
            logger.warning("Removing stale temp file %s", temp_file)
            temp_file.unlink(missing_ok=True)


__all__ = ["JobDirectoryLayout", "JobField", "TEMP_FILE_SUFFIX"]
