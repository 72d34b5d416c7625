"""In-memory partition bookkeeping for one migration job."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from bulk_table_migration.domain.entities import PartitionProgress
from bulk_table_migration.domain.job_types import MigrationStatus, PartitionKey


def _ordered(keys: Iterable[PartitionKey]) -> dict[PartitionKey, None]:
    return dict.fromkeys(keys)


@dataclass(slots=True)
class PartitionSets:
    """Known, succeeded and failed partitions of a job, each insertion-ordered.

    `failed` is an audit trail only: a failed partition stays pending until
    it is reported as succeeded.
    """

    all: dict[PartitionKey, None] = field(default_factory=dict)
    succeeded: dict[PartitionKey, None] = field(default_factory=dict)
    failed: dict[PartitionKey, None] = field(default_factory=dict)

    @classmethod
    def from_keys(
        cls,
        all_keys: Iterable[PartitionKey] = (),
        succeeded: Iterable[PartitionKey] = (),
        failed: Iterable[PartitionKey] = (),
    ) -> PartitionSets:
        return cls(all=_ordered(all_keys), succeeded=_ordered(succeeded), failed=_ordered(failed))

    def missing_from_all(self, keys: Iterable[PartitionKey]) -> list[PartitionKey]:
        """Return the keys not yet known, de-duplicated, in input order."""

        return [key for key in _ordered(keys) if key not in self.all]

    def missing_from(
        self, status: MigrationStatus, keys: Iterable[PartitionKey]
    ) -> list[PartitionKey]:
        """Return the keys not yet recorded under `status`."""

        target = self._set_for(status)
        return [key for key in _ordered(keys) if key not in target]

    def with_all(self, keys: Iterable[PartitionKey]) -> PartitionSets:
        """Copy with `keys` unioned into the known partitions."""

        merged = dict(self.all)
        merged.update(_ordered(keys))
        return PartitionSets(all=merged, succeeded=dict(self.succeeded), failed=dict(self.failed))

    def with_status(self, status: MigrationStatus, keys: Iterable[PartitionKey]) -> PartitionSets:
        """Copy with `keys` recorded under `status`."""

        succeeded = dict(self.succeeded)
        failed = dict(self.failed)
        target = succeeded if status is MigrationStatus.SUCCEEDED else failed
        target.update(_ordered(keys))
        return PartitionSets(all=dict(self.all), succeeded=succeeded, failed=failed)

    def pending(self) -> list[PartitionKey]:
        return [key for key in self.all if key not in self.succeeded]

    def progress(self) -> PartitionProgress:
        pending = self.pending()
        return PartitionProgress(
            total=len(self.all),
            succeeded=len(self.succeeded),
            failed=len(self.failed),
            pending=len(pending),
        )

    def _set_for(self, status: MigrationStatus) -> dict[PartitionKey, None]:
        if status is MigrationStatus.SUCCEEDED:
            return self.succeeded
        return self.failed


__all__ = ["PartitionSets"]
