"""In-memory source catalog for local development and tests."""

from __future__ import annotations

import threading

from bulk_table_migration.domain.catalog_models import (
    ColumnMetaModel,
    PartitionMetaModel,
    TableMetaModel,
)
from bulk_table_migration.domain.errors import TableNotFoundError
from bulk_table_migration.domain.ports import MetaSource


class InMemoryMetaSource(MetaSource):
    """Simple catalog backed by registered table models."""

    def __init__(self) -> None:
        self._tables: dict[tuple[str, str], TableMetaModel] = {}
        self._lock = threading.Lock()

    @classmethod
    def with_sample_tables(cls, namespace: str = "test") -> InMemoryMetaSource:
        """Catalog with one non-partitioned and one partitioned table."""

        source = cls()
        source.register_table(
            TableMetaModel(
                namespace=namespace,
                table_name="test_non_partitioned",
                columns=[ColumnMetaModel(name="foo", type="string")],
            )
        )
        source.register_table(
            TableMetaModel(
                namespace=namespace,
                table_name="test_partitioned",
                columns=[ColumnMetaModel(name="foo", type="string")],
                partition_columns=[ColumnMetaModel(name="bar", type="string")],
                partitions=[PartitionMetaModel(partition_values=["hello_world"])],
            )
        )
        return source

    def register_table(self, table: TableMetaModel) -> None:
        """Create or replace a table."""

        with self._lock:
            self._tables[(table.namespace, table.table_name)] = table.model_copy(deep=True)

    def add_partition(self, namespace: str, table: str, partition_values: list[str]) -> None:
        """Simulate a partition appearing in the source after a job was created."""

        with self._lock:
            existing = self._tables.get((namespace, table))
            if existing is None:
                raise TableNotFoundError(f"Table '{namespace}.{table}' does not exist.")
            existing.partitions.append(PartitionMetaModel(partition_values=list(partition_values)))

    def list_tables(self, namespace: str) -> list[str]:
        """Return table names in registration order."""

        with self._lock:
            return [table for ns, table in self._tables if ns == namespace]

    def has_table(self, namespace: str, table: str) -> bool:
        with self._lock:
            return (namespace, table) in self._tables

    def get_table_meta(self, namespace: str, table: str) -> TableMetaModel:
        """Return a copy so callers cannot mutate the catalog."""

        with self._lock:
            existing = self._tables.get((namespace, table))
            if existing is None:
                raise TableNotFoundError(f"Table '{namespace}.{table}' does not exist.")
            return existing.model_copy(deep=True)


__all__ = ["InMemoryMetaSource"]
