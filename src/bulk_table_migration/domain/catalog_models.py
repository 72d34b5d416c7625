"""Pydantic models for source catalog metadata and scheduler table views."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CatalogModel(BaseModel):
    """Base model for catalog payloads."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ColumnMetaModel(CatalogModel):
    """One table or partition column."""

    name: str
    type: str
    comment: str | None = None


class PartitionMetaModel(CatalogModel):
    """One partition, identified by its ordered values."""

    partition_values: list[str] = Field(alias="partitionValues")


class TableMetaModel(CatalogModel):
    """Table metadata as reported by the source catalog.

    When returned by `get_pending_tables`, the destination fields are filled
    from the job config and `partitions` holds only the pending subset.
    """

    namespace: str
    table_name: str = Field(alias="tableName")
    dest_project: str | None = Field(default=None, alias="destProject")
    dest_table: str | None = Field(default=None, alias="destTable")
    columns: list[ColumnMetaModel] = Field(default_factory=list)
    partition_columns: list[ColumnMetaModel] = Field(
        default_factory=list, alias="partitionColumns"
    )
    partitions: list[PartitionMetaModel] = Field(default_factory=list)

    @property
    def is_partitioned(self) -> bool:
        """Return whether the table declares partition columns."""

        return len(self.partition_columns) > 0


__all__ = [
    "ColumnMetaModel",
    "PartitionMetaModel",
    "TableMetaModel",
]
