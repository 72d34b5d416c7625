"""Domain public API."""

from bulk_table_migration.domain.catalog_models import (
    ColumnMetaModel,
    PartitionMetaModel,
    TableMetaModel,
)
from bulk_table_migration.domain.entities import (
    AdditionalTableConfig,
    JobRecord,
    PartitionProgress,
    TableMigrationConfig,
)
from bulk_table_migration.domain.errors import (
    InvalidArgumentError,
    InvalidTransitionError,
    JobAlreadyExistsError,
    JobNotFoundError,
    MetaSourceError,
    MigrationMetaError,
    PersistenceError,
    TableNotFoundError,
)
from bulk_table_migration.domain.job_state_machine import apply_status_update
from bulk_table_migration.domain.job_types import (
    JobIdentity,
    MigrationStatus,
    PartitionKey,
)
from bulk_table_migration.domain.partition_sets import PartitionSets
from bulk_table_migration.domain.ports import MetaSource, MigrationJobStore

__all__ = [
    "AdditionalTableConfig",
    "ColumnMetaModel",
    "InvalidArgumentError",
    "InvalidTransitionError",
    "JobAlreadyExistsError",
    "JobIdentity",
    "JobNotFoundError",
    "JobRecord",
    "MetaSource",
    "MetaSourceError",
    "MigrationJobStore",
    "MigrationMetaError",
    "MigrationStatus",
    "PartitionKey",
    "PartitionMetaModel",
    "PartitionProgress",
    "PartitionSets",
    "PersistenceError",
    "TableMetaModel",
    "TableMigrationConfig",
    "TableNotFoundError",
    "apply_status_update",
]
