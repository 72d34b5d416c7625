"""Application services."""

from bulk_table_migration.application.services.migration_meta_manager import (
    MigrationMetaManager,
)

__all__ = ["MigrationMetaManager"]
