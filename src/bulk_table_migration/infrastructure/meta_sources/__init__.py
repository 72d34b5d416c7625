"""Source catalog implementations."""

from bulk_table_migration.infrastructure.meta_sources.http_meta_source import HttpMetaSource
from bulk_table_migration.infrastructure.meta_sources.in_memory_meta_source import (
    InMemoryMetaSource,
)

__all__ = ["HttpMetaSource", "InMemoryMetaSource"]
