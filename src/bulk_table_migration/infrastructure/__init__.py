"""Infrastructure layer public API."""

from bulk_table_migration.infrastructure.meta_sources import HttpMetaSource, InMemoryMetaSource
from bulk_table_migration.infrastructure.persistence import (
    JobDirectoryLayout,
    JobField,
    JobFileCodec,
)

__all__ = [
    "HttpMetaSource",
    "InMemoryMetaSource",
    "JobDirectoryLayout",
    "JobField",
    "JobFileCodec",
]
