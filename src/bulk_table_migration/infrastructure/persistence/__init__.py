"""File-backed persistence of migration jobs."""

from bulk_table_migration.infrastructure.persistence.job_directory import (
    JobDirectoryLayout,
    JobField,
)
from bulk_table_migration.infrastructure.persistence.job_file_codec import (
    PARTITION_FIELDS,
    JobFileCodec,
)

__all__ = ["JobDirectoryLayout", "JobField", "JobFileCodec", "PARTITION_FIELDS"]
