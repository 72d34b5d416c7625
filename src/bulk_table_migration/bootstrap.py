"""Application bootstrap/wiring."""

import logging

from bulk_table_migration.application.services import MigrationMetaManager
from bulk_table_migration.config import MetaSourceBackend, Settings
from bulk_table_migration.domain.entities import AdditionalTableConfig
from bulk_table_migration.domain.ports import MetaSource
from bulk_table_migration.infrastructure.meta_sources import HttpMetaSource, InMemoryMetaSource

logger = logging.getLogger(__name__)


def _build_meta_source(settings: Settings) -> MetaSource:
    if settings.meta_source_backend == MetaSourceBackend.HTTP:
        if settings.meta_source_endpoint is None:
            raise ValueError(
                "BTM_META_SOURCE_ENDPOINT is required when BTM_META_SOURCE_BACKEND=http."
            )
        return HttpMetaSource(
            base_url=settings.meta_source_endpoint,
            timeout_seconds=settings.meta_source_timeout_seconds,
        )
    logger.warning("Using in-memory sample catalog; set BTM_META_SOURCE_BACKEND=http for a real one.")
    return InMemoryMetaSource.with_sample_tables()


def default_additional_config(settings: Settings) -> AdditionalTableConfig:
    """Additional config applied when a request does not carry one."""

    return AdditionalTableConfig(
        partition_group_size=settings.default_partition_group_size,
        retry_times_limit=settings.default_retry_times_limit,
    )


def build_meta_manager(settings: Settings) -> MigrationMetaManager:
    """Compose the metadata manager."""

    return MigrationMetaManager(
        root_dir=settings.meta_root_dir,
        meta_source=_build_meta_source(settings),
    )


__all__ = ["build_meta_manager", "default_additional_config"]
