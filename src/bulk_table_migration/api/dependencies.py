"""Dependency providers for FastAPI routes."""

from functools import lru_cache

from bulk_table_migration.application.services import MigrationMetaManager
from bulk_table_migration.bootstrap import build_meta_manager
from bulk_table_migration.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings."""

    return Settings()


@lru_cache(maxsize=1)
def get_meta_manager() -> MigrationMetaManager:
    """Return the manager built once per process."""

    return build_meta_manager(get_settings())


__all__ = ["get_meta_manager", "get_settings"]
