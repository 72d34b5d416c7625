"""HTTP API layer."""

from bulk_table_migration.api.router import api_router

__all__ = ["api_router"]
