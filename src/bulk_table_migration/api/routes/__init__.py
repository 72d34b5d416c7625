"""Route modules."""

from bulk_table_migration.api.routes.health import router as health_router
from bulk_table_migration.api.routes.jobs import router as jobs_router

__all__ = ["health_router", "jobs_router"]
