"""Domain exceptions for migration job metadata operations."""

from __future__ import annotations


class MigrationMetaError(Exception):
    """Base class for migration metadata errors."""


class JobNotFoundError(MigrationMetaError):
    """Raised when a migration job cannot be found."""


class JobAlreadyExistsError(MigrationMetaError):
    """Raised when adding a job that is still pending or running."""


class InvalidTransitionError(MigrationMetaError):
    """Raised when a status update is not reachable from the current status."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot move migration job from {current} to {requested}.")
        self.current = current
        self.requested = requested


class InvalidArgumentError(MigrationMetaError):
    """Raised when request validation fails."""


class PersistenceError(MigrationMetaError):
    """Raised when reading or writing job state on disk fails."""


class MetaSourceError(Exception):
    """Raised when the source catalog cannot be queried."""


class TableNotFoundError(MetaSourceError):
    """Raised when the source catalog does not know a table."""


__all__ = [
    "InvalidArgumentError",
    "InvalidTransitionError",
    "JobAlreadyExistsError",
    "JobNotFoundError",
    "MetaSourceError",
    "MigrationMetaError",
    "PersistenceError",
    "TableNotFoundError",
]
