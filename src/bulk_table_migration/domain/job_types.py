"""Job identity, status and partition key helpers."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from bulk_table_migration.domain.errors import InvalidArgumentError

PARTITION_VALUE_DELIMITER = ","

PartitionKey = tuple[str, ...]


class MigrationStatus(StrEnum):
    """Job-level migration states."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


TERMINAL_MIGRATION_STATUSES = frozenset({MigrationStatus.SUCCEEDED, MigrationStatus.FAILED})

PARTITION_STATUSES = frozenset({MigrationStatus.SUCCEEDED, MigrationStatus.FAILED})


@dataclass(slots=True, frozen=True, order=True)
class JobIdentity:
    """Unique key of a migration job: one source table."""

    namespace: str
    table: str

    def __post_init__(self) -> None:
        _ensure_path_component("namespace", self.namespace)
        _ensure_path_component("table", self.table)

    def __str__(self) -> str:
        return f"{self.namespace}.{self.table}"


def parse_status(value: MigrationStatus | str) -> MigrationStatus:
    """Coerce a status name, raising `InvalidArgumentError` for unknown names."""

    try:
        return MigrationStatus(value)
    except ValueError as exc:
        raise InvalidArgumentError(f"Unknown migration status '{value}'.") from exc


def _ensure_path_component(label: str, value: str) -> None:
    if not value or value in {".", ".."}:
        raise InvalidArgumentError(f"Invalid {label} name '{value}'.")
    if any(char in value for char in ("/", "\\", "\0")):
        raise InvalidArgumentError(f"{label.capitalize()} name '{value}' contains a path separator.")


def to_partition_key(values: Sequence[str]) -> PartitionKey:
    """Validate partition values and return them as a hashable key."""

    if len(values) == 0:
        raise InvalidArgumentError("Partition values cannot be empty.")
    key = tuple(values)
    for value in key:
        if not isinstance(value, str) or not value:
            raise InvalidArgumentError(f"Partition value {value!r} must be a non-empty string.")
        if PARTITION_VALUE_DELIMITER in value or "\n" in value or "\r" in value:
            raise InvalidArgumentError(
                f"Partition value '{value}' contains a reserved character."
            )
    return key


def to_partition_keys(values_list: Iterable[Sequence[str]]) -> list[PartitionKey]:
    """Validate a batch of partition values."""

    return [to_partition_key(values) for values in values_list]


def encode_partition_key(key: PartitionKey) -> str:
    """Render one partition key as a single line (without newline)."""

    return PARTITION_VALUE_DELIMITER.join(key)


def decode_partition_key(line: str) -> PartitionKey:
    """Parse one partition line back into a key."""

    return tuple(line.split(PARTITION_VALUE_DELIMITER))


__all__ = [
    "JobIdentity",
    "MigrationStatus",
    "PARTITION_STATUSES",
    "PARTITION_VALUE_DELIMITER",
    "PartitionKey",
    "TERMINAL_MIGRATION_STATUSES",
    "decode_partition_key",
    "encode_partition_key",
    "parse_status",
    "to_partition_key",
    "to_partition_keys",
]
