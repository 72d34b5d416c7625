from __future__ import annotations

from pathlib import Path

import pytest

from bulk_table_migration.application.services import MigrationMetaManager
from bulk_table_migration.domain.catalog_models import TableMetaModel
from bulk_table_migration.domain.entities import AdditionalTableConfig, TableMigrationConfig
from bulk_table_migration.domain.errors import (
    InvalidArgumentError,
    InvalidTransitionError,
    JobAlreadyExistsError,
    JobNotFoundError,
    TableNotFoundError,
)
from bulk_table_migration.domain.job_types import MigrationStatus
from bulk_table_migration.infrastructure.meta_sources import InMemoryMetaSource

DEFAULT_DB = "test"
PARTITIONED = "test_partitioned"
NON_PARTITIONED = "test_non_partitioned"


@pytest.fixture
def meta_source() -> InMemoryMetaSource:
    return InMemoryMetaSource.with_sample_tables(DEFAULT_DB)


@pytest.fixture
def manager(tmp_path: Path, meta_source: InMemoryMetaSource) -> MigrationMetaManager:
    manager = MigrationMetaManager(root_dir=tmp_path / ".migration_meta", meta_source=meta_source)
    for table in meta_source.list_tables(DEFAULT_DB):
        manager.add_migration_job(migration_config(table))
    return manager


def migration_config(
    table: str,
    partition_values_list: list[list[str]] | None = None,
    retry_times_limit: int = 1,
) -> TableMigrationConfig:
    return TableMigrationConfig(
        source_namespace=DEFAULT_DB,
        source_table=table,
        dest_project=DEFAULT_DB,
        dest_table=table,
        partition_values_list=partition_values_list,
        additional_config=AdditionalTableConfig(
            partition_group_size=10,
            retry_times_limit=retry_times_limit,
        ),
    )


def job_dir(manager: MigrationMetaManager, table: str) -> Path:
    return manager.root_dir / DEFAULT_DB / table


def read_file(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def pending_by_name(manager: MigrationMetaManager) -> dict[str, TableMetaModel]:
    return {table.table_name: table for table in manager.get_pending_tables()}


def test_add_creates_directory_tree_with_pending_metadata(
    manager: MigrationMetaManager,
    meta_source: InMemoryMetaSource,
) -> None:
    for table in meta_source.list_tables(DEFAULT_DB):
        directory = job_dir(manager, table)
        assert directory.is_dir()
        assert read_file(directory / "metadata") == "PENDING\n0"
        assert (directory / "config").is_file()
        assert manager.get_status(DEFAULT_DB, table) is MigrationStatus.PENDING
        assert manager.get_retry_count(DEFAULT_DB, table) == 0

    assert read_file(job_dir(manager, PARTITIONED) / "partitions_all") == "hello_world\n"
    assert read_file(job_dir(manager, NON_PARTITIONED) / "partitions_all") == ""


def test_config_file_round_trips_destination_and_tunables(manager: MigrationMetaManager) -> None:
    config = manager.get_config(DEFAULT_DB, PARTITIONED)

    assert config.dest_project == DEFAULT_DB
    assert config.dest_table == PARTITIONED
    assert config.additional_config.partition_group_size == 10
    assert config.additional_config.retry_times_limit == 1
    assert '"retryTimesLimit": 1' in read_file(job_dir(manager, PARTITIONED) / "config")


def test_add_existing_non_terminal_job_raises_already_exists(
    manager: MigrationMetaManager,
) -> None:
    with pytest.raises(JobAlreadyExistsError):
        manager.add_migration_job(migration_config(PARTITIONED))

    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.RUNNING)
    with pytest.raises(JobAlreadyExistsError):
        manager.add_migration_job(migration_config(PARTITIONED))


def test_add_unknown_source_table_raises_and_leaves_no_state(
    manager: MigrationMetaManager,
) -> None:
    with pytest.raises(TableNotFoundError):
        manager.add_migration_job(migration_config("missing"))

    assert not manager.has_migration_job(DEFAULT_DB, "missing")
    assert not job_dir(manager, "missing").exists()


def test_add_explicit_partitions_to_non_partitioned_table_is_rejected(
    tmp_path: Path,
    meta_source: InMemoryMetaSource,
) -> None:
    manager = MigrationMetaManager(root_dir=tmp_path, meta_source=meta_source)

    with pytest.raises(InvalidArgumentError):
        manager.add_migration_job(migration_config(NON_PARTITIONED, [["foo"]]))


def test_add_with_explicit_partitions_uses_them_instead_of_catalog(
    tmp_path: Path,
    meta_source: InMemoryMetaSource,
) -> None:
    manager = MigrationMetaManager(root_dir=tmp_path, meta_source=meta_source)
    manager.add_migration_job(migration_config(PARTITIONED, [["p1"], ["p2"], ["p1"]]))

    assert read_file(tmp_path / DEFAULT_DB / PARTITIONED / "partitions_all") == "p1\np2\n"


def test_restart_partitioned_job_resets_status_and_keeps_partitions(
    manager: MigrationMetaManager,
) -> None:
    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.SUCCEEDED)

    manager.add_migration_job(migration_config(PARTITIONED))

    directory = job_dir(manager, PARTITIONED)
    assert read_file(directory / "metadata") == "PENDING\n0"
    assert (directory / "config").is_file()
    assert read_file(directory / "partitions_all") == "hello_world\n"


def test_restart_non_partitioned_job_resets_status(manager: MigrationMetaManager) -> None:
    manager.update_status(DEFAULT_DB, NON_PARTITIONED, MigrationStatus.SUCCEEDED)

    manager.add_migration_job(migration_config(NON_PARTITIONED))

    directory = job_dir(manager, NON_PARTITIONED)
    assert read_file(directory / "metadata") == "PENDING\n0"
    assert (directory / "config").is_file()


def test_restart_with_explicit_partition_appends_without_duplicates(
    manager: MigrationMetaManager,
) -> None:
    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.SUCCEEDED)

    manager.add_migration_job(migration_config(PARTITIONED, [["foo"], ["hello_world"]]))

    directory = job_dir(manager, PARTITIONED)
    assert read_file(directory / "metadata") == "PENDING\n0"
    assert read_file(directory / "partitions_all") == "hello_world\nfoo\n"


def test_restart_discovers_partitions_that_appeared_in_the_catalog(
    manager: MigrationMetaManager,
    meta_source: InMemoryMetaSource,
) -> None:
    manager.update_partition_status(
        DEFAULT_DB, PARTITIONED, [["hello_world"]], MigrationStatus.SUCCEEDED
    )
    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.SUCCEEDED)
    meta_source.add_partition(DEFAULT_DB, PARTITIONED, ["p2"])

    manager.add_migration_job(migration_config(PARTITIONED))

    assert manager.get_pending_partitions(DEFAULT_DB, PARTITIONED) == [("p2",)]
    assert read_file(job_dir(manager, PARTITIONED) / "partitions_succeeded") == "hello_world\n"


def test_restart_with_explicit_partitions_on_non_partitioned_table_is_rejected(
    manager: MigrationMetaManager,
) -> None:
    manager.update_status(DEFAULT_DB, NON_PARTITIONED, MigrationStatus.SUCCEEDED)

    with pytest.raises(InvalidArgumentError):
        manager.add_migration_job(migration_config(NON_PARTITIONED, [["foo"]]))

    assert manager.get_status(DEFAULT_DB, NON_PARTITIONED) is MigrationStatus.SUCCEEDED
    assert read_file(job_dir(manager, NON_PARTITIONED) / "partitions_all") == ""


def test_restart_after_failure_resets_retry_count_and_replaces_config(
    manager: MigrationMetaManager,
) -> None:
    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.FAILED)
    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.FAILED)
    assert manager.get_status(DEFAULT_DB, PARTITIONED) is MigrationStatus.FAILED

    manager.add_migration_job(migration_config(PARTITIONED, retry_times_limit=5))

    assert manager.get_status(DEFAULT_DB, PARTITIONED) is MigrationStatus.PENDING
    assert manager.get_retry_count(DEFAULT_DB, PARTITIONED) == 0
    assert manager.get_config(DEFAULT_DB, PARTITIONED).additional_config.retry_times_limit == 5


def test_update_table_status_to_failed_consumes_retry_budget(
    manager: MigrationMetaManager,
    meta_source: InMemoryMetaSource,
) -> None:
    for table in meta_source.list_tables(DEFAULT_DB):
        table_meta = meta_source.get_table_meta(DEFAULT_DB, table)
        metadata_path = job_dir(manager, table) / "metadata"
        assert read_file(metadata_path) == "PENDING\n0"

        manager.update_status(DEFAULT_DB, table, MigrationStatus.RUNNING)
        assert read_file(metadata_path) == "RUNNING\n0"

        if table_meta.is_partitioned:
            manager.update_partition_status(
                DEFAULT_DB,
                table,
                [table_meta.partitions[0].partition_values],
                MigrationStatus.FAILED,
            )
            failed_path = job_dir(manager, table) / "partitions_failed"
            assert read_file(failed_path) == "hello_world\n"

        manager.update_status(DEFAULT_DB, table, MigrationStatus.FAILED)
        assert read_file(metadata_path) == "PENDING\n1"

        manager.update_status(DEFAULT_DB, table, MigrationStatus.FAILED)
        assert read_file(metadata_path) == "FAILED\n2"


def test_update_table_status_to_succeeded_after_one_retry(
    manager: MigrationMetaManager,
    meta_source: InMemoryMetaSource,
) -> None:
    for table in meta_source.list_tables(DEFAULT_DB):
        table_meta = meta_source.get_table_meta(DEFAULT_DB, table)
        metadata_path = job_dir(manager, table) / "metadata"

        manager.update_status(DEFAULT_DB, table, MigrationStatus.RUNNING)
        manager.update_status(DEFAULT_DB, table, MigrationStatus.FAILED)
        assert read_file(metadata_path) == "PENDING\n1"

        if table_meta.is_partitioned:
            manager.update_partition_status(
                DEFAULT_DB,
                table,
                [table_meta.partitions[0].partition_values],
                MigrationStatus.SUCCEEDED,
            )
            succeeded_path = job_dir(manager, table) / "partitions_succeeded"
            assert read_file(succeeded_path) == "hello_world\n"

        manager.update_status(DEFAULT_DB, table, MigrationStatus.SUCCEEDED)
        assert read_file(metadata_path) == "SUCCEEDED\n1"


@pytest.mark.parametrize("retry_times_limit", [0, 1, 3])
def test_retry_limit_law(
    tmp_path: Path,
    meta_source: InMemoryMetaSource,
    retry_times_limit: int,
) -> None:
    manager = MigrationMetaManager(root_dir=tmp_path, meta_source=meta_source)
    manager.add_migration_job(migration_config(NON_PARTITIONED, retry_times_limit=retry_times_limit))

    for attempt in range(1, retry_times_limit + 1):
        record = manager.update_status(DEFAULT_DB, NON_PARTITIONED, MigrationStatus.FAILED)
        assert record.status is MigrationStatus.PENDING
        assert record.retry_count == attempt

    record = manager.update_status(DEFAULT_DB, NON_PARTITIONED, MigrationStatus.FAILED)
    assert record.status is MigrationStatus.FAILED
    assert record.retry_count == retry_times_limit + 1
    assert manager.get_pending_tables() == []


def test_terminal_failed_job_is_never_dispatched(manager: MigrationMetaManager) -> None:
    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.FAILED)
    assert read_file(job_dir(manager, PARTITIONED) / "metadata") == "PENDING\n1"
    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.FAILED)
    assert read_file(job_dir(manager, PARTITIONED) / "metadata") == "FAILED\n2"

    assert set(pending_by_name(manager)) == {NON_PARTITIONED}


def test_invalid_transitions_name_both_statuses(manager: MigrationMetaManager) -> None:
    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.SUCCEEDED)

    with pytest.raises(InvalidTransitionError) as exc_info:
        manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.RUNNING)

    assert exc_info.value.current == "SUCCEEDED"
    assert exc_info.value.requested == "RUNNING"
    assert "SUCCEEDED" in str(exc_info.value)


def test_repeated_terminal_report_is_idempotent(manager: MigrationMetaManager) -> None:
    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.SUCCEEDED)
    record = manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.SUCCEEDED)

    assert record.status is MigrationStatus.SUCCEEDED
    assert read_file(job_dir(manager, PARTITIONED) / "metadata") == "SUCCEEDED\n0"


def test_operations_on_unknown_job_raise_not_found(manager: MigrationMetaManager) -> None:
    with pytest.raises(JobNotFoundError):
        manager.get_status(DEFAULT_DB, "missing")
    with pytest.raises(JobNotFoundError):
        manager.update_status(DEFAULT_DB, "missing", MigrationStatus.RUNNING)
    with pytest.raises(JobNotFoundError):
        manager.update_partition_status(
            DEFAULT_DB, "missing", [["p1"]], MigrationStatus.SUCCEEDED
        )
    with pytest.raises(JobNotFoundError):
        manager.remove_migration_job(DEFAULT_DB, "missing")


def test_remove_deletes_job_directory(manager: MigrationMetaManager) -> None:
    manager.remove_migration_job(DEFAULT_DB, PARTITIONED)

    assert not job_dir(manager, PARTITIONED).exists()
    assert not manager.has_migration_job(DEFAULT_DB, PARTITIONED)
    with pytest.raises(JobNotFoundError):
        manager.get_status(DEFAULT_DB, PARTITIONED)
    assert (manager.root_dir / DEFAULT_DB).is_dir()

    manager.remove_migration_job(DEFAULT_DB, NON_PARTITIONED)

    assert not (manager.root_dir / DEFAULT_DB).exists()
    assert manager.root_dir.is_dir()


def test_remove_twice_raises_not_found(manager: MigrationMetaManager) -> None:
    manager.remove_migration_job(DEFAULT_DB, NON_PARTITIONED)

    with pytest.raises(JobNotFoundError):
        manager.remove_migration_job(DEFAULT_DB, NON_PARTITIONED)


def test_removed_job_can_be_added_again_from_scratch(manager: MigrationMetaManager) -> None:
    manager.update_partition_status(
        DEFAULT_DB, PARTITIONED, [["hello_world"]], MigrationStatus.SUCCEEDED
    )
    manager.remove_migration_job(DEFAULT_DB, PARTITIONED)

    manager.add_migration_job(migration_config(PARTITIONED))

    assert manager.get_pending_partitions(DEFAULT_DB, PARTITIONED) == [("hello_world",)]
    assert read_file(job_dir(manager, PARTITIONED) / "partitions_succeeded") == ""


def test_get_pending_tables_returns_views_with_destination(
    manager: MigrationMetaManager,
) -> None:
    pending = pending_by_name(manager)
    assert set(pending) == {NON_PARTITIONED, PARTITIONED}

    non_partitioned = pending[NON_PARTITIONED]
    assert non_partitioned.namespace == DEFAULT_DB
    assert non_partitioned.dest_project == DEFAULT_DB
    assert non_partitioned.dest_table == NON_PARTITIONED
    assert [(c.name, c.type.lower()) for c in non_partitioned.columns] == [("foo", "string")]
    assert non_partitioned.partition_columns == []
    assert non_partitioned.partitions == []

    partitioned = pending[PARTITIONED]
    assert partitioned.dest_table == PARTITIONED
    assert [(c.name, c.type.lower()) for c in partitioned.partition_columns] == [
        ("bar", "string")
    ]
    assert [p.partition_values for p in partitioned.partitions] == [["hello_world"]]


def test_get_pending_tables_is_idempotent(manager: MigrationMetaManager) -> None:
    first = sorted(manager.get_pending_tables(), key=lambda table: table.table_name)
    second = sorted(manager.get_pending_tables(), key=lambda table: table.table_name)

    assert first == second


def test_get_pending_tables_after_update_table_status(manager: MigrationMetaManager) -> None:
    manager.update_status(DEFAULT_DB, NON_PARTITIONED, MigrationStatus.SUCCEEDED)

    pending = manager.get_pending_tables()

    assert len(pending) == 1
    assert pending[0].table_name == PARTITIONED
    assert [p.partition_values for p in pending[0].partitions] == [["hello_world"]]


def test_get_pending_tables_after_update_partition_status(
    manager: MigrationMetaManager,
) -> None:
    manager.update_partition_status(
        DEFAULT_DB, PARTITIONED, [["hello_world"]], MigrationStatus.SUCCEEDED
    )

    pending = pending_by_name(manager)

    assert set(pending) == {NON_PARTITIONED, PARTITIONED}
    assert pending[PARTITIONED].partitions == []
    assert manager.get_status(DEFAULT_DB, PARTITIONED) is MigrationStatus.PENDING


def test_failed_partition_stays_pending_until_it_succeeds(
    tmp_path: Path,
    meta_source: InMemoryMetaSource,
) -> None:
    manager = MigrationMetaManager(root_dir=tmp_path, meta_source=meta_source)
    manager.add_migration_job(migration_config(PARTITIONED, [["p1"], ["p2"], ["p3"]]))

    manager.update_partition_status(DEFAULT_DB, PARTITIONED, [["p2"]], MigrationStatus.FAILED)
    assert manager.get_pending_partitions(DEFAULT_DB, PARTITIONED) == [("p1",), ("p2",), ("p3",)]

    manager.update_partition_status(
        DEFAULT_DB, PARTITIONED, [["p2"], ["p1"]], MigrationStatus.SUCCEEDED
    )
    assert manager.get_pending_partitions(DEFAULT_DB, PARTITIONED) == [("p3",)]

    progress = manager.get_partition_progress(DEFAULT_DB, PARTITIONED)
    assert (progress.total, progress.succeeded, progress.failed, progress.pending) == (3, 2, 1, 1)


def test_partition_reports_are_deduplicated_in_files(manager: MigrationMetaManager) -> None:
    for _ in range(3):
        manager.update_partition_status(
            DEFAULT_DB, PARTITIONED, [["hello_world"]], MigrationStatus.FAILED
        )

    assert read_file(job_dir(manager, PARTITIONED) / "partitions_failed") == "hello_world\n"


def test_unknown_partition_is_recorded_with_warning(
    manager: MigrationMetaManager,
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level("WARNING"):
        manager.update_partition_status(
            DEFAULT_DB, PARTITIONED, [["not_listed"]], MigrationStatus.SUCCEEDED
        )

    assert "not known" in caplog.text
    assert read_file(job_dir(manager, PARTITIONED) / "partitions_succeeded") == "not_listed\n"
    assert manager.get_pending_partitions(DEFAULT_DB, PARTITIONED) == [("hello_world",)]


@pytest.mark.parametrize("status", [MigrationStatus.PENDING, MigrationStatus.RUNNING, "BOGUS"])
def test_partition_status_must_be_succeeded_or_failed(
    manager: MigrationMetaManager,
    status: object,
) -> None:
    with pytest.raises(InvalidArgumentError):
        manager.update_partition_status(DEFAULT_DB, PARTITIONED, [["hello_world"]], status)


@pytest.mark.parametrize("values", [[], [""], ["a,b"], ["line\nbreak"]])
def test_malformed_partition_values_are_rejected(
    manager: MigrationMetaManager,
    values: list[str],
) -> None:
    with pytest.raises(InvalidArgumentError):
        manager.update_partition_status(DEFAULT_DB, PARTITIONED, [values], MigrationStatus.FAILED)


def test_multi_column_partition_keys_are_joined_per_line(
    tmp_path: Path,
    meta_source: InMemoryMetaSource,
) -> None:
    manager = MigrationMetaManager(root_dir=tmp_path, meta_source=meta_source)
    manager.add_migration_job(migration_config(PARTITIONED, [["2024", "01"], ["2024", "02"]]))

    assert read_file(tmp_path / DEFAULT_DB / PARTITIONED / "partitions_all") == (
        "2024,01\n2024,02\n"
    )
    assert manager.get_pending_partitions(DEFAULT_DB, PARTITIONED) == [
        ("2024", "01"),
        ("2024", "02"),
    ]


def test_list_migration_jobs_filters_by_status(manager: MigrationMetaManager) -> None:
    manager.update_status(DEFAULT_DB, PARTITIONED, MigrationStatus.RUNNING)

    running = manager.list_migration_jobs(MigrationStatus.RUNNING)
    everything = manager.list_migration_jobs()

    assert [record.identity.table for record in running] == [PARTITIONED]
    assert [record.identity.table for record in everything] == [NON_PARTITIONED, PARTITIONED]


def test_pending_table_missing_from_catalog_is_skipped(
    manager: MigrationMetaManager,
    meta_source: InMemoryMetaSource,
) -> None:
    meta_source._tables.pop((DEFAULT_DB, PARTITIONED))

    assert set(pending_by_name(manager)) == {NON_PARTITIONED}
