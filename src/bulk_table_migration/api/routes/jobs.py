"""Migration job management routes."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response

from bulk_table_migration.api.dependencies import get_meta_manager, get_settings
from bulk_table_migration.application.services import MigrationMetaManager
from bulk_table_migration.bootstrap import default_additional_config
from bulk_table_migration.config import Settings
from bulk_table_migration.domain.errors import (
    InvalidArgumentError,
    InvalidTransitionError,
    JobAlreadyExistsError,
    JobNotFoundError,
    TableNotFoundError,
)
from bulk_table_migration.domain.job_types import MigrationStatus
from bulk_table_migration.domain.management_models import (
    AddMigrationJobRequest,
    JobStatusUpdateRequest,
    MigrationJobInfoResponse,
    MigrationJobListResponse,
    PartitionStatusUpdateRequest,
    PendingTablesResponse,
)

router = APIRouter(tags=["migration jobs"])


def _raise_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, JobNotFoundError | TableNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, JobAlreadyExistsError | InvalidTransitionError):
        raise HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, InvalidArgumentError):
        raise HTTPException(status_code=400, detail=str(exc))
    raise HTTPException(status_code=500, detail="Unexpected migration metadata error")


@router.post("/jobs", response_model=MigrationJobInfoResponse, status_code=201)
def add_migration_job(
    request: AddMigrationJobRequest,
    manager: MigrationMetaManager = Depends(get_meta_manager),
    settings: Settings = Depends(get_settings),
) -> MigrationJobInfoResponse:
    """Create a migration job, or restart a finished one."""

    try:
        record = manager.add_migration_job(
            request.to_config(default_additional_config(settings))
        )
        return MigrationJobInfoResponse.from_record(
            record,
            manager.get_partition_progress(record.identity.namespace, record.identity.table),
        )
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.get("/jobs", response_model=MigrationJobListResponse, status_code=200)
def list_migration_jobs(
    status: MigrationStatus | None = Query(default=None),
    manager: MigrationMetaManager = Depends(get_meta_manager),
) -> MigrationJobListResponse:
    """List migration jobs, optionally filtered by status."""

    return MigrationJobListResponse(
        jobs=[
            MigrationJobInfoResponse.from_record(record)
            for record in manager.list_migration_jobs(status)
        ]
    )


@router.get(
    "/jobs/{namespace}/{table}", response_model=MigrationJobInfoResponse, status_code=200
)
def get_migration_job(
    namespace: str = Path(...),
    table: str = Path(...),
    manager: MigrationMetaManager = Depends(get_meta_manager),
) -> MigrationJobInfoResponse:
    """Get one job with its partition counters."""

    try:
        return MigrationJobInfoResponse.from_record(
            manager.get_job(namespace, table),
            manager.get_partition_progress(namespace, table),
        )
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.delete("/jobs/{namespace}/{table}", status_code=204)
def remove_migration_job(
    namespace: str = Path(...),
    table: str = Path(...),
    manager: MigrationMetaManager = Depends(get_meta_manager),
) -> Response:
    """Delete all persisted state of a job."""

    try:
        manager.remove_migration_job(namespace, table)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return Response(status_code=204)


@router.put(
    "/jobs/{namespace}/{table}/status",
    response_model=MigrationJobInfoResponse,
    status_code=200,
)
def update_job_status(
    request: JobStatusUpdateRequest,
    namespace: str = Path(...),
    table: str = Path(...),
    manager: MigrationMetaManager = Depends(get_meta_manager),
) -> MigrationJobInfoResponse:
    """Report a job-level outcome; the stored status may differ from the request."""

    try:
        record = manager.update_status(namespace, table, request.status)
        return MigrationJobInfoResponse.from_record(record)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


@router.put("/jobs/{namespace}/{table}/partitions/status", status_code=204)
def update_partition_status(
    request: PartitionStatusUpdateRequest,
    namespace: str = Path(...),
    table: str = Path(...),
    manager: MigrationMetaManager = Depends(get_meta_manager),
) -> Response:
    """Report partition-level outcomes."""

    try:
        manager.update_partition_status(
            namespace, table, request.partition_values_list, request.status
        )
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return Response(status_code=204)


@router.get("/pending-tables", response_model=PendingTablesResponse, status_code=200)
def get_pending_tables(
    manager: MigrationMetaManager = Depends(get_meta_manager),
) -> PendingTablesResponse:
    """Table views of PENDING jobs restricted to their pending partitions."""

    return PendingTablesResponse(tables=manager.get_pending_tables())


__all__ = ["router"]
