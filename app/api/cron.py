"""cron-job.org mirror API endpoints."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from app.core.datetime_utils import utc_now
from app.core.logging import get_logger
from app.dependencies import Cron
from app.models.cron_execution import TriggerSource
from app.models.cron_job import JobCategory, JobStatus
from app.schemas.common import ErrorKind, ServiceResult
from app.schemas.cron import (
    ExecutionResponse,
    JobFilters,
    JobResponse,
    JobStatistics,
    JobUpdate,
    SyncSummary,
)

logger = get_logger(__name__)

router = APIRouter()


class SyncResponse(BaseModel):
    """Response model for a sync run."""

    success: bool = True
    message: str
    data: SyncSummary
    synced_at: datetime


class JobListResponse(BaseModel):
    """Response model for the job list."""

    success: bool = True
    jobs: list[JobResponse]
    synced: bool | None = None
    sync_data: SyncSummary | None = None


class JobDetailResponse(BaseModel):
    """Response model for a single job."""

    success: bool = True
    job: JobResponse


class ExecutionListResponse(BaseModel):
    """Response model for execution logs."""

    success: bool = True
    executions: list[ExecutionResponse]


class ExecuteResponse(BaseModel):
    """Response model for a manual run."""

    success: bool = True
    execution: ExecutionResponse
    message: str


class StatisticsResponse(BaseModel):
    """Response model for job statistics."""

    success: bool = True
    statistics: JobStatistics


class MessageResponse(BaseModel):
    """Generic success message."""

    success: bool = True
    message: str


class ExecuteRequest(BaseModel):
    """Request body for a manual run."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")


class StatusUpdateRequest(BaseModel):
    """Request body for toggling a job."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: JobStatus


def _raise_for(result: ServiceResult[Any], failure_status: int) -> None:
    """Turn a failed ServiceResult into an HTTPException."""
    if result.success:
        return
    error = result.error
    if error is not None and error.kind == ErrorKind.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    raise HTTPException(
        status_code=failure_status,
        detail=error.message if error else "Operation failed",
    )


@router.post("/cron/sync", response_model=SyncResponse)
async def sync_jobs(cron: Cron) -> SyncResponse:
    """
    Mirror jobs and execution history from cron-job.org.

    Returns counts even when some jobs' history could not be fetched.
    """
    result = await cron.sync_jobs()
    _raise_for(result, status.HTTP_400_BAD_REQUEST)

    return SyncResponse(
        message="Jobs synced successfully from cron.org",
        data=result.data,
        synced_at=utc_now(),
    )


@router.get("/cron/jobs", response_model=JobListResponse)
async def list_jobs(
    cron: Cron,
    category: JobCategory | None = Query(default=None),
    job_status: JobStatus | None = Query(default=None, alias="status"),
    created_by: str | None = Query(default=None),
    sync: bool = Query(default=False, description="Sync from cron-job.org first"),
) -> JobListResponse:
    """
    List mirrored jobs.

    By default this reads the local mirror only and never calls cron-job.org,
    so listing stays fast and works while cron-job.org is unreachable. Pass
    sync=true to run a sync first; a failed sync is reported, not raised.
    """
    synced: bool | None = None
    sync_data: SyncSummary | None = None
    if sync:
        sync_result = await cron.sync_jobs()
        synced = sync_result.success
        sync_data = sync_result.data
        if not sync_result.success:
            logger.bind(
                error=sync_result.error.message if sync_result.error else None
            ).warning("cron_jobs_presync_failed")

    result = await cron.get_jobs(
        JobFilters(category=category, status=job_status, created_by=created_by)
    )
    _raise_for(result, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in result.data or []],
        synced=synced,
        sync_data=sync_data,
    )


@router.post("/cron/jobs", response_model=JobDetailResponse)
async def create_job(
    cron: Cron, payload: dict[str, Any] | None = Body(default=None)
) -> JobDetailResponse:
    """Job creation is disabled; jobs are authored on cron-job.org."""
    result = await cron.create_job(payload)
    _raise_for(result, status.HTTP_400_BAD_REQUEST)
    return JobDetailResponse(job=JobResponse.model_validate(result.data))


@router.get("/cron/jobs/{job_id}", response_model=JobDetailResponse)
async def get_job(job_id: str, cron: Cron) -> JobDetailResponse:
    """Get a single mirrored job."""
    result = await cron.get_job_by_id(job_id)
    _raise_for(result, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JobDetailResponse(job=JobResponse.model_validate(result.data))


@router.patch("/cron/jobs/{job_id}", response_model=JobDetailResponse)
async def update_job(job_id: str, updates: JobUpdate, cron: Cron) -> JobDetailResponse:
    """
    Update a job.

    Linked jobs are patched on cron-job.org first; a rejected remote update
    leaves the local job untouched.
    """
    result = await cron.update_job(job_id, updates)
    _raise_for(result, status.HTTP_400_BAD_REQUEST)
    return JobDetailResponse(job=JobResponse.model_validate(result.data))


@router.delete("/cron/jobs/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: str, cron: Cron) -> MessageResponse:
    """Delete a job locally (and on cron-job.org when reachable)."""
    result = await cron.delete_job(job_id)
    _raise_for(result, status.HTTP_400_BAD_REQUEST)
    return MessageResponse(message="Job deleted successfully")


@router.get("/cron/jobs/{job_id}/history", response_model=ExecutionListResponse)
async def get_job_history(
    job_id: str,
    cron: Cron,
    limit: int | None = Query(default=None, ge=1),
) -> ExecutionListResponse:
    """Execution history of one job, newest first."""
    result = await cron.get_job_history(job_id, limit)
    _raise_for(result, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return ExecutionListResponse(
        executions=[ExecutionResponse.model_validate(e) for e in result.data or []]
    )


@router.post("/cron/execute", response_model=ExecuteResponse)
async def execute_job(request: ExecuteRequest, cron: Cron) -> ExecuteResponse:
    """Trigger an immediate run on cron-job.org."""
    result = await cron.execute_job(request.job_id, TriggerSource.MANUAL)
    _raise_for(result, status.HTTP_400_BAD_REQUEST)
    return ExecuteResponse(
        execution=ExecutionResponse.model_validate(result.data),
        message="Job execution initiated",
    )


@router.get("/cron/logs", response_model=ExecutionListResponse)
async def list_logs(
    cron: Cron,
    job_id: str | None = Query(default=None, alias="jobId"),
    limit: int | None = Query(default=None, ge=1),
) -> ExecutionListResponse:
    """Execution logs for one job, or across all jobs when jobId is omitted."""
    if job_id:
        result = await cron.get_job_history(job_id, limit)
    else:
        result = await cron.get_all_executions(limit)
    _raise_for(result, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return ExecutionListResponse(
        executions=[ExecutionResponse.model_validate(e) for e in result.data or []]
    )


@router.get("/cron/status", response_model=StatisticsResponse)
async def get_statistics(cron: Cron) -> StatisticsResponse:
    """Job and execution counts plus the overall success rate."""
    result = await cron.get_job_statistics()
    _raise_for(result, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return StatisticsResponse(statistics=result.data)


@router.patch("/cron/status", response_model=JobDetailResponse)
async def update_status(request: StatusUpdateRequest, cron: Cron) -> JobDetailResponse:
    """Enable (status=active) or pause a job."""
    result = await cron.set_job_status(request.job_id, request.status)
    _raise_for(result, status.HTTP_400_BAD_REQUEST)
    return JobDetailResponse(job=JobResponse.model_validate(result.data))
