"""Local job operations that write through to cron-job.org first."""

import uuid
from datetime import timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.datetime_utils import utc_now
from app.core.logging import get_logger
from app.models.cron_execution import CronExecution, ExecutionStatus, TriggerSource
from app.models.cron_job import CronJob, JobStatus
from app.schemas.common import ErrorKind, ServiceResult
from app.schemas.cron import EXTERNAL_JOB_FIELDS, JobFilters, JobUpdate

from .client import CronOrgClient
from .reconciler import expire_stale_runs, in_flight_manual_runs

logger = get_logger(__name__)

JOB_NOT_FOUND = "Job not found"
RUN_IN_PROGRESS_MESSAGE = "Job already has a manual run in progress"
CREATE_DISABLED_MESSAGE = (
    "Job creation is disabled. This system only monitors existing cron.org jobs. "
    "Please create jobs directly in the cron-job.org dashboard; they are picked up "
    "by the next sync."
)


def parse_job_id(job_id: str | uuid.UUID) -> uuid.UUID | None:
    """Parse a local job ID, returning None when malformed."""
    if isinstance(job_id, uuid.UUID):
        return job_id
    try:
        return uuid.UUID(str(job_id))
    except ValueError:
        return None


async def load_job(db: AsyncSession, job_id: str | uuid.UUID) -> CronJob | None:
    parsed = parse_job_id(job_id)
    if parsed is None:
        return None
    return await db.get(CronJob, parsed)


def merged_external_job(job: CronJob, changes: dict[str, Any]) -> dict[str, Any]:
    """The cron-job.org representation of job with changes applied on top."""
    return {
        wire_name: changes[name] if name in changes else getattr(job, name)
        for name, wire_name in EXTERNAL_JOB_FIELDS.items()
    }


class JobOperations:
    """CRUD and run-now operations on mirrored jobs."""

    def __init__(
        self, client: CronOrgClient, manual_run_timeout: timedelta = timedelta(hours=1)
    ) -> None:
        self.client = client
        self.manual_run_timeout = manual_run_timeout

    async def get_jobs(
        self, db: AsyncSession, filters: JobFilters | None = None
    ) -> ServiceResult[list[CronJob]]:
        query = select(CronJob).order_by(CronJob.created_at.desc())

        if filters:
            if filters.category:
                query = query.where(CronJob.category == filters.category)
            if filters.status:
                query = query.where(CronJob.status == filters.status)
            if filters.created_by:
                query = query.where(CronJob.created_by == filters.created_by)

        result = await db.execute(query)
        return ServiceResult.ok(list(result.scalars().all()))

    async def get_job_by_id(self, db: AsyncSession, job_id: str) -> ServiceResult[CronJob]:
        job = await load_job(db, job_id)
        if job is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, JOB_NOT_FOUND)
        return ServiceResult.ok(job)

    async def update_job(
        self, db: AsyncSession, job_id: str, updates: JobUpdate
    ) -> ServiceResult[CronJob]:
        """
        Apply a partial update.

        Jobs linked to cron-job.org are patched remotely first when a
        cron-job.org field changes; if that call fails nothing changes
        locally. Local-only fields never reach cron-job.org.
        """
        job = await load_job(db, job_id)
        if job is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, JOB_NOT_FOUND)

        changes = updates.model_dump(exclude_unset=True)
        external_changes = {
            name: value for name, value in changes.items() if name in EXTERNAL_JOB_FIELDS
        }

        if job.external_id is not None and external_changes:
            response = await self.client.update_job(
                job.external_id, merged_external_job(job, external_changes)
            )
            if not response.success:
                logger.bind(job_id=str(job.id), external_id=job.external_id).warning(
                    "cron_job_update_rejected"
                )
                return ServiceResult.from_error(response.error)  # type: ignore[arg-type]

        for name, value in changes.items():
            if name == "metadata":
                job.metadata_json = value
            else:
                setattr(job, name, value)

        if "enabled" in changes:
            job.status = JobStatus.ACTIVE if changes["enabled"] else JobStatus.PAUSED

        job.updated_at = utc_now()
        await db.flush()

        logger.bind(job_id=str(job.id), fields=sorted(changes)).info("cron_job_updated")
        return ServiceResult.ok(job)

    async def set_job_status(
        self, db: AsyncSession, job_id: str, status: JobStatus
    ) -> ServiceResult[CronJob]:
        """Enable (active) or disable (anything else) a job."""
        return await self.update_job(
            db, job_id, JobUpdate(enabled=status == JobStatus.ACTIVE)
        )

    async def delete_job(self, db: AsyncSession, job_id: str) -> ServiceResult[None]:
        """
        Delete a job locally, attempting remote deletion first.

        A failed remote delete is logged and ignored; the next sync re-mirrors
        the job if it still exists on cron-job.org.
        """
        job = await load_job(db, job_id)
        if job is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, JOB_NOT_FOUND)

        if job.external_id is not None:
            response = await self.client.delete_job(job.external_id)
            if not response.success:
                logger.bind(
                    external_id=job.external_id,
                    error=response.error.message if response.error else None,
                ).warning("cron_job_remote_delete_failed")

        await db.execute(delete(CronExecution).where(CronExecution.job_id == job.id))
        await db.delete(job)
        await db.flush()

        logger.bind(job_id=str(job.id), external_id=job.external_id).info("cron_job_deleted")
        return ServiceResult.ok()

    async def create_job(self, payload: Any = None) -> ServiceResult[CronJob]:
        """Always rejected: jobs are authored on cron-job.org only."""
        return ServiceResult.fail(ErrorKind.UNSUPPORTED, CREATE_DISABLED_MESSAGE)

    async def execute_job(
        self,
        db: AsyncSession,
        job_id: str,
        triggered_by: TriggerSource = TriggerSource.MANUAL,
    ) -> ServiceResult[CronExecution]:
        """
        Trigger an immediate run on cron-job.org.

        The pending execution is committed before the remote call so it
        survives either outcome. Completion is picked up by a later sync,
        and until then another manual run of the same job is refused.
        """
        job = await load_job(db, job_id)
        if job is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, JOB_NOT_FOUND)

        if job.external_id is None:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "Job does not have a cron-job.org ID"
            )

        in_flight = expire_stale_runs(
            await in_flight_manual_runs(db, job), self.manual_run_timeout, utc_now()
        )
        if in_flight:
            return ServiceResult.fail(ErrorKind.VALIDATION, RUN_IN_PROGRESS_MESSAGE)

        execution = CronExecution(
            job_id=job.id,
            external_job_id=job.external_id,
            status=ExecutionStatus.PENDING,
            start_time=utc_now(),
            retry_attempt=0,
            triggered_by=triggered_by,
            metadata_json={"executedBy": triggered_by.value},
        )
        db.add(execution)
        await db.commit()

        response = await self.client.run_job(job.external_id)

        if not response.success:
            error = response.error
            execution.status = ExecutionStatus.FAILED
            execution.end_time = utc_now()
            execution.error_message = error.message if error else "Failed to execute job"
            execution.error_code = str(error.code) if error and error.code is not None else None
            await db.commit()

            logger.bind(external_id=job.external_id, error=execution.error_message).warning(
                "cron_job_run_failed"
            )
            return ServiceResult.from_error(error)  # type: ignore[arg-type]

        execution.status = ExecutionStatus.RUNNING
        job.last_execution = utc_now()
        await db.commit()

        logger.bind(external_id=job.external_id, triggered_by=triggered_by.value).info(
            "cron_job_run_started"
        )
        return ServiceResult.ok(execution)

    async def get_job_history(
        self, db: AsyncSession, job_id: str, limit: int = 50
    ) -> ServiceResult[list[CronExecution]]:
        parsed = parse_job_id(job_id)
        if parsed is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, JOB_NOT_FOUND)

        result = await db.execute(
            select(CronExecution)
            .where(CronExecution.job_id == parsed)
            .order_by(CronExecution.start_time.desc())
            .limit(limit)
        )
        return ServiceResult.ok(list(result.scalars().all()))

    async def get_all_executions(
        self, db: AsyncSession, limit: int = 50
    ) -> ServiceResult[list[CronExecution]]:
        result = await db.execute(
            select(CronExecution).order_by(CronExecution.start_time.desc()).limit(limit)
        )
        return ServiceResult.ok(list(result.scalars().all()))
