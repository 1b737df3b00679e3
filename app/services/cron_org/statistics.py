"""Read-only aggregation over the local job and execution tables."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.cron_execution import CronExecution, ExecutionStatus
from app.models.cron_job import CronJob, JobStatus
from app.schemas.cron import JobStatistics


async def _count(db: AsyncSession, query) -> int:
    result = await db.execute(query)
    return result.scalar() or 0


async def get_job_statistics(db: AsyncSession) -> JobStatistics:
    """Count jobs by status and category, and executions by outcome."""
    job_counts = await db.execute(select(CronJob.status, func.count(CronJob.id)).group_by(CronJob.status))
    by_status = {status: count for status, count in job_counts.all()}

    category_rows = await db.execute(
        select(CronJob.category, func.count(CronJob.id)).group_by(CronJob.category)
    )
    category_counts = {category.value: count for category, count in category_rows.all()}

    total_executions = await _count(db, select(func.count(CronExecution.id)))
    successful = await _count(
        db,
        select(func.count(CronExecution.id)).where(
            CronExecution.status == ExecutionStatus.SUCCESS
        ),
    )
    failed = await _count(
        db,
        select(func.count(CronExecution.id)).where(CronExecution.status == ExecutionStatus.FAILED),
    )

    return JobStatistics(
        total_jobs=sum(by_status.values()),
        active_jobs=by_status.get(JobStatus.ACTIVE, 0),
        paused_jobs=by_status.get(JobStatus.PAUSED, 0),
        failed_jobs=by_status.get(JobStatus.ERROR, 0),
        total_executions=total_executions,
        successful_executions=successful,
        failed_executions=failed,
        category_counts=category_counts,
    )
