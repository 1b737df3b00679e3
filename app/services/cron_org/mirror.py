"""Mirror cron-job.org jobs into the local cron_jobs table."""

from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.datetime_utils import optional_epoch_seconds, utc_now
from app.core.logging import get_logger
from app.models.cron_job import CronJob, JobStatus
from app.schemas.cron import CronOrgJob

from .inference import infer

logger = get_logger(__name__)

SYNC_SOURCE = "cron.org"
SYNC_TAGS = ["synced", "cron-org"]


def parse_jobs(data: dict[str, Any]) -> list[CronOrgJob]:
    """Parse the GET /jobs body, skipping entries that fail validation."""
    jobs: list[CronOrgJob] = []
    for raw in data.get("jobs") or []:
        try:
            jobs.append(CronOrgJob.model_validate(raw))
        except ValidationError as e:
            logger.bind(job=raw, error=str(e)).warning("cron_org_job_invalid")
    return jobs


def mirrored_fields(external: CronOrgJob) -> dict[str, Any]:
    """All local fields derived from one external job."""
    category, priority = infer(external.title, external.url)

    return {
        "external_id": external.job_id,
        "title": external.title,
        "url": external.url,
        "enabled": external.enabled,
        "save_responses": external.save_responses,
        "schedule": external.schedule,
        "request_timeout": external.request_timeout,
        "redirect_success": external.redirect_success,
        "request_method": external.request_method,
        "auth": external.auth,
        "notification": external.notification,
        "extended_data": external.extended_data,
        "category": category,
        "priority": priority,
        "status": JobStatus.ACTIVE if external.enabled else JobStatus.PAUSED,
        "last_execution": optional_epoch_seconds(external.last_execution),
        "next_execution": optional_epoch_seconds(external.next_execution),
        "metadata_json": {
            "description": f"Synced from cron.org - {external.title}",
            "tags": list(SYNC_TAGS),
            "source": SYNC_SOURCE,
            "lastStatus": external.last_status,
            "lastDuration": external.last_duration,
        },
    }


async def upsert_job(db: AsyncSession, external: CronOrgJob) -> CronJob:
    """
    Upsert a job by its cron-job.org ID.

    Existing rows get every mirrored field overwritten; new rows are created.
    Running this twice with the same input leaves a single row whose only
    difference is updated_at.
    """
    result = await db.execute(select(CronJob).where(CronJob.external_id == external.job_id))
    job = result.scalar_one_or_none()
    fields = mirrored_fields(external)

    if job is None:
        job = CronJob(**fields)
        db.add(job)
        logger.bind(external_id=external.job_id, title=external.title).debug("cron_job_created")
    else:
        for name, value in fields.items():
            setattr(job, name, value)

    job.updated_at = utc_now()
    await db.flush()
    return job
