"""Reconcile cron-job.org execution history into cron_executions."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.datetime_utils import add_milliseconds, from_epoch_seconds, utc_now
from app.core.logging import get_logger
from app.models.cron_execution import CronExecution, ExecutionStatus, TriggerSource
from app.models.cron_job import CronJob
from app.schemas.cron import CronOrgHistoryEntry

from .client import CronOrgClient

logger = get_logger(__name__)

# cron-job.org numeric status -> local status; anything else is a failure
_STATUS_MAP = {
    1: ExecutionStatus.SUCCESS,
    0: ExecutionStatus.FAILED,
    -1: ExecutionStatus.TIMEOUT,
}


def map_status(code: int | None) -> ExecutionStatus:
    """Map a cron-job.org execution status code to success/failed/timeout."""
    return _STATUS_MAP.get(code, ExecutionStatus.FAILED)  # type: ignore[arg-type]


def execution_identity(external_job_id: int, entry: CronOrgHistoryEntry) -> str:
    """Identifier of a history entry, synthesized from job+date when missing."""
    if entry.identifier is not None and str(entry.identifier) != "":
        return str(entry.identifier)
    return f"{external_job_id}-{entry.date}"


def build_execution(
    job: CronJob,
    entry: CronOrgHistoryEntry,
    execution_id: str,
    response_body_max_chars: int,
) -> CronExecution:
    """Build a terminal CronExecution from one history entry."""
    status = map_status(entry.status)
    start_time = from_epoch_seconds(entry.date)

    body = entry.body or ""
    is_error = status != ExecutionStatus.SUCCESS

    return CronExecution(
        job_id=job.id,
        external_job_id=job.external_id,
        execution_id=execution_id,
        status=status,
        start_time=start_time,
        end_time=add_milliseconds(start_time, entry.duration),
        duration=entry.duration,
        http_status=entry.http_status,
        response_body=body[:response_body_max_chars],
        response_size=len(body),
        error_message=(entry.status_text or "Unknown error") if is_error else None,
        error_code=str(entry.status) if is_error else None,
        retry_attempt=0,
        triggered_by=TriggerSource.SCHEDULE,
        metadata_json={
            "executedBy": "cron.org",
            "userAgent": "cron.org",
            "jitter": entry.jitter,
            "stats": entry.stats,
        },
    )


def parse_history(external_job_id: int, data: dict[str, Any]) -> list[CronOrgHistoryEntry]:
    """Parse a GET /jobs/{id}/history body, skipping invalid entries."""
    entries: list[CronOrgHistoryEntry] = []
    for raw in data.get("history") or []:
        try:
            entries.append(CronOrgHistoryEntry.model_validate(raw))
        except ValidationError as e:
            logger.bind(external_id=external_job_id, error=str(e)).warning(
                "cron_org_history_entry_invalid"
            )
    return entries


IN_FLIGHT_STATUSES = (ExecutionStatus.PENDING, ExecutionStatus.RUNNING)
NO_HISTORY_MESSAGE = "No matching cron-job.org history entry"


async def in_flight_manual_runs(db: AsyncSession, job: CronJob) -> list[CronExecution]:
    """Locally started runs of job that no history entry has closed yet, oldest first."""
    result = await db.execute(
        select(CronExecution)
        .where(
            CronExecution.job_id == job.id,
            CronExecution.execution_id.is_(None),
            CronExecution.status.in_(IN_FLIGHT_STATUSES),
        )
        .order_by(CronExecution.start_time)
    )
    return list(result.scalars().all())


def expire_stale_runs(
    runs: list[CronExecution], timeout: timedelta, now: datetime
) -> list[CronExecution]:
    """Mark runs older than timeout as timed out; returns the runs still in flight."""
    fresh: list[CronExecution] = []
    for run in runs:
        if now - run.start_time > timeout:
            run.status = ExecutionStatus.TIMEOUT
            run.end_time = now
            run.error_message = NO_HISTORY_MESSAGE
        else:
            fresh.append(run)
    return fresh


def adopt_entry(run: CronExecution, recorded: CronExecution) -> None:
    """Close an in-flight manual run with the outcome cron-job.org recorded for it."""
    for name in (
        "execution_id",
        "status",
        "start_time",
        "end_time",
        "duration",
        "http_status",
        "response_body",
        "response_size",
        "error_message",
        "error_code",
    ):
        setattr(run, name, getattr(recorded, name))
    run.metadata_json = {**(recorded.metadata_json or {}), "executedBy": run.triggered_by.value}


def _take_adoptable(runs: list[CronExecution], start_time: datetime) -> CronExecution | None:
    # History dates have whole-second precision
    for run in runs:
        if run.start_time.replace(microsecond=0) <= start_time:
            runs.remove(run)
            return run
    return None


@dataclass
class ReconcileOutcome:
    """Result of reconciling one job's history."""

    external_id: int
    inserted: int = 0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ExecutionReconciler:
    """
    Inserts history entries that are not yet stored locally.

    An entry recorded at or after the start of an in-flight manual run closes
    that run instead of creating a second row for the same execution.
    """

    def __init__(
        self,
        client: CronOrgClient,
        response_body_max_chars: int = 2000,
        manual_run_timeout: timedelta = timedelta(hours=1),
    ) -> None:
        self.client = client
        self.response_body_max_chars = response_body_max_chars
        self.manual_run_timeout = manual_run_timeout

    async def reconcile_job(self, db: AsyncSession, job: CronJob) -> ReconcileOutcome:
        """
        Fetch and store new history for one job.

        Never raises: a failed fetch or a storage error is logged and
        reported in the outcome, and only this job's new rows are rolled back.
        """
        external_id = job.external_id
        if external_id is None:
            return ReconcileOutcome(external_id=0, error="Job has no cron-job.org ID")

        response = await self.client.get_history(external_id)
        if not response.success:
            message = response.error.message if response.error else "Unknown error"
            logger.bind(external_id=external_id, error=message).warning(
                "cron_history_fetch_failed"
            )
            return ReconcileOutcome(external_id=external_id, error=message)

        entries = parse_history(external_id, response.data or {})

        try:
            async with db.begin_nested():
                inserted = await self._insert_new(db, job, entries)
        except (SQLAlchemyError, ValueError, OverflowError) as e:
            logger.bind(external_id=external_id, error=str(e)).warning(
                "cron_history_reconcile_failed"
            )
            return ReconcileOutcome(external_id=external_id, error=str(e))

        if inserted:
            logger.bind(external_id=external_id, inserted=inserted).debug(
                "cron_history_reconciled"
            )
        return ReconcileOutcome(external_id=external_id, inserted=inserted)

    async def _insert_new(
        self, db: AsyncSession, job: CronJob, entries: list[CronOrgHistoryEntry]
    ) -> int:
        result = await db.execute(
            select(CronExecution.execution_id).where(
                CronExecution.external_job_id == job.external_id,
                CronExecution.execution_id.is_not(None),
            )
        )
        seen = set(result.scalars().all())
        in_flight = await in_flight_manual_runs(db, job)

        inserted = 0
        for entry in sorted(entries, key=lambda e: e.date):
            execution_id = execution_identity(job.external_id, entry)  # type: ignore[arg-type]
            if execution_id in seen:
                continue
            recorded = build_execution(job, entry, execution_id, self.response_body_max_chars)
            run = _take_adoptable(in_flight, recorded.start_time)
            if run is not None:
                adopt_entry(run, recorded)
            else:
                db.add(recorded)
            seen.add(execution_id)
            inserted += 1

        expire_stale_runs(in_flight, self.manual_run_timeout, utc_now())

        await db.flush()
        return inserted
