"""CronService: the per-process entry point for the cron-job.org mirror."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, TypeVar

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import AppConfig, SyncConfig
from app.core.logging import get_logger
from app.models.cron_execution import CronExecution, TriggerSource
from app.models.cron_job import CronJob, JobStatus
from app.schemas.common import ErrorKind, ServiceResult
from app.schemas.cron import JobFilters, JobStatistics, JobUpdate, SyncSummary

from .client import CronOrgClient
from .mirror import parse_jobs, upsert_job
from .operations import JobOperations
from .reconciler import ExecutionReconciler, ReconcileOutcome
from .statistics import get_job_statistics

logger = get_logger(__name__)

T = TypeVar("T")


class CronService:
    """
    Mirror of a cron-job.org account.

    Build one per process with create_cron_service() and pass it to callers.
    Every public method returns a ServiceResult and never raises.
    """

    def __init__(
        self,
        client: CronOrgClient,
        session_factory: async_sessionmaker[AsyncSession],
        sync_config: SyncConfig | None = None,
    ) -> None:
        self.client = client
        self.session_factory = session_factory
        self.sync_config = sync_config or SyncConfig({})
        manual_run_timeout = timedelta(seconds=self.sync_config.manual_run_timeout_seconds)
        self.operations = JobOperations(client, manual_run_timeout=manual_run_timeout)
        self.reconciler = ExecutionReconciler(
            client,
            response_body_max_chars=self.sync_config.response_body_max_chars,
            manual_run_timeout=manual_run_timeout,
        )
        self._sync_lock = asyncio.Lock()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _run(
        self,
        operation: str,
        fn: Callable[[AsyncSession], Awaitable[ServiceResult[T]]],
    ) -> ServiceResult[T]:
        """Run fn in a fresh session, committing on return and mapping storage errors."""
        async with self.session_factory() as db:
            try:
                result = await fn(db)
                await db.commit()
                return result
            except SQLAlchemyError as e:
                await db.rollback()
                logger.bind(operation=operation, error=str(e)).error("cron_storage_error")
                return ServiceResult.fail(ErrorKind.STORAGE, str(e))
            except Exception as e:
                await db.rollback()
                logger.bind(operation=operation, error=str(e)).exception("cron_operation_failed")
                return ServiceResult.fail(ErrorKind.INTERNAL, str(e) or type(e).__name__)

    # -------------------------------------------------------------------------
    # Sync
    # -------------------------------------------------------------------------

    async def sync_jobs(self) -> ServiceResult[SyncSummary]:
        """
        Mirror all jobs, then reconcile each job's history in turn.

        Only a failure to list jobs aborts the sync. A history failure for
        one job is logged and the remaining jobs are still reconciled.
        """
        if not self.sync_config.serialize_syncs:
            return await self._sync_jobs()

        if self._sync_lock.locked():
            logger.info("cron_sync_waiting_for_running_sync")
        async with self._sync_lock:
            return await self._sync_jobs()

    async def _sync_jobs(self) -> ServiceResult[SyncSummary]:
        logger.info("cron_sync_started")

        response = await self.client.list_jobs()
        if not response.success:
            logger.bind(error=response.error.message if response.error else None).error(
                "cron_sync_list_failed"
            )
            return ServiceResult.from_error(response.error)  # type: ignore[arg-type]

        raw_jobs: list[dict[str, Any]] = list((response.data or {}).get("jobs") or [])
        external_jobs = parse_jobs(response.data or {})

        async def _sync(db: AsyncSession) -> ServiceResult[SyncSummary]:
            mirrored: list[CronJob] = []
            for external in external_jobs:
                mirrored.append(await upsert_job(db, external))
            await db.commit()

            outcomes: list[ReconcileOutcome] = []
            for job in mirrored:
                try:
                    outcome = await self.reconciler.reconcile_job(db, job)
                except Exception as e:
                    logger.bind(external_id=job.external_id, error=str(e)).error(
                        "cron_history_sync_error"
                    )
                    outcome = ReconcileOutcome(external_id=job.external_id or 0, error=str(e))
                outcomes.append(outcome)
                await db.commit()

            summary = SyncSummary(
                jobs_synced=len(mirrored),
                executions_synced=sum(o.inserted for o in outcomes),
                failed_history_jobs=[o.external_id for o in outcomes if o.failed],
                jobs=raw_jobs,
            )
            return ServiceResult.ok(summary)

        result = await self._run("sync_jobs", _sync)
        if result.success and result.data:
            logger.bind(
                jobs_synced=result.data.jobs_synced,
                executions_synced=result.data.executions_synced,
                failed_history_jobs=result.data.failed_history_jobs,
            ).info("cron_sync_completed")
        return result

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    async def get_jobs(self, filters: JobFilters | None = None) -> ServiceResult[list[CronJob]]:
        return await self._run("get_jobs", lambda db: self.operations.get_jobs(db, filters))

    async def get_job_by_id(self, job_id: str) -> ServiceResult[CronJob]:
        return await self._run("get_job_by_id", lambda db: self.operations.get_job_by_id(db, job_id))

    async def update_job(self, job_id: str, updates: JobUpdate) -> ServiceResult[CronJob]:
        return await self._run(
            "update_job", lambda db: self.operations.update_job(db, job_id, updates)
        )

    async def set_job_status(self, job_id: str, status: JobStatus) -> ServiceResult[CronJob]:
        return await self._run(
            "set_job_status", lambda db: self.operations.set_job_status(db, job_id, status)
        )

    async def delete_job(self, job_id: str) -> ServiceResult[None]:
        return await self._run("delete_job", lambda db: self.operations.delete_job(db, job_id))

    async def create_job(self, payload: Any = None) -> ServiceResult[CronJob]:
        return await self.operations.create_job(payload)

    async def execute_job(
        self, job_id: str, triggered_by: TriggerSource | str = TriggerSource.MANUAL
    ) -> ServiceResult[CronExecution]:
        try:
            trigger = TriggerSource(triggered_by)
        except ValueError:
            return ServiceResult.fail(ErrorKind.VALIDATION, f"Invalid trigger: {triggered_by}")

        return await self._run(
            "execute_job", lambda db: self.operations.execute_job(db, job_id, trigger)
        )

    # -------------------------------------------------------------------------
    # History & statistics
    # -------------------------------------------------------------------------

    def _clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self.sync_config.default_history_limit
        return max(1, min(limit, self.sync_config.max_history_limit))

    async def get_job_history(
        self, job_id: str, limit: int | None = None
    ) -> ServiceResult[list[CronExecution]]:
        return await self._run(
            "get_job_history",
            lambda db: self.operations.get_job_history(db, job_id, self._clamp_limit(limit)),
        )

    async def get_all_executions(self, limit: int | None = None) -> ServiceResult[list[CronExecution]]:
        return await self._run(
            "get_all_executions",
            lambda db: self.operations.get_all_executions(db, self._clamp_limit(limit)),
        )

    async def get_job_statistics(self) -> ServiceResult[JobStatistics]:
        async def _stats(db: AsyncSession) -> ServiceResult[JobStatistics]:
            return ServiceResult.ok(await get_job_statistics(db))

        return await self._run("get_job_statistics", _stats)


def create_cron_service(
    config: AppConfig,
    session_factory: async_sessionmaker[AsyncSession],
    http_client: httpx.AsyncClient | None = None,
) -> CronService:
    """
    Build the CronService from configuration.

    Raises:
        ConfigurationError: If CRON_ORG_API_KEY is not set
    """
    settings = config.settings
    client = CronOrgClient(
        api_key=settings.cron_org_api_key,
        base_url=settings.cron_org_base_url,
        timeout_seconds=settings.cron_org_timeout,
        http_client=http_client,
    )
    return CronService(client, session_factory, config.sync)
