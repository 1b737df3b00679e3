"""Tests for history reconciliation helpers."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.models.cron_execution import CronExecution, ExecutionStatus, TriggerSource
from app.schemas.cron import CronOrgHistoryEntry
from app.services.cron_org import ExecutionReconciler, map_status
from app.services.cron_org.reconciler import build_execution, execution_identity, parse_history
from tests.fakes import FakeCronOrg, make_history_entry


def _entry(**kwargs) -> CronOrgHistoryEntry:
    return CronOrgHistoryEntry.model_validate(make_history_entry(**kwargs))


class TestMapStatus:
    """Tests for map_status."""

    def test_known_codes(self):
        assert map_status(1) == ExecutionStatus.SUCCESS
        assert map_status(0) == ExecutionStatus.FAILED
        assert map_status(-1) == ExecutionStatus.TIMEOUT

    def test_total_over_integers(self):
        """Every other code (and None) maps to failed."""
        for code in range(-50, 50):
            if code in (1, 0, -1):
                continue
            assert map_status(code) == ExecutionStatus.FAILED
        assert map_status(None) == ExecutionStatus.FAILED

    def test_only_terminal_statuses(self):
        produced = {map_status(code) for code in range(-5, 10)}
        assert produced <= {ExecutionStatus.SUCCESS, ExecutionStatus.FAILED, ExecutionStatus.TIMEOUT}


class TestExecutionIdentity:
    """Tests for execution_identity."""

    def test_uses_identifier(self):
        assert execution_identity(42, _entry(identifier="e1", date=1700000000)) == "e1"

    def test_numeric_identifier_is_stringified(self):
        assert execution_identity(42, _entry(identifier=991, date=1700000000)) == "991"

    def test_synthesized_when_missing(self):
        assert execution_identity(42, _entry(identifier=None, date=1700000000)) == "42-1700000000"
        assert execution_identity(42, _entry(identifier="", date=1700000000)) == "42-1700000000"


@pytest.mark.asyncio
class TestBuildExecution:
    """Tests for build_execution."""

    async def test_successful_entry(self, job_factory):
        """date 1700000000 + 1500ms -> start/end 1.5s apart, no error fields."""
        job = await job_factory(external_id=42)
        entry = _entry(identifier="e1", date=1700000000, duration=1500, status=1, httpStatus=200)

        execution = build_execution(job, entry, "e1", response_body_max_chars=2000)

        assert execution.status == ExecutionStatus.SUCCESS
        assert execution.start_time == datetime(2023, 11, 14, 22, 13, 20)
        assert execution.end_time - execution.start_time == timedelta(milliseconds=1500)
        assert execution.duration == 1500
        assert execution.http_status == 200
        assert execution.error_message is None
        assert execution.error_code is None
        assert execution.triggered_by == TriggerSource.SCHEDULE
        assert execution.retry_attempt == 0
        assert execution.job_id == job.id
        assert execution.external_job_id == 42

    async def test_failed_entry(self, job_factory):
        job = await job_factory(external_id=42)
        entry = _entry(identifier="e2", date=1700000000, status=0, statusText="Connection refused")

        execution = build_execution(job, entry, "e2", response_body_max_chars=2000)

        assert execution.status == ExecutionStatus.FAILED
        assert execution.error_message == "Connection refused"
        assert execution.error_code == "0"

    async def test_timeout_without_status_text(self, job_factory):
        job = await job_factory(external_id=42)
        entry = _entry(identifier="e3", date=1700000000, status=-1, statusText=None)

        execution = build_execution(job, entry, "e3", response_body_max_chars=2000)

        assert execution.status == ExecutionStatus.TIMEOUT
        assert execution.error_message == "Unknown error"
        assert execution.error_code == "-1"

    async def test_body_truncated_size_kept(self, job_factory):
        """Stored body is truncated; response_size is the full length."""
        job = await job_factory(external_id=42)
        entry = _entry(identifier="e4", date=1700000000, body="x" * 25)

        execution = build_execution(job, entry, "e4", response_body_max_chars=10)

        assert execution.response_body == "x" * 10
        assert execution.response_size == 25

    async def test_missing_body(self, job_factory):
        job = await job_factory(external_id=42)
        entry = _entry(identifier="e5", date=1700000000, body=None)

        execution = build_execution(job, entry, "e5", response_body_max_chars=10)

        assert execution.response_body == ""
        assert execution.response_size == 0


class TestParseHistory:
    """Tests for parse_history."""

    def test_skips_invalid_entries(self):
        data = {
            "history": [
                make_history_entry("ok", 1700000000),
                {"identifier": "no-date"},
            ]
        }

        entries = parse_history(1, data)

        assert [e.identifier for e in entries] == ["ok"]

    def test_missing_history_key(self):
        assert parse_history(1, {}) == []


@pytest.mark.asyncio
class TestReconcileJob:
    """Tests for ExecutionReconciler.reconcile_job."""

    async def test_inserts_only_new_entries(
        self, cron_client, fake_cron_org: FakeCronOrg, job_factory, db_session
    ):
        job = await job_factory(external_id=7)
        fake_cron_org.history[7] = [
            make_history_entry("a", 1700000000),
            make_history_entry("b", 1700000060),
        ]
        reconciler = ExecutionReconciler(cron_client)

        first = await reconciler.reconcile_job(db_session, job)
        fake_cron_org.history[7].append(make_history_entry("c", 1700000120))
        second = await reconciler.reconcile_job(db_session, job)
        await db_session.commit()

        assert first.inserted == 2
        assert second.inserted == 1
        result = await db_session.execute(
            select(CronExecution.execution_id).where(CronExecution.external_job_id == 7)
        )
        assert sorted(result.scalars().all()) == ["a", "b", "c"]

    async def test_duplicates_within_batch_inserted_once(
        self, cron_client, fake_cron_org: FakeCronOrg, job_factory, db_session
    ):
        job = await job_factory(external_id=7)
        fake_cron_org.history[7] = [
            make_history_entry(None, 1700000000),
            make_history_entry(None, 1700000000),
            make_history_entry("x", 1700000300),
            make_history_entry("x", 1700000300),
        ]

        outcome = await ExecutionReconciler(cron_client).reconcile_job(db_session, job)

        assert outcome.inserted == 2
        assert outcome.failed is False

    async def test_fetch_failure_reported(
        self, cron_client, fake_cron_org: FakeCronOrg, job_factory, db_session
    ):
        job = await job_factory(external_id=7)
        fake_cron_org.fail("GET", "/jobs/7/history", 503)

        outcome = await ExecutionReconciler(cron_client).reconcile_job(db_session, job)

        assert outcome.failed is True
        assert outcome.inserted == 0
        assert outcome.external_id == 7
