"""Observed runs of mirrored cron jobs."""

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Enum, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class ExecutionStatus(str, enum.Enum):
    """Execution status."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"


class TriggerSource(str, enum.Enum):
    """What started the execution."""

    SCHEDULE = "schedule"
    MANUAL = "manual"
    RETRY = "retry"


class CronExecution(Base, TimestampMixin):
    """One run of a CronJob, reconciled from history or started manually."""

    __tablename__ = "cron_executions"
    __table_args__ = (
        UniqueConstraint("external_job_id", "execution_id", name="uq_cron_executions_identity"),
        Index("ix_cron_executions_job_start", "job_id", "start_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cron_jobs.id", ondelete="CASCADE"), index=True
    )
    external_job_id: Mapped[int | None] = mapped_column(Integer)
    # None for manual runs not yet seen in cron-job.org history
    execution_id: Mapped[str | None] = mapped_column(String(128))

    status: Mapped[ExecutionStatus] = mapped_column(
        Enum(
            ExecutionStatus,
            values_callable=lambda e: [x.value for x in e],
            name="executionstatus",
            native_enum=False,
            length=20,
        ),
        default=ExecutionStatus.PENDING,
        index=True,
    )
    start_time: Mapped[datetime] = mapped_column(index=True)
    end_time: Mapped[datetime | None] = mapped_column(default=None)
    duration: Mapped[int | None] = mapped_column(Integer)  # milliseconds
    http_status: Mapped[int | None] = mapped_column(Integer)

    response_body: Mapped[str | None] = mapped_column(Text)
    response_size: Mapped[int | None] = mapped_column(Integer)

    error_message: Mapped[str | None] = mapped_column(Text)
    error_code: Mapped[str | None] = mapped_column(String(32))

    retry_attempt: Mapped[int] = mapped_column(Integer, default=0)
    triggered_by: Mapped[TriggerSource] = mapped_column(
        Enum(
            TriggerSource,
            values_callable=lambda e: [x.value for x in e],
            name="triggersource",
            native_enum=False,
            length=20,
        )
    )
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON)

    def __repr__(self) -> str:
        return f"<CronExecution {self.external_job_id}/{self.execution_id} status={self.status.value}>"
