"""Local mirror of a cron-job.org job."""

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Enum, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class JobCategory(str, enum.Enum):
    """Domain the job belongs to (inferred from its title/URL)."""

    CONTENT = "content"
    MAINTENANCE = "maintenance"
    PUBLISHING = "publishing"
    ANALYTICS = "analytics"


class JobPriority(str, enum.Enum):
    """Priority tier (inferred from the title)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class JobStatus(str, enum.Enum):
    """Local job status."""

    ACTIVE = "active"
    PAUSED = "paused"
    DISABLED = "disabled"
    ERROR = "error"


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda e: [x.value for x in e],
        name=name,
        native_enum=False,
        length=20,
    )


class CronJob(Base, TimestampMixin):
    """One scheduled job on cron-job.org, mirrored locally by sync."""

    __tablename__ = "cron_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # ID on cron-job.org; at most one local row per external job
    external_id: Mapped[int | None] = mapped_column(Integer, unique=True, index=True)

    # Mirrored verbatim from cron-job.org
    title: Mapped[str] = mapped_column(String(500))
    url: Mapped[str] = mapped_column(String(2048))
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    save_responses: Mapped[bool] = mapped_column(Boolean, default=False)
    schedule: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    request_timeout: Mapped[int | None] = mapped_column(Integer, default=30)
    redirect_success: Mapped[bool | None] = mapped_column(Boolean, default=True)
    request_method: Mapped[int | None] = mapped_column(Integer, default=0)
    auth: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    notification: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    extended_data: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    # Derived / local-only
    category: Mapped[JobCategory] = mapped_column(
        _enum_column(JobCategory, "jobcategory"), index=True
    )
    priority: Mapped[JobPriority] = mapped_column(
        _enum_column(JobPriority, "jobpriority"), default=JobPriority.MEDIUM
    )
    status: Mapped[JobStatus] = mapped_column(
        _enum_column(JobStatus, "jobstatus"), default=JobStatus.ACTIVE, index=True
    )
    last_execution: Mapped[datetime | None] = mapped_column(default=None)
    next_execution: Mapped[datetime | None] = mapped_column(default=None, index=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, default=3)
    created_by: Mapped[str] = mapped_column(String(255), default="sync")
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON)

    def __repr__(self) -> str:
        return f"<CronJob {self.external_id}: {self.title[:50]}>"
