"""Schemas for cron-job.org payloads and the local job/execution views."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from app.core.datetime_utils import MAX_EPOCH_SECONDS
from app.models.cron_execution import ExecutionStatus, TriggerSource
from app.models.cron_job import JobCategory, JobPriority, JobStatus

# =============================================================================
# cron-job.org payloads (camelCase on the wire)
# =============================================================================


class _CronOrgModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CronOrgJob(_CronOrgModel):
    """A job as returned by GET /jobs."""

    job_id: int
    title: str = ""
    url: str = ""
    enabled: bool = False
    save_responses: bool = False
    schedule: dict[str, Any] = Field(default_factory=dict)
    request_timeout: int | None = None
    redirect_success: bool | None = None
    request_method: int | None = None
    auth: dict[str, Any] | None = None
    notification: dict[str, Any] | None = None
    extended_data: dict[str, Any] | None = None
    last_status: int | None = None
    last_duration: int | None = None
    last_execution: int | None = None
    next_execution: int | None = None

    @field_validator("last_execution", "next_execution")
    @classmethod
    def _drop_unrepresentable_timestamps(cls, value: int | None) -> int | None:
        # Outside 0..9999-12-31 there is no datetime to store; treat as unset
        if value is not None and not 0 <= value <= MAX_EPOCH_SECONDS:
            return None
        return value


class CronOrgHistoryEntry(_CronOrgModel):
    """One entry of GET /jobs/{id}/history."""

    identifier: str | int | None = None
    date: int
    date_planned: int | None = None
    jitter: int | None = None
    duration: int = 0
    status: int | None = None
    status_text: str | None = None
    http_status: int | None = None
    body: str | None = None
    stats: dict[str, Any] | None = None

    @field_validator("date")
    @classmethod
    def _date_in_range(cls, value: int) -> int:
        if not 0 <= value <= MAX_EPOCH_SECONDS:
            raise ValueError("date is not a representable timestamp")
        return value


# =============================================================================
# Local views
# =============================================================================


class JobFilters(BaseModel):
    """Equality filters for listing jobs; unset fields are ignored."""

    category: JobCategory | None = None
    status: JobStatus | None = None
    created_by: str | None = None


class JobUpdate(BaseModel):
    """Partial update of a job. Only fields explicitly set are applied."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    # Pushed to cron-job.org
    title: str | None = None
    url: str | None = None
    enabled: bool | None = None
    save_responses: bool | None = None
    schedule: dict[str, Any] | None = None
    request_timeout: int | None = None
    redirect_success: bool | None = None
    request_method: int | None = None
    auth: dict[str, Any] | None = None
    notification: dict[str, Any] | None = None
    extended_data: dict[str, Any] | None = None

    # Local-only
    category: JobCategory | None = None
    priority: JobPriority | None = None
    max_retries: int | None = Field(default=None, ge=0)
    metadata: dict[str, Any] | None = None

    @field_validator(
        "title",
        "url",
        "enabled",
        "save_responses",
        "schedule",
        "category",
        "priority",
        "max_retries",
    )
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("may not be null")
        return value


# Fields of JobUpdate that exist on cron-job.org, with their wire names
EXTERNAL_JOB_FIELDS: dict[str, str] = {
    name: to_camel(name)
    for name in (
        "title",
        "url",
        "enabled",
        "save_responses",
        "schedule",
        "request_timeout",
        "redirect_success",
        "request_method",
        "auth",
        "notification",
        "extended_data",
    )
}


class JobResponse(BaseModel):
    """Response model for a mirrored job."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    external_id: int | None
    title: str
    url: str
    enabled: bool
    schedule: dict[str, Any]
    category: JobCategory
    priority: JobPriority
    status: JobStatus
    last_execution: datetime | None
    next_execution: datetime | None
    retry_count: int
    max_retries: int
    created_by: str
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_json")
    created_at: datetime
    updated_at: datetime


class ExecutionResponse(BaseModel):
    """Response model for one execution."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_id: uuid.UUID
    external_job_id: int | None
    execution_id: str | None
    status: ExecutionStatus
    start_time: datetime
    end_time: datetime | None
    duration: int | None
    http_status: int | None
    response_body: str | None
    response_size: int | None
    error_message: str | None
    error_code: str | None
    retry_attempt: int
    triggered_by: TriggerSource
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_json")


class JobStatistics(BaseModel):
    """Aggregated counts over the local tables."""

    total_jobs: int = 0
    active_jobs: int = 0
    paused_jobs: int = 0
    failed_jobs: int = 0
    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    category_counts: dict[str, int] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success_rate(self) -> float:
        if self.total_executions == 0:
            return 0.0
        return self.successful_executions / self.total_executions


class SyncSummary(BaseModel):
    """Outcome of one sync run."""

    jobs_synced: int
    executions_synced: int
    failed_history_jobs: list[int] = Field(default_factory=list)
    jobs: list[dict[str, Any]] = Field(default_factory=list)
