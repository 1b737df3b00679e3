from app.models.base import Base
from app.models.cron_execution import CronExecution, ExecutionStatus, TriggerSource
from app.models.cron_job import CronJob, JobCategory, JobPriority, JobStatus

__all__ = [
    "Base",
    "CronJob",
    "JobCategory",
    "JobPriority",
    "JobStatus",
    "CronExecution",
    "ExecutionStatus",
    "TriggerSource",
]
