from app.schemas.common import ErrorKind, ServiceError, ServiceResult
from app.schemas.cron import (
    CronOrgHistoryEntry,
    CronOrgJob,
    ExecutionResponse,
    JobFilters,
    JobResponse,
    JobStatistics,
    JobUpdate,
    SyncSummary,
)

__all__ = [
    "ErrorKind",
    "ServiceError",
    "ServiceResult",
    "CronOrgJob",
    "CronOrgHistoryEntry",
    "JobFilters",
    "JobUpdate",
    "JobResponse",
    "ExecutionResponse",
    "JobStatistics",
    "SyncSummary",
]
