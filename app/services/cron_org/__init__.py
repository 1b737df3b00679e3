"""cron-job.org mirror: client, sync/reconciliation and job operations."""

from .client import CronOrgClient
from .errors import ConfigurationError
from .inference import infer, infer_category, infer_priority
from .operations import JobOperations
from .reconciler import ExecutionReconciler, map_status
from .service import CronService, create_cron_service

__all__ = [
    "ConfigurationError",
    "CronOrgClient",
    "CronService",
    "ExecutionReconciler",
    "JobOperations",
    "create_cron_service",
    "infer",
    "infer_category",
    "infer_priority",
    "map_status",
]
