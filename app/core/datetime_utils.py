"""Centralized datetime utilities for consistent timezone handling.

All functions return naive UTC datetimes for database compatibility
(SQLAlchemy models use naive UTC).

Usage:
    from app.core.datetime_utils import utc_now, from_epoch_seconds

    now = utc_now()
    started = from_epoch_seconds(entry["date"])
"""

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Get current UTC time as naive datetime.

    Returns naive datetime for database compatibility.
    Replaces deprecated datetime.utcnow().
    """
    return datetime.now(UTC).replace(tzinfo=None)


# 9999-12-31T23:59:59Z, the last second a datetime can hold
MAX_EPOCH_SECONDS = 253402300799


def from_epoch_seconds(value: int | float) -> datetime:
    """Convert a Unix timestamp in seconds to naive UTC."""
    return datetime.fromtimestamp(value, UTC).replace(tzinfo=None)


def optional_epoch_seconds(value: int | float | None) -> datetime | None:
    """Like from_epoch_seconds, but 0 and None mean "unset".

    cron-job.org reports 0 for a job that never ran or has no next run.

    Args:
        value: Seconds since the epoch

    Returns:
        Naive UTC datetime, or None when the timestamp is unset
    """
    if not value:
        return None
    return from_epoch_seconds(value)


def add_milliseconds(dt: datetime, ms: int | float | None) -> datetime:
    """Offset a datetime by a duration in milliseconds (None counts as 0)."""
    return dt + timedelta(milliseconds=ms or 0)

