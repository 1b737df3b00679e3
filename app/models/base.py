from datetime import datetime
from typing import Any

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.core.datetime_utils import utc_now


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    """Mixin that adds created_at/updated_at timestamps to models.

    Timestamps are filled in Python so they are loaded on the instance
    right after flush (no expired attributes under AsyncSession).
    """

    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
