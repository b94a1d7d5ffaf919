"""
Database-agnostic column types for vet-scheduler.

This module provides column types that behave the same across database
backends, particularly for timezone-aware instants in both PostgreSQL
and SQLite.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, TypeDecorator
from sqlalchemy.engine import Dialect

from ..utils.datetime_utils import ensure_utc


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column normalized to UTC.

    PostgreSQL stores ``timestamptz`` natively. SQLite drops the offset and
    hands back naive values, so results are re-tagged as UTC on load. Naive
    values are rejected on bind so that local wall-clock times never reach
    the store unconverted.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: Optional[datetime], dialect: Dialect
    ) -> Optional[datetime]:
        """Process value when storing to database."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime {value!r} cannot be stored")

        value = ensure_utc(value)
        if dialect.name == "sqlite":
            # SQLite compares ISO strings lexically; store without offset
            return value.replace(tzinfo=None)
        return value

    def process_result_value(
        self, value: Optional[datetime], dialect: Dialect
    ) -> Optional[datetime]:
        """Process value when loading from database."""
        if value is None:
            return None
        return ensure_utc(value)

    @property
    def python_type(self) -> Any:
        return datetime
