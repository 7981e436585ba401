"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from the database.

    Some drivers (SQLite) drop the offset on ``DateTime(timezone=True)``
    columns; everything we store is UTC so the offset is safe to restore.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_since(value: datetime, now: Optional[datetime] = None) -> float:
    """Fractional days elapsed between ``value`` and ``now``."""
    now = now or utc_now()
    return (now - ensure_utc(value)) / timedelta(days=1)


def date_range(start: date, end: date) -> list[date]:
    """Every calendar day from ``start`` to ``end`` inclusive."""
    days = (end - start).days
    return [start + timedelta(days=offset) for offset in range(days + 1)]
