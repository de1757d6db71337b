"""
Domain time utilities (pure).

Centralized timestamp validation and business-calendar conversion helpers.

Behavior and error messages must remain consistent across the domain model.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces that persisted timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def business_date(now: datetime | date, tz: tzinfo) -> date:
    """
    Calendar date of `now` in the business timezone.

    Aware datetimes are converted to `tz`. Naive datetimes are wall-clock
    time in `tz`. A plain date is already a business date.
    """

    if not isinstance(now, datetime):
        return now
    if now.tzinfo is None or now.utcoffset() is None:
        return now.date()
    return now.astimezone(tz).date()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
