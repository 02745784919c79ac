"""
Time and date utilities.

The engines never read the wall clock directly: ``ForecastEngine`` takes a
``clock`` callable (default ``today_utc``) and an explicit
``reference_date`` override, so forecasts are reproducible in tests.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def today_utc() -> date:
    """Return today's date in UTC."""
    return utcnow().date()


def horizon_window(start: date, horizon_days: int) -> tuple[date, date]:
    """Return the half-open window ``[start, start + horizon_days)``.

    Raises:
        ValueError: If ``horizon_days < 1``.
    """
    if horizon_days < 1:
        raise ValueError(f"horizon_days must be >= 1, got {horizon_days}.")
    return start, start + timedelta(days=horizon_days)


def any_date_in_window(dates: Iterable[date], start: date, end: date) -> bool:
    """True if any of ``dates`` falls in ``[start, end)``."""
    return any(start <= d < end for d in dates)
