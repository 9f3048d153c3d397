"""Date manipulation utilities"""

from calendar import monthrange
from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """Current wall-clock time in UTC"""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Today's calendar day in UTC, independent of the host timezone"""
    return utc_now().date()


def add_months(from_date: date, months: int) -> date:
    """
    Add calendar months keeping the day of month.

    When the target month is shorter than the source day, the result is
    clamped to the target month's last day (Jan 31 + 1 month = Feb 28/29).
    """
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(from_date.day, monthrange(year, month)[1])
    return date(year, month, day)


def horizon_date(today: date, days: int) -> date:
    """Last calendar day covered by a rolling horizon of `days` days"""
    return today + timedelta(days=days)
