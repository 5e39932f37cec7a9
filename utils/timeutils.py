# utils/timeutils.py - Date/time helpers shared by repositories and routes
from datetime import datetime, date, timezone, timedelta
import calendar
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_date(value) -> Optional[date]:
    """Parse 'YYYY-MM-DD' or an ISO datetime string; None when unparseable"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10]) if len(text) > 10 and text[10] in "T " else date.fromisoformat(text)
    except ValueError:
        return None


def months_ago(moment: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the month's last day"""
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of a week/month/year look-back window; None for 'all'"""
    now = now or utcnow()
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return months_ago(now, 1)
    if period == "year":
        return months_ago(now, 12)
    return None


def iso_millis(value: datetime) -> str:
    """2024-01-01T00:00:00.000Z"""
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Drop tzinfo after converting to UTC; naive values are assumed to be UTC already"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
