"""Practice timezone helpers. The database stores naive UTC datetimes."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ...config import SCHEDULE_TIMEZONE
from ...errors import ValidationError

TIMEZONE = ZoneInfo(SCHEDULE_TIMEZONE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_local(value: datetime) -> datetime:
    """Aware datetime in the practice timezone. Naive input is taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(TIMEZONE)


def to_utc_naive(value: datetime) -> datetime:
    """Naive UTC datetime for storage. Naive input is taken as practice-local time."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=TIMEZONE)
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Naive UTC [start, end) covering one practice-local calendar day"""
    start = datetime.combine(day, time(0, 0), tzinfo=TIMEZONE)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=TIMEZONE)
    return to_utc_naive(start), to_utc_naive(end)


def combine_local(day: date, at: time) -> datetime:
    return datetime.combine(day, at, tzinfo=TIMEZONE)


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" into a time"""
    try:
        hours, minutes = value.strip().split(":")[:2]
        return time(int(hours), int(minutes))
    except (AttributeError, ValueError) as e:
        raise ValidationError(f"Invalid time of day: {value!r}") from e


def parse_iso_date(value) -> date:
    """Parse "YYYY-MM-DD" (or the date part of an ISO datetime)"""
    if isinstance(value, datetime):
        return to_local(value).date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value!r}") from e


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 timestamp. Values without an offset are practice-local."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as e:
        raise ValidationError(f"Invalid timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=TIMEZONE)
    return parsed


def local_today(now: Optional[datetime] = None) -> date:
    return to_local(now or utcnow()).date()
