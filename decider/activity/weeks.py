"""Calendar helpers. Weeks start on Monday."""

from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo


def week_start_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def week_bounds(day: date) -> tuple[date, date]:
    """(Monday, Sunday) of the week containing `day`."""
    start = week_start_of(day)
    return start, start + timedelta(days=6)


def previous_week(day: date) -> tuple[date, date]:
    """The last full Monday-Sunday week before the week containing `day`."""
    start = week_start_of(day) - timedelta(days=7)
    return start, start + timedelta(days=6)


def today_in(timezone: str, now: Optional[datetime] = None) -> date:
    """Current calendar date in an IANA timezone."""
    tz = ZoneInfo(timezone)
    if now is None:
        return datetime.now(tz).date()
    if now.tzinfo is None:
        now = now.replace(tzinfo=ZoneInfo("UTC"))
    return now.astimezone(tz).date()
