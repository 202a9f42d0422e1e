import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from hardtrack.config import settings

DateLike = Union[date, str]

# Shown in the settings page timezone picker
TIMEZONES = [
    {"value": "America/New_York", "label": "Eastern Time (ET)"},
    {"value": "America/Chicago", "label": "Central Time (CT)"},
    {"value": "America/Denver", "label": "Mountain Time (MT)"},
    {"value": "America/Los_Angeles", "label": "Pacific Time (PT)"},
    {"value": "America/Anchorage", "label": "Alaska Time (AKT)"},
    {"value": "Pacific/Honolulu", "label": "Hawaii Time (HT)"},
    {"value": "Europe/London", "label": "London (GMT/BST)"},
    {"value": "Europe/Paris", "label": "Paris (CET/CEST)"},
    {"value": "Europe/Berlin", "label": "Berlin (CET/CEST)"},
    {"value": "Europe/Amsterdam", "label": "Amsterdam (CET/CEST)"},
    {"value": "Asia/Tokyo", "label": "Tokyo (JST)"},
    {"value": "Asia/Shanghai", "label": "Shanghai (CST)"},
    {"value": "Asia/Singapore", "label": "Singapore (SGT)"},
    {"value": "Australia/Sydney", "label": "Sydney (AEST/AEDT)"},
    {"value": "Australia/Melbourne", "label": "Melbourne (AEST/AEDT)"},
    {"value": "Pacific/Auckland", "label": "Auckland (NZST/NZDT)"},
]


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def get_zone(name: Optional[str]) -> ZoneInfo:
    """User's zone, falling back to the configured default for unset or unknown names."""
    if name and is_valid_timezone(name):
        return ZoneInfo(name)
    return ZoneInfo(settings.DEFAULT_TIMEZONE)


def local_now(tz_name: Optional[str], now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(get_zone(tz_name))


def local_today(tz_name: Optional[str], now: Optional[datetime] = None) -> date:
    return local_now(tz_name, now).date()


def to_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # accepts "YYYY-MM-DD" and full ISO timestamps
    return date.fromisoformat(value[:10])


def as_utc(value: datetime) -> datetime:
    """Naive datetimes coming back from the database are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_day_bounds(day: date, tz_name: Optional[str]) -> Tuple[datetime, datetime]:
    """[00:00:00, 23:59:59.999999] of a local calendar day, expressed in UTC."""
    zone = get_zone(tz_name)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day, time.max, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def day_number(start_date: DateLike, current: DateLike) -> int:
    """1-based challenge day for a date; can be <= 0 before the start."""
    return (to_date(current) - to_date(start_date)).days + 1


def date_from_day_number(start_date: DateLike, number: int) -> date:
    return to_date(start_date) + timedelta(days=number - 1)


def round_half_up(value: float, places: int = 0) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor
