"""Time helpers for print scheduling and maintenance dates.

All datetimes stored by the application are naive UTC. Estimated print times
travel as display strings such as "2h 15m" and are converted to milliseconds
only when an end time has to be computed.
"""

import calendar
import re
from datetime import datetime, timedelta, timezone

MS_PER_HOUR = 3_600_000
MS_PER_MINUTE = 60_000

_HOURS_RE = re.compile(r"(\d+)\s*h")
_MINUTES_RE = re.compile(r"(\d+)\s*m")


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_estimated_time(value: str | None) -> int:
    """Convert an "<h>h <m>m" string to milliseconds.

    The integer before "h" is the hours and the integer before "m" the
    minutes. Either part defaults to 0 when missing or unparseable, so
    "3h" is three hours and garbage is zero.
    """
    if not value:
        return 0
    hours_match = _HOURS_RE.search(value)
    minutes_match = _MINUTES_RE.search(value)
    hours = int(hours_match.group(1)) if hours_match else 0
    minutes = int(minutes_match.group(1)) if minutes_match else 0
    return hours * MS_PER_HOUR + minutes * MS_PER_MINUTE


def format_display_time(dt: datetime) -> str:
    """Format a naive UTC datetime for the printer's display fields."""
    return dt.isoformat(timespec="seconds") + "Z"


def add_months(dt: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month.

    2024-01-31 + 1 month is 2024-02-29, not a rollover into March.
    """
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


def add_days(dt: datetime, days: int) -> datetime:
    return dt + timedelta(days=days)
