"""Date formatting and parsing for card timestamps.

Month names are always English, whatever the locale.
"""

import math
import re
from datetime import datetime, timezone

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
MONTH_NUMBERS = {name.lower(): number for number, name in enumerate(MONTHS, start=1)}

# "5 Mar 2024" or "5 Mar 2024 09:30:00 UTC"
CARD_DATE_PATTERN = re.compile(r"^(\d{1,2}) ([A-Za-z]{3}) (\d{4})(?: (\d{2}):(\d{2}):(\d{2}) UTC)?$")

SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_day(date: datetime) -> str:
    """Format a date as ``5 Mar 2024``."""
    return f"{date.day} {MONTHS[date.month - 1]} {date.year}"


def format_timestamp(date: datetime) -> str:
    """Format a date as ``5 Mar 2024 09:30:00 UTC``."""
    date = date.astimezone(timezone.utc)
    return f"{format_day(date)} {date:%H:%M:%S} UTC"


def _parse_card_date(value: str) -> datetime | None:
    match = CARD_DATE_PATTERN.match(value)
    if match is None:
        return None
    day, month, year, hour, minute, second = match.groups()
    month_number = MONTH_NUMBERS.get(month.lower())
    if month_number is None:
        return None
    try:
        return datetime(
            int(year),
            month_number,
            int(day),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


def parse_date(value: str | None) -> datetime | None:
    """Parse an ISO 8601 date or a date written by format_day/format_timestamp.

    Returns None for empty or unparseable values.
    """
    if not value:
        return None
    value = value.strip()
    try:
        date = datetime.fromisoformat(value)
    except ValueError:
        date = _parse_card_date(value)
    if date is None:
        return None
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date


def days_between(now: datetime, date: datetime | str | None) -> int | None:
    """Number of days from ``date`` to ``now``, rounded to the nearest day."""
    if isinstance(date, str) or date is None:
        date = parse_date(date)
    if date is None:
        return None
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return math.floor((now - date).total_seconds() / SECONDS_PER_DAY + 0.5)
