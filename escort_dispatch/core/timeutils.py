"""Lenient date/time parsing for values read back from the table store.

Cells may hold ``date``/``time`` objects, ISO strings, US-style dates or
12-hour clock strings depending on who typed them. Every parser returns
None on unparseable input instead of raising.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y")
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?\s*([AaPp][Mm])?$")
_COMPACT_RE = re.compile(r"^(\d{1,2})(\d{2})$")


def parse_date(value: object) -> date | None:
    """Parse a calendar date; time-of-day is stripped."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    if "T" in text:
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_time(value: object) -> time | None:
    """Parse a time of day from "HH:MM", "h:mm PM", "HHMM" or an ISO datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.time().replace(second=0, microsecond=0, tzinfo=None)
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)

    text = str(value).strip()
    if not text:
        return None
    if "T" in text:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed.time().replace(second=0, microsecond=0, tzinfo=None)

    hours: int
    minutes: int
    match = _CLOCK_RE.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        meridiem = (match.group(3) or "").lower()
        if meridiem:
            if not 1 <= hours <= 12:
                return None
            if meridiem == "pm" and hours < 12:
                hours += 12
            elif meridiem == "am" and hours == 12:
                hours = 0
    else:
        match = _COMPACT_RE.match(text)
        if not match:
            return None
        hours, minutes = int(match.group(1)), int(match.group(2))

    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return time(hours, minutes)


def time_to_minutes(value: object) -> int | None:
    """Convert any parseable time value to minutes from midnight."""
    t = parse_time(value)
    if t is None:
        return None
    return t.hour * 60 + t.minute


def combine(day: object, clock: object) -> datetime | None:
    """Compose a naive datetime from separately stored date and time cells."""
    d = parse_date(day)
    t = parse_time(clock)
    if d is None or t is None:
        return None
    return datetime.combine(d, t)


def format_date(value: date | None) -> str:
    return value.isoformat() if value else ""


def format_time(value: time | None) -> str:
    return value.strftime("%H:%M") if value else ""


def office_clock(tz_name: str) -> Callable[[], datetime]:
    """``now()`` in the dispatch office's time zone."""
    tz = ZoneInfo(tz_name)
    return lambda: datetime.now(tz)
