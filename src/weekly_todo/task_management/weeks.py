"""
ISO-8601 week calendar.

Weeks run Monday to Sunday and week 1 is the week containing the year's
first Thursday, so late-December dates may belong to week 1 of the next
year and early-January dates to week 52 or 53 of the previous one.

Reference: https://en.wikipedia.org/wiki/ISO_8601#Week_dates
"""

import re
from datetime import MINYEAR, date, datetime, time, timedelta
from typing import NamedTuple

from .exceptions import WeekFormatError
from .models import WeekInfo, parse_timestamp, to_local_naive

ISO_WEEK_PATTERN = re.compile(r"(\d{4})-W(\d{2})", re.ASCII)

DAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

DateLike = date | datetime | str


class IsoWeek(NamedTuple):
    """ISO week-numbering year and week number."""

    year: int
    week: int


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, str):
        return parse_timestamp(value)
    if isinstance(value, datetime):
        return to_local_naive(value)
    return datetime.combine(value, time.min)


def _as_date(value: DateLike) -> date:
    return _as_datetime(value).date()


def iso_week_of(value: DateLike) -> IsoWeek:
    """Get the ISO-8601 week-numbering year and week of a date."""
    year, week, _ = _as_date(value).isocalendar()
    return IsoWeek(year, week)


def monday_of(value: DateLike) -> datetime:
    """Get Monday 00:00:00 of the ISO week containing ``value``."""
    day = _as_date(value)
    return datetime.combine(day - timedelta(days=day.weekday()), time.min)


def sunday_of(value: DateLike) -> datetime:
    """Get the last instant of Sunday of the ISO week containing ``value``."""
    monday = monday_of(value)
    return datetime.combine(monday.date() + timedelta(days=6), time.max)


def week_info(value: DateLike) -> WeekInfo:
    """Get complete week information for a date."""
    year, week = iso_week_of(value)
    return WeekInfo(
        year=year, week=week, start_date=monday_of(value), end_date=sunday_of(value)
    )


def current_week_info(today: date | None = None) -> WeekInfo:
    return week_info(today or date.today())


def next_week(current: WeekInfo) -> WeekInfo:
    return week_info(current.start_date + timedelta(days=7))


def previous_week(current: WeekInfo) -> WeekInfo:
    return week_info(current.start_date - timedelta(days=7))


def is_in_week(value: DateLike, week: WeekInfo) -> bool:
    """Check if a date or timestamp falls within a week (inclusive)."""
    moment = _as_datetime(value)
    return week.start_date <= moment <= week.end_date


def format_iso_week(week: WeekInfo) -> str:
    """Format a week as ``YYYY-Www``, e.g. ``2026-W03``."""
    return f"{week.year:04d}-W{week.week:02d}"


def parse_iso_week(text: str) -> WeekInfo:
    """
    Parse a ``YYYY-Www`` string into week information.

    January 4th is always in ISO week 1, so the target Monday is found by
    offsetting from the Monday of January 4th's week.

    Args:
        text: ISO week string

    Returns:
        WeekInfo for the requested week

    Raises:
        WeekFormatError: If the string is not of the form ``YYYY-Www``
    """
    match = ISO_WEEK_PATTERN.fullmatch(text) if isinstance(text, str) else None
    if match is None:
        raise WeekFormatError(f"Invalid ISO week format: {text!r}")

    year = int(match.group(1))
    week = int(match.group(2))
    if year < MINYEAR:
        raise WeekFormatError(f"Invalid ISO week year: {text!r}")

    try:
        anchor = week_info(date(year, 1, 4))
        target_monday = anchor.start_date + timedelta(weeks=week - anchor.week)
        return week_info(target_monday)
    except (OverflowError, ValueError) as e:
        raise WeekFormatError(f"ISO week out of range: {text!r}") from e


def week_days(week: WeekInfo) -> list[date]:
    """Get the seven dates of a week, Monday first."""
    monday = week.start_date.date()
    return [monday + timedelta(days=offset) for offset in range(7)]


def is_same_day(first: DateLike, second: DateLike) -> bool:
    """Check if two dates fall on the same local calendar day."""
    return _as_date(first) == _as_date(second)


def day_name(value: DateLike) -> str:
    return DAY_NAMES[_as_date(value).weekday()]


def to_iso_date(value: DateLike) -> str:
    return _as_date(value).isoformat()


def format_date(value: DateLike) -> str:
    """Format a date for display, e.g. ``Jan 13, 2026``."""
    day = _as_date(value)
    return f"{MONTH_ABBREVIATIONS[day.month - 1]} {day.day}, {day.year}"


def format_week_range(week: WeekInfo) -> str:
    """Format a week range for display, e.g. ``Jan 6 - Jan 12, 2026``."""
    start = week.start_date.date()
    return f"{MONTH_ABBREVIATIONS[start.month - 1]} {start.day} - {format_date(week.end_date)}"


def is_past(value: DateLike, today: date | None = None) -> bool:
    """Check if a date is strictly before today."""
    return _as_date(value) < (today or date.today())


def is_today(value: DateLike, today: date | None = None) -> bool:
    return _as_date(value) == (today or date.today())


def is_tomorrow(value: DateLike, today: date | None = None) -> bool:
    return _as_date(value) == (today or date.today()) + timedelta(days=1)


def relative_date_description(value: DateLike, today: date | None = None) -> str:
    """Describe a date as Today, Tomorrow, Yesterday or a formatted date."""
    reference = today or date.today()
    day = _as_date(value)
    if day == reference:
        return "Today"
    if day == reference + timedelta(days=1):
        return "Tomorrow"
    if day == reference - timedelta(days=1):
        return "Yesterday"
    return format_date(day)
