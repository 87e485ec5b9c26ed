"""Date handling: natural-language ranges, journal page names and API instants.

All datetimes are naive and expressed in the process's local time, which is
what Logseq shows the user. There is no timezone parameter.
"""

from __future__ import annotations

import calendar
import math
import re
from datetime import date, datetime, time, timedelta
from typing import NamedTuple

from .config import FALLBACK_TIMEFRAME_DAYS

JOURNAL_DATE_PATTERN = re.compile(
    r"^(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\s+\d{1,2}(st|nd|rd|th)?,\s+\d{4}$",
    re.IGNORECASE,
)

TIMEFRAME_PATTERN = re.compile(r"last (\d+) (\w+)")


class DateRange(NamedTuple):
    """A resolved date range with its display title."""

    start: datetime
    end: datetime
    title: str


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)


def _week_start(day: date) -> date:
    # Weeks start on Sunday; date.weekday() has Monday == 0
    return day - timedelta(days=(day.weekday() + 1) % 7)


def parse_date_range(date_range: str, now: datetime | None = None) -> DateRange:
    """Resolve a natural-language range keyword to concrete instants.

    Recognized: today, yesterday, this week, last week, this month,
    last month, this year, last year, year to date. Anything else resolves
    to the current week.

    Args:
        date_range: The range keyword (case and surrounding space ignored).
        now: Reference moment (defaults to the current local time).

    Returns:
        DateRange with an inclusive end-of-day end instant.
    """
    now = now or datetime.now()
    today = now.date()
    normalized = date_range.lower().strip()

    if normalized == "today":
        return DateRange(start_of_day(today), end_of_day(today), "Today's Journal Summary")

    if normalized == "yesterday":
        yesterday = today - timedelta(days=1)
        return DateRange(
            start_of_day(yesterday), end_of_day(yesterday), "Yesterday's Journal Summary"
        )

    if normalized == "last week":
        this_week = _week_start(today)
        return DateRange(
            start_of_day(this_week - timedelta(days=7)),
            end_of_day(this_week - timedelta(days=1)),
            "Last Week's Journal Summary",
        )

    if normalized == "this month":
        return DateRange(
            start_of_day(today.replace(day=1)),
            end_of_day(today),
            f"Journal Summary for {today.strftime('%B')} {today.year}",
        )

    if normalized == "last month":
        last_day = today.replace(day=1) - timedelta(days=1)
        first_day = last_day.replace(day=1)
        return DateRange(
            start_of_day(first_day),
            end_of_day(last_day),
            f"Journal Summary for {first_day.strftime('%B')} {first_day.year}",
        )

    if normalized == "this year":
        return DateRange(
            start_of_day(date(today.year, 1, 1)),
            end_of_day(today),
            f"Journal Summary for {today.year}",
        )

    if normalized == "last year":
        year = today.year - 1
        return DateRange(
            start_of_day(date(year, 1, 1)),
            end_of_day(date(year, 12, 31)),
            f"Journal Summary for {year}",
        )

    if normalized == "year to date":
        return DateRange(
            start_of_day(date(today.year, 1, 1)),
            end_of_day(today),
            f"Year-to-Date Journal Summary for {today.year}",
        )

    # "this week" and any unrecognized input
    return DateRange(start_of_day(_week_start(today)), end_of_day(today), "Weekly Journal Summary")


def shift_months(moment: datetime, months: int) -> datetime:
    """Move a datetime back or forward by whole months, clamping the day."""
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _timeframe_start(now: datetime, amount: int, unit: str) -> datetime | None:
    if unit == "day":
        return now - timedelta(days=amount)
    if unit == "week":
        return now - timedelta(weeks=amount)
    if unit == "month":
        return shift_months(now, -amount)
    if unit == "year":
        try:
            return now.replace(year=now.year - amount)
        except ValueError:  # Feb 29th in a non-leap year
            return now.replace(year=now.year - amount, day=28)
    return None


def parse_timeframe(timeframe: str, now: datetime | None = None) -> DateRange:
    """Resolve a journal-analysis timeframe ending now.

    Accepts "last N days|weeks|months|years" and "this year". Anything else,
    including a window reaching before year 1, falls back to the last 30 days.
    """
    now = now or datetime.now()
    normalized = timeframe.lower().strip()

    if normalized == "this year":
        return DateRange(start_of_day(date(now.year, 1, 1)), now, timeframe)

    match = TIMEFRAME_PATTERN.search(normalized)
    if match:
        try:
            start = _timeframe_start(now, int(match.group(1)), match.group(2).rstrip("s"))
        except (ValueError, OverflowError):
            start = None
        if start is not None:
            return DateRange(start, now, timeframe)

    return DateRange(now - timedelta(days=FALLBACK_TIMEFRAME_DAYS), now, timeframe)


def parse_instant(value: object) -> datetime | None:
    """Parse an API timestamp into a naive local datetime.

    Logseq reports instants as epoch milliseconds; ISO strings are accepted
    too. Anything unparsable yields None ("unknown"), never a default instant.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.lstrip("-").isdigit():
            value = int(text)
        else:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            return parse_instant(parsed)

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            return None

    return None


def journal_day_to_date(value: object) -> date | None:
    """Convert a journalDay key (e.g. 20250314) to a date, or None if invalid."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if len(text) != 8 or not text.isdigit():
        return None
    try:
        return datetime.strptime(text, "%Y%m%d").date()
    except ValueError:
        return None


def day_suffix(day: int) -> str:
    """Ordinal suffix for a day of the month (1st, 2nd, 3rd, 11th...)."""
    if 11 <= day <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_journal_date(day: date) -> str:
    """Format a date the way Logseq names journal pages, e.g. "mar 14th, 2025"."""
    return f"{day.strftime('%b').lower()} {day.day}{day_suffix(day.day)}, {day.year}"


def is_journal_date(page_name: str) -> bool:
    """Check whether a page name looks like a journal date ("Mar 14th, 2025")."""
    return bool(JOURNAL_DATE_PATTERN.match(page_name))


def format_short_date(moment: date) -> str:
    """Short month/day/year rendering used in reports, e.g. "3/14/2025"."""
    return f"{moment.month}/{moment.day}/{moment.year}"


def days_since(moment: datetime, now: datetime) -> int:
    """Whole days elapsed between moment and now (floored)."""
    return math.floor((now - moment).total_seconds() / 86400)


def format_timestamp(moment: datetime) -> str:
    """Locale-style date and time, e.g. "3/14/2025, 9:05:00 AM"."""
    hour = moment.hour % 12 or 12
    return f"{format_short_date(moment)}, {hour}:{moment:%M:%S} {moment:%p}"
