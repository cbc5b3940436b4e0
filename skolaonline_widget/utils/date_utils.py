#!/usr/bin/env python3
"""
Utility functions for handling dates in the Škola OnLine widget.
Provides consistent week arithmetic, API timestamp parsing and formatting.
"""
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from skolaonline_widget.constants import (
    API_QUERY_DATETIME_FORMAT,
    DAYS_IN_WEEK_WINDOW,
    RELATIVE_DAY_LABELS,
    WEEKDAY_SHORT_NAMES,
)

def to_date(value: Union[date, datetime]) -> date:
    """Return the calendar date of a date or datetime."""
    if isinstance(value, datetime):
        return value.date()
    return value

def week_start_for(day: Union[date, datetime]) -> date:
    """
    Get the Monday of the week containing ``day``.

    Args:
        day: Any date or datetime

    Returns:
        date: The Monday of that week
    """
    day = to_date(day)
    return day - timedelta(days=day.weekday())

def week_start_for_offset(today: Union[date, datetime], week_offset: int) -> date:
    """
    Get the Monday of the week ``week_offset`` weeks away from the week containing today.

    Args:
        today: The reference date
        week_offset: 0 for the current week, -1 for the previous one, 1 for the next

    Returns:
        date: Monday of the target week
    """
    return week_start_for(today) + timedelta(weeks=week_offset)

def week_end_for(week_start: date) -> date:
    """Get the Friday of the week window starting at ``week_start``."""
    return week_start + timedelta(days=DAYS_IN_WEEK_WINDOW - 1)

def week_window_dates(week_start: date) -> List[date]:
    """List the Monday..Friday dates of the week window."""
    return [week_start + timedelta(days=i) for i in range(DAYS_IN_WEEK_WINDOW)]

def format_api_query_datetime(day: date) -> str:
    """
    Format a date as the timetable query expects it (yyyy-MM-dd'T'HH:mm:ss.SSS, midnight).

    Args:
        day: The date to format

    Returns:
        str: e.g. "2024-06-03T00:00:00.000"
    """
    midnight = datetime(day.year, day.month, day.day)
    return f"{midnight.strftime(API_QUERY_DATETIME_FORMAT)}.000"

def parse_api_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a timestamp returned by the API.

    The API sends local timestamps like "2024-06-03T08:00:00", sometimes with
    fractional seconds or an offset. Offsets are dropped so the wall clock time
    is kept.

    Args:
        value: The raw timestamp string

    Returns:
        datetime or None if the value is empty or unparsable
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1]

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        # Fall back to the plain date/time prefix
        try:
            parsed = datetime.strptime(text[:19], API_QUERY_DATETIME_FORMAT)
        except ValueError:
            try:
                parsed = datetime.strptime(text[:10], "%Y-%m-%d")
            except ValueError:
                return None

    return parsed.replace(tzinfo=None)

def parse_api_date(value: Optional[str]) -> Optional[date]:
    """Parse the calendar date of an API timestamp."""
    parsed = parse_api_datetime(value)
    return parsed.date() if parsed else None

def format_time(value: Optional[str]) -> str:
    """
    Format an API timestamp as HH:MM.

    Returns an empty string when the timestamp cannot be parsed.
    """
    parsed = parse_api_datetime(value)
    if parsed is None:
        return ""
    return parsed.strftime("%H:%M")

def format_iso_midnight(day: date) -> str:
    """Format a date as an ISO date-time of midnight (YYYY-MM-DDT00:00:00)."""
    return datetime(day.year, day.month, day.day).isoformat()

def weekday_short_name(day: date) -> str:
    """Czech weekday abbreviation for the date (Po..Ne)."""
    return WEEKDAY_SHORT_NAMES[day.weekday()]

def format_date_label(day: date, today: Optional[date] = None, relative: bool = False) -> str:
    """
    Build the human readable label of a day.

    Args:
        day: The labelled date
        today: The reference date for relative wording
        relative: Whether "Dnes/Zítra/Včera" wording is used near today

    Returns:
        str: e.g. "Po 3.6." or "Dnes (Po)"
    """
    day_name = weekday_short_name(day)
    if relative and today is not None:
        diff_days = (day - to_date(today)).days
        relative_word = RELATIVE_DAY_LABELS.get(diff_days)
        if relative_word:
            return f"{relative_word} ({day_name})"
    return f"{day_name} {day.day}.{day.month}."
