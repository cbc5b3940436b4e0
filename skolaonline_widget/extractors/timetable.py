#!/usr/bin/env python3
"""
Timetable normalization for the Škola OnLine widget.

Turns the raw /v1/timeTable document into a ``WeekWindow``: entries grouped
per calendar date, duplicate slots collapsed, lessons sorted by start time and
every weekday of the window present (days without entries become free days).
The functions here are pure; the same input always yields the same output.
"""
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from skolaonline_widget import logger
from skolaonline_widget.constants import (
    EVENT_PLACEHOLDER,
    HOUR_TYPE_CANCELLED,
    HOUR_TYPE_EVENT,
    HOUR_TYPE_SUBSTITUTE,
    UNKNOWN_SUBJECT,
)
from skolaonline_widget.models import (
    Lesson,
    RawScheduleDocument,
    RawScheduleEntry,
    ScheduleDay,
    WeekWindow,
)
from skolaonline_widget.utils.date_utils import (
    format_date_label,
    format_iso_midnight,
    format_time,
    parse_api_date,
    parse_api_datetime,
    to_date,
    week_start_for,
    week_window_dates,
)

@dataclass(frozen=True)
class NormalizerPolicy:
    """
    The per-field choices the normalizer makes.

    Attributes:
        deduplicate_slots: Keep one entry per (lessonIdFrom, lessonIdTo) slot,
            preferring a substitute-in record over a substituted-out one.
        single_room_teacher_only: Show room/teacher only when exactly one is
            attached; otherwise the first one is shown.
        relative_date_labels: Label yesterday/today/tomorrow as
            "Včera/Dnes/Zítra (Po)" instead of "Po 3.6.".
    """
    deduplicate_slots: bool = True
    single_room_teacher_only: bool = True
    relative_date_labels: bool = False

DEFAULT_POLICY = NormalizerPolicy()

def group_entries_by_date(document: RawScheduleDocument) -> Dict[date, List[RawScheduleEntry]]:
    """
    Group raw entries by calendar date.

    The date comes from the raw day record; when that is missing or
    unparsable the entry's own begin time is used. Several day records on
    the same date are merged in document order.

    Args:
        document: The raw timetable document

    Returns:
        dict: Calendar date -> entries, in document order
    """
    grouped: Dict[date, List[RawScheduleEntry]] = OrderedDict()
    for raw_day in document.days:
        day_date = parse_api_date(raw_day.date)
        for entry in raw_day.schedules:
            entry_date = day_date or parse_api_date(entry.begin_time)
            if entry_date is None:
                logger.warning(f"Skipping schedule entry without a usable date: slot {entry.slot}")
                continue
            grouped.setdefault(entry_date, []).append(entry)
    return grouped

def deduplicate_slots(entries: Iterable[RawScheduleEntry]) -> List[RawScheduleEntry]:
    """
    Keep one entry per (lessonIdFrom, lessonIdTo) slot.

    The first entry of a slot wins, except that a substitute-in (SUPLOVANI)
    record replaces a substituted-out (SUPLOVANA) one. Entries without any
    lesson id (typically school events) have no slot and are all kept.
    """
    by_slot: Dict[Any, RawScheduleEntry] = OrderedDict()
    for position, entry in enumerate(entries):
        # Slotless entries get a key of their own
        key = entry.slot if any(entry.slot) else position
        existing = by_slot.get(key)
        if existing is None:
            by_slot[key] = entry
        elif (entry.hour_type_id == HOUR_TYPE_SUBSTITUTE
              and existing.hour_type_id == HOUR_TYPE_CANCELLED):
            by_slot[key] = entry
    return list(by_slot.values())

def _start_sort_key(entry: RawScheduleEntry):
    parsed = parse_api_datetime(entry.begin_time)
    # Entries without a begin time sink to the end
    return (parsed is None, parsed or datetime.min)

def sort_by_start(entries: Iterable[RawScheduleEntry]) -> List[RawScheduleEntry]:
    """Sort entries by begin time ascending; ties keep their order."""
    return sorted(entries, key=_start_sort_key)

def lesson_number(entry: RawScheduleEntry) -> str:
    """
    Derive the displayed lesson number.

    Detail hour labels are used when present: one label as is, consecutive
    numeric labels collapsed to "first-last", anything else comma joined.
    Without detail hours the raw lesson id range is used ("3" or "3-4").
    """
    names = [h.name.strip() for h in entry.detail_hours if h.name and h.name.strip()]
    if names:
        if len(names) == 1:
            return names[0]
        if all(name.isdigit() for name in names):
            numbers = [int(name) for name in names]
            if all(b - a == 1 for a, b in zip(numbers, numbers[1:])):
                return f"{names[0]}-{names[-1]}"
        return ",".join(names)

    lesson_from, lesson_to = entry.slot
    if not lesson_to or lesson_from == lesson_to:
        return lesson_from
    if not lesson_from:
        return lesson_to
    return f"{lesson_from}-{lesson_to}"

def _pick_single(values: List[Optional[str]], single_only: bool) -> str:
    if not values:
        return ""
    if single_only and len(values) != 1:
        return ""
    return (values[0] or "").strip()

def to_lesson(entry: RawScheduleEntry, policy: NormalizerPolicy = DEFAULT_POLICY) -> Lesson:
    """
    Map a raw entry to a Lesson.

    Args:
        entry: The raw schedule entry
        policy: Normalizer choices

    Returns:
        Lesson: The normalized lesson
    """
    hour_type_id = entry.hour_type_id

    if hour_type_id == HOUR_TYPE_EVENT:
        subject = (entry.title or "").strip() or EVENT_PLACEHOLDER
    else:
        subject_name = entry.subject.name if entry.subject else None
        subject = (subject_name or "").strip() or UNKNOWN_SUBJECT

    room = _pick_single([r.abbrev for r in entry.rooms], policy.single_room_teacher_only)
    teacher = _pick_single([t.display_name for t in entry.teachers], policy.single_room_teacher_only)

    return Lesson(
        lesson_num=lesson_number(entry),
        time_start=format_time(entry.begin_time),
        time_end=format_time(entry.end_time),
        subject=subject,
        room=room,
        teacher=teacher,
        **Lesson.flags_for_hour_type(hour_type_id),
    )

def build_day(
    day: date,
    entries: Optional[List[RawScheduleEntry]],
    today: Optional[date] = None,
    policy: NormalizerPolicy = DEFAULT_POLICY
) -> ScheduleDay:
    """Build the ScheduleDay for one date from its (possibly missing) raw entries."""
    label = format_date_label(day, today=today, relative=policy.relative_date_labels)
    if not entries:
        return ScheduleDay(date=format_iso_midnight(day), date_label=label, lessons=[], is_free_day=True)

    survivors = deduplicate_slots(entries) if policy.deduplicate_slots else list(entries)
    lessons = [to_lesson(entry, policy) for entry in sort_by_start(survivors)]
    return ScheduleDay(date=format_iso_midnight(day), date_label=label, lessons=lessons, is_free_day=False)

def normalize_timetable(
    document: RawScheduleDocument,
    week_start: Union[date, datetime],
    today: Optional[Union[date, datetime]] = None,
    policy: NormalizerPolicy = DEFAULT_POLICY
) -> WeekWindow:
    """
    Normalize a raw timetable document into the Monday..Friday week window.

    Entries outside the window are ignored; weekdays without entries are
    padded as free days, so the result always holds exactly five days.

    Args:
        document: The raw timetable document
        week_start: Any date of the target week (snapped to its Monday)
        today: Reference date for relative labels
        policy: Normalizer choices

    Returns:
        WeekWindow: The normalized week
    """
    monday = week_start_for(week_start)
    reference_day = to_date(today) if today is not None else None
    grouped = group_entries_by_date(document)

    window_dates = week_window_dates(monday)
    ignored = [d for d in grouped if d not in window_dates]
    if ignored:
        logger.debug(f"Ignoring {len(ignored)} raw days outside the week of {monday.isoformat()}")

    days = [build_day(d, grouped.get(d), today=reference_day, policy=policy) for d in window_dates]

    free_days = sum(1 for d in days if d.is_free_day)
    logger.info(f"Normalized week of {monday.isoformat()}: "
                f"{sum(len(d.lessons) for d in days)} lessons, {free_days} free days")
    return WeekWindow(week_start=monday, days=days)

def find_today_index(window: WeekWindow, today: Union[date, datetime]) -> int:
    """
    Index of today's day within the window, 0 when today is not in it.
    """
    today = to_date(today)
    for index, day in enumerate(window.days):
        if day.calendar_date == today:
            return index
    return 0
