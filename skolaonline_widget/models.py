#!/usr/bin/env python3
"""
Data models for the Škola OnLine widget.

This module defines Pydantic models for the raw timetable document returned by
the API, the normalized lessons/days/week window persisted for the widget, and
the navigation and refresh state that accompany them.
"""

import json
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from skolaonline_widget.constants import (
    DAYS_IN_WEEK_WINDOW,
    DIRECTION_NEXT,
    DIRECTION_PREVIOUS,
    HOUR_TYPE_CANCELLED,
    HOUR_TYPE_EVENT,
    HOUR_TYPE_SUBSTITUTE,
)

Direction = Literal["previous", "next"]

# ---------------------------------------------------------------------------
# Raw API document
# ---------------------------------------------------------------------------

class _RawModel(BaseModel):
    """Lenient base for API payloads: unknown fields are ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

class RawHourType(_RawModel):
    id: Optional[str] = None

class RawSubject(_RawModel):
    name: Optional[str] = None

class RawRoom(_RawModel):
    abbrev: Optional[str] = None

class RawTeacher(_RawModel):
    display_name: Optional[str] = Field(None, alias="displayName")

class RawDetailHour(_RawModel):
    name: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return None if v is None else str(v)

class RawScheduleEntry(_RawModel):
    """One schedule record of a raw day."""
    begin_time: Optional[str] = Field(None, alias="beginTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    lesson_id_from: Optional[str] = Field(None, alias="lessonIdFrom")
    lesson_id_to: Optional[str] = Field(None, alias="lessonIdTo")
    hour_type: Optional[RawHourType] = Field(None, alias="hourType")
    subject: Optional[RawSubject] = None
    title: Optional[str] = None
    rooms: List[RawRoom] = Field(default_factory=list)
    teachers: List[RawTeacher] = Field(default_factory=list)
    detail_hours: List[RawDetailHour] = Field(default_factory=list, alias="detailHours")

    @field_validator("lesson_id_from", "lesson_id_to", mode="before")
    @classmethod
    def coerce_lesson_id(cls, v):
        """Lesson ids arrive as numbers or strings; keep them as strings."""
        return None if v is None else str(v)

    @field_validator("rooms", "teachers", "detail_hours", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []

    @property
    def hour_type_id(self) -> str:
        """The raw hour type identifier, empty for an ordinary lesson."""
        if self.hour_type is None or not self.hour_type.id:
            return ""
        return self.hour_type.id

    @property
    def slot(self) -> tuple:
        """The (lessonIdFrom, lessonIdTo) pair identifying the timetable period."""
        return (self.lesson_id_from or "", self.lesson_id_to or "")

class RawDay(_RawModel):
    date: Optional[str] = None
    schedules: List[RawScheduleEntry] = Field(default_factory=list)

    @field_validator("schedules", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []

class RawScheduleDocument(_RawModel):
    """The timetable document returned by /v1/timeTable."""
    days: List[RawDay] = Field(default_factory=list)

    @field_validator("days", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawScheduleDocument":
        """Create a document from the decoded JSON body."""
        return cls.model_validate(data)

class UserIdentity(BaseModel):
    """Identity/context of the signed-in account."""
    person_id: str = Field(..., alias="personID")
    school_year_id: str = Field(..., alias="schoolYearId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

# ---------------------------------------------------------------------------
# Normalized widget data
# ---------------------------------------------------------------------------

class Lesson(BaseModel):
    """A normalized lesson as shown by the widget."""
    lesson_num: str = Field("", alias="lessonNum")
    time_start: str = Field("", alias="timeStart")
    time_end: str = Field("", alias="timeEnd")
    subject: str = ""
    room: str = ""
    teacher: str = ""
    is_supl: bool = Field(False, alias="isSupl")
    is_cancelled: bool = Field(False, alias="isCancelled")
    is_event: bool = Field(False, alias="isEvent")

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "lessonNum": "3-4",
                "timeStart": "09:50",
                "timeEnd": "11:25",
                "subject": "Matematika",
                "room": "A12",
                "teacher": "Novák Jan",
                "isSupl": False,
                "isCancelled": False,
                "isEvent": False,
            }
        },
    )

    @field_validator("time_start", "time_end")
    @classmethod
    def validate_time_format(cls, v):
        """Validate time is in HH:MM format (or blank when unknown)."""
        if not v:
            return v
        try:
            datetime.strptime(v, "%H:%M")
            return v
        except ValueError:
            raise ValueError("Time must be in HH:MM format")

    @model_validator(mode="after")
    def validate_single_flag(self):
        """A lesson is a substitute, cancelled, an event, or none of those."""
        if sum([self.is_supl, self.is_cancelled, self.is_event]) > 1:
            raise ValueError("At most one of isSupl, isCancelled, isEvent may be set")
        return self

    @classmethod
    def flags_for_hour_type(cls, hour_type_id: str) -> Dict[str, bool]:
        """Map a raw hour type identifier to the lesson flags."""
        return {
            "is_supl": hour_type_id == HOUR_TYPE_SUBSTITUTE,
            "is_cancelled": hour_type_id == HOUR_TYPE_CANCELLED,
            "is_event": hour_type_id == HOUR_TYPE_EVENT,
        }

    @property
    def kind(self) -> str:
        if self.is_cancelled:
            return "cancelled"
        if self.is_supl:
            return "substitute"
        if self.is_event:
            return "event"
        return "regular"

class ScheduleDay(BaseModel):
    """One weekday of the week window."""
    date: str
    date_label: str = Field(..., alias="dateLabel")
    lessons: List[Lesson] = Field(default_factory=list)
    is_free_day: bool = Field(False, alias="isFreeDay")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("date")
    @classmethod
    def validate_date_format(cls, v):
        """Validate date is an ISO date-time (YYYY-MM-DDTHH:MM:SS)."""
        try:
            datetime.fromisoformat(v)
            return v
        except ValueError:
            raise ValueError("Date must be an ISO date-time")

    @property
    def calendar_date(self) -> date:
        return datetime.fromisoformat(self.date).date()

_DAYS_ADAPTER = TypeAdapter(List[ScheduleDay])

def days_to_json(days: List[ScheduleDay]) -> str:
    """Serialize days as the JSON array stored under all_days_data."""
    return json.dumps(
        [day.model_dump(by_alias=True) for day in days],
        ensure_ascii=False,
    )

def days_from_json(text: Optional[str]) -> List[ScheduleDay]:
    """Parse the JSON array stored under all_days_data ("[]" when empty)."""
    if not text:
        return []
    return _DAYS_ADAPTER.validate_json(text)

class WeekWindow(BaseModel):
    """Monday through Friday of one week, always exactly five days."""
    week_start: date = Field(..., alias="weekStart")
    days: List[ScheduleDay]

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("week_start")
    @classmethod
    def validate_monday(cls, v):
        if v.weekday() != 0:
            raise ValueError("Week window must start on a Monday")
        return v

    @model_validator(mode="after")
    def validate_days(self):
        """Exactly five consecutive days starting at week_start."""
        if len(self.days) != DAYS_IN_WEEK_WINDOW:
            raise ValueError(f"Week window must contain exactly {DAYS_IN_WEEK_WINDOW} days")
        for offset, day in enumerate(self.days):
            if (day.calendar_date - self.week_start).days != offset:
                raise ValueError("Week window days must run Monday..Friday in order")
        return self

    def to_json(self) -> str:
        """Serialize the days for the all_days_data key."""
        return days_to_json(self.days)

    @classmethod
    def from_json(cls, text: str) -> "WeekWindow":
        days = days_from_json(text)
        if not days:
            raise ValueError("No days stored")
        return cls(week_start=days[0].calendar_date, days=days)

class NavigationState(BaseModel):
    """Which week and which day of it the widget shows."""
    current_week_offset: int = Field(0, alias="currentWeekOffset")
    current_day_index: int = Field(0, alias="currentDayIndex", ge=0)
    pending_direction: Optional[Direction] = Field(None, alias="pendingDirection")
    pending_reset: bool = Field(False, alias="pendingReset")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def pending_delta(self) -> int:
        """Week offset change implied by the pending direction."""
        return direction_delta(self.pending_direction)

class RefreshState(BaseModel):
    is_refreshing: bool = Field(False, alias="isRefreshing")
    error: Optional[str] = None
    last_requested_at: Optional[int] = Field(None, alias="lastRequestedAt")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

class WidgetSnapshot(BaseModel):
    """Everything the presentation layer reads, in one consistent view."""
    days: List[ScheduleDay] = Field(default_factory=list)
    navigation: NavigationState = Field(default_factory=NavigationState)
    refresh: RefreshState = Field(default_factory=RefreshState)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def current_day(self) -> Optional[ScheduleDay]:
        """The day under the cursor, with the index clamped into range."""
        if not self.days:
            return None
        index = min(max(self.navigation.current_day_index, 0), len(self.days) - 1)
        return self.days[index]

def direction_delta(direction: Optional[str]) -> int:
    """Map a persisted direction marker to -1, 0 or +1."""
    if direction == DIRECTION_PREVIOUS:
        return -1
    if direction == DIRECTION_NEXT:
        return 1
    return 0

def direction_from_step(step: int) -> Direction:
    """Map a navigation step (-1/+1) to its persisted direction marker."""
    return DIRECTION_PREVIOUS if step < 0 else DIRECTION_NEXT
