import pytest

from skolaonline_widget import clear_errors, configure_request_retries, request_retry_config
from skolaonline_widget.models import RawScheduleDocument

@pytest.fixture(autouse=True)
def single_request_attempt():
    """Run every request once unless a test asks for retries."""
    saved = dict(request_retry_config)
    configure_request_retries(max_tries=1)
    clear_errors()
    yield
    request_retry_config.update(saved)
    clear_errors()

def _entry(day, lesson_from, lesson_to=None, begin="08:00", end="08:45", hour_type=None,
           subject="Matematika", rooms=("A12",), teachers=("Novák Jan",), title=None,
           detail_hours=None):
    return {
        "beginTime": f"{day}T{begin}:00",
        "endTime": f"{day}T{end}:00",
        "lessonIdFrom": lesson_from,
        "lessonIdTo": lesson_from if lesson_to is None else lesson_to,
        "hourType": {"id": hour_type} if hour_type else None,
        "subject": {"name": subject} if subject is not None else None,
        "title": title,
        "rooms": [{"abbrev": r} for r in rooms],
        "teachers": [{"displayName": t} for t in teachers],
        "detailHours": [{"name": n} for n in detail_hours] if detail_hours else None,
    }

def _timetable_body(days):
    return {
        "days": [
            {"date": f"{day}T00:00:00", "schedules": entries}
            for day, entries in days.items()
        ]
    }

@pytest.fixture
def make_entry():
    """Factory for raw /v1/timeTable schedule entries."""
    return _entry

@pytest.fixture
def timetable_body():
    """Factory for a raw /v1/timeTable body from {"YYYY-MM-DD": [entries]}."""
    return _timetable_body

@pytest.fixture
def make_document():
    """Factory for a parsed RawScheduleDocument from {"YYYY-MM-DD": [entries]}."""
    return lambda days: RawScheduleDocument.from_dict(_timetable_body(days))
