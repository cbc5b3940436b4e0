from datetime import date, datetime

import pytest

from skolaonline_widget.utils.date_utils import (
    format_api_query_datetime,
    format_date_label,
    format_time,
    parse_api_datetime,
    week_end_for,
    week_start_for,
    week_start_for_offset,
)

@pytest.mark.parametrize("day, expected", [
    (date(2024, 6, 3), date(2024, 6, 3)),
    (date(2024, 6, 7), date(2024, 6, 3)),
    (date(2024, 6, 9), date(2024, 6, 3)),
    (datetime(2024, 6, 5, 13, 30), date(2024, 6, 3)),
])
def test_week_start_for(day, expected):
    assert week_start_for(day) == expected

def test_week_offsets_cross_month_and_year():
    assert week_start_for_offset(date(2024, 6, 5), -1) == date(2024, 5, 27)
    assert week_start_for_offset(date(2024, 12, 31), 1) == date(2025, 1, 6)
    assert week_end_for(date(2024, 12, 30)) == date(2025, 1, 3)

def test_query_datetime_format():
    assert format_api_query_datetime(date(2024, 6, 3)) == "2024-06-03T00:00:00.000"

@pytest.mark.parametrize("value, expected", [
    ("2024-06-03T08:00:00", datetime(2024, 6, 3, 8, 0)),
    ("2024-06-03T08:00:00.000", datetime(2024, 6, 3, 8, 0)),
    ("2024-06-03T08:00:00+02:00", datetime(2024, 6, 3, 8, 0)),
    ("2024-06-03T08:00:00Z", datetime(2024, 6, 3, 8, 0)),
    ("2024-06-03", datetime(2024, 6, 3)),
    ("", None),
    (None, None),
    ("tomorrow", None),
])
def test_parse_api_datetime(value, expected):
    assert parse_api_datetime(value) == expected

def test_format_time():
    assert format_time("2024-06-03T09:05:00") == "09:05"
    assert format_time(None) == ""

def test_date_labels():
    sunday = date(2024, 6, 9)

    assert format_date_label(sunday) == "Ne 9.6."
    assert format_date_label(sunday, today=date(2024, 6, 9), relative=True) == "Dnes (Ne)"
    assert format_date_label(sunday, today=date(2024, 6, 9)) == "Ne 9.6."
