"""
Extractors that turn raw API documents into widget data.
"""

from .timetable import (
    DEFAULT_POLICY,
    NormalizerPolicy,
    find_today_index,
    normalize_timetable,
)

__all__ = [
    'DEFAULT_POLICY',
    'NormalizerPolicy',
    'find_today_index',
    'normalize_timetable',
]
