#!/usr/bin/env python3
"""
Utility modules for the Škola OnLine widget.
"""
from skolaonline_widget import logger

from skolaonline_widget.utils.date_utils import (
    format_api_query_datetime,
    format_date_label,
    format_iso_midnight,
    format_time,
    parse_api_date,
    parse_api_datetime,
    week_end_for,
    week_start_for,
    week_start_for_offset,
    week_window_dates,
)

from skolaonline_widget.utils.error_utils import (
    handle_errors,
    record_error,
    configure_error_handling,
    ScheduleSyncError,
    NotAuthenticated,
    AuthError,
    FetchError,
    IdentityFetchError,
    IncompleteProfile,
    NoConnectivity,
)
