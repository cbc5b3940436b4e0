#!/usr/bin/env python3
"""
Constants and mappings used by the Škola OnLine widget.
"""

# URLs
SKOLAONLINE_BASE_URL = "https://aplikace.skolaonline.cz"
API_BASE_URL = f"{SKOLAONLINE_BASE_URL}/solapi/api"
TOKEN_URL = f"{API_BASE_URL}/connect/token"
USER_URL = f"{API_BASE_URL}/v1/user"
TIMETABLE_URL = f"{API_BASE_URL}/v1/timeTable"

# Token exchange parameters
CLIENT_ID = "test_client"
GRANT_TYPE_REFRESH = "refresh_token"

# Default headers for API requests
DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "skolaonline-widget/1.0",
}

# Timing (seconds)
REQUEST_TIMEOUT = 15.0
CONNECTIVITY_RETRY_DELAY = 5.0
CONNECTIVITY_NOTICE_AFTER = 3  # consecutive connectivity failures before the user is told
# A persisted in-flight refresh older than this is treated as abandoned
# (token, identity and timetable requests, each tried twice, plus one retry delay)
REFRESH_STALE_AFTER = 3 * 2 * REQUEST_TIMEOUT + CONNECTIVITY_RETRY_DELAY

# Raw hour type identifiers
HOUR_TYPE_SUBSTITUTE = "SUPLOVANI"   # lesson substituted in
HOUR_TYPE_CANCELLED = "SUPLOVANA"    # lesson substituted out
HOUR_TYPE_EVENT = "SKOLNI_AKCE"      # school event

# Placeholders used when the raw entry lacks a name
EVENT_PLACEHOLDER = "Školní akce"
UNKNOWN_SUBJECT = "?"

# Week window
DAYS_IN_WEEK_WINDOW = 5  # Monday..Friday

# Czech weekday abbreviations, Monday first
WEEKDAY_SHORT_NAMES = ["Po", "Út", "St", "Čt", "Pá", "So", "Ne"]

# Relative day wording used by the optional relative date labels
RELATIVE_DAY_LABELS = {
    0: "Dnes",
    1: "Zítra",
    -1: "Včera",
}

# Navigation directions as persisted under week_navigation_direction
DIRECTION_PREVIOUS = "previous"
DIRECTION_NEXT = "next"

# Timestamp format used by the timetable query (yyyy-MM-dd'T'HH:mm:ss.SSS)
API_QUERY_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Persisted widget state keys (read by the presentation layer)
KEY_ALL_DAYS_DATA = "all_days_data"
KEY_CURRENT_DAY_INDEX = "current_day_index"
KEY_CURRENT_WEEK_OFFSET = "current_week_offset"
KEY_IS_REFRESHING = "is_refreshing"
KEY_ERROR = "error"
KEY_REFRESH_REQUESTED = "refresh_requested"
KEY_WEEK_NAVIGATION_DIRECTION = "week_navigation_direction"
KEY_WEEK_RESET_PENDING = "week_reset_pending"  # refresh will land on the current week

# Separately scoped credential store key
KEY_REFRESH_TOKEN = "refresh_token"

# User facing messages
MSG_NOT_AUTHENTICATED = "Nepřihlášen"
MSG_AUTH_FAILED = "Chyba přihlášení"
MSG_IDENTITY_FAILED = "Chyba načítání"
MSG_INCOMPLETE_PROFILE = "Chybí data"
MSG_TIMETABLE_FAILED = "Chyba rozvrhu"
MSG_NO_CONNECTIVITY = "Žádné připojení"
MSG_UNEXPECTED_PREFIX = "Chyba"
MSG_FREE_DAY = "Pro tento den nemáte žádnou agendu"

# File names inside the state directory
STATE_DIR = "skolaonline_widget_state"
WIDGET_STATE_FILE = "widget_state.json"
CREDENTIALS_FILE = "credentials.json"
