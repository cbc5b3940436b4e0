"""
CLI parsing and text output for the Škola OnLine widget.

- Defines parse_args() to handle command-line arguments.
- Defines render_snapshot() printing the day under the cursor the way the
  widget shows it.
"""

import argparse
from typing import List, Optional

from skolaonline_widget import __version__
from skolaonline_widget.constants import MSG_FREE_DAY
from skolaonline_widget.models import Lesson, WidgetSnapshot

COMMANDS = ["set-token", "refresh", "prev", "next", "show", "clear"]

def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        prog="skolaonline-widget",
        description="Keep a cached Škola OnLine timetable week in sync and step through its days",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--state-dir", type=str, help="Directory holding widget_state.json and credentials.json")
    parser.add_argument("--log-level", type=str, choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        default="WARNING", help="Set the logging level")
    parser.add_argument("--log-file", type=str, help="Also write the log to this file")
    parser.add_argument("--timeout", type=float, help="Network timeout in seconds (default: 15)")
    parser.add_argument("--relative-labels", action="store_true",
                        help="Label yesterday/today/tomorrow as Včera/Dnes/Zítra")
    parser.add_argument("--keep-all-slots", action="store_true",
                        help="Do not collapse several records of the same lesson slot")
    parser.add_argument("--first-room-teacher", action="store_true",
                        help="Show the first room/teacher when a lesson has several")
    parser.add_argument("--land-on-today", action="store_true",
                        help="After refreshing the current week, show today instead of Monday")
    parser.add_argument("--max-connectivity-retries", type=int,
                        help="Give up after this many connectivity retries (default: keep waiting)")
    parser.add_argument("--collect-error-details", action="store_true", help="Collect detailed error information")

    subparsers = parser.add_subparsers(dest="command", required=True)
    set_token = subparsers.add_parser("set-token", help="Store the refresh token used to sign in")
    set_token.add_argument("token", type=str, help="Refresh token issued by Škola OnLine")
    subparsers.add_parser("refresh", help="Fetch the current week and show Monday")
    subparsers.add_parser("prev", help="Show the previous day (fetching the previous week if needed)")
    subparsers.add_parser("next", help="Show the next day (fetching the next week if needed)")
    subparsers.add_parser("show", help="Show the cached day under the cursor")
    subparsers.add_parser("clear", help="Forget the refresh token and the cached week")

    return parser.parse_args(argv)

def _lesson_line(lesson: Lesson) -> str:
    times = f"{lesson.time_start}-{lesson.time_end}" if lesson.time_start else ""
    line = f"{lesson.lesson_num:>5}  {times:<11}  {lesson.subject}"
    extras = ", ".join(part for part in (lesson.room, lesson.teacher) if part)
    if extras:
        line += f" ({extras})"
    if lesson.kind != "regular":
        line += f" [{lesson.kind}]"
    return line

def render_snapshot(snapshot: WidgetSnapshot) -> str:
    """Format the day under the cursor, the refresh flag and the error."""
    lines = []
    day = snapshot.current_day
    if day is None:
        lines.append("Žádná data")
    else:
        position = f"{snapshot.navigation.current_day_index + 1}/{len(snapshot.days)}"
        lines.append(f"{day.date_label}  [{position}, týden {snapshot.navigation.current_week_offset:+d}]")
        if day.is_free_day or not day.lessons:
            lines.append(f"  {MSG_FREE_DAY}")
        else:
            lines.extend(_lesson_line(lesson) for lesson in day.lessons)

    if snapshot.refresh.is_refreshing:
        lines.append("Načítání...")
    if snapshot.refresh.error:
        lines.append(f"! {snapshot.refresh.error}")
    return "\n".join(lines)
