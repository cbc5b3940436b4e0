#!/usr/bin/env python3
"""
Week/day navigation for the Škola OnLine widget.

The state machine owns the cursor persisted in the widget state store
(``current_week_offset``, ``current_day_index``, ``week_navigation_direction``)
together with the refresh flags. It has two states: IDLE and REFRESHING, the
latter being whatever ``is_refreshing`` says. Moving inside the cached week is
handled locally; stepping past Monday or Friday asks for a refresh of the
neighbouring week, which the orchestrator then runs.

The store may be shared by several host processes. An ``is_refreshing`` flag
whose ``refresh_requested`` stamp is younger than ``stale_after`` belongs to a
live refresh and blocks new triggers; an older or unstamped one is left over
from a process that died and is taken over.
"""

import enum
import time
from typing import Any, Callable, Dict, List, Optional

from skolaonline_widget import logger
from skolaonline_widget.constants import (
    DAYS_IN_WEEK_WINDOW,
    DIRECTION_NEXT,
    DIRECTION_PREVIOUS,
    KEY_ALL_DAYS_DATA,
    KEY_CURRENT_DAY_INDEX,
    KEY_CURRENT_WEEK_OFFSET,
    KEY_ERROR,
    KEY_IS_REFRESHING,
    KEY_REFRESH_REQUESTED,
    KEY_WEEK_NAVIGATION_DIRECTION,
    KEY_WEEK_RESET_PENDING,
    REFRESH_STALE_AFTER,
)
from skolaonline_widget.models import (
    NavigationState,
    RefreshState,
    ScheduleDay,
    WeekWindow,
    WidgetSnapshot,
    days_from_json,
    direction_delta,
    direction_from_step,
)
from skolaonline_widget.state_store import StateStore

class WidgetState(enum.Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"

class NavigationResult(enum.Enum):
    MOVED = "moved"                        # cursor moved within the cached week
    REFRESH_REQUIRED = "refresh_required"  # neighbouring week must be fetched
    IGNORED = "ignored"                    # refresh in flight or nothing cached

def _now_millis() -> int:
    return int(time.time() * 1000)

def _stored_days(data: Dict[str, Any]) -> List[ScheduleDay]:
    try:
        return days_from_json(data.get(KEY_ALL_DAYS_DATA))
    except ValueError as e:
        logger.warning(f"Cached days could not be parsed, treating cache as empty: {e}")
        return []

def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default

def _clamp_index(index: int, day_count: int) -> int:
    if day_count <= 0:
        return 0
    return min(max(index, 0), day_count - 1)

class NavigationStateMachine:
    """
    Owns the "which week / which day" cursor and the refresh flags.

    Every operation is a single transaction on the state store, so concurrent
    callers always see and produce consistent state.
    """

    def __init__(
        self,
        store: StateStore,
        clock_millis: Callable[[], int] = _now_millis,
        stale_after: float = REFRESH_STALE_AFTER
    ):
        self._store = store
        self._clock_millis = clock_millis
        self.stale_after = stale_after

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @property
    def state(self) -> WidgetState:
        if self._store.get(KEY_IS_REFRESHING, False):
            return WidgetState.REFRESHING
        return WidgetState.IDLE

    def navigation_state(self) -> NavigationState:
        return self.snapshot().navigation

    def refresh_state(self) -> RefreshState:
        return self.snapshot().refresh

    def snapshot(self) -> WidgetSnapshot:
        """Everything the presentation layer needs, read from one copy of the store."""
        data = self._store.snapshot()
        days = _stored_days(data)
        direction = data.get(KEY_WEEK_NAVIGATION_DIRECTION)
        requested = data.get(KEY_REFRESH_REQUESTED)
        return WidgetSnapshot(
            days=days,
            navigation=NavigationState(
                current_week_offset=_as_int(data.get(KEY_CURRENT_WEEK_OFFSET)),
                current_day_index=_clamp_index(_as_int(data.get(KEY_CURRENT_DAY_INDEX)), len(days)),
                pending_direction=direction if direction in (DIRECTION_PREVIOUS, DIRECTION_NEXT) else None,
                pending_reset=bool(data.get(KEY_WEEK_RESET_PENDING, False)),
            ),
            refresh=RefreshState(
                is_refreshing=bool(data.get(KEY_IS_REFRESHING, False)),
                error=data.get(KEY_ERROR) or None,
                last_requested_at=_as_int(requested) if requested else None,
            ),
        )

    def target_week_offset(self) -> int:
        """Week offset the next refresh should fetch (0 after a refresh request, else offset plus pending direction)."""
        nav = self.navigation_state()
        if nav.pending_reset:
            return 0
        return nav.current_week_offset + nav.pending_delta

    def refresh_in_flight(self) -> bool:
        """True while the store holds a live (not stale) in-flight refresh."""
        return self._live_refresh(self._store.snapshot())

    def _live_refresh(self, data: Dict[str, Any]) -> bool:
        if not data.get(KEY_IS_REFRESHING, False):
            return False
        requested = _as_int(data.get(KEY_REFRESH_REQUESTED), default=-1)
        if requested < 0:
            return False
        age = self._clock_millis() - requested
        # A stamp from the future comes from a skewed clock, not a live run
        return 0 <= age < self.stale_after * 1000

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the empty widget state if the store has none yet."""
        async with self._store.transaction() as data:
            data.setdefault(KEY_IS_REFRESHING, False)
            data.setdefault(KEY_ALL_DAYS_DATA, "[]")
            data.setdefault(KEY_CURRENT_DAY_INDEX, 0)
            data.setdefault(KEY_CURRENT_WEEK_OFFSET, 0)
            data.setdefault(KEY_ERROR, "")

    async def navigate(self, step: int) -> NavigationResult:
        """
        Move the cursor one day back (-1) or forward (+1).

        Args:
            step: -1 or +1

        Returns:
            NavigationResult: What happened
        """
        if step not in (-1, 1):
            raise ValueError(f"Navigation step must be -1 or +1, got {step!r}")

        async with self._store.transaction() as data:
            if self._live_refresh(data):
                logger.debug("Navigation ignored, a refresh is in flight")
                return NavigationResult.IGNORED

            days = _stored_days(data)
            if not days:
                logger.debug("Navigation ignored, no days cached yet")
                return NavigationResult.IGNORED

            current = _clamp_index(_as_int(data.get(KEY_CURRENT_DAY_INDEX)), len(days))
            new_index = current + step
            if 0 <= new_index < len(days):
                data[KEY_CURRENT_DAY_INDEX] = new_index
                logger.debug(f"Moved to day index {new_index}")
                return NavigationResult.MOVED

            direction = direction_from_step(step)
            data[KEY_WEEK_NAVIGATION_DIRECTION] = direction
            data.pop(KEY_WEEK_RESET_PENDING, None)
            data[KEY_REFRESH_REQUESTED] = str(self._clock_millis())
            data[KEY_IS_REFRESHING] = True
            logger.info(f"Crossing into the {direction} week, refresh required")
            return NavigationResult.REFRESH_REQUIRED

    async def request_refresh(self) -> bool:
        """
        Start a refresh of the current week.

        The cursor moves to the first day of the current week once the
        refresh completes; until then it keeps pointing at the cached week.

        Returns:
            bool: True if the refresh was started, False if one was already in flight
        """
        async with self._store.transaction() as data:
            if self._live_refresh(data):
                logger.debug("Refresh request coalesced into the one in flight")
                return False
            data[KEY_WEEK_RESET_PENDING] = True
            data.pop(KEY_WEEK_NAVIGATION_DIRECTION, None)
            data[KEY_REFRESH_REQUESTED] = str(self._clock_millis())
            data[KEY_IS_REFRESHING] = True
        logger.info("Refresh requested")
        return True

    async def complete_refresh(self, window: WeekWindow, day_index: Optional[int] = None) -> NavigationState:
        """
        Store a freshly fetched week and settle the cursor.

        A plain refresh lands on the current week. Otherwise the pending
        direction is applied to the week offset; the day index becomes Friday
        after going back, Monday after going forward, and ``day_index``
        (default Monday) otherwise.

        Args:
            window: The normalized week
            day_index: Day to show when no week change was pending

        Returns:
            NavigationState: The resulting cursor
        """
        async with self._store.transaction() as data:
            direction = data.get(KEY_WEEK_NAVIGATION_DIRECTION)
            if data.get(KEY_WEEK_RESET_PENDING, False):
                offset = 0
            else:
                offset = _as_int(data.get(KEY_CURRENT_WEEK_OFFSET)) + direction_delta(direction)

            if direction == DIRECTION_PREVIOUS:
                index = DAYS_IN_WEEK_WINDOW - 1
            elif direction == DIRECTION_NEXT:
                index = 0
            else:
                index = day_index or 0
            index = _clamp_index(index, len(window.days))

            data[KEY_ALL_DAYS_DATA] = window.to_json()
            data[KEY_CURRENT_WEEK_OFFSET] = offset
            data[KEY_CURRENT_DAY_INDEX] = index
            data.pop(KEY_WEEK_NAVIGATION_DIRECTION, None)
            data.pop(KEY_WEEK_RESET_PENDING, None)
            data[KEY_ERROR] = ""
            data[KEY_IS_REFRESHING] = False

        logger.info(f"Week offset {offset} stored, showing day index {index}")
        return NavigationState(current_week_offset=offset, current_day_index=index)

    async def fail_refresh(self, message: str) -> None:
        """
        Record a terminal refresh failure.

        The cached days and cursor stay as they were.
        """
        async with self._store.transaction() as data:
            data[KEY_ERROR] = message
            data[KEY_IS_REFRESHING] = False
            data.pop(KEY_WEEK_NAVIGATION_DIRECTION, None)
            data.pop(KEY_WEEK_RESET_PENDING, None)
        logger.warning(f"Refresh failed: {message}")

    async def note_waiting(self, message: str) -> None:
        """Show a message while the refresh keeps waiting (still refreshing)."""
        async with self._store.transaction() as data:
            data[KEY_ERROR] = message
            data[KEY_IS_REFRESHING] = True

    async def keep_alive(self) -> None:
        """Re-stamp a refresh that is still waiting so other processes do not take it over."""
        async with self._store.transaction() as data:
            if data.get(KEY_IS_REFRESHING, False):
                data[KEY_REFRESH_REQUESTED] = str(self._clock_millis())

    async def clear(self) -> None:
        """Drop all widget state (cached week, cursor, flags)."""
        await self._store.clear()
        logger.info("Widget state cleared")
