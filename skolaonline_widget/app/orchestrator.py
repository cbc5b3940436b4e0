"""
Orchestration logic for the Škola OnLine widget.

- Receives the inbound events (refresh request, day navigation).
- Runs one end-to-end refresh: connectivity check, token exchange, identity,
  timetable, normalization, persisting the week and cursor.
- Retries the whole refresh after a fixed delay while the network is down.
- Keeps at most one refresh in flight; triggers arriving meanwhile are coalesced.
"""

import asyncio
import enum
import inspect
from datetime import date
from typing import Any, Callable, List, Optional

from skolaonline_widget import logger
from skolaonline_widget.api_client import ApiClient
from skolaonline_widget.auth import TokenAuthenticator
from skolaonline_widget.constants import (
    CONNECTIVITY_NOTICE_AFTER,
    CONNECTIVITY_RETRY_DELAY,
    MSG_NO_CONNECTIVITY,
    MSG_UNEXPECTED_PREFIX,
)
from skolaonline_widget.extractors.timetable import (
    DEFAULT_POLICY,
    NormalizerPolicy,
    find_today_index,
    normalize_timetable,
)
from skolaonline_widget.models import WeekWindow, WidgetSnapshot
from skolaonline_widget.navigation import NavigationResult, NavigationStateMachine, WidgetState
from skolaonline_widget.services import (
    AsyncioScheduler,
    ConnectivityChecker,
    DnsConnectivityChecker,
    ScheduledCall,
    Scheduler,
)
from skolaonline_widget.utils.date_utils import week_end_for, week_start_for_offset
from skolaonline_widget.utils.error_utils import NoConnectivity, ScheduleSyncError, record_error

class RefreshOutcome(enum.Enum):
    UPDATED = "updated"                  # new week stored
    FAILED = "failed"                    # error recorded, cached week kept
    RETRY_SCHEDULED = "retry_scheduled"  # no connectivity, whole refresh retried later
    COALESCED = "coalesced"              # another refresh already in flight

Listener = Callable[[WidgetSnapshot], Any]

class RefreshOrchestrator:
    """Drives refreshes of the cached week and routes navigation events."""

    def __init__(
        self,
        navigation: NavigationStateMachine,
        authenticator: TokenAuthenticator,
        api_client: ApiClient,
        connectivity: Optional[ConnectivityChecker] = None,
        scheduler: Optional[Scheduler] = None,
        policy: NormalizerPolicy = DEFAULT_POLICY,
        retry_delay: float = CONNECTIVITY_RETRY_DELAY,
        connectivity_notice_after: int = CONNECTIVITY_NOTICE_AFTER,
        max_connectivity_retries: Optional[int] = None,
        today: Callable[[], date] = date.today,
        land_on_today: bool = False
    ):
        self.navigation = navigation
        self.authenticator = authenticator
        self.api_client = api_client
        self.connectivity = connectivity or DnsConnectivityChecker()
        self.scheduler = scheduler or AsyncioScheduler()
        self.policy = policy
        self.retry_delay = retry_delay
        self.connectivity_notice_after = connectivity_notice_after
        self.max_connectivity_retries = max_connectivity_retries
        self._today = today
        self.land_on_today = land_on_today

        self._lock = asyncio.Lock()
        self._active = False
        self._retry_handle: Optional[ScheduledCall] = None
        self._connectivity_failures = 0
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        """Register a callable invoked with a WidgetSnapshot after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Stop notifying ``listener``; unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.navigation.snapshot()
        for listener in list(self._listeners):
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"State listener {listener!r} failed: {e}")

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        """True while a refresh runs or a connectivity retry is pending."""
        return self._active or self._retry_handle is not None

    async def request_refresh(self) -> RefreshOutcome:
        """
        Handle a manual or periodic refresh request.

        Returns:
            RefreshOutcome: COALESCED when a refresh is already under way
        """
        if self.busy:
            logger.debug("Refresh request coalesced into the one in flight")
            return RefreshOutcome.COALESCED

        self._active = True
        try:
            if not await self.navigation.request_refresh():
                # Another process sharing the store is refreshing
                return RefreshOutcome.COALESCED
            await self._notify()
            return await self._run_once()
        finally:
            self._active = False

    async def navigate(self, step: int) -> NavigationResult:
        """
        Handle a previous (-1) / next (+1) day request.

        Crossing the edge of the cached week runs a refresh of the neighbouring week.

        Returns:
            NavigationResult: What the navigation did
        """
        if self.busy:
            logger.debug("Navigation ignored while a refresh is in flight")
            return NavigationResult.IGNORED

        self._active = True
        try:
            result = await self.navigation.navigate(step)
            if result is NavigationResult.IGNORED:
                return result
            await self._notify()
            if result is NavigationResult.REFRESH_REQUIRED:
                await self._run_once()
            return result
        finally:
            self._active = False

    async def resume(self) -> Optional[RefreshOutcome]:
        """
        Finish a refresh left pending by a previous process.

        A pending refresh that is still live (another process is running it)
        is left alone.

        Returns:
            RefreshOutcome or None when nothing was pending
        """
        if self.busy or self.navigation.state is not WidgetState.REFRESHING:
            return None
        if self.navigation.refresh_in_flight():
            logger.debug("Pending refresh is still running elsewhere")
            return None
        logger.info("Resuming refresh left pending by an earlier run")
        return await self.run_refresh()

    async def _retry(self) -> None:
        self._retry_handle = None
        await self.run_refresh()

    async def run_refresh(self) -> RefreshOutcome:
        """
        Run a refresh whose flags are already set (navigation across the week
        edge, a pending refresh from an earlier process, a connectivity retry).

        Returns:
            RefreshOutcome: COALESCED when another run is active
        """
        if self._active:
            return RefreshOutcome.COALESCED
        self._active = True
        try:
            return await self._run_once()
        finally:
            self._active = False

    # ------------------------------------------------------------------
    # The refresh itself
    # ------------------------------------------------------------------

    async def _run_once(self) -> RefreshOutcome:
        async with self._lock:
            return await self._run_locked()

    async def _run_locked(self) -> RefreshOutcome:
        if not await self.connectivity.is_available():
            return await self._handle_no_connectivity()
        self._connectivity_failures = 0

        try:
            window = await self._fetch_week()
        except ScheduleSyncError as e:
            record_error(e)
            logger.error(f"Refresh failed ({type(e).__name__}): {e}")
            await self.navigation.fail_refresh(e.user_message)
            await self._notify()
            return RefreshOutcome.FAILED
        except Exception as e:
            record_error(e, "general_errors")
            logger.error(f"Unexpected error during refresh: {e}")
            await self.navigation.fail_refresh(f"{MSG_UNEXPECTED_PREFIX}: {e}")
            await self._notify()
            return RefreshOutcome.FAILED

        await self.navigation.complete_refresh(window, day_index=self._landing_index(window))
        await self._notify()
        return RefreshOutcome.UPDATED

    async def _fetch_week(self) -> WeekWindow:
        access_token = await self.authenticator.get_access_token()
        identity = await self.api_client.fetch_identity(access_token)

        today = self._today()
        week_start = week_start_for_offset(today, self.navigation.target_week_offset())
        raw = await self.api_client.fetch_timetable(
            access_token,
            identity.person_id,
            identity.school_year_id,
            week_start,
            week_end_for(week_start),
        )
        return normalize_timetable(raw, week_start, today=today, policy=self.policy)

    def _landing_index(self, window: WeekWindow) -> Optional[int]:
        if not self.land_on_today:
            return None
        nav = self.navigation.navigation_state()
        if nav.pending_direction is not None or self.navigation.target_week_offset() != 0:
            return None
        return find_today_index(window, self._today())

    async def _handle_no_connectivity(self) -> RefreshOutcome:
        self._connectivity_failures += 1
        attempts = self._connectivity_failures

        if self.max_connectivity_retries is not None and attempts > self.max_connectivity_retries:
            self._connectivity_failures = 0
            error = NoConnectivity(f"No connectivity after {attempts} attempts")
            record_error(error)
            logger.error(str(error))
            await self.navigation.fail_refresh(error.user_message)
            await self._notify()
            return RefreshOutcome.FAILED

        if attempts >= self.connectivity_notice_after:
            await self.navigation.note_waiting(MSG_NO_CONNECTIVITY)
            await self._notify()

        await self.navigation.keep_alive()
        logger.warning(f"No connectivity (attempt {attempts}), retrying in {self.retry_delay:.0f}s")
        self._retry_handle = self.scheduler.call_later(self.retry_delay, self._retry)
        return RefreshOutcome.RETRY_SCHEDULED

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def cancel_pending_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    async def wait_idle(self, poll_interval: float = 0.05) -> None:
        """Wait until no refresh runs and no retry is pending."""
        while self.busy:
            await asyncio.sleep(poll_interval)
