#!/usr/bin/env python3
"""
Service interfaces for the Škola OnLine widget.

This module defines the small collaborators the refresh orchestrator depends
on besides the API client and the state stores: a connectivity check and a
timer for delayed retries. Each comes with a default implementation.
"""

import abc
import asyncio
import socket
from typing import Awaitable, Callable, Optional
from urllib.parse import urlsplit

from skolaonline_widget import logger
from skolaonline_widget.constants import SKOLAONLINE_BASE_URL

class ConnectivityChecker(abc.ABC):
    """
    Service interface answering whether the network can be used right now.
    """

    @abc.abstractmethod
    async def is_available(self) -> bool:
        """
        Check whether the API host is reachable.

        Returns:
            bool: True if a refresh may proceed, False to retry later
        """
        pass

class DnsConnectivityChecker(ConnectivityChecker):
    """Treats the network as available when the API host name resolves."""

    def __init__(self, base_url: str = SKOLAONLINE_BASE_URL):
        self.host = urlsplit(base_url).hostname or base_url

    async def is_available(self) -> bool:
        try:
            await asyncio.to_thread(socket.gethostbyname, self.host)
            return True
        except (socket.gaierror, OSError) as e:
            logger.warning(f"DNS resolution failed for {self.host}: {e}")
            return False

class StaticConnectivityChecker(ConnectivityChecker):
    """Connectivity answer fixed by the caller (embedding hosts, tests)."""

    def __init__(self, available: bool = True):
        self.available = available

    async def is_available(self) -> bool:
        return self.available

class ScheduledCall(abc.ABC):
    """Handle of a call scheduled on a ``Scheduler``."""

    @abc.abstractmethod
    def cancel(self) -> None:
        pass

class Scheduler(abc.ABC):
    """
    Service interface for running a coroutine after a delay.

    Scheduled calls are fire-and-forget and best-effort: they are lost when the
    process ends before the delay elapses.
    """

    @abc.abstractmethod
    def call_later(self, delay: float, callback: Callable[[], Awaitable[object]]) -> ScheduledCall:
        """
        Run ``callback()`` once ``delay`` seconds have passed.

        Args:
            delay: Delay in seconds
            callback: Zero-argument coroutine function to run

        Returns:
            ScheduledCall: Handle that can cancel the call
        """
        pass

class _AsyncioScheduledCall(ScheduledCall):
    def __init__(self, scheduler: "AsyncioScheduler"):
        self._scheduler = scheduler
        self.timer: Optional[asyncio.TimerHandle] = None
        self.task: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
        if self.task is not None:
            self.task.cancel()
        self._scheduler._forget(self)

class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running event loop's ``call_later``."""

    def __init__(self):
        self._pending = set()

    def call_later(self, delay: float, callback: Callable[[], Awaitable[object]]) -> ScheduledCall:
        loop = asyncio.get_running_loop()
        handle = _AsyncioScheduledCall(self)

        def _fire():
            handle.task = loop.create_task(self._run(handle, callback))

        handle.timer = loop.call_later(delay, _fire)
        self._pending.add(handle)
        logger.debug(f"Scheduled delayed call in {delay:.1f}s")
        return handle

    async def _run(self, handle: _AsyncioScheduledCall, callback: Callable[[], Awaitable[object]]):
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Scheduled call failed: {e}")
        finally:
            self._forget(handle)

    def _forget(self, handle: _AsyncioScheduledCall) -> None:
        self._pending.discard(handle)

    @property
    def pending(self) -> int:
        """Number of calls scheduled or running."""
        return len(self._pending)
