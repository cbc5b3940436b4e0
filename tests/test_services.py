import asyncio
import socket
from unittest.mock import patch

from skolaonline_widget.services import AsyncioScheduler, DnsConnectivityChecker, StaticConnectivityChecker

def test_dns_checker_resolves_api_host():
    checker = DnsConnectivityChecker()

    with patch("socket.gethostbyname", return_value="10.0.0.1") as mock_resolve:
        assert asyncio.run(checker.is_available()) is True

    mock_resolve.assert_called_once_with("aplikace.skolaonline.cz")

def test_dns_checker_reports_resolution_failure():
    checker = DnsConnectivityChecker("https://example.invalid/api")

    with patch("socket.gethostbyname", side_effect=socket.gaierror("no network")):
        assert asyncio.run(checker.is_available()) is False

def test_static_checker():
    checker = StaticConnectivityChecker(False)

    assert asyncio.run(checker.is_available()) is False
    checker.available = True
    assert asyncio.run(checker.is_available()) is True

def test_asyncio_scheduler_runs_callback_after_delay():
    scheduler = AsyncioScheduler()
    fired = asyncio.Event()

    async def callback():
        fired.set()

    async def run():
        scheduler.call_later(0.01, callback)
        assert scheduler.pending == 1
        await asyncio.wait_for(fired.wait(), timeout=2)
        await asyncio.sleep(0)
        return scheduler.pending

    assert asyncio.run(run()) == 0

def test_asyncio_scheduler_cancel():
    scheduler = AsyncioScheduler()
    calls = []

    async def callback():
        calls.append(1)

    async def run():
        handle = scheduler.call_later(0.01, callback)
        handle.cancel()
        await asyncio.sleep(0.05)

    asyncio.run(run())

    assert calls == []
    assert scheduler.pending == 0

def test_asyncio_scheduler_survives_failing_callback():
    scheduler = AsyncioScheduler()

    async def callback():
        raise RuntimeError("boom")

    async def run():
        scheduler.call_later(0, callback)
        await asyncio.sleep(0.05)
        return scheduler.pending

    assert asyncio.run(run()) == 0
