import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from hdfs_watcher.services.poller import Poller

pytestmark = pytest.mark.asyncio


class TestPoller:
    async def test_runs_cycle_on_start_and_stops_cleanly(self):
        poll_cycle = Mock()
        poll_cycle.run_once = AsyncMock()
        poller = Poller(poll_cycle, interval_seconds=3600)

        await poller.start_polling()
        await asyncio.sleep(0.01)

        assert poller.is_running
        poll_cycle.run_once.assert_awaited_once_with(trigger="timer")

        await poller.stop_polling()
        assert not poller.is_running

    async def test_cycle_error_does_not_stop_loop(self):
        poll_cycle = Mock()
        calls = []

        async def run_once(trigger):
            calls.append(trigger)
            if len(calls) == 1:
                raise RuntimeError("boom")

        poll_cycle.run_once = run_once
        poller = Poller(poll_cycle, interval_seconds=0)

        await poller.start_polling()
        await asyncio.sleep(0.05)
        await poller.stop_polling()

        assert len(calls) >= 2

    async def test_double_start_is_ignored(self):
        poll_cycle = Mock()
        poll_cycle.run_once = AsyncMock()
        poller = Poller(poll_cycle, interval_seconds=3600)

        await poller.start_polling()
        first_task = poller._poll_task
        await poller.start_polling()

        assert poller._poll_task is first_task
        await poller.stop_polling()
