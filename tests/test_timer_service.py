"""Tests for the asyncio and APScheduler timer services."""

import asyncio
import logging
import threading

import pytest

from mycroft.services.timer_service import AsyncioTimerService, BackgroundTimerService, TimerHandle


def test_handle_cancels_once():
    calls = []
    handle = TimerHandle("t", lambda: calls.append(1))
    handle.cancel()
    handle.cancel()
    assert handle.cancelled
    assert calls == [1]


class TestAsyncioTimerService:
    def test_call_later_fires(self):
        fired = []

        async def scenario():
            timers = AsyncioTimerService()
            timers.call_later(0.01, lambda: fired.append("done"), name="complete")
            assert timers.active_count == 1
            await asyncio.sleep(0.1)
            assert timers.active_count == 0

        asyncio.run(scenario())
        assert fired == ["done"]

    def test_cancelled_timer_does_not_fire(self):
        fired = []

        async def scenario():
            timers = AsyncioTimerService()
            handle = timers.call_later(0.05, lambda: fired.append("done"))
            handle.cancel()
            await asyncio.sleep(0.1)

        asyncio.run(scenario())
        assert fired == []

    def test_call_every_repeats_until_shutdown(self):
        fired = []

        async def scenario():
            timers = AsyncioTimerService()
            timers.call_every(0.01, lambda: fired.append(1), name="idle")
            await asyncio.sleep(0.1)
            timers.shutdown()
            count = len(fired)
            await asyncio.sleep(0.05)
            assert len(fired) == count

        asyncio.run(scenario())
        assert len(fired) >= 2

    def test_failing_callback_is_logged(self, caplog):
        def explode():
            raise RuntimeError("boom")

        async def scenario():
            timers = AsyncioTimerService()
            timers.call_later(0.01, explode, name="broken")
            await asyncio.sleep(0.05)

        with caplog.at_level(logging.ERROR, logger="mycroft"):
            asyncio.run(scenario())
        assert "Timer callback broken" in caplog.text


class TestBackgroundTimerService:
    @pytest.fixture
    def timers(self):
        service = BackgroundTimerService("UTC")
        yield service
        service.shutdown()

    def test_call_later_fires(self, timers):
        done = threading.Event()
        timers.call_later(0.05, done.set, name="complete")
        assert done.wait(5)

    def test_cancel_removes_job(self, timers):
        handle = timers.call_later(60, lambda: None, name="complete")
        assert handle.name in [job.id for job in timers.scheduler.get_jobs()]

        handle.cancel()
        assert timers.scheduler.get_jobs() == []

    def test_interval_job(self, timers):
        handle = timers.call_every(300, lambda: None, name="idle")
        job = timers.scheduler.get_job(handle.name)
        assert job.name == "idle"
        handle.cancel()

    def test_removing_a_finished_job_is_tolerated(self, timers):
        timers.call_later(60, lambda: None)
        timers._remove_job("already-gone")
