"""
Timer services for session countdowns and idle checks
"""

import asyncio
import itertools
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

import pytz
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], None]


def _run_callback(name: str, callback: TimerCallback) -> None:
    try:
        callback()
    except Exception as e:
        logger.error(f"❌ Timer callback {name} failed: {e}", exc_info=True)


class TimerHandle:
    """Cancellable reference to a scheduled callback"""

    def __init__(self, name: str, canceller: Callable[[], None]):
        self.name = name
        self._canceller = canceller
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._canceller()


class TimerService:
    """Schedules one-shot and recurring callbacks"""

    def call_later(self, seconds: float, callback: TimerCallback, name: str = "timer") -> TimerHandle:
        raise NotImplementedError

    def call_every(self, seconds: float, callback: TimerCallback, name: str = "timer") -> TimerHandle:
        raise NotImplementedError

    def shutdown(self) -> None:
        pass


class AsyncioTimerService(TimerService):
    """Timers as asyncio tasks on a running event loop"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self.active_timers: Dict[str, asyncio.Task] = {}
        self._ids = itertools.count(1)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def _schedule(self, worker, name: str) -> TimerHandle:
        timer_id = f"{name}-{next(self._ids)}"
        task = self._get_loop().create_task(worker)
        self.active_timers[timer_id] = task
        task.add_done_callback(lambda _: self.active_timers.pop(timer_id, None))
        logger.debug(f"⏰ Scheduled {timer_id}")
        return TimerHandle(timer_id, task.cancel)

    def call_later(self, seconds: float, callback: TimerCallback, name: str = "timer") -> TimerHandle:
        return self._schedule(self._timer_worker(seconds, callback, name), name)

    def call_every(self, seconds: float, callback: TimerCallback, name: str = "timer") -> TimerHandle:
        return self._schedule(self._interval_worker(seconds, callback, name), name)

    async def _timer_worker(self, seconds: float, callback: TimerCallback, name: str):
        try:
            await asyncio.sleep(seconds)
            _run_callback(name, callback)
        except asyncio.CancelledError:
            logger.debug(f"⏹️ Timer {name} cancelled")

    async def _interval_worker(self, seconds: float, callback: TimerCallback, name: str):
        try:
            while True:
                await asyncio.sleep(seconds)
                _run_callback(name, callback)
        except asyncio.CancelledError:
            logger.debug(f"⏹️ Interval {name} cancelled")

    @property
    def active_count(self) -> int:
        return sum(1 for task in self.active_timers.values() if not task.done())

    def shutdown(self) -> None:
        for task in list(self.active_timers.values()):
            task.cancel()
        self.active_timers.clear()
        logger.info("🧹 All timers cleared")


class BackgroundTimerService(TimerService):
    """Timers as APScheduler jobs on a background thread"""

    def __init__(self, timezone: str = "UTC", scheduler: Optional[BackgroundScheduler] = None):
        self.timezone = pytz.timezone(timezone)
        self.scheduler = scheduler or BackgroundScheduler(timezone=self.timezone)
        self._ids = itertools.count(1)

    def _ensure_started(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("⏰ Background scheduler started")

    def _remove_job(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            # one-shot job already ran
            logger.debug(f"Job {job_id} already gone")

    def _handle(self, job_id: str) -> TimerHandle:
        return TimerHandle(job_id, lambda: self._remove_job(job_id))

    def call_later(self, seconds: float, callback: TimerCallback, name: str = "timer") -> TimerHandle:
        self._ensure_started()
        job_id = f"{name}-{next(self._ids)}"
        self.scheduler.add_job(
            _run_callback,
            'date',
            run_date=datetime.now(self.timezone) + timedelta(seconds=seconds),
            args=[job_id, callback],
            id=job_id,
            name=name
        )
        logger.debug(f"⏰ Scheduled {job_id} in {seconds}s")
        return self._handle(job_id)

    def call_every(self, seconds: float, callback: TimerCallback, name: str = "timer") -> TimerHandle:
        self._ensure_started()
        job_id = f"{name}-{next(self._ids)}"
        self.scheduler.add_job(
            _run_callback,
            'interval',
            seconds=seconds,
            args=[job_id, callback],
            id=job_id,
            name=name
        )
        logger.debug(f"⏰ Scheduled {job_id} every {seconds}s")
        return self._handle(job_id)

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("⏹️ Background scheduler stopped")
