"""Tick schedulers: fire a callback at a fixed cadence until cancelled.

``AsyncIOTickScheduler`` wraps an APScheduler ``AsyncIOScheduler`` with an
``IntervalTrigger``. ``ManualTickScheduler`` fires only when ``advance`` is
called, for deterministic tests and replay.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .logs import logger

TickCallback = Callable[[], None]

TIMER_JOB_ID = "focus_timer_tick"


class TickScheduler(Protocol):
    def start(self, interval: float, on_tick: TickCallback) -> None: ...

    def cancel(self) -> None: ...

    @property
    def active(self) -> bool: ...


class AsyncIOTickScheduler:
    """Runs the tick as an APScheduler interval job on the asyncio loop."""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None, job_id: str = TIMER_JOB_ID):
        self.scheduler = scheduler or AsyncIOScheduler()
        self.job_id = job_id
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def start(self, interval: float, on_tick: TickCallback) -> None:
        if interval <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval}")
        if not self.scheduler.running:
            self.scheduler.start()

        # Coroutine jobs run on the loop thread, serialized with user dispatches
        async def fire() -> None:
            on_tick()

        self.scheduler.add_job(
            fire,
            trigger=IntervalTrigger(seconds=interval),
            id=self.job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            name="focus timer tick",
        )
        self._active = True
        logger.debug(f"Ticker: started every {interval}s")

    def cancel(self) -> None:
        if self.scheduler.get_job(self.job_id):
            self.scheduler.remove_job(self.job_id)
            logger.debug("Ticker: cancelled")
        self._active = False

    def shutdown(self) -> None:
        self.cancel()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)


class ManualTickScheduler:
    """Fake clock: ``advance(n)`` fires the pending callback ``n`` times.

    A callback that cancels the scheduler stops the remaining firings, the
    same way a cancelled interval job would never fire again.
    """

    def __init__(self):
        self.interval: float | None = None
        self.fired = 0
        self.starts = 0
        self.cancels = 0
        self._callback: TickCallback | None = None

    @property
    def active(self) -> bool:
        return self._callback is not None

    def start(self, interval: float, on_tick: TickCallback) -> None:
        if interval <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval}")
        self.interval = interval
        self._callback = on_tick
        self.starts += 1

    def cancel(self) -> None:
        if self._callback is not None:
            self.cancels += 1
        self._callback = None

    def advance(self, ticks: int = 1) -> int:
        """Fire up to ``ticks`` times; return how many actually fired."""
        fired = 0
        for _ in range(ticks):
            if self._callback is None:
                break
            self._callback()
            fired += 1
        self.fired += fired
        return fired
