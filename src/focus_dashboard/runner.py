"""Timer driver: connects the tick engine to the store through a scheduler.

The runner watches the committed snapshot. Whenever ``is_running`` turns on
it starts the scheduler; whenever it turns off (pause, settings change,
reset, load) it cancels it. Each firing reads the latest snapshot, computes
the tick and dispatches a ``SetTimerState`` patch; that is its only write
path.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from .actions import SetTimerState
from .logs import logger
from .models import DashboardState, TimerMode
from .scheduling import TickScheduler
from .store import Store
from .timer import TickResult, TimerEvent, reset_patch, start_pause_patch, tick


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class TimerRunner:
    def __init__(
        self,
        store: Store,
        scheduler: TickScheduler,
        interval: float = 1.0,
        clock: Callable[[], int] = wall_clock_ms,
        on_complete: Optional[Callable[[TickResult], None]] = None,
    ):
        self.store = store
        self.scheduler = scheduler
        self.interval = interval
        self.clock = clock
        self.on_complete = on_complete
        self._closed = False
        self._unsubscribe = store.subscribe(self._on_change)
        self._sync(store.state)

    @property
    def ticking(self) -> bool:
        return self.scheduler.active

    # ---- User controls ----

    def start(self) -> None:
        if not self.store.state.timer_state.is_running:
            self.toggle()

    def pause(self) -> None:
        if self.store.state.timer_state.is_running:
            self.toggle()

    def toggle(self) -> None:
        self.store.dispatch(SetTimerState(start_pause_patch(self.store.state.timer_state)))

    def reset(self) -> None:
        self.store.dispatch(SetTimerState(reset_patch(self.store.state.timer_settings)))

    def close(self) -> None:
        """Stop ticking and detach from the store."""
        self._closed = True
        self.scheduler.cancel()
        self._unsubscribe()

    # ---- Internal ----

    def _on_change(self, old: DashboardState, new: DashboardState) -> None:
        self._sync(new)

    def _sync(self, state: DashboardState) -> None:
        running = state.timer_state.is_running and not self._closed
        if running and not self.scheduler.active:
            self.scheduler.start(self.interval, self._tick)
        elif not running and self.scheduler.active:
            self.scheduler.cancel()

    def _tick(self) -> None:
        state = self.store.state
        if self._closed or not state.timer_state.is_running:
            # Stale firing after a pause; make sure nothing fires again.
            self.scheduler.cancel()
            return

        result = tick(state.timer_state, state.timer_settings, self.clock())
        self.store.dispatch(SetTimerState(result.patch))
        if TimerEvent.MODE_CHANGED in result.events:
            logger.debug(f"Timer: {result.old_mode.value} -> {result.new_mode.value}")

        if result.completed:
            if TimerEvent.FOCUS_COMPLETED in result.events:
                logger.info(
                    f"Timer: focus session {self.store.state.timer_state.session_count} complete, "
                    f"starting {result.new_mode.value}"
                )
            else:
                logger.info(f"Timer: {result.old_mode.value} over, back to {TimerMode.FOCUS.value}")
            if self.on_complete is not None:
                self.on_complete(result)
