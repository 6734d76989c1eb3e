"""Store: owns the current snapshot and is the only mutation entry point.

Every dispatch runs the reducer, commits the result, persists it and then
notifies subscribers with ``(old, new)``. Dispatches issued while another is
being processed (for example from a subscriber or a timer tick) are queued
and applied in order, so no two transitions ever interleave. A failing
listener is logged and does not stop the others.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, Optional

from .actions import Action, ResetState, UnknownAction
from .logs import logger
from .models import DashboardState
from .persistence import PersistenceGateway
from .reducer import transition

Listener = Callable[[DashboardState, DashboardState], None]


class Store:
    def __init__(self, gateway: PersistenceGateway, state: Optional[DashboardState] = None):
        self.gateway = gateway
        self._state = state if state is not None else gateway.load()
        self._listeners: list[Listener] = []
        self._pending: Deque[Action] = deque()
        self._dispatching = False

    @property
    def state(self) -> DashboardState:
        """The latest fully committed snapshot."""
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(old, new)``; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> DashboardState:
        """Apply ``action`` (after any queued ones) and return the snapshot."""
        self._pending.append(action)
        if self._dispatching:
            return self._state

        self._dispatching = True
        try:
            while self._pending:
                self._apply(self._pending.popleft())
        finally:
            self._dispatching = False
            self._pending.clear()
        return self._state

    def _apply(self, action: Action) -> None:
        if isinstance(action, UnknownAction):
            logger.debug(f"Store: ignoring unknown action {action.tag!r}")

        old = self._state
        new = transition(old, action)
        if new is old:
            return

        self._state = new
        if isinstance(action, ResetState):
            logger.info("Store: state reset to defaults")
        try:
            self.gateway.save(new)
        finally:
            self._notify(old, new)

    def _notify(self, old: DashboardState, new: DashboardState) -> None:
        # Committed: every listener sees it even if an earlier one fails
        for listener in list(self._listeners):
            try:
                listener(old, new)
            except Exception:
                logger.exception(f"Store: listener {listener!r} failed")
