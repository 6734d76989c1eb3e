"""Focus timer engine: pure logic, no I/O.

One call to ``tick`` advances the countdown by one unit (a second). The time
source is injected via ``now_ms`` so completions stamp a caller-supplied
timestamp and tests stay deterministic. The engine never touches the store;
it returns a patch for ``SetTimerState`` and the driver dispatches it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .models import TimerMode, TimerSettings, TimerState


class TimerEvent(Enum):
    FOCUS_COMPLETED = "focus_completed"
    BREAK_COMPLETED = "break_completed"
    MODE_CHANGED = "mode_changed"


@dataclass
class TickResult:
    patch: dict[str, Any] = field(default_factory=dict)
    events: list[TimerEvent] = field(default_factory=list)
    old_mode: TimerMode | None = None
    new_mode: TimerMode | None = None

    @property
    def completed(self) -> bool:
        return TimerEvent.FOCUS_COMPLETED in self.events or TimerEvent.BREAK_COMPLETED in self.events


def format_countdown(seconds: int) -> str:
    """Format seconds as 'MM:SS'."""
    seconds = max(0, seconds)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def is_long_break(session_count: int, long_break_interval: int) -> bool:
    """True when the ``session_count``-th focus session earns a long break."""
    return session_count % max(1, long_break_interval) == 0


def tick(timer_state: TimerState, settings: TimerSettings, now_ms: int) -> TickResult:
    """Advance one unit.

    While time remains, count down. At zero, a finished focus session is
    logged and a break starts (long every ``long_break_interval`` sessions);
    a finished break starts the next focus session. ``is_running`` stays
    true across both hand-offs.
    """
    if timer_state.seconds_remaining > 0:
        return TickResult(patch={"seconds_remaining": timer_state.seconds_remaining - 1})

    result = TickResult(old_mode=timer_state.mode)

    if timer_state.mode == TimerMode.FOCUS:
        session_count = timer_state.session_count + 1
        next_mode = (
            TimerMode.LONG_BREAK
            if is_long_break(session_count, settings.long_break_interval)
            else TimerMode.SHORT_BREAK
        )
        completed = {"completedAt": now_ms, "duration": settings.focus_minutes}
        result.patch = {
            "mode": next_mode,
            "is_running": True,
            "seconds_remaining": settings.duration_seconds(next_mode),
            "session_count": session_count,
            "completed_sessions": [
                *(session.model_dump(by_alias=True) for session in timer_state.completed_sessions),
                completed,
            ],
        }
        result.events.append(TimerEvent.FOCUS_COMPLETED)
    else:
        next_mode = TimerMode.FOCUS
        result.patch = {
            "mode": next_mode,
            "is_running": True,
            "seconds_remaining": settings.focus_minutes * 60,
        }
        result.events.append(TimerEvent.BREAK_COMPLETED)

    result.events.append(TimerEvent.MODE_CHANGED)
    result.new_mode = next_mode
    return result


def start_pause_patch(timer_state: TimerState) -> dict[str, Any]:
    """Flip the run flag; nothing else changes."""
    return {"is_running": not timer_state.is_running}


def reset_patch(settings: TimerSettings) -> dict[str, Any]:
    """Back to a fresh, paused focus session with no history."""
    return {
        "mode": TimerMode.FOCUS,
        "is_running": False,
        "seconds_remaining": settings.focus_minutes * 60,
        "session_count": 0,
        "completed_sessions": [],
    }
