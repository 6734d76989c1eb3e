"""Validation boundary for callers.

Everything a collaborator hands to the store passes through here first:
text is trimmed, times and settings are checked, and ids and timestamps are
generated. Rejections raise ``InvalidActionError`` before anything is
dispatched.
"""

from __future__ import annotations

import time
import uuid
from datetime import date, datetime
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from .errors import InvalidActionError
from .models import (
    PIN_MAX_CHARS,
    Bucket,
    Energy,
    Habit,
    Priority,
    Prompt,
    ScheduleBlock,
    Subtask,
    Task,
    TimerSettings,
    is_date_key,
    is_time_of_day,
)


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def date_key(day: date) -> str:
    """Zero-padded ``YYYY-MM-DD`` key for the per-day maps."""
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def today_key(now: Optional[datetime] = None) -> str:
    return date_key((now or datetime.now()).date())


def require_date_key(value: str) -> str:
    if not is_date_key(value):
        raise InvalidActionError(f"Date must be YYYY-MM-DD, got {value!r}")
    return value


def _require_text(value: str, what: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidActionError(f"{what} cannot be empty")
    return text


def _build(model_cls, **fields):
    try:
        return model_cls(**fields)
    except ValidationError as e:
        raise InvalidActionError(str(e)) from e


def make_task(
    title: str,
    priority: Priority | str = Priority.MEDIUM,
    energy: Energy | str = Energy.STEADY,
    estimate_minutes: int = 25,
    bucket: Bucket | str = Bucket.TODAY,
    created_at: Optional[int] = None,
) -> Task:
    if estimate_minutes < 0:
        raise InvalidActionError(f"Estimate must be zero or more minutes, got {estimate_minutes}")
    return _build(
        Task,
        id=new_id("task"),
        title=_require_text(title, "Task title"),
        priority=priority,
        energy=energy,
        estimate_minutes=estimate_minutes,
        bucket=bucket,
        created_at=created_at if created_at is not None else now_ms(),
    )


def make_subtask(text: str) -> Subtask:
    return _build(Subtask, id=new_id("subtask"), text=_require_text(text, "Subtask"))


def make_habit(name: str) -> Habit:
    return _build(Habit, id=new_id("habit"), name=_require_text(name, "Habit name"), streak=0)


def make_prompt(text: str) -> Prompt:
    return _build(Prompt, id=new_id("custom"), text=_require_text(text, "Prompt"))


def make_schedule_block(
    title: str,
    start: str,
    end: str,
    task_id: Optional[str] = None,
    created_at: Optional[int] = None,
) -> ScheduleBlock:
    for label, value in (("start", start), ("end", end)):
        if not is_time_of_day(value):
            raise InvalidActionError(f"Block {label} must be HH:MM, got {value!r}")
    if start >= end:
        raise InvalidActionError(f"Block must start before it ends ({start} >= {end})")
    return _build(
        ScheduleBlock,
        id=new_id("block"),
        title=_require_text(title, "Block title"),
        start=start,
        end=end,
        task_id=task_id or None,
        created_at=created_at if created_at is not None else now_ms(),
    )


def pin_snippet(draft: str, notes: str = "") -> str:
    """Text to pin: the trimmed draft, else the trimmed notes, cut to size."""
    snippet = (draft or "").strip() or (notes or "").strip()
    if not snippet:
        raise InvalidActionError("Nothing to pin")
    return snippet[:PIN_MAX_CHARS]


def timer_settings_updates(**values: Any) -> dict[str, int]:
    """Keep the provided settings; each must be a positive whole number."""
    updates: dict[str, int] = {}
    for name, value in values.items():
        if value is None:
            continue
        if name not in TimerSettings.model_fields:
            raise InvalidActionError(f"Unknown timer setting {name!r}")
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise InvalidActionError(f"{name} must be a positive whole number, got {value!r}")
        updates[name] = value
    return updates


def block_updates(block: ScheduleBlock, updates: Mapping[str, Any]) -> dict[str, Any]:
    """Check a partial block edit against the block it will land on."""
    start = updates.get("start", block.start)
    end = updates.get("end", block.end)
    for label, value in (("start", start), ("end", end)):
        if not is_time_of_day(value):
            raise InvalidActionError(f"Block {label} must be HH:MM, got {value!r}")
    if start >= end:
        raise InvalidActionError(f"Block must start before it ends ({start} >= {end})")
    return dict(updates)
