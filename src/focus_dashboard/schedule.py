"""Schedule conflict detection and time-of-day helpers.

Blocks live on a single day. Two blocks conflict when their half-open
intervals ``[start, end)`` intersect; touching ends do not count.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .models import DashboardState, ScheduleBlock, Task, is_time_of_day

MINUTES_PER_DAY = 24 * 60


def to_minutes(value: str) -> int:
    """'HH:MM' -> minutes since midnight."""
    if not is_time_of_day(value):
        raise ValueError(f"Not a HH:MM time: {value!r}")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(total: int) -> str:
    """Minutes since midnight -> 'HH:MM', clamped to the same day."""
    total = min(max(total, 0), MINUTES_PER_DAY - 1)
    return f"{total // 60:02d}:{total % 60:02d}"


def add_minutes(value: str, minutes: int) -> str:
    """Shift a time of day, stopping at 23:59 rather than wrapping."""
    return from_minutes(to_minutes(value) + minutes)


def _interval(block: ScheduleBlock) -> Optional[tuple[int, int]]:
    """Block as minutes, or None when its times are unusable."""
    if not (is_time_of_day(block.start) and is_time_of_day(block.end)):
        return None
    start, end = to_minutes(block.start), to_minutes(block.end)
    if start >= end:
        return None
    return start, end


def blocks_conflict(a: ScheduleBlock, b: ScheduleBlock) -> bool:
    """Symmetric overlap test. A block never conflicts with itself."""
    if a is b or a.id == b.id:
        return False
    first, second = _interval(a), _interval(b)
    if first is None or second is None:
        return False
    return first[0] < second[1] and second[0] < first[1]


def find_conflicts(blocks: Iterable[ScheduleBlock]) -> set[str]:
    """Ids of every block that overlaps at least one other block.

    Sorted sweep: after ordering by start, a block overlaps an earlier one
    exactly when it starts before the latest end seen so far.
    """
    timed = []
    for block in blocks:
        interval = _interval(block)
        if interval is not None:
            timed.append((interval[0], interval[1], block.id))
    timed.sort()

    conflicts: set[str] = set()
    latest_end = -1
    latest_id: str | None = None
    for start, end, block_id in timed:
        if latest_id is not None and start < latest_end:
            conflicts.add(block_id)
            conflicts.add(latest_id)
        if end > latest_end:
            latest_end = end
            latest_id = block_id
    return conflicts


def sorted_blocks(blocks: Sequence[ScheduleBlock]) -> list[ScheduleBlock]:
    """Blocks ordered by start time, stable for equal starts."""
    return sorted(blocks, key=lambda block: block.start)


def linked_task(state: DashboardState, block: ScheduleBlock) -> Optional[Task]:
    """The task a block points at, or None when unlinked or dangling."""
    if block.task_id is None:
        return None
    return next((task for task in state.tasks if task.id == block.task_id), None)
