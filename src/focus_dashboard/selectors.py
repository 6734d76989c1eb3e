"""Read-only queries over a committed snapshot."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from .builders import date_key
from .models import Bucket, CompletedSession, DashboardState, Energy, Priority, Task, TaskFilter


def filter_tasks(tasks, task_filter: TaskFilter) -> list[Task]:
    if task_filter == TaskFilter.FOCUS:
        return [task for task in tasks if task.priority == Priority.HIGH]
    if task_filter == TaskFilter.LOW_ENERGY:
        return [task for task in tasks if task.energy == Energy.LOW]
    if task_filter == TaskFilter.IN_PROGRESS:
        return [task for task in tasks if not task.completed]
    return list(tasks)


def tasks_by_bucket(state: DashboardState, task_filter: Optional[TaskFilter] = None) -> dict[Bucket, list[Task]]:
    """Filtered tasks grouped into today / week / backlog, order preserved."""
    filtered = filter_tasks(state.tasks, task_filter or state.task_filter)
    return {bucket: [task for task in filtered if task.bucket == bucket] for bucket in Bucket}


def sessions_on(state: DashboardState, day: date) -> list[CompletedSession]:
    """Completed focus sessions whose timestamp falls on ``day`` (local time)."""
    return [
        session
        for session in state.timer_state.completed_sessions
        if datetime.fromtimestamp(session.completed_at / 1000).date() == day
    ]


def available_prompt_dates(state: DashboardState, today: str) -> list[str]:
    """Dates with prompt answers plus today, newest first."""
    keys = set(state.prompt_responses)
    keys.add(today)
    return sorted(keys, reverse=True)


def habit_done(state: DashboardState, day: str, habit_id: str) -> bool:
    return state.habit_log.get(day, {}).get(habit_id, False)


def mood_on(state: DashboardState, day: date | str):
    key = day if isinstance(day, str) else date_key(day)
    return state.mood_checkins.get(key)
