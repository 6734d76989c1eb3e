"""State aggregate for the dashboard.

Every model is a frozen pydantic model: the reducer builds new snapshots with
``model_copy`` and never mutates one in place. Field names are snake_case in
Python and camelCase on the wire, so a stored payload mirrors the aggregate
key-for-key.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator, model_validator
from pydantic.alias_generators import to_camel

PIN_LIMIT = 5
PIN_MAX_CHARS = 140

DATE_KEY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

_DATE_KEY_RE = re.compile(DATE_KEY_PATTERN)
_TIME_OF_DAY_RE = re.compile(TIME_OF_DAY_PATTERN)

DateKey = Annotated[str, StringConstraints(pattern=DATE_KEY_PATTERN)]
TimeOfDay = Annotated[str, StringConstraints(pattern=TIME_OF_DAY_PATTERN)]


def is_date_key(value: object) -> bool:
    """True for a zero-padded ``YYYY-MM-DD`` string."""
    return isinstance(value, str) and bool(_DATE_KEY_RE.match(value))


def is_time_of_day(value: object) -> bool:
    """True for a zero-padded 24h ``HH:MM`` string."""
    return isinstance(value, str) and bool(_TIME_OF_DAY_RE.match(value))


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Energy(str, Enum):
    HIGH = "high"
    STEADY = "steady"
    LOW = "low"


class Bucket(str, Enum):
    TODAY = "today"
    WEEK = "week"
    BACKLOG = "backlog"


class Mood(str, Enum):
    ENERGIZED = "energized"
    STEADY = "steady"
    FOGGY = "foggy"
    ANXIOUS = "anxious"
    LOW = "low"


class TaskFilter(str, Enum):
    ALL = "all"
    FOCUS = "focus"
    LOW_ENERGY = "low-energy"
    IN_PROGRESS = "in-progress"


class TimerMode(str, Enum):
    FOCUS = "focus"
    SHORT_BREAK = "short-break"
    LONG_BREAK = "long-break"


class DashboardModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    @classmethod
    def wire_key(cls, name: str) -> str:
        """Translate a Python field name (or an existing alias) to its wire key."""
        info = cls.model_fields.get(name)
        if info is not None and info.alias:
            return info.alias
        return name

    def merged(self, updates: dict):
        """Return a validated copy with ``updates`` applied.

        Keys may be field names or wire keys. Raises ``ValidationError`` when
        the result is not a valid model.
        """
        data = self.model_dump(by_alias=True)
        for key, value in updates.items():
            data[self.wire_key(key)] = value
        return type(self).model_validate(data)


class Prompt(DashboardModel):
    id: str
    text: str


class Subtask(DashboardModel):
    id: str
    text: str
    completed: bool = False


class Task(DashboardModel):
    id: str
    title: str
    priority: Priority = Priority.MEDIUM
    energy: Energy = Energy.STEADY
    estimate_minutes: int = Field(25, ge=0, alias="estimate")
    bucket: Bucket = Bucket.TODAY
    completed: bool = False
    subtasks: Tuple[Subtask, ...] = ()
    created_at: int = 0


class Habit(DashboardModel):
    id: str
    name: str
    streak: int = Field(0, ge=0)


class ScheduleBlock(DashboardModel):
    id: str
    title: str
    start: TimeOfDay
    end: TimeOfDay
    task_id: Optional[str] = None
    created_at: int = 0

    @model_validator(mode="after")
    def _start_before_end(self):
        if self.start >= self.end:
            raise ValueError(f"block {self.id!r} must start before it ends ({self.start} >= {self.end})")
        return self


class TimerSettings(DashboardModel):
    focus_minutes: int = Field(25, gt=0, alias="focus")
    short_break_minutes: int = Field(5, gt=0, alias="shortBreak")
    long_break_minutes: int = Field(15, gt=0, alias="longBreak")
    long_break_interval: int = Field(4, gt=0)

    def duration_seconds(self, mode: TimerMode) -> int:
        if mode == TimerMode.FOCUS:
            return self.focus_minutes * 60
        if mode == TimerMode.LONG_BREAK:
            return self.long_break_minutes * 60
        return self.short_break_minutes * 60


class CompletedSession(DashboardModel):
    completed_at: int
    duration_minutes: int = Field(alias="duration")


class TimerState(DashboardModel):
    mode: TimerMode = TimerMode.FOCUS
    is_running: bool = False
    seconds_remaining: int = Field(25 * 60, ge=0)
    session_count: int = Field(0, ge=0)
    completed_sessions: Tuple[CompletedSession, ...] = ()


DEFAULT_PROMPTS: Tuple[Prompt, ...] = (
    Prompt(id="priorities", text="What are my top 3 priorities for today?"),
    Prompt(id="success", text="What would make today feel successful?"),
    Prompt(id="must-do", text="What's the one thing I absolutely need to accomplish?"),
    Prompt(id="distractions", text="What potential distractions should I be aware of?"),
    Prompt(id="check-in", text="How am I feeling right now, and what do I need?"),
)

DEFAULT_HABITS: Tuple[Habit, ...] = (
    Habit(id="hydrate", name="Drink water"),
    Habit(id="movement", name="Take a movement break"),
    Habit(id="plan", name="Review plan at midday"),
)


def normalize_pins(pins) -> Tuple[str, ...]:
    """Truncate each pin, drop repeats (first occurrence wins), cap the list."""
    result: list[str] = []
    for pin in pins:
        snippet = pin[:PIN_MAX_CHARS]
        if snippet not in result:
            result.append(snippet)
    return tuple(result[:PIN_LIMIT])


class DashboardState(DashboardModel):
    """The single root aggregate owned by the Store."""

    prompts: Tuple[Prompt, ...] = DEFAULT_PROMPTS
    prompt_responses: Dict[DateKey, Dict[str, str]] = Field(default_factory=dict)
    mood_checkins: Dict[DateKey, Mood] = Field(default_factory=dict)
    tasks: Tuple[Task, ...] = ()
    task_filter: TaskFilter = TaskFilter.ALL
    notes: str = ""
    pinned_notes: Tuple[str, ...] = ()
    habits: Tuple[Habit, ...] = DEFAULT_HABITS
    habit_log: Dict[DateKey, Dict[str, bool]] = Field(default_factory=dict)
    schedule_blocks: Tuple[ScheduleBlock, ...] = ()
    timer_settings: TimerSettings = Field(default_factory=TimerSettings)
    timer_state: TimerState = Field(default_factory=TimerState)

    @field_validator("pinned_notes", mode="after")
    @classmethod
    def _normalize_pins(cls, value):
        return normalize_pins(value)

    @field_validator("prompts", "tasks", "habits", "schedule_blocks", mode="after")
    @classmethod
    def _unique_ids(cls, value):
        seen = set()
        for item in value:
            if item.id in seen:
                raise ValueError(f"duplicate id {item.id!r}")
            seen.add(item.id)
        return value

    def to_payload(self) -> dict:
        """JSON-ready dict with wire keys."""
        return self.model_dump(by_alias=True, mode="json")


def default_state() -> DashboardState:
    """Factory-default aggregate."""
    return DashboardState()
