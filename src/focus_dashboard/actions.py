"""Action catalog: one frozen dataclass per state transition.

Actions are plain values built by the caller. Ids and timestamps are chosen
before the action is constructed so the reducer never reads a clock.
``action_from_dict`` accepts the ``{"type": ..., "payload": ...}`` wire shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Mapping, Optional, Union

from pydantic import ValidationError

from .errors import InvalidActionError
from .models import Habit, Mood, Prompt, ScheduleBlock, Subtask, Task, TaskFilter


# ---- Prompts & mood ----

@dataclass(frozen=True)
class UpdatePromptResponse:
    TYPE: ClassVar[str] = "UPDATE_PROMPT_RESPONSE"
    date: str
    prompt_id: str
    value: str


@dataclass(frozen=True)
class AddPrompt:
    TYPE: ClassVar[str] = "ADD_PROMPT"
    prompt: Prompt


@dataclass(frozen=True)
class RemovePrompt:
    TYPE: ClassVar[str] = "REMOVE_PROMPT"
    prompt_id: str


@dataclass(frozen=True)
class SetMood:
    TYPE: ClassVar[str] = "SET_MOOD"
    date: str
    mood: Optional[Mood]


# ---- Tasks ----

@dataclass(frozen=True)
class AddTask:
    TYPE: ClassVar[str] = "ADD_TASK"
    task: Task


@dataclass(frozen=True)
class UpdateTask:
    TYPE: ClassVar[str] = "UPDATE_TASK"
    task_id: str
    updates: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteTask:
    TYPE: ClassVar[str] = "DELETE_TASK"
    task_id: str


@dataclass(frozen=True)
class AddSubtask:
    TYPE: ClassVar[str] = "ADD_SUBTASK"
    task_id: str
    subtask: Subtask


@dataclass(frozen=True)
class ToggleSubtask:
    TYPE: ClassVar[str] = "TOGGLE_SUBTASK"
    task_id: str
    subtask_id: str


@dataclass(frozen=True)
class RemoveSubtask:
    TYPE: ClassVar[str] = "REMOVE_SUBTASK"
    task_id: str
    subtask_id: str


@dataclass(frozen=True)
class SetTaskFilter:
    TYPE: ClassVar[str] = "SET_TASK_FILTER"
    task_filter: TaskFilter


# ---- Notes ----

@dataclass(frozen=True)
class SetNotes:
    TYPE: ClassVar[str] = "SET_NOTES"
    text: str


@dataclass(frozen=True)
class PinNote:
    TYPE: ClassVar[str] = "PIN_NOTE"
    text: str


@dataclass(frozen=True)
class UnpinNote:
    TYPE: ClassVar[str] = "UNPIN_NOTE"
    text: str


# ---- Habits ----

@dataclass(frozen=True)
class ToggleHabit:
    TYPE: ClassVar[str] = "TOGGLE_HABIT"
    date: str
    habit_id: str


@dataclass(frozen=True)
class AddHabit:
    TYPE: ClassVar[str] = "ADD_HABIT"
    habit: Habit


@dataclass(frozen=True)
class RemoveHabit:
    TYPE: ClassVar[str] = "REMOVE_HABIT"
    habit_id: str


# ---- Schedule ----

@dataclass(frozen=True)
class AddScheduleBlock:
    TYPE: ClassVar[str] = "ADD_SCHEDULE_BLOCK"
    block: ScheduleBlock


@dataclass(frozen=True)
class UpdateScheduleBlock:
    TYPE: ClassVar[str] = "UPDATE_SCHEDULE_BLOCK"
    block_id: str
    updates: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RemoveScheduleBlock:
    TYPE: ClassVar[str] = "REMOVE_SCHEDULE_BLOCK"
    block_id: str


# ---- Timer ----

@dataclass(frozen=True)
class UpdateTimerSettings:
    TYPE: ClassVar[str] = "UPDATE_TIMER_SETTINGS"
    updates: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SetTimerState:
    TYPE: ClassVar[str] = "SET_TIMER_STATE"
    patch: Mapping[str, Any] = field(default_factory=dict)


# ---- Whole state ----

@dataclass(frozen=True)
class ResetState:
    TYPE: ClassVar[str] = "RESET_STATE"


@dataclass(frozen=True)
class UnknownAction:
    """An action whose tag this version does not recognize."""

    tag: str
    payload: Any = None


Action = Union[
    UpdatePromptResponse, AddPrompt, RemovePrompt, SetMood,
    AddTask, UpdateTask, DeleteTask, AddSubtask, ToggleSubtask, RemoveSubtask, SetTaskFilter,
    SetNotes, PinNote, UnpinNote,
    ToggleHabit, AddHabit, RemoveHabit,
    AddScheduleBlock, UpdateScheduleBlock, RemoveScheduleBlock,
    UpdateTimerSettings, SetTimerState,
    ResetState, UnknownAction,
]


# ---- Tagged-dict parsing ----

def _mapping(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise InvalidActionError(f"expected an object payload, got {type(payload).__name__}")
    return payload


def _text(payload: Any) -> str:
    if not isinstance(payload, str):
        raise InvalidActionError(f"expected a string payload, got {type(payload).__name__}")
    return payload


def _key(payload: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in payload:
            return payload[name]
    raise InvalidActionError(f"payload is missing {names[0]!r}")


_PARSERS: dict[str, Callable[[Any], Any]] = {
    UpdatePromptResponse.TYPE: lambda p: UpdatePromptResponse(
        date=_key(_mapping(p), "date"),
        prompt_id=_key(p, "promptId", "prompt_id"),
        value=_key(p, "value"),
    ),
    AddPrompt.TYPE: lambda p: AddPrompt(Prompt.model_validate(p)),
    RemovePrompt.TYPE: lambda p: RemovePrompt(_text(p)),
    SetMood.TYPE: lambda p: SetMood(
        date=_key(_mapping(p), "date"),
        mood=Mood(p["mood"]) if p.get("mood") else None,
    ),
    AddTask.TYPE: lambda p: AddTask(Task.model_validate(p)),
    UpdateTask.TYPE: lambda p: UpdateTask(
        task_id=_key(_mapping(p), "id"),
        updates=dict(_mapping(_key(p, "updates"))),
    ),
    DeleteTask.TYPE: lambda p: DeleteTask(_text(p)),
    AddSubtask.TYPE: lambda p: AddSubtask(
        task_id=_key(_mapping(p), "taskId", "task_id"),
        subtask=Subtask.model_validate(_key(p, "subtask")),
    ),
    ToggleSubtask.TYPE: lambda p: ToggleSubtask(
        task_id=_key(_mapping(p), "taskId", "task_id"),
        subtask_id=_key(p, "subtaskId", "subtask_id"),
    ),
    RemoveSubtask.TYPE: lambda p: RemoveSubtask(
        task_id=_key(_mapping(p), "taskId", "task_id"),
        subtask_id=_key(p, "subtaskId", "subtask_id"),
    ),
    SetTaskFilter.TYPE: lambda p: SetTaskFilter(TaskFilter(p)),
    SetNotes.TYPE: lambda p: SetNotes(_text(p)),
    PinNote.TYPE: lambda p: PinNote(_text(p)),
    UnpinNote.TYPE: lambda p: UnpinNote(_text(p)),
    ToggleHabit.TYPE: lambda p: ToggleHabit(
        date=_key(_mapping(p), "date"),
        habit_id=_key(p, "habitId", "habit_id"),
    ),
    AddHabit.TYPE: lambda p: AddHabit(Habit.model_validate(p)),
    RemoveHabit.TYPE: lambda p: RemoveHabit(_text(p)),
    AddScheduleBlock.TYPE: lambda p: AddScheduleBlock(ScheduleBlock.model_validate(p)),
    UpdateScheduleBlock.TYPE: lambda p: UpdateScheduleBlock(
        block_id=_key(_mapping(p), "id"),
        updates=dict(_mapping(_key(p, "updates"))),
    ),
    RemoveScheduleBlock.TYPE: lambda p: RemoveScheduleBlock(_text(p)),
    UpdateTimerSettings.TYPE: lambda p: UpdateTimerSettings(dict(_mapping(p))),
    SetTimerState.TYPE: lambda p: SetTimerState(dict(_mapping(p))),
    ResetState.TYPE: lambda p: ResetState(),
}


def action_from_dict(data: Mapping[str, Any]) -> Action:
    """Build an action from its tagged-dict form.

    Unknown tags become ``UnknownAction`` (a reducer no-op). A known tag with
    a malformed payload raises ``InvalidActionError``.
    """
    tag = data.get("type")
    if not isinstance(tag, str):
        raise InvalidActionError("action is missing its 'type' tag")
    payload = data.get("payload")
    parser = _PARSERS.get(tag)
    if parser is None:
        return UnknownAction(tag, payload)
    try:
        return parser(payload)
    except InvalidActionError:
        raise
    except (ValidationError, ValueError, TypeError, AttributeError) as exc:
        raise InvalidActionError(f"{tag}: {exc}") from exc
