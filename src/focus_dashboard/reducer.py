"""Reducer core: ``transition(state, action) -> state``.

Pure and total. No clock reads, no randomness, no I/O, no logging. An action
the table does not know returns the input state unchanged. Payloads that
would break an invariant (a block with ``start >= end``, a non-positive
timer setting, a malformed date key) are ignored rather than raised.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, TypeVar

from pydantic import ValidationError

from .actions import (
    Action,
    AddHabit,
    AddPrompt,
    AddScheduleBlock,
    AddSubtask,
    AddTask,
    DeleteTask,
    PinNote,
    RemoveHabit,
    RemovePrompt,
    RemoveScheduleBlock,
    RemoveSubtask,
    ResetState,
    SetMood,
    SetNotes,
    SetTaskFilter,
    SetTimerState,
    ToggleHabit,
    ToggleSubtask,
    UnpinNote,
    UpdatePromptResponse,
    UpdateScheduleBlock,
    UpdateTask,
    UpdateTimerSettings,
)
from .models import (
    PIN_LIMIT,
    PIN_MAX_CHARS,
    DashboardModel,
    DashboardState,
    Habit,
    Task,
    TimerMode,
    default_state,
    is_date_key,
    is_time_of_day,
)

Handler = Callable[[DashboardState, Any], DashboardState]
M = TypeVar("M", bound=DashboardModel)

_HANDLERS: dict[type, Handler] = {}


def _handles(action_type: type):
    def register(fn: Handler) -> Handler:
        _HANDLERS[action_type] = fn
        return fn
    return register


def transition(state: DashboardState, action: Action) -> DashboardState:
    """Apply one action. Unknown actions return ``state`` itself."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        return state
    return handler(state, action)


# ---- Helpers ----

def _try_merge(model: M, updates: Mapping[str, Any], protected: tuple[str, ...] = ("id",)) -> M | None:
    """Validated copy of ``model`` with ``updates``, or None if invalid."""
    clean = {k: v for k, v in updates.items() if k not in protected}
    try:
        return model.merged(clean)
    except (ValidationError, TypeError):
        return None


def _replace_by_id(items: tuple, item_id: str, replace: Callable[[Any], Any | None]) -> tuple | None:
    """Rebuild ``items`` with the entry ``item_id`` replaced.

    Returns None when the id is unknown or ``replace`` rejects the entry.
    """
    for index, item in enumerate(items):
        if item.id == item_id:
            updated = replace(item)
            if updated is None:
                return None
            return items[:index] + (updated,) + items[index + 1:]
    return None


def _has_id(items: tuple, item_id: str) -> bool:
    return any(item.id == item_id for item in items)


def _without_id(items: tuple, item_id: str) -> tuple:
    return tuple(item for item in items if item.id != item_id)


# ---- Prompts & mood ----

@_handles(UpdatePromptResponse)
def _update_prompt_response(state: DashboardState, action: UpdatePromptResponse) -> DashboardState:
    if not is_date_key(action.date):
        return state
    day = dict(state.prompt_responses.get(action.date, {}))
    day[action.prompt_id] = action.value
    responses = {**state.prompt_responses, action.date: day}
    return state.model_copy(update={"prompt_responses": responses})


@_handles(AddPrompt)
def _add_prompt(state: DashboardState, action: AddPrompt) -> DashboardState:
    if _has_id(state.prompts, action.prompt.id):
        return state
    return state.model_copy(update={"prompts": state.prompts + (action.prompt,)})


@_handles(RemovePrompt)
def _remove_prompt(state: DashboardState, action: RemovePrompt) -> DashboardState:
    return state.model_copy(update={"prompts": _without_id(state.prompts, action.prompt_id)})


@_handles(SetMood)
def _set_mood(state: DashboardState, action: SetMood) -> DashboardState:
    if not is_date_key(action.date):
        return state
    checkins = dict(state.mood_checkins)
    if action.mood is None:
        checkins.pop(action.date, None)
    else:
        checkins[action.date] = action.mood
    return state.model_copy(update={"mood_checkins": checkins})


# ---- Tasks ----

@_handles(AddTask)
def _add_task(state: DashboardState, action: AddTask) -> DashboardState:
    if _has_id(state.tasks, action.task.id):
        return state
    return state.model_copy(update={"tasks": state.tasks + (action.task,)})


@_handles(UpdateTask)
def _update_task(state: DashboardState, action: UpdateTask) -> DashboardState:
    tasks = _replace_by_id(state.tasks, action.task_id, lambda task: _try_merge(task, action.updates))
    if tasks is None:
        return state
    return state.model_copy(update={"tasks": tasks})


@_handles(DeleteTask)
def _delete_task(state: DashboardState, action: DeleteTask) -> DashboardState:
    return state.model_copy(update={"tasks": _without_id(state.tasks, action.task_id)})


def _with_subtasks(state: DashboardState, task_id: str, change: Callable[[tuple], tuple | None]) -> DashboardState:
    def replace(task: Task) -> Task | None:
        subtasks = change(task.subtasks)
        if subtasks is None:
            return None
        return task.model_copy(update={"subtasks": subtasks})

    tasks = _replace_by_id(state.tasks, task_id, replace)
    if tasks is None:
        return state
    return state.model_copy(update={"tasks": tasks})


@_handles(AddSubtask)
def _add_subtask(state: DashboardState, action: AddSubtask) -> DashboardState:
    def change(subtasks: tuple) -> tuple | None:
        if _has_id(subtasks, action.subtask.id):
            return None
        return subtasks + (action.subtask,)

    return _with_subtasks(state, action.task_id, change)


@_handles(ToggleSubtask)
def _toggle_subtask(state: DashboardState, action: ToggleSubtask) -> DashboardState:
    def change(subtasks: tuple) -> tuple | None:
        return _replace_by_id(
            subtasks,
            action.subtask_id,
            lambda sub: sub.model_copy(update={"completed": not sub.completed}),
        )

    return _with_subtasks(state, action.task_id, change)


@_handles(RemoveSubtask)
def _remove_subtask(state: DashboardState, action: RemoveSubtask) -> DashboardState:
    return _with_subtasks(state, action.task_id, lambda subtasks: _without_id(subtasks, action.subtask_id))


@_handles(SetTaskFilter)
def _set_task_filter(state: DashboardState, action: SetTaskFilter) -> DashboardState:
    return state.model_copy(update={"task_filter": action.task_filter})


# ---- Notes ----

@_handles(SetNotes)
def _set_notes(state: DashboardState, action: SetNotes) -> DashboardState:
    return state.model_copy(update={"notes": action.text})


@_handles(PinNote)
def _pin_note(state: DashboardState, action: PinNote) -> DashboardState:
    if not isinstance(action.text, str):
        return state
    snippet = action.text[:PIN_MAX_CHARS]
    pins = (snippet,) + tuple(pin for pin in state.pinned_notes if pin != snippet)
    return state.model_copy(update={"pinned_notes": pins[:PIN_LIMIT]})


@_handles(UnpinNote)
def _unpin_note(state: DashboardState, action: UnpinNote) -> DashboardState:
    pins = tuple(pin for pin in state.pinned_notes if pin != action.text)
    return state.model_copy(update={"pinned_notes": pins})


# ---- Habits ----

@_handles(ToggleHabit)
def _toggle_habit(state: DashboardState, action: ToggleHabit) -> DashboardState:
    """Flip the day's completion and adjust the streak counter.

    Checking adds one, unchecking subtracts one (floored at zero). The streak
    only counts toggles; it does not check that the days are consecutive.
    """
    if not is_date_key(action.date):
        return state
    day = dict(state.habit_log.get(action.date, {}))
    checked = not day.get(action.habit_id, False)
    day[action.habit_id] = checked
    habit_log = {**state.habit_log, action.date: day}

    def adjust(habit: Habit) -> Habit:
        streak = habit.streak + 1 if checked else max(habit.streak - 1, 0)
        return habit.model_copy(update={"streak": streak})

    habits = _replace_by_id(state.habits, action.habit_id, adjust)
    update: dict[str, Any] = {"habit_log": habit_log}
    if habits is not None:
        update["habits"] = habits
    return state.model_copy(update=update)


@_handles(AddHabit)
def _add_habit(state: DashboardState, action: AddHabit) -> DashboardState:
    if _has_id(state.habits, action.habit.id):
        return state
    return state.model_copy(update={"habits": state.habits + (action.habit,)})


@_handles(RemoveHabit)
def _remove_habit(state: DashboardState, action: RemoveHabit) -> DashboardState:
    return state.model_copy(update={"habits": _without_id(state.habits, action.habit_id)})


# ---- Schedule ----

def _valid_block_times(start: object, end: object) -> bool:
    return is_time_of_day(start) and is_time_of_day(end) and start < end


@_handles(AddScheduleBlock)
def _add_schedule_block(state: DashboardState, action: AddScheduleBlock) -> DashboardState:
    block = action.block
    if not _valid_block_times(block.start, block.end) or _has_id(state.schedule_blocks, block.id):
        return state
    return state.model_copy(update={"schedule_blocks": state.schedule_blocks + (block,)})


@_handles(UpdateScheduleBlock)
def _update_schedule_block(state: DashboardState, action: UpdateScheduleBlock) -> DashboardState:
    blocks = _replace_by_id(
        state.schedule_blocks,
        action.block_id,
        lambda block: _try_merge(block, action.updates),
    )
    if blocks is None:
        return state
    return state.model_copy(update={"schedule_blocks": blocks})


@_handles(RemoveScheduleBlock)
def _remove_schedule_block(state: DashboardState, action: RemoveScheduleBlock) -> DashboardState:
    return state.model_copy(update={"schedule_blocks": _without_id(state.schedule_blocks, action.block_id)})


# ---- Timer ----

def _positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@_handles(UpdateTimerSettings)
def _update_timer_settings(state: DashboardState, action: UpdateTimerSettings) -> DashboardState:
    """Merge settings, then restart the countdown for the current mode, paused.

    Any mode other than focus restarts at the short-break length.
    """
    accepted = {key: value for key, value in action.updates.items() if _positive_int(value)}
    settings = _try_merge(state.timer_settings, accepted, protected=())
    if settings is None:
        settings = state.timer_settings
    if state.timer_state.mode == TimerMode.FOCUS:
        seconds = settings.focus_minutes * 60
    else:
        seconds = settings.short_break_minutes * 60
    timer_state = state.timer_state.model_copy(update={"seconds_remaining": seconds, "is_running": False})
    return state.model_copy(update={"timer_settings": settings, "timer_state": timer_state})


@_handles(SetTimerState)
def _set_timer_state(state: DashboardState, action: SetTimerState) -> DashboardState:
    patch = dict(action.patch)
    for key in ("seconds_remaining", "secondsRemaining"):
        value = patch.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and value < 0:
            patch[key] = 0
    timer_state = _try_merge(state.timer_state, patch, protected=())
    if timer_state is None:
        return state
    return state.model_copy(update={"timer_state": timer_state})


# ---- Whole state ----

@_handles(ResetState)
def _reset_state(state: DashboardState, action: ResetState) -> DashboardState:
    return default_state()
