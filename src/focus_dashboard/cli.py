#!/usr/bin/env python3
"""Focus Dashboard CLI.

Tasks, habits, notes, time blocks and a focus timer from the terminal.

Usage:
    focus-dashboard status                       # Everything at a glance
    focus-dashboard task add "Write report" -p high
    focus-dashboard habit toggle hydrate
    focus-dashboard block add "Deep work" 09:00 10:30
    focus-dashboard timer run --sessions 4       # Live countdown
"""

from __future__ import annotations

import asyncio
import os
from datetime import date

import click
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from . import builders
from .actions import (
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
from .config import BACKENDS, backend_option, get_config, home_option, verbose_option
from .errors import InvalidActionError
from .logs import configure_console, recent_logs
from .models import Bucket, DashboardState, Energy, Mood, Priority, TaskFilter, TimerMode, is_time_of_day
from .runner import TimerRunner
from .schedule import add_minutes, find_conflicts, linked_task, sorted_blocks
from .scheduling import AsyncIOTickScheduler
from .selectors import available_prompt_dates, habit_done, mood_on, sessions_on, tasks_by_bucket
from .store import Store
from .timer import TickResult, TimerEvent, format_countdown, reset_patch

console = Console()

DEFAULT_BLOCK_MINUTES = 30

MODE_LABELS = {
    TimerMode.FOCUS: "Focus",
    TimerMode.SHORT_BREAK: "Short break",
    TimerMode.LONG_BREAK: "Long break",
}


def _store(ctx: click.Context) -> Store:
    return ctx.obj["store"]


def _dispatch(ctx: click.Context, action) -> DashboardState:
    return _store(ctx).dispatch(action)


def _date_option(f):
    return click.option(
        "--date", "day",
        default=None,
        help="Date as YYYY-MM-DD (defaults to today).",
    )(f)


def _resolve_day(day: str | None) -> str:
    if day is None:
        return builders.today_key()
    try:
        return builders.require_date_key(day)
    except InvalidActionError as e:
        raise click.BadParameter(str(e), param_hint="--date") from e


def _find(items, item_id: str, what: str):
    for item in items:
        if item.id == item_id:
            return item
    raise click.ClickException(f"No {what} with id '{item_id}'")


# ---- Rendering ----

def _task_table(state: DashboardState, task_filter: TaskFilter | None = None) -> Table:
    table = Table(show_header=True, header_style="bold cyan", box=None, title="Tasks")
    table.add_column("Bucket")
    table.add_column("Id", style="dim")
    table.add_column("Title")
    table.add_column("Priority")
    table.add_column("Energy")
    table.add_column("Est.", justify="right")
    table.add_column("Subtasks", justify="right")

    for bucket, tasks in tasks_by_bucket(state, task_filter).items():
        for task in tasks:
            title = f"[strike dim]{task.title}[/strike dim]" if task.completed else task.title
            done = sum(1 for sub in task.subtasks if sub.completed)
            table.add_row(
                bucket.value,
                task.id,
                title,
                task.priority.value,
                task.energy.value,
                f"{task.estimate_minutes}m",
                f"{done}/{len(task.subtasks)}" if task.subtasks else "",
            )
    return table


def _habit_table(state: DashboardState, day: str) -> Table:
    table = Table(show_header=True, header_style="bold cyan", box=None, title=f"Habits ({day})")
    table.add_column("Id", style="dim")
    table.add_column("Habit")
    table.add_column("Done")
    table.add_column("Streak", justify="right")
    for habit in state.habits:
        mark = "[green]✓[/green]" if habit_done(state, day, habit.id) else "·"
        table.add_row(habit.id, habit.name, mark, str(habit.streak))
    return table


def _schedule_table(state: DashboardState) -> Table:
    conflicts = find_conflicts(state.schedule_blocks)
    table = Table(show_header=True, header_style="bold cyan", box=None, title="Schedule")
    table.add_column("Id", style="dim")
    table.add_column("Time")
    table.add_column("Title")
    table.add_column("Task")
    for block in sorted_blocks(state.schedule_blocks):
        task = linked_task(state, block)
        time_range = f"{block.start}–{block.end}"
        if block.id in conflicts:
            time_range = f"[bold red]{time_range} ⚠[/bold red]"
        table.add_row(block.id, time_range, block.title, task.title if task else "")
    return table


def _timer_panel(state: DashboardState) -> Panel:
    timer = state.timer_state
    status = "[green]running[/green]" if timer.is_running else "[yellow]paused[/yellow]"
    body = (
        f"[bold]{format_countdown(timer.seconds_remaining)}[/bold]  {status}\n"
        f"Sessions this cycle: {timer.session_count}  |  "
        f"Logged today: {len(sessions_on(state, date.today()))}"
    )
    return Panel(body, title=MODE_LABELS[timer.mode], expand=False)


# ---- Root group ----

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@backend_option
@home_option
@verbose_option
@click.pass_context
def cli(ctx, backend, home, verbose):
    """Focus Dashboard - tasks, habits, notes, time blocks and a focus timer."""
    if backend:
        os.environ["FOCUS_DASHBOARD_BACKEND"] = backend
    if home:
        os.environ["FOCUS_DASHBOARD_HOME"] = str(home)
    if verbose:
        os.environ["FOCUS_DASHBOARD_VERBOSE"] = "true"

    config = get_config()
    configure_console(config.verbose)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["store"] = Store(config.build_gateway())

    if config.verbose:
        click.echo(f"Using backend: {config.backend_config.name} ({config.home})")


@cli.command()
@_date_option
@click.pass_context
def status(ctx, day):
    """Show everything at a glance."""
    state = _store(ctx).state
    day = _resolve_day(day)

    console.print(_task_table(state))
    console.print()
    console.print(_habit_table(state, day))
    console.print()
    console.print(_schedule_table(state))
    console.print()
    if state.pinned_notes:
        console.print("[bold]Pinned[/bold]")
        for pin in state.pinned_notes:
            console.print(f"  • {pin}")
        console.print()
    mood = mood_on(state, day)
    if mood:
        console.print(f"[bold]Mood:[/bold] {mood.value}")
    console.print(_timer_panel(state))


@cli.command()
@click.confirmation_option(prompt="Reset the whole dashboard to defaults?")
@click.pass_context
def reset(ctx):
    """Reset everything to factory defaults."""
    _dispatch(ctx, ResetState())
    click.echo("✓ Dashboard reset")


@cli.command()
@click.pass_context
def logs(ctx):
    """Show recent log entries from this session."""
    entries = recent_logs()
    if not entries:
        console.print("[dim]No log entries.[/dim]")
        return
    for entry in entries:
        console.print(f"[dim]{entry['timestamp']}[/dim] {entry['level']:<7} {entry['message']}")


@cli.command()
@click.pass_context
def backends(ctx):
    """List storage backends."""
    config = ctx.obj["config"]
    for name, backend in BACKENDS.items():
        marker = "→" if name == config.backend else " "
        click.echo(f"  {marker} {name}: {backend.description}")


# ---- Tasks ----

@cli.group()
def task():
    """Task commands."""


@task.command("add")
@click.argument("title")
@click.option("--priority", "-p", type=click.Choice([p.value for p in Priority]), default="medium", show_default=True)
@click.option("--energy", "-e", type=click.Choice([e.value for e in Energy]), default="steady", show_default=True)
@click.option("--estimate", type=int, default=25, show_default=True, help="Estimate in minutes")
@click.option("--bucket", "-b", type=click.Choice([b.value for b in Bucket]), default="today", show_default=True)
@click.pass_context
def task_add(ctx, title, priority, energy, estimate, bucket):
    """Add a task."""
    try:
        new_task = builders.make_task(title, priority, energy, estimate, bucket)
    except InvalidActionError as e:
        raise click.BadParameter(str(e)) from e
    _dispatch(ctx, AddTask(new_task))
    click.echo(f"✓ Added task {new_task.id}")


@task.command("done")
@click.argument("task_id")
@click.pass_context
def task_done(ctx, task_id):
    """Toggle a task's completed flag."""
    current = _find(_store(ctx).state.tasks, task_id, "task")
    _dispatch(ctx, UpdateTask(task_id, {"completed": not current.completed}))
    click.echo(f"✓ {current.title}: {'open' if current.completed else 'done'}")


@task.command("move")
@click.argument("task_id")
@click.argument("bucket", type=click.Choice([b.value for b in Bucket]))
@click.pass_context
def task_move(ctx, task_id, bucket):
    """Move a task to another bucket."""
    _find(_store(ctx).state.tasks, task_id, "task")
    _dispatch(ctx, UpdateTask(task_id, {"bucket": bucket}))
    click.echo(f"✓ Moved to {bucket}")


@task.command("rm")
@click.argument("task_id")
@click.pass_context
def task_rm(ctx, task_id):
    """Delete a task."""
    _find(_store(ctx).state.tasks, task_id, "task")
    _dispatch(ctx, DeleteTask(task_id))
    click.echo(f"✓ Deleted {task_id}")


@task.command("list")
@click.option("--filter", "task_filter", type=click.Choice([f.value for f in TaskFilter]), default=None)
@click.pass_context
def task_list(ctx, task_filter):
    """List tasks by bucket. A --filter is remembered."""
    if task_filter:
        _dispatch(ctx, SetTaskFilter(TaskFilter(task_filter)))
    console.print(_task_table(_store(ctx).state))


@task.group("subtask")
def subtask():
    """Subtask commands."""


@subtask.command("add")
@click.argument("task_id")
@click.argument("text")
@click.pass_context
def subtask_add(ctx, task_id, text):
    """Add a subtask."""
    _find(_store(ctx).state.tasks, task_id, "task")
    try:
        new_subtask = builders.make_subtask(text)
    except InvalidActionError as e:
        raise click.BadParameter(str(e)) from e
    _dispatch(ctx, AddSubtask(task_id, new_subtask))
    click.echo(f"✓ Added subtask {new_subtask.id}")


@subtask.command("toggle")
@click.argument("task_id")
@click.argument("subtask_id")
@click.pass_context
def subtask_toggle(ctx, task_id, subtask_id):
    """Toggle a subtask."""
    parent = _find(_store(ctx).state.tasks, task_id, "task")
    _find(parent.subtasks, subtask_id, "subtask")
    _dispatch(ctx, ToggleSubtask(task_id, subtask_id))
    click.echo("✓ Toggled")


@subtask.command("rm")
@click.argument("task_id")
@click.argument("subtask_id")
@click.pass_context
def subtask_rm(ctx, task_id, subtask_id):
    """Remove a subtask."""
    parent = _find(_store(ctx).state.tasks, task_id, "task")
    _find(parent.subtasks, subtask_id, "subtask")
    _dispatch(ctx, RemoveSubtask(task_id, subtask_id))
    click.echo("✓ Removed")


# ---- Habits ----

@cli.group()
def habit():
    """Habit commands."""


@habit.command("add")
@click.argument("name")
@click.pass_context
def habit_add(ctx, name):
    """Add a habit."""
    try:
        new_habit = builders.make_habit(name)
    except InvalidActionError as e:
        raise click.BadParameter(str(e)) from e
    _dispatch(ctx, AddHabit(new_habit))
    click.echo(f"✓ Added habit {new_habit.id}")


@habit.command("toggle")
@click.argument("habit_id")
@_date_option
@click.pass_context
def habit_toggle(ctx, habit_id, day):
    """Check or uncheck a habit for a day."""
    current = _find(_store(ctx).state.habits, habit_id, "habit")
    day = _resolve_day(day)
    state = _dispatch(ctx, ToggleHabit(day, habit_id))
    updated = _find(state.habits, habit_id, "habit")
    mark = "done" if habit_done(state, day, habit_id) else "not done"
    click.echo(f"✓ {current.name} {mark} on {day} (streak {updated.streak})")


@habit.command("rm")
@click.argument("habit_id")
@click.pass_context
def habit_rm(ctx, habit_id):
    """Remove a habit."""
    _find(_store(ctx).state.habits, habit_id, "habit")
    _dispatch(ctx, RemoveHabit(habit_id))
    click.echo(f"✓ Removed {habit_id}")


# ---- Notes ----

@cli.group()
def note():
    """Notes commands."""


@note.command("set")
@click.argument("text")
@click.pass_context
def note_set(ctx, text):
    """Replace the notes draft."""
    _dispatch(ctx, SetNotes(text))
    click.echo("✓ Notes saved")


@note.command("pin")
@click.argument("text", required=False, default="")
@click.pass_context
def note_pin(ctx, text):
    """Pin TEXT, or the current notes when TEXT is omitted."""
    try:
        snippet = builders.pin_snippet(text, _store(ctx).state.notes)
    except InvalidActionError as e:
        raise click.ClickException(str(e)) from e
    _dispatch(ctx, PinNote(snippet))
    click.echo(f"✓ Pinned: {snippet}")


@note.command("unpin")
@click.argument("text")
@click.pass_context
def note_unpin(ctx, text):
    """Unpin an exact snippet."""
    if text not in _store(ctx).state.pinned_notes:
        raise click.ClickException(f"Not pinned: {text}")
    _dispatch(ctx, UnpinNote(text))
    click.echo("✓ Unpinned")


# ---- Schedule ----

@cli.group()
def block():
    """Time block commands."""


@block.command("add")
@click.argument("title")
@click.argument("start")
@click.argument("end", required=False)
@click.option("--task", "task_id", default=None, help="Link to a task id")
@click.pass_context
def block_add(ctx, title, start, end, task_id):
    """Add a time block from START to END (HH:MM).

    END defaults to 30 minutes after START.
    """
    if end is None and is_time_of_day(start):
        end = add_minutes(start, DEFAULT_BLOCK_MINUTES)
    try:
        new_block = builders.make_schedule_block(title, start, end, task_id)
    except InvalidActionError as e:
        raise click.BadParameter(str(e)) from e
    state = _dispatch(ctx, AddScheduleBlock(new_block))
    click.echo(f"✓ Added block {new_block.id}")
    if new_block.id in find_conflicts(state.schedule_blocks):
        console.print("[yellow]Heads up: this block overlaps another one.[/yellow]")


@block.command("move")
@click.argument("block_id")
@click.option("--start", default=None)
@click.option("--end", default=None)
@click.option("--title", default=None)
@click.pass_context
def block_move(ctx, block_id, start, end, title):
    """Change a block's times or title."""
    current = _find(_store(ctx).state.schedule_blocks, block_id, "block")
    updates = {key: value for key, value in (("start", start), ("end", end), ("title", title)) if value}
    if not updates:
        raise click.UsageError("Nothing to change")
    try:
        updates = builders.block_updates(current, updates)
    except InvalidActionError as e:
        raise click.BadParameter(str(e)) from e
    _dispatch(ctx, UpdateScheduleBlock(block_id, updates))
    click.echo("✓ Updated")


@block.command("rm")
@click.argument("block_id")
@click.pass_context
def block_rm(ctx, block_id):
    """Remove a time block."""
    _find(_store(ctx).state.schedule_blocks, block_id, "block")
    _dispatch(ctx, RemoveScheduleBlock(block_id))
    click.echo(f"✓ Removed {block_id}")


@block.command("list")
@click.pass_context
def block_list(ctx):
    """Show the day's blocks; overlaps are flagged."""
    console.print(_schedule_table(_store(ctx).state))


# ---- Prompts & mood ----

@cli.group()
def prompt():
    """Planning prompt commands."""


@prompt.command("list")
@_date_option
@click.pass_context
def prompt_list(ctx, day):
    """Show prompts and the day's answers."""
    state = _store(ctx).state
    day = _resolve_day(day)
    answers = state.prompt_responses.get(day, {})
    for item in state.prompts:
        console.print(f"[dim]{item.id}[/dim] [bold]{item.text}[/bold]")
        if answers.get(item.id):
            console.print(f"    {answers[item.id]}")


@prompt.command("history")
@click.pass_context
def prompt_history(ctx):
    """List days with answers, newest first."""
    state = _store(ctx).state
    for day in available_prompt_dates(state, builders.today_key()):
        answered = sum(1 for value in state.prompt_responses.get(day, {}).values() if value)
        click.echo(f"  {day}: {answered}/{len(state.prompts)} answered")


@prompt.command("answer")
@click.argument("prompt_id")
@click.argument("text")
@_date_option
@click.pass_context
def prompt_answer(ctx, prompt_id, text, day):
    """Answer a prompt for a day."""
    _find(_store(ctx).state.prompts, prompt_id, "prompt")
    _dispatch(ctx, UpdatePromptResponse(_resolve_day(day), prompt_id, text))
    click.echo("✓ Saved")


@prompt.command("add")
@click.argument("text")
@click.pass_context
def prompt_add(ctx, text):
    """Add a custom prompt."""
    try:
        new_prompt = builders.make_prompt(text)
    except InvalidActionError as e:
        raise click.BadParameter(str(e)) from e
    _dispatch(ctx, AddPrompt(new_prompt))
    click.echo(f"✓ Added prompt {new_prompt.id}")


@prompt.command("rm")
@click.argument("prompt_id")
@click.pass_context
def prompt_rm(ctx, prompt_id):
    """Remove a prompt."""
    _find(_store(ctx).state.prompts, prompt_id, "prompt")
    _dispatch(ctx, RemovePrompt(prompt_id))
    click.echo(f"✓ Removed {prompt_id}")


@cli.command()
@click.argument("mood", type=click.Choice([m.value for m in Mood] + ["none"]))
@_date_option
@click.pass_context
def mood(ctx, mood, day):
    """Record the day's mood ('none' clears it)."""
    value = None if mood == "none" else Mood(mood)
    _dispatch(ctx, SetMood(_resolve_day(day), value))
    click.echo(f"✓ Mood: {mood}")


# ---- Timer ----

@cli.group()
def timer():
    """Focus timer commands."""


@timer.command("show")
@click.pass_context
def timer_show(ctx):
    """Show the timer."""
    console.print(_timer_panel(_store(ctx).state))


@timer.command("settings")
@click.option("--focus", type=int, default=None, help="Focus minutes")
@click.option("--short-break", type=int, default=None, help="Short break minutes")
@click.option("--long-break", type=int, default=None, help="Long break minutes")
@click.option("--interval", type=int, default=None, help="Focus sessions per long break")
@click.pass_context
def timer_settings(ctx, focus, short_break, long_break, interval):
    """Change durations. The current countdown restarts, paused."""
    try:
        updates = builders.timer_settings_updates(
            focus_minutes=focus,
            short_break_minutes=short_break,
            long_break_minutes=long_break,
            long_break_interval=interval,
        )
    except InvalidActionError as e:
        raise click.BadParameter(str(e)) from e
    if not updates:
        settings = _store(ctx).state.timer_settings
    else:
        settings = _dispatch(ctx, UpdateTimerSettings(updates)).timer_settings
    click.echo(
        f"Focus {settings.focus_minutes}m | Short break {settings.short_break_minutes}m | "
        f"Long break {settings.long_break_minutes}m every {settings.long_break_interval}"
    )


@timer.command("reset")
@click.pass_context
def timer_reset(ctx):
    """Back to a fresh focus session with no history."""
    store = _store(ctx)
    store.dispatch(SetTimerState(reset_patch(store.state.timer_settings)))
    click.echo("✓ Timer reset")


async def _run_timer(store: Store, interval: float, chime: bool, sessions: int) -> int:
    """Tick until interrupted or ``sessions`` focus sessions finish."""
    scheduler = AsyncIOTickScheduler()
    finished = asyncio.Event()
    completed = 0

    def on_complete(result: TickResult) -> None:
        nonlocal completed
        if chime:
            console.bell()
        if TimerEvent.FOCUS_COMPLETED in result.events:
            completed += 1
            if sessions and completed >= sessions:
                finished.set()

    runner = TimerRunner(store, scheduler, interval=interval, on_complete=on_complete)
    try:
        with Live(_timer_panel(store.state), console=console, refresh_per_second=4) as live:
            unsubscribe = store.subscribe(lambda old, new: live.update(_timer_panel(new)))
            try:
                runner.start()
                await finished.wait()
            finally:
                unsubscribe()
    finally:
        runner.pause()
        runner.close()
        scheduler.shutdown()
    return completed


@timer.command("run")
@click.option("--sessions", type=int, default=0, help="Stop after N focus sessions (0 = until Ctrl-C)")
@click.pass_context
def timer_run(ctx, sessions):
    """Run the timer with a live countdown."""
    config = ctx.obj["config"]
    store = _store(ctx)
    try:
        completed = asyncio.run(_run_timer(store, config.tick_seconds, config.chime, sessions))
    except KeyboardInterrupt:
        console.print("\n[yellow]Paused.[/yellow]")
        return
    console.print(f"[green]✓ {completed} focus session(s) complete[/green]")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":  # pragma: no cover
    main()
