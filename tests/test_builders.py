"""Tests for the caller-side validation boundary."""

from datetime import date, datetime

import pytest

from focus_dashboard.builders import (
    block_updates,
    date_key,
    make_habit,
    make_prompt,
    make_schedule_block,
    make_subtask,
    make_task,
    new_id,
    pin_snippet,
    require_date_key,
    timer_settings_updates,
    today_key,
)
from focus_dashboard.errors import InvalidActionError
from focus_dashboard.models import Bucket, Energy, Priority


class TestIdsAndDates:
    def test_new_id_prefix_and_uniqueness(self):
        ids = {new_id("task") for _ in range(50)}
        assert len(ids) == 50
        assert all(i.startswith("task-") for i in ids)

    def test_date_key_zero_pads(self):
        assert date_key(date(2024, 3, 7)) == "2024-03-07"

    def test_today_key_uses_given_now(self):
        assert today_key(datetime(2024, 1, 15, 23, 59)) == "2024-01-15"

    def test_require_date_key(self):
        assert require_date_key("2024-01-15") == "2024-01-15"
        with pytest.raises(InvalidActionError):
            require_date_key("2024-1-15")


class TestMakeTask:
    def test_defaults(self):
        task = make_task("  Write intro  ", created_at=42)
        assert task.title == "Write intro"
        assert task.priority == Priority.MEDIUM
        assert task.energy == Energy.STEADY
        assert task.estimate_minutes == 25
        assert task.bucket == Bucket.TODAY
        assert task.completed is False
        assert task.created_at == 42

    def test_string_enums_accepted(self):
        task = make_task("Call", priority="high", energy="low", bucket="backlog")
        assert (task.priority, task.energy, task.bucket) == (Priority.HIGH, Energy.LOW, Bucket.BACKLOG)

    def test_blank_title_rejected(self):
        with pytest.raises(InvalidActionError):
            make_task("   ")

    def test_negative_estimate_rejected(self):
        with pytest.raises(InvalidActionError):
            make_task("Call", estimate_minutes=-1)

    def test_bad_priority_rejected(self):
        with pytest.raises(InvalidActionError):
            make_task("Call", priority="urgent")


class TestOtherRecords:
    def test_subtask_habit_prompt(self):
        assert make_subtask(" step ").text == "step"
        habit = make_habit("Stretch")
        assert habit.streak == 0
        assert habit.id.startswith("habit-")
        assert make_prompt("Energy level?").id.startswith("custom-")

    @pytest.mark.parametrize("builder", [make_subtask, make_habit, make_prompt])
    def test_blank_text_rejected(self, builder):
        with pytest.raises(InvalidActionError):
            builder("")


class TestScheduleBlocks:
    def test_valid_block(self):
        block = make_schedule_block("Deep work", "09:00", "11:00", task_id="task-1", created_at=1)
        assert (block.start, block.end, block.task_id) == ("09:00", "11:00", "task-1")

    def test_empty_task_link_becomes_none(self):
        assert make_schedule_block("Walk", "12:00", "12:30", task_id="").task_id is None

    @pytest.mark.parametrize("start,end", [("10:00", "10:00"), ("11:00", "10:00"), ("9:00", "10:00"), ("10:00", "24:00")])
    def test_invalid_times_rejected(self, start, end):
        with pytest.raises(InvalidActionError):
            make_schedule_block("Bad", start, end)

    def test_block_updates_checked_against_existing(self):
        block = make_schedule_block("Deep work", "09:00", "11:00")
        assert block_updates(block, {"end": "12:00"}) == {"end": "12:00"}
        with pytest.raises(InvalidActionError):
            block_updates(block, {"start": "11:30"})


class TestPinSnippet:
    def test_prefers_draft(self):
        assert pin_snippet(" idea ", "notes") == "idea"

    def test_falls_back_to_notes(self):
        assert pin_snippet("   ", "  whole notes  ") == "whole notes"

    def test_truncates(self):
        assert len(pin_snippet("z" * 300)) == 140

    def test_nothing_to_pin(self):
        with pytest.raises(InvalidActionError):
            pin_snippet("", " ")


class TestTimerSettingsUpdates:
    def test_keeps_given_values(self):
        assert timer_settings_updates(focus_minutes=30, short_break_minutes=None) == {"focus_minutes": 30}

    @pytest.mark.parametrize("value", [0, -5, 2.5, True, "30"])
    def test_rejects_non_positive_or_non_int(self, value):
        with pytest.raises(InvalidActionError):
            timer_settings_updates(focus_minutes=value)

    def test_rejects_unknown_setting(self):
        with pytest.raises(InvalidActionError):
            timer_settings_updates(snooze=5)
