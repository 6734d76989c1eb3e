"""Unit tests for schedule conflict detection and time-of-day helpers."""

import itertools
import random

import pytest

from focus_dashboard.models import DashboardState, ScheduleBlock, Task
from focus_dashboard.schedule import (
    add_minutes,
    blocks_conflict,
    find_conflicts,
    from_minutes,
    linked_task,
    sorted_blocks,
    to_minutes,
)


# ---- Helpers ----

def block(block_id: str, start: str, end: str, **overrides) -> ScheduleBlock:
    return ScheduleBlock(id=block_id, title=block_id, start=start, end=end, **overrides)


def pairwise_conflicts(blocks: list[ScheduleBlock]) -> set[str]:
    """Reference answer: check every pair."""
    ids = set()
    for a, b in itertools.combinations(blocks, 2):
        if blocks_conflict(a, b):
            ids.update((a.id, b.id))
    return ids


def random_blocks(rng: random.Random, count: int) -> list[ScheduleBlock]:
    blocks = []
    for i in range(count):
        start = rng.randrange(0, 23 * 60, 15)
        length = rng.randrange(15, 180, 15)
        blocks.append(block(f"b{i}", from_minutes(start), from_minutes(start + length)))
    return blocks


# ---- Time helpers ----

class TestTimeHelpers:
    def test_to_minutes(self):
        assert to_minutes("00:00") == 0
        assert to_minutes("09:30") == 570
        assert to_minutes("23:59") == 1439

    @pytest.mark.parametrize("value", ["9:30", "24:00", "12:60", "noon", ""])
    def test_to_minutes_rejects_bad_input(self, value):
        with pytest.raises(ValueError):
            to_minutes(value)

    def test_add_minutes(self):
        assert add_minutes("09:00", 60) == "10:00"
        assert add_minutes("09:45", 30) == "10:15"

    def test_add_minutes_clamps_to_day(self):
        assert add_minutes("23:30", 60) == "23:59"
        assert add_minutes("00:10", -30) == "00:00"


# ---- blocks_conflict ----

class TestBlocksConflict:
    def test_overlap(self):
        assert blocks_conflict(block("a", "09:00", "10:00"), block("b", "09:30", "10:30"))

    def test_touching_ends_do_not_conflict(self):
        assert not blocks_conflict(block("a", "09:00", "10:00"), block("b", "10:00", "11:00"))

    def test_containment(self):
        assert blocks_conflict(block("a", "08:00", "12:00"), block("b", "09:00", "09:15"))

    def test_identical_times_conflict(self):
        assert blocks_conflict(block("a", "09:00", "10:00"), block("b", "09:00", "10:00"))

    def test_never_conflicts_with_itself(self):
        a = block("a", "09:00", "10:00")
        assert not blocks_conflict(a, a)
        assert not blocks_conflict(a, a.model_copy(update={"title": "renamed"}))

    def test_symmetric(self):
        rng = random.Random(7)
        blocks = random_blocks(rng, 30)
        for a, b in itertools.combinations(blocks, 2):
            assert blocks_conflict(a, b) == blocks_conflict(b, a)

    def test_malformed_block_never_conflicts(self):
        bad = ScheduleBlock.model_construct(id="bad", title="bad", start="10:00", end="09:00", task_id=None, created_at=0)
        assert not blocks_conflict(bad, block("a", "08:00", "12:00"))


# ---- find_conflicts ----

class TestFindConflicts:
    def test_example_day(self):
        blocks = [
            block("standup", "09:00", "09:15"),
            block("deep-work", "09:00", "11:00"),
            block("lunch", "12:00", "13:00"),
            block("call", "11:00", "11:30"),
        ]
        assert find_conflicts(blocks) == {"standup", "deep-work"}

    def test_empty(self):
        assert find_conflicts([]) == set()

    def test_chain_through_long_block(self):
        blocks = [
            block("long", "08:00", "12:00"),
            block("short", "08:30", "09:00"),
            block("late", "11:00", "13:00"),
        ]
        assert find_conflicts(blocks) == {"long", "short", "late"}

    def test_back_to_back(self):
        blocks = [block("a", "08:00", "09:00"), block("b", "09:00", "10:00"), block("c", "10:00", "11:00")]
        assert find_conflicts(blocks) == set()

    @pytest.mark.parametrize("seed", range(10))
    def test_matches_pairwise_check(self, seed):
        blocks = random_blocks(random.Random(seed), 25)
        assert find_conflicts(blocks) == pairwise_conflicts(blocks)

    def test_skips_malformed_blocks(self):
        bad = ScheduleBlock.model_construct(id="bad", title="bad", start="10:00", end="10:00", task_id=None, created_at=0)
        assert find_conflicts([bad, block("a", "09:00", "11:00")]) == set()


# ---- Ordering and links ----

class TestOrderingAndLinks:
    def test_sorted_blocks_by_start(self):
        blocks = [block("c", "14:00", "15:00"), block("a", "08:00", "09:00"), block("b", "10:00", "11:00")]
        assert [b.id for b in sorted_blocks(blocks)] == ["a", "b", "c"]

    def test_linked_task(self):
        task = Task(id="t1", title="Write")
        state = DashboardState(tasks=(task,))
        assert linked_task(state, block("a", "09:00", "10:00", task_id="t1")) == task

    def test_dangling_link_is_unlinked(self):
        state = DashboardState()
        assert linked_task(state, block("a", "09:00", "10:00", task_id="gone")) is None
        assert linked_task(state, block("b", "09:00", "10:00")) is None
