"""Tests for the persistence gateway and its storage backends."""

import json

import pytest

from focus_dashboard.actions import (
    AddScheduleBlock,
    AddTask,
    PinNote,
    SetNotes,
    SetTimerState,
    ToggleHabit,
    UpdateTimerSettings,
)
from focus_dashboard.errors import StorageError
from focus_dashboard.models import ScheduleBlock, Task, TimerMode, default_state
from focus_dashboard.persistence import (
    STORAGE_KEY,
    JsonFileStorage,
    MemoryStorage,
    PersistenceGateway,
    SqliteStorage,
    merge_onto_defaults,
    serialize,
)
from focus_dashboard.reducer import transition
from focus_dashboard.store import Store


# ---- Helpers ----

class BrokenStorage:
    """Storage whose reads and/or writes always fail."""

    def __init__(self, fail_read: bool = False, fail_write: bool = True):
        self.fail_read = fail_read
        self.fail_write = fail_write

    def read(self, key):
        if self.fail_read:
            raise StorageError("disk on fire")
        return None

    def write(self, key, payload):
        if self.fail_write:
            raise StorageError("quota exceeded")


def busy_state():
    state = default_state()
    for action in (
        AddTask(Task(id="t1", title="Draft report", estimate_minutes=50, created_at=1_705_000_000_000)),
        AddScheduleBlock(ScheduleBlock(id="b1", title="Writing", start="09:00", end="10:30", task_id="t1")),
        PinNote("call the dentist"),
        ToggleHabit("2024-01-15", "hydrate"),
        UpdateTimerSettings({"focus": 40}),
        SetTimerState({"mode": "short-break", "session_count": 2, "is_running": True}),
    ):
        state = transition(state, action)
    return state


def gateway_with(text: str) -> PersistenceGateway:
    return PersistenceGateway(MemoryStorage({STORAGE_KEY: text}))


@pytest.fixture(params=["memory", "json", "sqlite"])
def storage(request, tmp_path):
    if request.param == "memory":
        return MemoryStorage()
    if request.param == "json":
        return JsonFileStorage(tmp_path / "slots")
    return SqliteStorage(tmp_path / "dashboard.db")


# ---- Round trip ----

class TestRoundTrip:
    def test_save_then_load(self, storage):
        gateway = PersistenceGateway(storage)
        state = busy_state()
        assert gateway.save(state) is True
        loaded = gateway.load()
        expected = state.to_payload()
        expected["timerState"]["isRunning"] = False
        assert loaded.to_payload() == expected

    def test_overwrite_keeps_latest(self, storage):
        gateway = PersistenceGateway(storage)
        gateway.save(default_state())
        gateway.save(busy_state())
        assert gateway.load().tasks[0].id == "t1"

    def test_empty_slot_loads_defaults(self, storage):
        assert PersistenceGateway(storage).load() == default_state()

    def test_running_flag_never_persisted(self):
        storage = MemoryStorage()
        state = transition(default_state(), SetTimerState({"is_running": True}))
        PersistenceGateway(storage).save(state)
        assert json.loads(storage.slots[STORAGE_KEY])["timerState"]["isRunning"] is False
        # Caller's snapshot untouched
        assert state.timer_state.is_running is True

    def test_wire_keys_in_payload(self):
        payload = json.loads(serialize(busy_state()))
        assert payload["timerSettings"]["focus"] == 40
        assert payload["tasks"][0]["estimate"] == 50
        assert payload["scheduleBlocks"][0]["taskId"] == "t1"
        assert payload["habitLog"] == {"2024-01-15": {"hydrate": True}}


# ---- Unusable payloads ----

class TestFallbacks:
    @pytest.mark.parametrize("text", ["{not json", "", "[1, 2, 3]", "null", '"hello"'])
    def test_unparseable_loads_defaults(self, text):
        gateway = gateway_with(text)
        assert gateway.load() == default_state()
        assert gateway.last_error

    def test_invalid_shape_loads_defaults(self):
        text = json.dumps({"tasks": "not a list"})
        assert gateway_with(text).load() == default_state()

    def test_invalid_block_loads_defaults(self):
        text = json.dumps({"scheduleBlocks": [{"id": "b", "title": "x", "start": "10:00", "end": "09:00"}]})
        assert gateway_with(text).load() == default_state()

    def test_read_failure_loads_defaults(self):
        gateway = PersistenceGateway(BrokenStorage(fail_read=True))
        assert gateway.load() == default_state()
        assert "disk on fire" in gateway.last_error

    def test_write_failure_is_not_fatal(self):
        gateway = PersistenceGateway(BrokenStorage())
        assert gateway.save(busy_state()) is False
        assert "quota exceeded" in gateway.last_error

    def test_non_utf8_file_loads_defaults(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.path_for(STORAGE_KEY).write_bytes(b'{"notes": "\xff\xfe"}')
        gateway = PersistenceGateway(storage)
        assert gateway.load() == default_state()
        assert gateway.last_error

    def test_deeply_nested_payload_loads_defaults(self):
        gateway = gateway_with("[" * 100_000)
        assert gateway.load() == default_state()
        assert gateway.last_error


# ---- Text that cannot be encoded as UTF-8 ----

@pytest.fixture(params=["json", "sqlite"])
def disk_storage(request, tmp_path):
    if request.param == "json":
        return JsonFileStorage(tmp_path / "slots")
    return SqliteStorage(tmp_path / "dashboard.db")


class TestLoneSurrogates:
    def test_serialized_as_ascii_escape(self):
        state = transition(default_state(), SetNotes("x \ud800"))
        assert "\\ud800" in serialize(state)

    def test_dispatch_survives_and_later_saves_work(self, disk_storage):
        store = Store(PersistenceGateway(disk_storage))
        store.dispatch(SetNotes("bad \ud800 text"))
        assert store.state.notes == "bad \ud800 text"

        store.dispatch(SetNotes("clean"))
        assert PersistenceGateway(disk_storage).load().notes == "clean"


# ---- Older and foreign payloads ----

class TestMergeOntoDefaults:
    def test_missing_top_level_fields_keep_defaults(self):
        state = gateway_with(json.dumps({"notes": "hello"})).load()
        assert state.notes == "hello"
        assert [h.id for h in state.habits] == ["hydrate", "movement", "plan"]
        assert state.timer_settings.focus_minutes == 25

    def test_nested_timer_records_merge_per_key(self):
        stored = {"timerSettings": {"focus": 50}, "timerState": {"sessionCount": 3, "isRunning": True}}
        state = gateway_with(json.dumps(stored)).load()
        assert state.timer_settings.focus_minutes == 50
        assert state.timer_settings.short_break_minutes == 5
        assert state.timer_state.session_count == 3
        assert state.timer_state.seconds_remaining == 1500
        assert state.timer_state.is_running is False

    def test_merge_does_not_mutate_input(self):
        stored = {"timerState": {"isRunning": True}}
        merge_onto_defaults(stored)
        assert stored == {"timerState": {"isRunning": True}}

    def test_unknown_keys_ignored(self):
        state = gateway_with(json.dumps({"notes": "x", "theme": "dark"})).load()
        assert state.notes == "x"

    def test_browser_shaped_payload(self):
        stored = {
            "promptResponses": {"2024-01-15": {"priorities": "ship"}},
            "moodCheckins": {"2024-01-15": "foggy"},
            "tasks": [{
                "id": "task-1", "title": "Plan", "priority": "high", "energy": "low",
                "estimate": 15, "bucket": "today", "completed": False,
                "subtasks": [{"id": "s1", "text": "list", "completed": True}], "createdAt": 1,
            }],
            "taskFilter": "low-energy",
            "pinnedNotes": ["a", "b"],
            "timerState": {"mode": "long-break", "secondsRemaining": 12,
                           "completedSessions": [{"completedAt": 5, "duration": 25}]},
        }
        state = gateway_with(json.dumps(stored)).load()
        assert state.tasks[0].subtasks[0].completed is True
        assert state.timer_state.mode == TimerMode.LONG_BREAK
        assert state.timer_state.completed_sessions[0].duration_minutes == 25
        assert state.task_filter.value == "low-energy"

    def test_overlong_pin_list_normalized(self):
        stored = {"pinnedNotes": ["a", "b", "a", "c", "d", "e", "f", "g", "x" * 200]}
        state = gateway_with(json.dumps(stored)).load()
        assert state.pinned_notes == ("a", "b", "c", "d", "e")


# ---- Backends ----

class TestJsonFileStorage:
    def test_writes_one_file_per_key(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.write("slot", '{"a": 1}')
        assert (tmp_path / "slot.json").read_text() == '{"a": 1}'
        assert [p.name for p in tmp_path.iterdir()] == ["slot.json"]

    def test_missing_file_reads_none(self, tmp_path):
        assert JsonFileStorage(tmp_path / "nowhere").read("slot") is None

    def test_unwritable_directory_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(StorageError):
            JsonFileStorage(blocker).write("slot", "{}")


class TestSqliteStorage:
    def test_upsert(self, tmp_path):
        storage = SqliteStorage(tmp_path / "kv.db")
        storage.write("slot", "one")
        storage.write("slot", "two")
        assert storage.read("slot") == "two"
        assert storage.read("other") is None

    def test_survives_reopen(self, tmp_path):
        SqliteStorage(tmp_path / "kv.db").write("slot", "kept")
        assert SqliteStorage(tmp_path / "kv.db").read("slot") == "kept"
