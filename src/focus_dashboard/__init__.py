"""Focus dashboard state engine: reducer, focus timer, schedule conflicts and persistence."""

from .actions import action_from_dict
from .models import DashboardState, TimerMode, default_state
from .persistence import JsonFileStorage, MemoryStorage, PersistenceGateway, SqliteStorage
from .reducer import transition
from .runner import TimerRunner
from .schedule import blocks_conflict, find_conflicts
from .scheduling import AsyncIOTickScheduler, ManualTickScheduler
from .store import Store
from .timer import TickResult, TimerEvent, tick

__all__ = [
    "AsyncIOTickScheduler",
    "DashboardState",
    "JsonFileStorage",
    "ManualTickScheduler",
    "MemoryStorage",
    "PersistenceGateway",
    "SqliteStorage",
    "Store",
    "TickResult",
    "TimerEvent",
    "TimerMode",
    "TimerRunner",
    "action_from_dict",
    "blocks_conflict",
    "default_state",
    "find_conflicts",
    "tick",
    "transition",
]
