"""Persistence gateway: round-trips the whole aggregate through one durable slot.

``load`` and ``save`` never raise. A missing or unreadable slot loads factory
defaults; a failed write is logged and dropped. The run flag is never
durable: it is forced off on load and in every serialized copy.
"""

from __future__ import annotations

import json
import os
import sqlite3
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from .errors import StorageError
from .logs import logger
from .models import DashboardState, default_state

STORAGE_KEY = "adhd-suite-dashboard"

# Nested records merged key-by-key onto their defaults
_NESTED_RECORDS = ("timerSettings", "timerState")


class StoragePort(Protocol):
    """A named-slot key-value store holding serialized text."""

    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, payload: str) -> None: ...


class MemoryStorage:
    """Slot held in a dict. For tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.slots: dict[str, str] = dict(initial or {})
        self.writes = 0

    def read(self, key: str) -> Optional[str]:
        return self.slots.get(key)

    def write(self, key: str, payload: str) -> None:
        self.slots[key] = payload
        self.writes += 1


class JsonFileStorage:
    """One JSON file per slot under ``directory``; writes are atomic replaces."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def write(self, key: str, payload: str) -> None:
        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, UnicodeError) as e:
            raise StorageError(f"Could not write {path}: {e}") from e


class SqliteStorage:
    """Slots as rows of a key-value table in a SQLite database."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        if not self._initialized:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=5000")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_slots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()
            self._initialized = True
        return conn

    def read(self, key: str) -> Optional[str]:
        try:
            conn = self._connect()
            try:
                row = conn.execute("SELECT value FROM kv_slots WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Could not read slot {key!r} from {self.db_path}: {e}") from e
        return row[0] if row else None

    def write(self, key: str, payload: str) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute("""
                    INSERT INTO kv_slots (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                """, (key, payload))
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError, UnicodeError) as e:
            raise StorageError(f"Could not write slot {key!r} to {self.db_path}: {e}") from e


def merge_onto_defaults(stored: dict) -> dict:
    """Overlay a stored payload on the default payload, field by field.

    Top-level keys missing from ``stored`` keep their defaults; the nested
    timer records merge key-by-key. The run flag is always cleared.
    """
    merged = default_state().to_payload()
    for key, value in stored.items():
        if key in _NESTED_RECORDS and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    merged["timerState"]["isRunning"] = False
    return merged


def serialize(state: DashboardState) -> str:
    """JSON text of ``state`` with the run flag cleared in the copy only."""
    payload = state.to_payload()
    payload["timerState"]["isRunning"] = False
    return json.dumps(payload, sort_keys=True)


def deserialize(text: str) -> DashboardState:
    """Parse stored text; raises ``ValueError``/``ValidationError`` when unusable."""
    stored = json.loads(text)
    if not isinstance(stored, dict):
        raise ValueError(f"stored payload is a {type(stored).__name__}, not an object")
    return DashboardState.model_validate(merge_onto_defaults(stored))


class PersistenceGateway:
    """Reads and writes the aggregate through a ``StoragePort``."""

    def __init__(self, storage: StoragePort, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key
        self.last_error: Optional[str] = None

    def load(self) -> DashboardState:
        try:
            text = self.storage.read(self.key)
        except StorageError as e:
            self.last_error = str(e)
            logger.warning(f"Persistence: read failed, using defaults: {e}")
            return default_state()

        if text is None:
            logger.debug(f"Persistence: slot {self.key!r} empty, using defaults")
            return default_state()

        try:
            return deserialize(text)
        except (ValidationError, ValueError, TypeError, RecursionError) as e:
            self.last_error = str(e)
            logger.warning(f"Persistence: stored state unusable, using defaults: {e}")
            return default_state()

    def save(self, state: DashboardState) -> bool:
        """Write the aggregate. Returns False when the write was dropped."""
        try:
            self.storage.write(self.key, serialize(state))
        except StorageError as e:
            self.last_error = str(e)
            logger.warning(f"Persistence: write dropped: {e}")
            return False
        return True
