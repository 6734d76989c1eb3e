"""Configuration management for the dashboard CLI."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import click

from .persistence import STORAGE_KEY, JsonFileStorage, MemoryStorage, PersistenceGateway, SqliteStorage


@dataclass
class BackendConfig:
    """A storage backend choice."""

    name: str
    description: str


# Storage backends
BACKENDS: Dict[str, BackendConfig] = {
    "json": BackendConfig(
        name="json",
        description="JSON file in the data directory",
    ),
    "sqlite": BackendConfig(
        name="sqlite",
        description="Key-value table in dashboard.db",
    ),
    "memory": BackendConfig(
        name="memory",
        description="In-memory only, nothing survives the process",
    ),
}

DEFAULT_HOME = Path.home() / ".focus-dashboard"


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes", "on")


class DashboardConfig:
    """Dashboard configuration read from FOCUS_DASHBOARD_* variables."""

    def __init__(self):
        self.home = Path(os.environ.get("FOCUS_DASHBOARD_HOME", str(DEFAULT_HOME))).expanduser()
        self.backend = os.environ.get("FOCUS_DASHBOARD_BACKEND", "json").lower()
        self.verbose = _env_flag("FOCUS_DASHBOARD_VERBOSE", "false")
        self.chime = _env_flag("FOCUS_DASHBOARD_CHIME", "true")
        self.tick_seconds_raw = os.environ.get("FOCUS_DASHBOARD_TICK_SECONDS", "1.0")

    @property
    def backend_config(self) -> BackendConfig:
        return BACKENDS.get(self.backend, BACKENDS["json"])

    @property
    def tick_seconds(self) -> float:
        return float(self.tick_seconds_raw)

    def validate(self) -> None:
        """Validate configuration."""
        if self.backend not in BACKENDS:
            valid = ", ".join(BACKENDS.keys())
            raise click.ClickException(
                f"Invalid backend '{self.backend}'. Valid options: {valid}"
            )
        try:
            seconds = float(self.tick_seconds_raw)
        except ValueError:
            raise click.ClickException(
                f"FOCUS_DASHBOARD_TICK_SECONDS must be a number, got '{self.tick_seconds_raw}'"
            )
        if seconds <= 0:
            raise click.ClickException("FOCUS_DASHBOARD_TICK_SECONDS must be positive")

    def build_gateway(self) -> PersistenceGateway:
        if self.backend == "sqlite":
            storage = SqliteStorage(self.home / "dashboard.db")
        elif self.backend == "memory":
            storage = MemoryStorage()
        else:
            storage = JsonFileStorage(self.home)
        return PersistenceGateway(storage, key=STORAGE_KEY)


def get_config() -> DashboardConfig:
    """Get a validated configuration instance."""
    config = DashboardConfig()
    config.validate()
    return config


def backend_option(f):
    """Decorator to add the storage backend option to commands."""
    choices = sorted(BACKENDS.keys())

    return click.option(
        "--backend",
        type=click.Choice(choices),
        default=None,
        help="Storage backend (overrides FOCUS_DASHBOARD_BACKEND)",
    )(f)


def home_option(f):
    """Decorator to add the data directory option to commands."""
    return click.option(
        "--home",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Data directory (overrides FOCUS_DASHBOARD_HOME)",
    )(f)


def verbose_option(f):
    """Decorator to add verbose option to commands."""
    return click.option(
        "--verbose", "-v",
        is_flag=True,
        help="Enable verbose output",
    )(f)
