"""Exception types shared across the dashboard."""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for dashboard errors."""


class StorageError(DashboardError):
    """A storage backend could not read or write the durable slot."""


class InvalidActionError(DashboardError, ValueError):
    """An action payload was rejected before dispatch."""
