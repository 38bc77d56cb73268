"""Persistence contract consumed by the checker and scheduler."""

from __future__ import annotations

import asyncio
from typing import Protocol

from pulsecheck.models import Monitor, Status


class RepositoryError(Exception):
    """Raised when the storage backend cannot complete an operation."""


class MonitorNotFoundError(RepositoryError, LookupError):
    """Raised when no monitor matches the requested URL."""


class Repository(Protocol):
    """Storage operations the health-check engine depends on."""

    async def list_monitors(self) -> list[Monitor]:
        """Return all monitors in a stable order."""
        ...

    async def add_monitor(self, monitor: Monitor) -> Monitor:
        """Upsert by URL; empty fields keep the stored values."""
        ...

    async def delete_monitor(self, url: str) -> None:
        """Delete the monitor with ``url`` or raise MonitorNotFoundError."""
        ...

    async def record_status(self, status: Status) -> None:
        """Append one probe result."""
        ...

    async def last_statuses(self, monitor_id: int) -> list[Status]:
        """Return every status of a monitor, most recent first.

        Ad hoc statuses recorded with ``monitor_id`` 0 belong to no monitor
        and are never returned.
        """
        ...

    async def delete_all(self) -> None:
        """Irreversibly clear monitors and statuses."""
        ...


class MemoryRepository:
    """In-process repository, used for ad hoc probes and tests."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._monitors: dict[str, Monitor] = {}
        self._statuses: list[Status] = []
        self._next_id = 1

    async def list_monitors(self) -> list[Monitor]:
        async with self._lock:
            return sorted(self._monitors.values(), key=lambda m: m.id)

    async def add_monitor(self, monitor: Monitor) -> Monitor:
        if not monitor.url:
            raise RepositoryError("monitor url is required")
        async with self._lock:
            existing = self._monitors.get(monitor.url)
            if existing is None:
                stored = monitor.model_copy(
                    update={"id": self._next_id, "type": monitor.type or "http"}
                )
                self._next_id += 1
            else:
                stored = existing.model_copy(
                    update={
                        "name": monitor.name or existing.name,
                        "type": monitor.type or existing.type,
                    }
                )
            self._monitors[monitor.url] = stored
            return stored

    async def delete_monitor(self, url: str) -> None:
        async with self._lock:
            monitor = self._monitors.pop(url, None)
            if monitor is None:
                raise MonitorNotFoundError(f"monitor not found: {url}")
            self._statuses = [s for s in self._statuses if s.monitor_id != monitor.id]

    async def record_status(self, status: Status) -> None:
        if not status.url:
            raise RepositoryError("status url is required")
        async with self._lock:
            self._statuses.append(status)

    async def last_statuses(self, monitor_id: int) -> list[Status]:
        if monitor_id == 0:
            return []
        async with self._lock:
            statuses = [s for s in self._statuses if s.monitor_id == monitor_id]
        return sorted(statuses, key=lambda s: s.checked_at, reverse=True)

    async def delete_all(self) -> None:
        async with self._lock:
            self._monitors.clear()
            self._statuses.clear()
            self._next_id = 1
