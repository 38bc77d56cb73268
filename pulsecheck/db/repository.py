"""Repository implementation backed by SQLAlchemy."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pulsecheck.db.models import MonitorRecord, StatusRecord
from pulsecheck.db.session import Database
from pulsecheck.models import ErrorType, Monitor, Status
from pulsecheck.repository import MonitorNotFoundError, RepositoryError


class SqlRepository:
    """Persist monitors and statuses through a ``Database``."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self.database.session() as session:
                yield session
        except SQLAlchemyError as e:
            raise RepositoryError(str(e)) from e

    async def list_monitors(self) -> list[Monitor]:
        async with self._session() as session:
            result = await session.execute(select(MonitorRecord).order_by(MonitorRecord.id))
            return [Monitor.model_validate(row) for row in result.scalars().all()]

    async def add_monitor(self, monitor: Monitor) -> Monitor:
        if not monitor.url:
            raise RepositoryError("monitor url is required")
        async with self._session() as session:
            result = await session.execute(
                select(MonitorRecord).where(MonitorRecord.url == monitor.url)
            )
            record = result.scalar_one_or_none()
            if record is None:
                record = MonitorRecord(
                    name=monitor.name, url=monitor.url, type=monitor.type or "http"
                )
                session.add(record)
            else:
                if monitor.name:
                    record.name = monitor.name
                if monitor.type:
                    record.type = monitor.type
            await session.flush()
            return Monitor.model_validate(record)

    async def delete_monitor(self, url: str) -> None:
        async with self._session() as session:
            result = await session.execute(select(MonitorRecord).where(MonitorRecord.url == url))
            record = result.scalar_one_or_none()
            if record is None:
                raise MonitorNotFoundError(f"monitor not found: {url}")
            await session.execute(delete(StatusRecord).where(StatusRecord.monitor_id == record.id))
            await session.delete(record)

    async def record_status(self, status: Status) -> None:
        if not status.url:
            raise RepositoryError("status url is required")
        async with self._session() as session:
            session.add(
                StatusRecord(
                    monitor_id=status.monitor_id or None,
                    url=status.url,
                    available=status.available,
                    http_status=status.http_status,
                    error_type=status.error_type.value if status.error_type else None,
                    error_message=status.error_message or None,
                    latency_ms=status.latency_ms,
                    checked_at=status.checked_at,
                )
            )

    async def last_statuses(self, monitor_id: int) -> list[Status]:
        async with self._session() as session:
            result = await session.execute(
                select(StatusRecord)
                .where(StatusRecord.monitor_id == monitor_id)
                .order_by(StatusRecord.checked_at.desc(), StatusRecord.id.desc())
            )
            return [_to_status(row) for row in result.scalars().all()]

    async def delete_all(self) -> None:
        async with self._session() as session:
            await session.execute(delete(StatusRecord))
            await session.execute(delete(MonitorRecord))


def _to_status(row: StatusRecord) -> Status:
    checked_at = row.checked_at
    # SQLite drops tzinfo; values are always written as UTC.
    if checked_at.tzinfo is None:
        checked_at = checked_at.replace(tzinfo=UTC)
    return Status(
        monitor_id=row.monitor_id or 0,
        url=row.url,
        available=row.available,
        http_status=row.http_status,
        error_type=ErrorType(row.error_type) if row.error_type else None,
        error_message=row.error_message or "",
        latency_ms=row.latency_ms,
        checked_at=checked_at,
    )
