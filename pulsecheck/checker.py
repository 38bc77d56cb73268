"""Bounded-concurrency probing with unconditional persistence."""

from __future__ import annotations

import asyncio
import logging
import time
from types import TracebackType

import httpx

from pulsecheck.alerts import Severity, evaluate
from pulsecheck.models import ErrorType, Monitor, Status
from pulsecheck.notifier import Notifier
from pulsecheck.probe import build_client, failed_status, normalize_url, probe
from pulsecheck.repository import Repository

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 5
DEFAULT_TIMEOUT_S = 10.0
DEFAULT_SLOW_THRESHOLD_MS = 800


class Checker:
    """Probe monitors through a fixed-size gate and record every result.

    At most ``max_concurrency`` probes are in flight across all callers;
    extra callers wait for a slot. Failures to persist or notify are logged
    and never change the Status handed back to the caller.
    """

    def __init__(
        self,
        repository: Repository,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        slow_threshold_ms: int = DEFAULT_SLOW_THRESHOLD_MS,
        notifier: Notifier | None = None,
        base_url: str = "",
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.repository = repository
        self.max_concurrency = max_concurrency if max_concurrency > 0 else DEFAULT_MAX_CONCURRENCY
        self.timeout_s = timeout_s if timeout_s > 0 else DEFAULT_TIMEOUT_S
        self.slow_threshold_ms = (
            slow_threshold_ms if slow_threshold_ms > 0 else DEFAULT_SLOW_THRESHOLD_MS
        )
        self.notifier = notifier
        self.base_url = base_url
        self._owns_client = client is None
        self._client = client or build_client(self.timeout_s, transport=transport)
        self._gate = asyncio.Semaphore(self.max_concurrency)
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        """Number of probes currently holding a gate slot."""
        return self._in_flight

    async def verify_monitor(self, monitor: Monitor, *, timeout_s: float | None = None) -> Status:
        """Probe ``monitor`` and persist the result.

        ``timeout_s`` is the caller's deadline; the configured per-probe
        timeout applies when it is not given. If the calling task is
        cancelled mid-probe, a ``cancelled`` Status is still recorded before
        the cancellation propagates.
        """
        deadline = timeout_s if timeout_s and timeout_s > 0 else self.timeout_s

        async with self._gate:
            self._in_flight += 1
            started = time.monotonic()
            try:
                status = await probe(self._client, monitor.url, deadline, monitor_id=monitor.id)
            except asyncio.CancelledError:
                status = failed_status(
                    normalize_url(monitor.url),
                    ErrorType.CANCELLED,
                    "probe cancelled",
                    started,
                    monitor.id,
                )
                await self._record(status)
                raise
            finally:
                self._in_flight -= 1

        await self._record(status)
        await self._notify(status)
        return status

    async def verify_url(self, url: str, *, timeout_s: float | None = None) -> Status:
        """Probe an ad hoc URL that is not tied to a stored monitor."""
        return await self.verify_monitor(Monitor(url=url), timeout_s=timeout_s)

    async def last_results(self, monitor_id: int, n: int = 0) -> list[Status]:
        """Return the ``n`` most recent statuses of a monitor, newest first.

        ``n <= 0`` returns the full history.
        """
        statuses = await self.repository.last_statuses(monitor_id)
        if 0 < n < len(statuses):
            return statuses[:n]
        return statuses

    async def list_monitors(self) -> list[Monitor]:
        return await self.repository.list_monitors()

    async def _record(self, status: Status) -> None:
        try:
            await self.repository.record_status(status)
        except Exception:
            logger.exception(
                "Failed to record status",
                extra={"url": status.url, "monitor_id": status.monitor_id},
            )

    async def _notify(self, status: Status) -> None:
        if self.notifier is None:
            return
        try:
            alert = evaluate(status, base_url=self.base_url)
            if alert is not None:
                await self.notifier.notify_alert(alert)
            elif status.latency_ms > self.slow_threshold_ms:
                await self.notifier.notify(status, Severity.INFO, "slow response")
        except Exception:
            logger.exception("Failed to send notification", extra={"url": status.url})

    async def aclose(self) -> None:
        """Close the HTTP client if this checker created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Checker:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
