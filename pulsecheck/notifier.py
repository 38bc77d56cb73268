"""Notification sinks for probe outcomes and alerts."""

from __future__ import annotations

import logging
from typing import Protocol

from pulsecheck.alerts import Alert, Severity
from pulsecheck.models import Status

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Transport-agnostic sink for alerts."""

    async def notify(self, status: Status, severity: Severity, reason: str) -> None: ...

    async def notify_alert(self, alert: Alert) -> None: ...


class LogNotifier:
    """Emit notifications as log records."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    async def notify(self, status: Status, severity: Severity, reason: str) -> None:
        extra = {
            "severity": severity.value,
            "url": status.url,
            "http_status": status.http_status,
            "latency_ms": round(status.latency_ms),
        }
        if status.available:
            self._log.info(
                "[%s] %s - %dms (url=%s, code=%d)",
                severity.value,
                reason,
                round(status.latency_ms),
                status.url,
                status.http_status,
                extra=extra,
            )
        else:
            self._log.warning(
                '[%s] %s - error="%s" (url=%s)',
                severity.value,
                reason,
                status.error_message,
                status.url,
                extra=extra,
            )

    async def notify_alert(self, alert: Alert) -> None:
        self._log.warning(
            "[%s] %s: %s",
            alert.severity,
            alert,
            alert.annotations.get("description", ""),
            extra={"severity": alert.severity, "fingerprint": f"{alert.fingerprint:016x}"},
        )
