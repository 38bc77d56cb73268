"""Derive alerts from unavailable probe results."""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from pulsecheck.models import Status

ALERT_NAME = "ServiceUnavailable"


class Severity(str, Enum):
    """Alert severities ordered from most to least urgent."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class LabelSet(dict[str, str]):
    """Key/value identity of an alert."""

    def hash(self) -> int:
        """Return a 64-bit fingerprint independent of key order.

        Keys are sorted, joined as ``key=value`` with commas, hashed with
        SHA-256, and the first 8 bytes are read as a big-endian integer.
        """
        if not self:
            return 0
        payload = ",".join(f"{key}={self[key]}" for key in sorted(self))
        digest = hashlib.sha256(payload.encode("utf-8")).digest()
        return int.from_bytes(digest[:8], "big")


class Alert(BaseModel):
    """Transient classification of an unavailable Status.

    An alert whose ``ends_at`` is unset stays active forever.
    """

    labels: dict[str, str]
    annotations: dict[str, str] = Field(default_factory=dict)
    starts_at: datetime
    ends_at: datetime | None = None
    generator_url: str = ""

    @property
    def name(self) -> str:
        return self.labels.get("alertname", "")

    @property
    def severity(self) -> str:
        return self.labels.get("severity", "")

    @property
    def fingerprint(self) -> int:
        return LabelSet(self.labels).hash()

    def is_resolved(self, at: datetime | None = None) -> bool:
        """Return True when ``ends_at`` is set and not after ``at`` (default now).

        A naive ``at`` is taken to be UTC.
        """
        if self.ends_at is None:
            return False
        return self.ends_at <= _as_utc(at or datetime.now(UTC))

    def resolve(self, at: datetime | None = None) -> Alert:
        """Return a copy of this alert ending at ``at`` (default now)."""
        return self.model_copy(update={"ends_at": _as_utc(at or datetime.now(UTC))})

    def __str__(self) -> str:
        state = "resolved" if self.is_resolved() else "active"
        short_hash = f"{self.fingerprint:016x}"[:7]
        return f"{self.name}[{short_hash}][{state}]"


def _as_utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)


def severity_for(http_status: int) -> Severity:
    """Derive the severity of a failed probe from its HTTP code."""
    if http_status >= 500:
        return Severity.CRITICAL
    if http_status >= 400:
        return Severity.WARNING
    if http_status == 0:
        return Severity.CRITICAL
    # Unreachable while availability means [200, 400); kept for other policies.
    return Severity.INFO


def describe(status: Status) -> str:
    """Return a human-readable description of a failed probe."""
    if status.error_message:
        return (
            f"Service {status.url} failed: {status.error_message} "
            f"(code {status.http_status}, latency {status.latency_ms:.0f}ms)"
        )
    return (
        f"Service {status.url} returned code {status.http_status} "
        f"(latency {status.latency_ms:.0f}ms)"
    )


def evaluate(status: Status, base_url: str = "") -> Alert | None:
    """Return an Alert for an unavailable ``status``, otherwise None."""
    if status.available:
        return None

    return Alert(
        labels={
            "alertname": ALERT_NAME,
            "service": status.url,
            "severity": severity_for(status.http_status).value,
            "http_status": str(status.http_status),
        },
        annotations={
            "description": describe(status),
            "summary": f"Service {status.url} is down",
        },
        starts_at=status.checked_at,
        generator_url=f"{base_url.rstrip('/')}/monitors/{status.url}",
    )
