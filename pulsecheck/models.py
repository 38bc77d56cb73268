"""Domain models for monitors and probe results."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ErrorType(str, Enum):
    """Normalized error categories for failed probes."""

    DNS = "dns"
    CONNECT = "connect"
    TLS = "tls"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    HTTP = "http"
    UNKNOWN = "unknown"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _require_url(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("url must not be empty")
    return value


class Monitor(BaseModel):
    """A watched endpoint. ``id`` stays 0 until the repository assigns one."""

    model_config = ConfigDict(from_attributes=True)

    id: int = 0
    name: str = ""
    url: str
    type: str = "http"

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return _require_url(value)


class Status(BaseModel):
    """Outcome of one probe.

    ``monitor_id`` is 0 for ad hoc checks. ``http_status`` is 0 when the
    request failed below HTTP (DNS, connect, TLS, timeout, cancellation).
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    monitor_id: int = 0
    url: str
    available: bool
    http_status: int = 0
    error_type: ErrorType | None = None
    error_message: str = ""
    latency_ms: float = Field(default=0.0, ge=0)
    checked_at: datetime = Field(default_factory=_utcnow)

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return _require_url(value)
