"""API routes and request/response schemas for probes and monitors."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from pulsecheck.checker import Checker
from pulsecheck.models import Monitor, Status
from pulsecheck.probe import normalize_url
from pulsecheck.repository import MonitorNotFoundError, Repository

router = APIRouter()


class VerifyRequest(BaseModel):
    """Payload for an on-demand probe."""

    url: str


class MonitorCreate(BaseModel):
    """Payload for registering a monitor."""

    name: str = Field(default="", max_length=255)
    url: str = Field(..., min_length=1, max_length=2048)
    type: str = "http"


class StatusResponse(BaseModel):
    """Serialized probe result."""

    monitor_id: int
    url: str
    available: bool
    http_status: int
    error_type: str | None
    error_message: str
    latency_ms: int
    checked_at: datetime


class VerifyResponse(BaseModel):
    status: StatusResponse


class ResultsResponse(BaseModel):
    results: list[StatusResponse]


def get_checker(request: Request) -> Checker:
    return request.app.state.checker


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


def _serialize_status(status: Status) -> StatusResponse:
    return StatusResponse(
        monitor_id=status.monitor_id,
        url=status.url,
        available=status.available,
        http_status=status.http_status,
        error_type=status.error_type.value if status.error_type else None,
        error_message=status.error_message,
        latency_ms=round(status.latency_ms),
        checked_at=status.checked_at,
    )


async def ensure_monitor(repository: Repository, url: str) -> Monitor:
    """Return the stored monitor for ``url``, creating it on first use."""
    return await repository.add_monitor(Monitor(name=url, url=url, type="http"))


@router.post("/verify", response_model=VerifyResponse)
async def verify(
    payload: VerifyRequest,
    checker: Checker = Depends(get_checker),
    repository: Repository = Depends(get_repository),
) -> VerifyResponse:
    """Probe a URL now, registering it as a monitor if needed."""
    if not payload.url.strip():
        raise HTTPException(status_code=400, detail='Invalid body: expected {"url": "..."}')

    monitor = await ensure_monitor(repository, normalize_url(payload.url))
    status = await checker.verify_monitor(monitor)
    return VerifyResponse(status=_serialize_status(status))


@router.get("/results", response_model=ResultsResponse)
async def list_results(
    limit: int = Query(default=50, ge=1),
    checker: Checker = Depends(get_checker),
) -> ResultsResponse:
    """Return recent statuses of all monitors, newest first."""
    statuses: list[Status] = []
    for monitor in await checker.list_monitors():
        statuses.extend(await checker.last_results(monitor.id))
    statuses.sort(key=lambda s: s.checked_at, reverse=True)
    return ResultsResponse(results=[_serialize_status(s) for s in statuses[:limit]])


@router.delete("/results")
async def delete_results(repository: Repository = Depends(get_repository)) -> dict[str, bool]:
    """Remove every monitor and status."""
    await repository.delete_all()
    return {"ok": True}


@router.get("/monitors", response_model=list[Monitor])
async def list_monitors(checker: Checker = Depends(get_checker)) -> list[Monitor]:
    """List all registered monitors."""
    return await checker.list_monitors()


@router.post("/monitors", response_model=Monitor, status_code=201)
async def create_monitor(
    payload: MonitorCreate,
    repository: Repository = Depends(get_repository),
) -> Monitor:
    """Register a monitor, updating it when the URL is already known."""
    url = normalize_url(payload.url)
    monitor = Monitor(name=payload.name or url, url=url, type=payload.type)
    return await repository.add_monitor(monitor)


@router.delete("/monitors", status_code=204)
async def delete_monitor(
    url: str = Query(..., min_length=1),
    repository: Repository = Depends(get_repository),
) -> None:
    """Delete a monitor by URL."""
    try:
        await repository.delete_monitor(normalize_url(url))
    except MonitorNotFoundError:
        raise HTTPException(status_code=404, detail="Monitor not found") from None


@router.get("/monitors/{monitor_id}/statuses", response_model=list[StatusResponse])
async def monitor_statuses(
    monitor_id: int,
    n: int = Query(default=0, ge=0),
    checker: Checker = Depends(get_checker),
) -> list[StatusResponse]:
    """Return the most recent statuses of one monitor."""
    return [_serialize_status(s) for s in await checker.last_results(monitor_id, n)]
