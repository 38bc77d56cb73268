"""Test the API routes."""

from __future__ import annotations

from collections.abc import Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from pulsecheck.app import create_app
from pulsecheck.config import Settings
from pulsecheck.repository import MemoryRepository


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "down.example":
        return httpx.Response(503)
    return httpx.Response(200)


@pytest.fixture
def client() -> Iterator[TestClient]:
    settings = Settings(
        database_url="sqlite+aiosqlite://",
        schedule_interval_s=3600,
    )
    app = create_app(
        settings,
        repository=MemoryRepository(),
        transport=httpx.MockTransport(_handler),
    )
    with TestClient(app) as test_client:
        yield test_client


def test_healthz(client: TestClient) -> None:
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_verify_registers_monitor_and_returns_status(client: TestClient) -> None:
    response = client.post("/api/verify", json={"url": "example.com"})

    assert response.status_code == 200
    status = response.json()["status"]
    assert status["available"] is True
    assert status["http_status"] == 200
    assert status["url"] == "http://example.com"
    assert status["monitor_id"] == 1

    monitors = client.get("/api/monitors").json()
    assert [m["url"] for m in monitors] == ["http://example.com"]


def test_verify_reuses_existing_monitor(client: TestClient) -> None:
    client.post("/api/verify", json={"url": "http://example.com"})
    client.post("/api/verify", json={"url": "example.com"})

    assert len(client.get("/api/monitors").json()) == 1
    statuses = client.get("/api/monitors/1/statuses").json()
    assert len(statuses) == 2


def test_verify_rejects_blank_url(client: TestClient) -> None:
    response = client.post("/api/verify", json={"url": "   "})

    assert response.status_code == 400


def test_verify_reports_unavailable_target(client: TestClient) -> None:
    response = client.post("/api/verify", json={"url": "http://down.example"})

    status = response.json()["status"]
    assert status["available"] is False
    assert status["http_status"] == 503
    assert status["error_type"] == "http"
    assert status["error_message"] == "Service Unavailable"


def test_results_are_newest_first_and_limited(client: TestClient) -> None:
    client.post("/api/verify", json={"url": "http://a.example"})
    client.post("/api/verify", json={"url": "http://down.example"})
    client.post("/api/verify", json={"url": "http://b.example"})

    results = client.get("/api/results", params={"limit": 2}).json()["results"]

    assert [r["url"] for r in results] == ["http://b.example", "http://down.example"]


def test_monitor_statuses_honours_n(client: TestClient) -> None:
    for _ in range(3):
        client.post("/api/verify", json={"url": "http://example.com"})

    assert len(client.get("/api/monitors/1/statuses", params={"n": 2}).json()) == 2


def test_create_and_delete_monitor(client: TestClient) -> None:
    created = client.post("/api/monitors", json={"name": "Docs", "url": "docs.example"})

    assert created.status_code == 201
    assert created.json()["url"] == "http://docs.example"
    assert created.json()["name"] == "Docs"

    assert client.delete("/api/monitors", params={"url": "docs.example"}).status_code == 204
    assert client.get("/api/monitors").json() == []


def test_delete_unknown_monitor_returns_404(client: TestClient) -> None:
    response = client.delete("/api/monitors", params={"url": "http://missing.example"})

    assert response.status_code == 404


def test_delete_results_clears_everything(client: TestClient) -> None:
    client.post("/api/verify", json={"url": "http://example.com"})

    response = client.delete("/api/results")

    assert response.json() == {"ok": True}
    assert client.get("/api/monitors").json() == []
    assert client.get("/api/results").json() == {"results": []}
