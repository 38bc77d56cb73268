"""FastAPI application factory and background lifecycle."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from pulsecheck.api import router as api_router
from pulsecheck.checker import Checker
from pulsecheck.config import Settings, get_settings
from pulsecheck.db import Database, SqlRepository
from pulsecheck.notifier import LogNotifier
from pulsecheck.repository import Repository
from pulsecheck.scheduler import Scheduler


def create_app(
    settings: Settings | None = None,
    repository: Repository | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an explicit ``repository`` the app opens ``settings.database_url``
    on startup and closes it on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Initialize and tear down shared app resources."""
        db = None
        repo = repository
        if repo is None:
            db = Database(settings.database_url)
            await db.init()
            repo = SqlRepository(db)

        checker = Checker(
            repo,
            max_concurrency=settings.max_concurrency,
            timeout_s=settings.probe_timeout_s,
            slow_threshold_ms=settings.slow_threshold_ms,
            notifier=LogNotifier(),
            base_url=settings.public_base_url,
            transport=transport,
        )
        scheduler = Scheduler(repo, checker, interval_s=settings.schedule_interval_s)

        app.state.repository = repo
        app.state.checker = checker
        app.state.scheduler = scheduler

        await scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()
            await checker.aclose()
            if db is not None:
                await db.close()

    app = FastAPI(title="pulsecheck", lifespan=lifespan)
    app.include_router(api_router, prefix="/api")

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        """Return a simple health status."""
        return {"status": "ok"}

    return app
