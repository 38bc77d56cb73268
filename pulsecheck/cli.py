import asyncio
import logging

import typer
from rich.console import Console
from rich.markup import escape
from uvicorn import Config, Server

from pulsecheck.app import create_app
from pulsecheck.config import get_settings

app = typer.Typer(help="pulsecheck HTTP health checker")
console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_migrations(database_url: str) -> None:
    import os
    import subprocess
    import sys

    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        env={**os.environ, "DATABASE_URL": database_url},
    )
    if result.returncode != 0:
        typer.echo("Migration failed", err=True)
        raise typer.Exit(1)


@app.command()
def serve() -> None:
    """Run migrations, start the API server and the scheduler."""
    settings = get_settings()
    configure_logging(settings.log_level)
    run_migrations(settings.database_url)

    fastapi_app = create_app(settings)
    config = Config(
        app=fastapi_app,
        host=settings.app_host,
        port=settings.app_port,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)

    asyncio.run(server.serve())


@app.command()
def migrate() -> None:
    """Run Alembic migrations."""
    settings = get_settings()
    run_migrations(settings.database_url)
    typer.echo("Migrations completed successfully")


@app.command()
def check_once() -> None:
    """Run a single probe cycle over every stored monitor."""
    from .checker import Checker
    from .db import Database, SqlRepository
    from .notifier import LogNotifier
    from .scheduler import Scheduler

    settings = get_settings()
    configure_logging(settings.log_level)
    db = Database(settings.database_url)

    async def run() -> int:
        await db.init()
        repository = SqlRepository(db)
        try:
            async with Checker(
                repository,
                max_concurrency=settings.max_concurrency,
                timeout_s=settings.probe_timeout_s,
                slow_threshold_ms=settings.slow_threshold_ms,
                notifier=LogNotifier(),
                base_url=settings.public_base_url,
            ) as checker:
                return await Scheduler(repository, checker).run_cycle()
        finally:
            await db.close()

    count = asyncio.run(run())
    typer.echo(f"Check cycle completed ({count} monitors)")


@app.command()
def probe(
    url: str = typer.Argument(..., help="URL to probe"),
    timeout: float = typer.Option(10.0, "--timeout", "-t", help="Timeout in seconds"),
) -> None:
    """Probe a single URL and print the result."""
    from .alerts import evaluate
    from .checker import Checker
    from .repository import MemoryRepository

    async def run():
        async with Checker(MemoryRepository(), timeout_s=timeout) as checker:
            return await checker.verify_url(url)

    status = asyncio.run(run())
    if status.available:
        console.print(
            f"[green]UP[/green] {escape(status.url)} {status.http_status} "
            f"({status.latency_ms:.0f}ms)"
        )
        return

    console.print(
        f"[red]DOWN[/red] {escape(status.url)} {status.http_status} "
        f"({status.latency_ms:.0f}ms): {escape(status.error_message)}"
    )
    alert = evaluate(status)
    if alert is not None:
        console.print(escape(f"{alert} severity={alert.severity}"))
    raise typer.Exit(1)


if __name__ == "__main__":
    app()
