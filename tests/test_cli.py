"""Test the cli module."""

from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
from typer.testing import CliRunner

from pulsecheck import cli
from pulsecheck.probe import build_client

runner = CliRunner()


class _DummyServer:
    def __init__(self, _config: object) -> None:
        pass

    async def serve(self) -> None:
        return None


def _fake_client(status_code: int):
    def factory(timeout_s: float, transport: object = None) -> httpx.AsyncClient:
        return build_client(
            timeout_s, transport=httpx.MockTransport(lambda request: httpx.Response(status_code))
        )

    return factory


def test_serve_preserves_environment_for_migrations(monkeypatch: pytest.MonkeyPatch) -> None:
    """Serve should pass existing env vars to migration subprocess."""
    captured: dict[str, object] = {}

    monkeypatch.setenv("TEST_SENTINEL", "present")
    monkeypatch.setattr(
        cli,
        "get_settings",
        lambda: SimpleNamespace(
            database_url="postgresql+asyncpg://u:p@localhost:5432/db",
            app_host="127.0.0.1",
            app_port=8000,
            log_level="INFO",
        ),
    )
    monkeypatch.setattr(cli, "create_app", lambda settings: object())
    monkeypatch.setattr(cli, "Config", lambda **kwargs: kwargs)
    monkeypatch.setattr(cli, "Server", _DummyServer)

    def _fake_run(cmd: list[str], env: dict[str, str] | None = None) -> SimpleNamespace:
        captured["cmd"] = cmd
        captured["env"] = env
        return SimpleNamespace(returncode=0)

    monkeypatch.setattr("subprocess.run", _fake_run)

    cli.serve()

    env = captured["env"]
    assert isinstance(env, dict)
    assert env["TEST_SENTINEL"] == "present"
    assert env["DATABASE_URL"] == "postgresql+asyncpg://u:p@localhost:5432/db"


def test_migrate_exits_when_alembic_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        cli,
        "get_settings",
        lambda: SimpleNamespace(database_url="postgresql+asyncpg://u:p@localhost:5432/db"),
    )
    monkeypatch.setattr(
        "subprocess.run", lambda cmd, env=None: SimpleNamespace(returncode=1)
    )

    result = runner.invoke(cli.app, ["migrate"])

    assert result.exit_code == 1


def test_probe_command_reports_up(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pulsecheck.checker.build_client", _fake_client(200))

    result = runner.invoke(cli.app, ["probe", "example.com"])

    assert result.exit_code == 0
    assert "UP" in result.stdout
    assert "http://example.com" in result.stdout


def test_probe_command_exits_nonzero_when_down(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pulsecheck.checker.build_client", _fake_client(503))

    result = runner.invoke(cli.app, ["probe", "https://example.com"])

    assert result.exit_code == 1
    assert "DOWN" in result.stdout
    assert "Service Unavailable" in result.stdout
    assert "ServiceUnavailable[" in result.stdout


def test_check_once_runs_a_cycle_against_database(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    monkeypatch.setattr(
        cli,
        "get_settings",
        lambda: SimpleNamespace(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}",
            max_concurrency=2,
            probe_timeout_s=1.0,
            slow_threshold_ms=800,
            public_base_url="",
            log_level="WARNING",
        ),
    )

    result = runner.invoke(cli.app, ["check-once"])

    assert result.exit_code == 0
    assert "0 monitors" in result.stdout
