"""Tests for the command-line entry point."""

from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

import pytest
from rich.console import Console

import pulsecheck.main as cli
from pulsecheck.monitor.models import CheckStatus, ProbeOutcome, Result, utcnow
from pulsecheck.monitor.probe import TransportResponse
from pulsecheck.monitor.store import Database, SQLiteCheckStore, SQLiteResultStore


class _StubTransport:
    """Answers every request with 200."""

    async def request(self, url: str, method: str, timeout_s: float) -> TransportResponse:
        return TransportResponse(status_code=200, elapsed_ms=7)

    async def aclose(self) -> None:
        pass


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "cli.db"
    monkeypatch.setattr(cli.settings, "database_path", str(path))
    return path


@pytest.fixture
def output(monkeypatch) -> Console:
    console = Console(record=True, width=200)
    monkeypatch.setattr(cli, "console", console)
    return console


def _run(monkeypatch, *args: str) -> None:
    monkeypatch.setattr(sys, "argv", ["pulsecheck", *args])
    cli.main()


class TestTickCommand:
    def test_tick_records_due_checks(self, db_path, output, monkeypatch, make_check) -> None:
        db = Database(db_path)
        SQLiteCheckStore(db).create(make_check(id="site"))
        db.close()
        monkeypatch.setattr(cli, "HttpxTransport", _StubTransport)

        _run(monkeypatch, "tick")

        db = Database(db_path)
        try:
            (result,) = SQLiteResultStore(db).list_by_check("site")
            assert result.status == CheckStatus.HEALTHY
            assert SQLiteCheckStore(db).get("site").last_status == CheckStatus.HEALTHY
        finally:
            db.close()
        text = output.export_text()
        assert "site" in text
        assert "1 due, 1 recorded, 0 failed" in text


class TestSummaryCommand:
    def test_prints_uptime(self, db_path, output, monkeypatch) -> None:
        db = Database(db_path)
        results = SQLiteResultStore(db)
        now = utcnow()
        results.create(Result.from_outcome("c1", ProbeOutcome(healthy=True, latency_ms=5), now - timedelta(minutes=1)))
        results.create(Result.from_outcome("c1", ProbeOutcome(healthy=False, latency_ms=5), now - timedelta(minutes=2)))
        db.close()

        _run(monkeypatch, "summary", "c1", "--window", "1h")

        text = output.export_text()
        assert "1/2 healthy" in text
        assert "50%" in text
        assert "1h" in text

    def test_bad_window_exits_2(self, db_path, output, monkeypatch) -> None:
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "summary", "c1", "--window", "soon")
        assert exc.value.code == 2


class TestCleanupCommand:
    def test_removes_old_results(self, db_path, output, monkeypatch) -> None:
        db = Database(db_path)
        results = SQLiteResultStore(db)
        now = utcnow()
        results.create(Result.from_outcome("c1", ProbeOutcome(healthy=True, latency_ms=5), now - timedelta(days=40)))
        results.create(Result.from_outcome("c1", ProbeOutcome(healthy=True, latency_ms=5), now - timedelta(days=1)))
        db.close()

        _run(monkeypatch, "cleanup", "--days", "30")

        db = Database(db_path)
        try:
            assert len(SQLiteResultStore(db).list_by_check("c1")) == 1
        finally:
            db.close()
        assert "Removed 1 results older than 30 days" in output.export_text()


def test_no_command_exits_1(monkeypatch, output) -> None:
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch)
    assert exc.value.code == 1
