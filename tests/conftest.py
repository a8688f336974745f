"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from pulsecheck.monitor.models import Check
from pulsecheck.monitor.probe import ProbeExecutor, TransportResponse
from pulsecheck.monitor.recorder import OutcomeRecorder
from pulsecheck.monitor.scheduler import CheckScheduler
from pulsecheck.monitor.store import Database, SQLiteCheckStore, SQLiteResultStore

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeTransport:
    """Scripted transport keyed by URL.

    A route is an int (status code), an exception instance (raised), or a
    ``(delay_seconds, status)`` tuple that sleeps before answering.
    """

    def __init__(self, routes: dict[str, object] | None = None, elapsed_ms: int = 42) -> None:
        self.routes = dict(routes or {})
        self.elapsed_ms = elapsed_ms
        self.calls: list[tuple[str, str, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def request(self, url: str, method: str, timeout_s: float) -> TransportResponse:
        self.calls.append((url, method, timeout_s))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            route = self.routes.get(url, 200)
            if isinstance(route, BaseException):
                raise route
            if isinstance(route, tuple):
                delay, route = route
                await asyncio.sleep(delay)
            return TransportResponse(status_code=int(route), elapsed_ms=self.elapsed_ms)
        finally:
            self.in_flight -= 1


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def db(tmp_path: Path) -> Database:
    database = Database(tmp_path / "test_pulsecheck.db")
    yield database
    database.close()


@pytest.fixture
def check_store(db: Database) -> SQLiteCheckStore:
    return SQLiteCheckStore(db)


@pytest.fixture
def result_store(db: Database) -> SQLiteResultStore:
    return SQLiteResultStore(db)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def recorder(db, check_store, result_store, clock) -> OutcomeRecorder:
    return OutcomeRecorder(check_store, result_store, transaction=db.transaction, clock=clock)


@pytest.fixture
def scheduler(check_store, recorder, transport, clock) -> CheckScheduler:
    sched = CheckScheduler(
        check_store, ProbeExecutor(transport), recorder, tick_seconds=1, clock=clock,
    )
    yield sched
    sched._io_pool.shutdown(wait=True)


@pytest.fixture
def make_check():
    """Factory for checks with short timeouts and a fixed creation time."""
    return _make_check


def _make_check(**overrides: object) -> Check:
    fields: dict[str, object] = {
        "name": "api",
        "url": "https://api.example.test/health",
        "interval_ms": 60_000,
        "timeout_ms": 1_000,
        "created_at": T0,
        "updated_at": T0,
    }
    fields.update(overrides)
    return Check(**fields)  # type: ignore[arg-type]
