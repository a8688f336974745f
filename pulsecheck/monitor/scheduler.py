"""Check scheduler — fixed-cadence ticks that run every due check concurrently.

Each tick reads a fresh snapshot of the active checks, selects the due ones and
fans out one probe-and-record unit per check. The tick joins all of its units
before the next tick's selection, so a check's state is always updated by
unit N before unit N+1 is considered. Store I/O runs in a thread pool to keep
the event loop free while SQLite blocks.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from contextlib import AbstractAsyncContextManager, nullcontext
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

from .due import select_due
from .models import Check, Result, utcnow
from .probe import HttpTransport, ProbeExecutor
from .recorder import OutcomeRecorder
from .store import CheckStore, Database, SQLiteCheckStore, SQLiteResultStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class TickReport:
    """What happened during one tick."""

    started_at: datetime
    due: list[str] = field(default_factory=list)
    results: list[Result] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "due": self.due,
            "results": [r.to_dict() for r in self.results],
            "failures": self.failures,
        }


class CheckScheduler:
    """Owns the tick loop, the probe executor and the recorder."""

    def __init__(
        self,
        checks: CheckStore,
        executor: ProbeExecutor,
        recorder: OutcomeRecorder,
        tick_seconds: float = 40.0,
        max_concurrency: int = 0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if tick_seconds <= 0:
            raise ValueError("tick_seconds must be greater than zero")
        if max_concurrency < 0:
            raise ValueError("max_concurrency cannot be negative")
        self.checks = checks
        self.executor = executor
        self.recorder = recorder
        self.tick_seconds = tick_seconds
        self.max_concurrency = max_concurrency
        self._clock = clock
        self._io_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="pulsecheck-io")
        self._io_pool_closed = False
        self._task: asyncio.Task[None] | None = None
        self._stopping: asyncio.Event | None = None
        self._running = False
        self.last_report: TickReport | None = None

    @classmethod
    def from_database(
        cls,
        db: Database,
        transport: HttpTransport,
        tick_seconds: float = 40.0,
        max_concurrency: int = 0,
    ) -> "CheckScheduler":
        """Wire SQLite stores, an executor and a transactional recorder."""
        checks = SQLiteCheckStore(db)
        recorder = OutcomeRecorder(checks, SQLiteResultStore(db), transaction=db.transaction)
        return cls(
            checks,
            ProbeExecutor(transport),
            recorder,
            tick_seconds=tick_seconds,
            max_concurrency=max_concurrency,
        )

    @property
    def running(self) -> bool:
        return self._running

    async def _io(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._io_pool, functools.partial(fn, *args))

    # ── One tick ─────────────────────────────────────────────────────────

    async def run_due_checks_once(self, now: datetime | None = None) -> TickReport:
        """Run every due check once and wait for all of them to settle.

        A failure inside one check's unit is recorded in the report and never
        affects its siblings. Only a failure to read the check collection
        itself propagates.
        """
        now = now or self._clock()
        active = await self._io(self.checks.list_active)
        due = select_due(active, now)
        report = TickReport(started_at=now, due=[c.id for c in due])
        if not due:
            logger.debug("Tick at %s: nothing due (%d active)", now.isoformat(), len(active))
            return report

        slot: AbstractAsyncContextManager[Any] = nullcontext()
        if self.max_concurrency:
            slot = asyncio.Semaphore(self.max_concurrency)

        outcomes = await asyncio.gather(
            *(self._run_unit(check, slot) for check in due),
            return_exceptions=True,
        )
        for check, outcome in zip(due, outcomes):
            if isinstance(outcome, BaseException):
                report.failures[check.id] = f"{type(outcome).__name__}: {outcome}"
                logger.error(
                    "Check %s (%s) failed to record: %s", check.id, check.name, outcome,
                    exc_info=outcome,
                )
            else:
                report.results.append(outcome)

        logger.info(
            "Tick at %s: %d due, %d recorded, %d failed",
            now.isoformat(), len(due), len(report.results), len(report.failures),
        )
        return report

    async def _run_unit(
        self, check: Check, slot: AbstractAsyncContextManager[Any] | None = None,
    ) -> Result:
        async with slot or nullcontext():
            outcome = await self.executor.probe(check)
            return await self._io(self.recorder.record, check, outcome)

    async def run_check_now(self, check_id: str) -> Result | None:
        """Probe and record one check immediately, whether or not it is due."""
        check = await self._io(self.checks.get, check_id)
        if check is None:
            return None
        return await self._run_unit(check)

    # ── Loop ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start ticking in the background. The first tick runs immediately."""
        if self._running:
            return
        if self._io_pool_closed:
            self._io_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="pulsecheck-io")
            self._io_pool_closed = False
        self._running = True
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name="pulsecheck-scheduler")
        logger.info(
            "Scheduler started (tick=%ss, max_concurrency=%s)",
            self.tick_seconds, self.max_concurrency or "unbounded",
        )

    async def stop(self, grace_seconds: float = 10.0) -> None:
        """Let the current tick finish for up to ``grace_seconds``, then abandon it.

        Each check's recording is a single transaction, so abandoned units leave
        no partial state behind.
        """
        self._running = False
        if self._stopping is not None:
            self._stopping.set()
        task, self._task = self._task, None
        if task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=grace_seconds)
            except asyncio.TimeoutError:
                logger.warning("Tick still running after %ss; abandoning in-flight probes", grace_seconds)
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
        self._io_pool.shutdown(wait=False)
        self._io_pool_closed = True
        logger.info("Scheduler stopped")

    async def _loop(self) -> None:
        while self._running:
            started = time.monotonic()
            try:
                self.last_report = await self.run_due_checks_once()
            except Exception:
                logger.exception("Scheduler tick failed")

            delay = max(0.0, self.tick_seconds - (time.monotonic() - started))
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
