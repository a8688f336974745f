"""Outcome recorder — one immutable Result plus the check's rolling state, atomically."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from datetime import datetime
from typing import Any

from .models import Check, ProbeOutcome, Result, utcnow
from .store import CheckStore, ResultStore

logger = logging.getLogger(__name__)


class OutcomeRecorder:
    """Persists probe outcomes.

    ``transaction`` is a factory for a context manager that makes the result
    insert and the check update all-or-nothing (``Database.transaction`` for
    the SQLite stores). The rolling state is folded into the row as read
    inside that transaction, never into the snapshot the probe started from,
    so overlapping runs of one check each count. Store errors propagate to
    the caller.
    """

    def __init__(
        self,
        checks: CheckStore,
        results: ResultStore,
        transaction: Callable[[], AbstractContextManager[Any]] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.checks = checks
        self.results = results
        self._transaction = transaction or nullcontext
        self._clock = clock

    def record(self, check: Check, outcome: ProbeOutcome) -> Result:
        """Write the result and update the check.

        The result is kept even if the check was deleted during its probe;
        only the rolling-state update is skipped then.
        """
        with self._transaction():
            now = self._clock()
            result = Result.from_outcome(check.id, outcome, now)
            self.results.create(result)

            current = self.checks.get(check.id)
            if current is None or not self.checks.update(current.apply_outcome(outcome, now)):
                logger.info("Check %s was removed during its probe; result kept, state not updated", check.id)
                return result
            fails = 0 if outcome.healthy else current.consecutive_fails + 1

        logger.debug(
            "Recorded %s for %s (%dms, fails=%d)",
            result.status.value, check.id, result.latency_ms, fails,
        )
        return result
