"""Due-set selection — which checks should run on this tick."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .models import Check


def due_to_run(check: Check, now: datetime) -> bool:
    """True if the check has never run or its interval has fully elapsed."""
    if check.last_run_at is None:
        return True
    return now - check.last_run_at >= check.interval


def select_due(checks: Iterable[Check], now: datetime) -> list[Check]:
    """Active, due checks from a freshly read snapshot, each at most once."""
    seen: set[str] = set()
    due = []
    for check in checks:
        if check.id in seen or not check.active:
            continue
        if due_to_run(check, now):
            seen.add(check.id)
            due.append(check)
    return due
