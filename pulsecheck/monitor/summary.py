"""Windowed uptime summary for a single check."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .models import CheckStatus, utcnow
from .store import ResultStore

DEFAULT_WINDOW = timedelta(hours=24)

_UNITS = (("d", 86_400), ("h", 3_600), ("m", 60), ("s", 1))
_WINDOW_RE = re.compile(r"^\s*(\d+)\s*([dhms])\s*$")


@dataclass(frozen=True)
class UptimeSummary:
    window: str
    total_checks: int
    up: int
    uptime_pct: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "window": self.window,
            "total_checks": self.total_checks,
            "up": self.up,
            "uptime_pct": self.uptime_pct,
        }


def format_window(window: timedelta) -> str:
    """Label a window with its largest whole unit: 24h, 7d, 30m, 45s.

    Days are only used from two days up, so one day reads as 24h.
    """
    seconds = int(window.total_seconds())
    for suffix, size in _UNITS:
        if suffix == "d" and seconds < 2 * size:
            continue
        if seconds >= size and seconds % size == 0:
            return f"{seconds // size}{suffix}"
    return f"{seconds}s"


def parse_window(label: str) -> timedelta:
    """Inverse of ``format_window``. Raises ValueError for anything else."""
    match = _WINDOW_RE.match(label or "")
    if not match:
        raise ValueError(f"Invalid window '{label}' (expected e.g. 24h, 7d, 30m)")
    amount = int(match.group(1))
    if amount <= 0:
        raise ValueError("window must be greater than zero")
    size = dict(_UNITS)[match.group(2)]
    return timedelta(seconds=amount * size)


def _percent(up: int, total: int) -> int:
    # Half rounds up, never to even.
    return (200 * up + total) // (2 * total)


def summarize(
    results: ResultStore,
    check_id: str,
    window: timedelta = DEFAULT_WINDOW,
    now: datetime | None = None,
) -> UptimeSummary:
    """Uptime over ``[now - window, now]``.

    With no data the total is floored at 1, so the summary reads 0 up of 1
    (0%) instead of failing.
    """
    now = now or utcnow()
    since = now - window
    rows = [r for r in results.list_by_check(check_id, since=since) if r.created_at <= now]
    total = len(rows) or 1
    up = sum(1 for r in rows if r.status == CheckStatus.HEALTHY)
    return UptimeSummary(
        window=format_window(window),
        total_checks=total,
        up=up,
        uptime_pct=_percent(up, total),
    )
