"""Tests for the windowed uptime summary."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from pulsecheck.monitor.models import ProbeOutcome, Result
from pulsecheck.monitor.summary import format_window, parse_window, summarize

NOW = datetime(2025, 1, 2, 12, 0, 0, tzinfo=timezone.utc)


def _add(result_store, check_id: str, age: timedelta, healthy: bool) -> None:
    outcome = ProbeOutcome(healthy=healthy, latency_ms=10, http_status=200 if healthy else 500)
    result_store.create(Result.from_outcome(check_id, outcome, NOW - age))


class TestSummarize:
    def test_empty_means_no_data(self, result_store) -> None:
        s = summarize(result_store, "c1", now=NOW)
        assert s.to_dict() == {"window": "24h", "total_checks": 1, "up": 0, "uptime_pct": 0}

    def test_counts_only_inside_window(self, result_store) -> None:
        _add(result_store, "c1", timedelta(hours=1), True)
        _add(result_store, "c1", timedelta(hours=2), False)
        _add(result_store, "c1", timedelta(hours=25), True)
        _add(result_store, "c2", timedelta(hours=1), True)

        s = summarize(result_store, "c1", now=NOW)
        assert s.total_checks == 2
        assert s.up == 1
        assert s.uptime_pct == 50

    def test_window_boundary_is_inclusive(self, result_store) -> None:
        _add(result_store, "c1", timedelta(hours=24), True)
        assert summarize(result_store, "c1", now=NOW).total_checks == 1

    def test_ignores_results_after_now(self, result_store) -> None:
        _add(result_store, "c1", timedelta(minutes=-5), True)
        assert summarize(result_store, "c1", now=NOW).up == 0

    def test_rounds_half_up(self, result_store) -> None:
        # 1 of 8 = 12.5% -> 13
        _add(result_store, "c1", timedelta(minutes=1), True)
        for i in range(7):
            _add(result_store, "c1", timedelta(minutes=2 + i), False)
        assert summarize(result_store, "c1", now=NOW).uptime_pct == 13

    def test_rounds_down_below_half(self, result_store) -> None:
        # 1 of 3 = 33.3% -> 33
        _add(result_store, "c1", timedelta(minutes=1), True)
        _add(result_store, "c1", timedelta(minutes=2), False)
        _add(result_store, "c1", timedelta(minutes=3), False)
        assert summarize(result_store, "c1", now=NOW).uptime_pct == 33

    def test_custom_window(self, result_store) -> None:
        _add(result_store, "c1", timedelta(days=3), True)
        s = summarize(result_store, "c1", window=timedelta(days=7), now=NOW)
        assert s.window == "7d"
        assert s.uptime_pct == 100


class TestWindowLabels:
    @pytest.mark.parametrize(
        ("window", "label"),
        [
            (timedelta(hours=24), "24h"),
            (timedelta(days=7), "7d"),
            (timedelta(minutes=30), "30m"),
            (timedelta(seconds=45), "45s"),
            (timedelta(minutes=90), "90m"),
        ],
    )
    def test_format(self, window, label) -> None:
        assert format_window(window) == label
        assert parse_window(label) == window

    @pytest.mark.parametrize("label", ["", "24", "h", "0h", "-1h", "1w", "abc"])
    def test_parse_rejects(self, label) -> None:
        with pytest.raises(ValueError):
            parse_window(label)
