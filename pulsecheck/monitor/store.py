"""Check and result persistence.

The core only depends on the ``CheckStore`` / ``ResultStore`` protocols. The
SQLite implementation shares one connection between both stores so the outcome
recorder can write a result and the check's rolling state in one transaction.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Protocol

from .errors import PersistenceError
from .models import Check, CheckStatus, HttpMethod, Result, utcnow

logger = logging.getLogger(__name__)

DB_PATH = Path("data") / "pulsecheck.db"


# ── Protocols ────────────────────────────────────────────────────────────────


class CheckStore(Protocol):
    def list_active(self) -> list[Check]: ...

    def get(self, check_id: str) -> Check | None: ...

    def update(self, check: Check) -> bool: ...


class ResultStore(Protocol):
    def create(self, result: Result) -> Result: ...

    def list_by_check(
        self, check_id: str, since: datetime | None = None, limit: int | None = None,
    ) -> list[Result]: ...


# ── Row mapping ──────────────────────────────────────────────────────────────


def _ts(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _check_from_row(row: sqlite3.Row) -> Check:
    return Check(
        id=row["id"],
        name=row["name"],
        url=row["url"],
        method=HttpMethod(row["method"]),
        interval_ms=row["interval_ms"],
        timeout_ms=row["timeout_ms"],
        expected_status=row["expected_status"],
        active=bool(row["active"]),
        last_status=CheckStatus(row["last_status"]),
        last_latency_ms=row["last_latency_ms"],
        consecutive_fails=row["consecutive_fails"],
        last_run_at=_parse_ts(row["last_run_at"]),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _result_from_row(row: sqlite3.Row) -> Result:
    return Result(
        id=row["id"],
        check_id=row["check_id"],
        status=CheckStatus(row["status"]),
        latency_ms=row["latency_ms"],
        http_status=row["http_status"],
        error=row["error"],
        created_at=_parse_ts(row["created_at"]),
    )


# ── SQLite ───────────────────────────────────────────────────────────────────


class Database:
    """One SQLite connection guarded by a lock, with re-entrant transactions."""

    def __init__(self, db_path: Path | str | None = None) -> None:
        self._db_path = str(db_path or DB_PATH)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._depth = 0
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
        return self._conn

    def _init_db(self) -> None:
        with self.transaction() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS checks (
                    id                TEXT PRIMARY KEY,
                    name              TEXT NOT NULL,
                    url               TEXT NOT NULL,
                    method            TEXT NOT NULL DEFAULT 'GET',
                    interval_ms       INTEGER NOT NULL,
                    timeout_ms        INTEGER NOT NULL,
                    expected_status   INTEGER NOT NULL DEFAULT 200,
                    active            INTEGER NOT NULL DEFAULT 1,
                    last_status       TEXT NOT NULL DEFAULT 'unknown',
                    last_latency_ms   INTEGER,
                    consecutive_fails INTEGER NOT NULL DEFAULT 0,
                    last_run_at       TEXT,
                    created_at        TEXT NOT NULL,
                    updated_at        TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_checks_active
                    ON checks (active);

                CREATE TABLE IF NOT EXISTS results (
                    id          TEXT PRIMARY KEY,
                    check_id    TEXT NOT NULL,
                    status      TEXT NOT NULL,
                    latency_ms  INTEGER NOT NULL,
                    http_status INTEGER,
                    error       TEXT,
                    created_at  TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_results_check
                    ON results (check_id, created_at DESC);
            """)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on any error. Nested calls join the outer one."""
        with self._lock:
            outer = self._depth == 0
            self._depth += 1
            try:
                conn = self._get_conn()
                yield conn
                if outer:
                    conn.commit()
            except sqlite3.Error as e:
                if outer and self._conn is not None:
                    self._conn.rollback()
                raise PersistenceError(f"{type(e).__name__}: {e}") from e
            except BaseException:
                if outer and self._conn is not None:
                    self._conn.rollback()
                raise
            finally:
                self._depth -= 1

    def close(self) -> None:
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None


class SQLiteCheckStore:
    """Check definitions and their rolling state."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, check: Check) -> Check:
        with self._db.transaction() as conn:
            conn.execute(
                "INSERT INTO checks (id, name, url, method, interval_ms, timeout_ms, "
                "expected_status, active, last_status, last_latency_ms, consecutive_fails, "
                "last_run_at, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    check.id, check.name, check.url, check.method.value,
                    check.interval_ms, check.timeout_ms, check.expected_status,
                    int(check.active), check.last_status.value, check.last_latency_ms,
                    check.consecutive_fails, _ts(check.last_run_at),
                    _ts(check.created_at), _ts(check.updated_at),
                ),
            )
        return check

    def get(self, check_id: str) -> Check | None:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT * FROM checks WHERE id = ?", (check_id,)).fetchone()
        return _check_from_row(row) if row else None

    def list_all(self) -> list[Check]:
        """All checks, newest first."""
        with self._db.transaction() as conn:
            rows = conn.execute("SELECT * FROM checks ORDER BY created_at DESC").fetchall()
        return [_check_from_row(r) for r in rows]

    def list_active(self) -> list[Check]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM checks WHERE active = 1 ORDER BY created_at",
            ).fetchall()
        return [_check_from_row(r) for r in rows]

    def update(self, check: Check) -> bool:
        """Persist the rolling state of an existing check.

        Only rolling fields are written, so a stale snapshot cannot re-activate
        a soft-removed check, and a deleted row is never re-created.
        """
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE checks SET last_status = ?, last_latency_ms = ?, "
                "consecutive_fails = ?, last_run_at = ?, updated_at = ? WHERE id = ?",
                (
                    check.last_status.value, check.last_latency_ms, check.consecutive_fails,
                    _ts(check.last_run_at), _ts(check.updated_at), check.id,
                ),
            )
        return cursor.rowcount > 0

    def set_active(self, check_id: str, active: bool) -> Check | None:
        with self._db.transaction() as conn:
            conn.execute(
                "UPDATE checks SET active = ?, updated_at = ? WHERE id = ?",
                (int(active), _ts(utcnow()), check_id),
            )
            return self.get(check_id)

    def delete(self, check_id: str) -> bool:
        """Hard-remove a check. Its results are kept."""
        with self._db.transaction() as conn:
            cursor = conn.execute("DELETE FROM checks WHERE id = ?", (check_id,))
        return cursor.rowcount > 0


class SQLiteResultStore:
    """Append-only probe results."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, result: Result) -> Result:
        with self._db.transaction() as conn:
            conn.execute(
                "INSERT INTO results (id, check_id, status, latency_ms, http_status, error, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    result.id, result.check_id, result.status.value, result.latency_ms,
                    result.http_status, result.error, _ts(result.created_at),
                ),
            )
        return result

    def list_by_check(
        self, check_id: str, since: datetime | None = None, limit: int | None = None,
    ) -> list[Result]:
        """Results for a check, newest first."""
        query = "SELECT * FROM results WHERE check_id = ?"
        params: list[Any] = [check_id]
        if since is not None:
            query += " AND created_at >= ?"
            params.append(_ts(since))
        query += " ORDER BY created_at DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        with self._db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_result_from_row(r) for r in rows]

    def cleanup_older_than(self, days: int, now: datetime | None = None) -> int:
        """Remove results older than N days."""
        cutoff = (now or utcnow()) - timedelta(days=days)
        with self._db.transaction() as conn:
            cursor = conn.execute("DELETE FROM results WHERE created_at < ?", (_ts(cutoff),))
        removed = cursor.rowcount
        if removed:
            logger.info("Removed %d results older than %d days", removed, days)
        return removed
