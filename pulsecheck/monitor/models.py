"""Check and Result models plus construction-time validation."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from .errors import CheckValidationError

DEFAULT_INTERVAL_MS = 60_000
DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_EXPECTED_STATUS = 200

URL_SCHEMES = {"http", "https"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


# ── Enums ────────────────────────────────────────────────────────────────────


class HttpMethod(str, Enum):
    GET = "GET"
    HEAD = "HEAD"


class CheckStatus(str, Enum):
    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


# ── Models ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProbeOutcome:
    """Classified outcome of a single probe."""

    healthy: bool
    latency_ms: int
    http_status: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class Check:
    """A monitored endpoint definition plus its latest rolling state."""

    name: str
    url: str
    method: HttpMethod = HttpMethod.GET
    interval_ms: int = DEFAULT_INTERVAL_MS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    expected_status: int = DEFAULT_EXPECTED_STATUS
    active: bool = True
    last_status: CheckStatus = CheckStatus.UNKNOWN
    last_latency_ms: int | None = None
    consecutive_fails: int = 0
    last_run_at: datetime | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def interval(self) -> timedelta:
        return timedelta(milliseconds=self.interval_ms)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def apply_outcome(self, outcome: ProbeOutcome, now: datetime) -> "Check":
        """Return a copy of this check with the outcome folded into its rolling state."""
        last_run_at = now
        if self.last_run_at is not None and self.last_run_at > now:
            last_run_at = self.last_run_at
        return replace(
            self,
            last_status=CheckStatus.HEALTHY if outcome.healthy else CheckStatus.UNHEALTHY,
            last_latency_ms=outcome.latency_ms,
            consecutive_fails=0 if outcome.healthy else self.consecutive_fails + 1,
            last_run_at=last_run_at,
            updated_at=now,
        )

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["method"] = self.method.value
        d["last_status"] = self.last_status.value
        for key in ("last_run_at", "created_at", "updated_at"):
            d[key] = d[key].isoformat() if d[key] else None
        return d


@dataclass(frozen=True)
class Result:
    """Immutable record of one probe attempt."""

    check_id: str
    status: CheckStatus
    latency_ms: int
    http_status: int | None = None
    error: str | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_outcome(cls, check_id: str, outcome: ProbeOutcome, now: datetime) -> "Result":
        healthy = outcome.healthy
        return cls(
            check_id=check_id,
            status=CheckStatus.HEALTHY if healthy else CheckStatus.UNHEALTHY,
            latency_ms=outcome.latency_ms,
            http_status=outcome.http_status,
            error=None if healthy else (outcome.error or "Unknown failure"),
            created_at=now,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "check_id": self.check_id,
            "status": self.status.value,
            "latency_ms": self.latency_ms,
            "http_status": self.http_status,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
        }


# ── Validation ───────────────────────────────────────────────────────────────

_ALLOWED_FIELDS = {
    "name", "url", "method", "interval_ms", "timeout_ms", "expected_status", "active",
}


def _require_str(payload: dict[str, Any], name: str) -> str:
    value = payload.get(name)
    if not isinstance(value, str):
        raise CheckValidationError(name, "must be a string")
    value = value.strip()
    if not value:
        raise CheckValidationError(name, "cannot be empty")
    return value


def _positive_int(payload: dict[str, Any], name: str, default: int) -> int:
    value = payload.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise CheckValidationError(name, "must be an integer")
    if value <= 0:
        raise CheckValidationError(name, "must be greater than zero")
    return value


def validate_url(url: str) -> str:
    parsed = urlparse(url)
    if (parsed.scheme or "").lower() not in URL_SCHEMES:
        raise CheckValidationError("url", "scheme must be http or https")
    if not parsed.hostname:
        raise CheckValidationError("url", "must include a hostname")
    return url


def validate_method(value: Any) -> HttpMethod:
    if value is None:
        return HttpMethod.GET
    if not isinstance(value, str):
        raise CheckValidationError("method", "must be a string")
    try:
        return HttpMethod(value.strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in HttpMethod)
        raise CheckValidationError("method", f"'{value}' is not one of {allowed}") from None


def validate_expected_status(value: Any) -> int:
    if value is None:
        return DEFAULT_EXPECTED_STATUS
    if isinstance(value, bool) or not isinstance(value, int):
        raise CheckValidationError("expected_status", "must be an integer")
    if value < 100 or value > 599:
        raise CheckValidationError("expected_status", "must be a valid HTTP status code")
    return value


def new_check(payload: dict[str, Any], now: datetime | None = None) -> Check:
    """Validate a management payload and build a fresh Check.

    Rolling state always starts empty; callers cannot seed it.
    """
    if not isinstance(payload, dict):
        raise CheckValidationError("body", "must be an object")
    unknown = sorted(set(payload) - _ALLOWED_FIELDS)
    if unknown:
        raise CheckValidationError(unknown[0], "unknown field")

    active = payload.get("active", True)
    if not isinstance(active, bool):
        raise CheckValidationError("active", "must be a boolean")

    created = now or utcnow()
    return Check(
        name=_require_str(payload, "name"),
        url=validate_url(_require_str(payload, "url")),
        method=validate_method(payload.get("method")),
        interval_ms=_positive_int(payload, "interval_ms", DEFAULT_INTERVAL_MS),
        timeout_ms=_positive_int(payload, "timeout_ms", DEFAULT_TIMEOUT_MS),
        expected_status=validate_expected_status(payload.get("expected_status")),
        active=active,
        created_at=created,
        updated_at=created,
    )
