"""Exception types for the monitor core.

Transport failures and status mismatches are classified as unhealthy outcomes,
they never escape the probe executor. Persistence failures are surfaced to the
scheduler, which contains them to the single check that hit them.
"""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for monitor errors."""


class TransportError(MonitorError):
    """Raised when the network layer could not produce a response."""


class PersistenceError(MonitorError):
    """Raised when the check or result store could not be read or written."""


class CheckValidationError(MonitorError, ValueError):
    """Raised when a check definition fails construction-time validation."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")
