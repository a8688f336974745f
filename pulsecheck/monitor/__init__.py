"""Monitor core — probe executor, outcome recorder, due-set selector, scheduler, summary."""

from .due import due_to_run, select_due
from .errors import CheckValidationError, MonitorError, PersistenceError, TransportError
from .models import Check, CheckStatus, HttpMethod, ProbeOutcome, Result, new_check
from .probe import HttpTransport, HttpxTransport, ProbeExecutor, TransportResponse
from .recorder import OutcomeRecorder
from .scheduler import CheckScheduler, TickReport
from .store import CheckStore, Database, ResultStore, SQLiteCheckStore, SQLiteResultStore
from .summary import UptimeSummary, format_window, parse_window, summarize

__all__ = [
    "Check",
    "CheckScheduler",
    "CheckStatus",
    "CheckStore",
    "CheckValidationError",
    "Database",
    "HttpMethod",
    "HttpTransport",
    "HttpxTransport",
    "MonitorError",
    "OutcomeRecorder",
    "PersistenceError",
    "ProbeExecutor",
    "ProbeOutcome",
    "Result",
    "ResultStore",
    "SQLiteCheckStore",
    "SQLiteResultStore",
    "TickReport",
    "TransportError",
    "TransportResponse",
    "UptimeSummary",
    "due_to_run",
    "format_window",
    "new_check",
    "parse_window",
    "select_due",
    "summarize",
]
