"""Management API — check CRUD, results, uptime summary, manual trigger.

Endpoints:
  GET    /api/health                    — liveness
  POST   /api/checks                    — create a check
  GET    /api/checks                    — list checks, newest first
  GET    /api/checks/{id}               — check detail
  DELETE /api/checks/{id}               — hard delete (results are kept)
  PATCH  /api/checks/{id}/active        — soft remove / restore
  GET    /api/checks/{id}/results       — recent results for charts
  GET    /api/checks/{id}/summary       — windowed uptime
  POST   /api/checks/{id}/run           — probe + record right now
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from pulsecheck.config import settings
from pulsecheck.monitor.errors import CheckValidationError, PersistenceError
from pulsecheck.monitor.models import new_check
from pulsecheck.monitor.scheduler import CheckScheduler
from pulsecheck.monitor.store import SQLiteCheckStore, SQLiteResultStore
from pulsecheck.monitor.summary import parse_window, summarize

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request models ───────────────────────────────────────────────────────────


class CreateCheckBody(BaseModel):
    model_config = {"extra": "forbid"}

    name: str
    url: str
    method: str | None = None
    interval_ms: int | None = None
    timeout_ms: int | None = None
    expected_status: int | None = None
    active: bool = True


class SetActiveBody(BaseModel):
    active: bool


# ── Helpers ──────────────────────────────────────────────────────────────────


def _checks(request: Request) -> SQLiteCheckStore:
    return request.app.state.check_store  # type: ignore[no-any-return]


def _results(request: Request) -> SQLiteResultStore:
    return request.app.state.result_store  # type: ignore[no-any-return]


def _scheduler(request: Request) -> CheckScheduler:
    return request.app.state.scheduler  # type: ignore[no-any-return]


def _results_limit(limit: int | None) -> int:
    if not limit or limit < 1:
        return settings.results_default_limit
    return min(limit, settings.results_max_limit)


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.post("/checks", status_code=201)
def create_check(body: CreateCheckBody, request: Request) -> dict[str, Any]:
    """Validate and store a new check. Rolling state always starts empty."""
    try:
        check = new_check(body.model_dump(exclude_unset=True))
    except CheckValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _checks(request).create(check)
    logger.info("Created check %s (%s %s)", check.id, check.method.value, check.url)
    return check.to_dict()


@router.get("/checks")
def list_checks(request: Request) -> dict[str, Any]:
    checks = _checks(request).list_all()
    return {"checks": [c.to_dict() for c in checks], "count": len(checks)}


@router.get("/checks/{check_id}")
def get_check(check_id: str, request: Request) -> dict[str, Any]:
    check = _checks(request).get(check_id)
    if not check:
        raise HTTPException(status_code=404, detail=f"Check not found: {check_id}")
    return check.to_dict()


@router.delete("/checks/{check_id}", status_code=204)
def delete_check(check_id: str, request: Request) -> Response:
    if _checks(request).delete(check_id):
        logger.info("Deleted check %s", check_id)
    return Response(status_code=204)


@router.patch("/checks/{check_id}/active")
def set_check_active(check_id: str, body: SetActiveBody, request: Request) -> dict[str, Any]:
    check = _checks(request).set_active(check_id, body.active)
    if not check:
        raise HTTPException(status_code=404, detail=f"Check not found: {check_id}")
    return check.to_dict()


@router.get("/checks/{check_id}/results")
def list_results(check_id: str, request: Request, limit: int | None = None) -> dict[str, Any]:
    results = _results(request).list_by_check(check_id, limit=_results_limit(limit))
    return {"check_id": check_id, "results": [r.to_dict() for r in results]}


@router.get("/checks/{check_id}/summary")
def check_summary(check_id: str, request: Request, window: str | None = None) -> dict[str, Any]:
    try:
        span = parse_window(window or settings.summary_window)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return summarize(_results(request), check_id, span).to_dict()


@router.post("/checks/{check_id}/run")
async def run_check(check_id: str, request: Request) -> dict[str, Any]:
    """Probe the check immediately, outside the tick cadence."""
    try:
        result = await _scheduler(request).run_check_now(check_id)
    except PersistenceError as e:
        logger.error("Manual run of %s failed: %s", check_id, e)
        raise HTTPException(status_code=503, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail=f"Check not found: {check_id}")
    return result.to_dict()
