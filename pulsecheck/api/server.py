"""FastAPI server for the uptime monitor."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pulsecheck.api.routes import router
from pulsecheck.config import settings
from pulsecheck.monitor.checkfile import load_check_file, seed_checks
from pulsecheck.monitor.probe import HttpxTransport
from pulsecheck.monitor.scheduler import CheckScheduler
from pulsecheck.monitor.store import Database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database, seed checks and start the scheduler; tear down in reverse."""
    db = Database(settings.database_path)
    app.state.db = db

    transport = HttpxTransport()
    scheduler = CheckScheduler.from_database(
        db,
        transport,
        tick_seconds=settings.tick_seconds,
        max_concurrency=settings.max_concurrency,
    )
    app.state.scheduler = scheduler
    app.state.check_store = scheduler.checks
    app.state.result_store = scheduler.recorder.results

    if settings.checks_file:
        try:
            seed_checks(scheduler.checks, load_check_file(settings.checks_file))
        except Exception:
            logger.exception("Failed to seed checks from %s", settings.checks_file)

    await scheduler.start()

    yield

    # Shutdown
    await scheduler.stop(grace_seconds=settings.shutdown_grace_seconds)
    await transport.aclose()
    db.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title="pulsecheck - HTTP uptime monitor",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")
    return app


app = create_app()
