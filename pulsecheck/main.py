"""Entry point for the pulsecheck uptime monitor."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pulsecheck.config import settings
from pulsecheck.monitor.probe import HttpxTransport
from pulsecheck.monitor.scheduler import CheckScheduler, TickReport
from pulsecheck.monitor.store import Database, SQLiteResultStore
from pulsecheck.monitor.summary import parse_window, summarize

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def run_server() -> None:
    """Start the FastAPI server (the scheduler runs inside its lifespan)."""
    console.print(Panel("Starting pulsecheck API server", style="bold green"))
    uvicorn.run(
        "pulsecheck.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


async def _tick_once() -> TickReport:
    db = Database(settings.database_path)
    transport = HttpxTransport()
    scheduler = CheckScheduler.from_database(
        db, transport, max_concurrency=settings.max_concurrency,
    )
    try:
        return await scheduler.run_due_checks_once()
    finally:
        await scheduler.stop(grace_seconds=0)
        await transport.aclose()
        db.close()


def run_tick() -> None:
    """Run a single scheduler tick and print what was recorded."""
    with console.status("[bold green]Probing due checks..."):
        report = asyncio.run(_tick_once())

    table = Table(title=f"Tick at {report.started_at.isoformat()}")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("HTTP")
    table.add_column("Latency")
    table.add_column("Error")
    for r in report.results:
        style = "green" if r.status.value == "healthy" else "red"
        table.add_row(
            r.check_id, f"[{style}]{r.status.value}[/{style}]",
            str(r.http_status or "-"), f"{r.latency_ms}ms", r.error or "",
        )
    for check_id, error in report.failures.items():
        table.add_row(check_id, "[yellow]not recorded[/yellow]", "-", "-", error)
    console.print(table)
    console.print(f"[dim]{len(report.due)} due, {len(report.results)} recorded, {len(report.failures)} failed[/dim]")


def run_summary(check_id: str, window: str) -> None:
    db = Database(settings.database_path)
    try:
        summary = summarize(SQLiteResultStore(db), check_id, parse_window(window))
    finally:
        db.close()
    console.print(Panel(
        f"{summary.up}/{summary.total_checks} healthy, [bold]{summary.uptime_pct}%[/bold]",
        title=f"{check_id} ({summary.window})",
    ))


def run_cleanup(days: int) -> None:
    db = Database(settings.database_path)
    try:
        removed = SQLiteResultStore(db).cleanup_older_than(days)
    finally:
        db.close()
    console.print(f"[green]Removed {removed} results older than {days} days[/green]")


def main() -> None:
    parser = argparse.ArgumentParser(description="pulsecheck HTTP uptime monitor")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the API server and scheduler")
    sub.add_parser("tick", help="Run every due check once and exit")

    summary_parser = sub.add_parser("summary", help="Print the uptime summary of a check")
    summary_parser.add_argument("check_id", help="The check to summarize")
    summary_parser.add_argument("--window", default=settings.summary_window, help="e.g. 24h, 7d")

    cleanup_parser = sub.add_parser("cleanup", help="Delete results older than N days")
    cleanup_parser.add_argument("--days", type=int, default=30)

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "tick":
        run_tick()
    elif args.command == "summary":
        try:
            run_summary(args.check_id, args.window)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(2)
    elif args.command == "cleanup":
        run_cleanup(args.days)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
