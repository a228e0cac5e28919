"""
Command-line interface for sponsor-sync.

Provides commands to ingest the sponsor register, notify subscribers
about changes, initialize the database, and inspect stored snapshots.

Usage:
    sponsor-sync ingest    # Run one ingestion cycle
    sponsor-sync notify    # Email subscribers about yesterday's changes
    sponsor-sync run       # Ingest, then optionally notify
    sponsor-sync init-db   # Initialize database
    sponsor-sync status    # List stored snapshots
    sponsor-sync health    # Check service health
"""

import asyncio
import sys
from typing import Any

import click

from sponsor_sync.observability.logging import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Sponsor Sync - UK sponsor register ingestion and change alerts."""
    setup_logging("DEBUG" if debug else None)


def _echo_ingestion(result: Any) -> None:
    click.echo(f"\nIngestion Results ({result.snapshot_date or 'unknown date'}):")
    click.echo(f"  State:          {result.state.value}")
    click.echo(f"  Source URL:     {result.source_url or '-'}")
    click.echo(f"  Rows loaded:    {result.rows_loaded}")
    click.echo(f"  Rows retired:   {result.rows_retired}")
    click.echo(f"  Rows inserted:  {result.rows_inserted} ({result.batches_inserted} batches)")
    click.echo(f"  Time:           {result.elapsed_seconds:.1f}s")
    if result.skipped:
        click.echo("  Snapshot already stored, nothing inserted.")
    if result.error:
        click.echo(f"  Failed at {result.failed_state.value}: {result.error}")


def _echo_notifications(result: Any) -> None:
    click.echo(f"\nNotification Results ({result.date}):")
    click.echo(f"  Companies changed:     {result.companies_changed}")
    click.echo(f"  Subscriptions matched: {result.subscriptions_matched}")
    click.echo(f"  Notifications sent:    {result.notifications_sent}")
    click.echo(f"  Notifications failed:  {result.notifications_failed}")
    for error in result.errors:
        click.echo(f"  Error: {error}")


@main.command()
@click.option("--url", default=None, help="Ingest this CSV URL instead of locating it")
def ingest(url: str | None) -> None:
    """Run one ingestion cycle.

    Exits non-zero when the cycle fails so the scheduler can alert.

    Example:
        sponsor-sync ingest
        sponsor-sync ingest --url https://assets.publishing.service.gov.uk/.../2024-06-01_-_Worker_and_Temporary_Worker.csv
    """
    from sponsor_sync.storage.database import Database
    from sponsor_sync.sync.jobs import run_ingestion

    async def run():
        db = Database()
        await db.connect()
        try:
            return await run_ingestion(db, url=url)
        finally:
            await db.close()

    result = asyncio.run(run())
    _echo_ingestion(result)
    if not result.succeeded:
        sys.exit(1)


@main.command()
@click.option("--date", "target_date", default=None, type=click.DateTime(formats=["%Y-%m-%d"]),
              help="Change date to report (default: yesterday)")
@click.option("--dry-run", is_flag=True, help="Log notifications instead of sending them")
def notify(target_date: Any, dry_run: bool) -> None:
    """Notify subscribers about register changes.

    Example:
        sponsor-sync notify                     # Yesterday's changes
        sponsor-sync notify --date 2024-06-01   # Specific date
        sponsor-sync notify --dry-run           # Log only
    """
    from sponsor_sync.storage.database import Database
    from sponsor_sync.sync.jobs import run_notifications

    async def run():
        db = Database()
        await db.connect()
        try:
            d = target_date.date() if target_date else None
            return await run_notifications(db, target_date=d, dry_run=dry_run)
        finally:
            await db.close()

    result = asyncio.run(run())
    _echo_notifications(result)
    if result.errors:
        sys.exit(1)


@main.command("run")
@click.option("--notify/--no-notify", "with_notify", default=False,
              help="Also run the notification phase after ingesting")
@click.option("--dry-run", is_flag=True, help="Log notifications instead of sending them")
def run_all(with_notify: bool, dry_run: bool) -> None:
    """Ingest, then optionally notify, sharing one database pool."""
    from sponsor_sync.storage.database import Database
    from sponsor_sync.sync.jobs import run_ingestion, run_notifications

    async def run():
        db = Database()
        await db.connect()
        try:
            ingestion = await run_ingestion(db)
            notification = None
            if with_notify:
                notification = await run_notifications(db, dry_run=dry_run)
            return ingestion, notification
        finally:
            await db.close()

    ingestion, notification = asyncio.run(run())
    _echo_ingestion(ingestion)
    if notification is not None:
        _echo_notifications(notification)
    if not ingestion.succeeded or (notification is not None and notification.errors):
        sys.exit(1)


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from sponsor_sync.storage.database import Database
    from sponsor_sync.sync.jobs import init_schema

    async def run():
        db = Database()
        await db.connect()
        try:
            await init_schema(db)
        finally:
            await db.close()

    asyncio.run(run())
    click.echo("Database initialized successfully")


@main.command()
def status() -> None:
    """List stored snapshot dates with their row counts."""
    from sponsor_sync.storage.database import Database
    from sponsor_sync.storage.snapshot_store import SnapshotStore

    async def run():
        db = Database()
        await db.connect()
        try:
            return await SnapshotStore(db).list_dates()
        finally:
            await db.close()

    snapshots = asyncio.run(run())
    if not snapshots:
        click.echo("No snapshots stored")
        return

    click.echo(f"{'Date':<12} {'Rows':>8}")
    for snapshot_date, row_count in snapshots:
        click.echo(f"{snapshot_date.isoformat():<12} {row_count:>8}")


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog

    from sponsor_sync.config.settings import get_settings
    from sponsor_sync.storage.database import Database

    logger = structlog.get_logger()
    settings = get_settings()

    async def check() -> dict[str, bool]:
        results: dict[str, bool] = {}
        try:
            db = Database()
            await db.connect()
            results["postgres"] = await db.health_check()
            await db.close()
        except Exception as e:
            results["postgres"] = False
            logger.error("PostgreSQL health check failed", error=str(e))
        results["smtp_configured"] = settings.smtp_configured
        return results

    results = asyncio.run(check())
    for name, ok in results.items():
        click.echo(f"  {name}: {'OK' if ok else 'FAIL'}")

    if not results["postgres"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
