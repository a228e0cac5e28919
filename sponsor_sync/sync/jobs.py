"""
Job entry points wiring settings, HTTP and the database together.

Designed for external cron scheduling:
    ``15 6 * * * sponsor-sync ingest``
    ``30 6 * * * sponsor-sync notify``

The caller owns the ``Database`` (connect before, close after); each job
opens and closes its own HTTP client.
"""

from datetime import date

import structlog

from sponsor_sync.alerts.channels import EmailChannel, LogChannel, NotificationChannel
from sponsor_sync.alerts.config import NotificationConfig
from sponsor_sync.alerts.dispatcher import NotificationDispatcher
from sponsor_sync.alerts.reconciler import ChangeReconciler, previous_day
from sponsor_sync.alerts.repository import ChangeRepository, SubscriptionRepository
from sponsor_sync.alerts.schemas import NotificationRunResult
from sponsor_sync.alerts.service import ChangeNotificationService
from sponsor_sync.config.settings import Settings, get_settings
from sponsor_sync.errors import ConfigurationError
from sponsor_sync.ingestion.http_client import HTTPClient, RetryConfig
from sponsor_sync.ingestion.loader import SnapshotLoader
from sponsor_sync.ingestion.locator import FixedSourceLocator, SourceLocator
from sponsor_sync.storage.database import Database
from sponsor_sync.storage.snapshot_store import SnapshotStore
from sponsor_sync.sync.coordinator import IngestionCoordinator, IngestionResult

logger = structlog.get_logger(__name__)


def build_http_client(settings: Settings) -> HTTPClient:
    retry_config = RetryConfig(
        max_retries=settings.max_http_retries,
        max_backoff_seconds=settings.max_backoff_seconds,
    )
    return HTTPClient(retry_config, timeout=settings.http_timeout_seconds)


def build_channel(settings: Settings, dry_run: bool = False) -> NotificationChannel:
    """
    Log channel for dry runs, SMTP channel otherwise.

    Raises:
        ConfigurationError: If a real run is requested without SMTP_HOST
    """
    if dry_run:
        return LogChannel()
    if not settings.smtp_configured:
        raise ConfigurationError("SMTP_HOST is not set; use --dry-run to log notifications")
    return EmailChannel(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_password,
        sender=settings.mail_from,
        use_tls=settings.smtp_use_tls,
        product_name=settings.product_name,
        product_link=settings.product_link,
    )


async def run_ingestion(
    database: Database,
    url: str | None = None,
    settings: Settings | None = None,
) -> IngestionResult:
    """
    Run one ingestion cycle.

    Args:
        database: Connected Database instance (caller manages lifecycle).
        url: CSV URL to ingest instead of locating it on the listing page.
        settings: Settings (default: from env).

    Returns:
        IngestionResult describing how far the cycle got.
    """
    settings = settings or get_settings()

    async with build_http_client(settings) as http:
        locator = FixedSourceLocator(url) if url else SourceLocator(http, settings.register_page_url)
        coordinator = IngestionCoordinator(
            locator=locator,
            loader=SnapshotLoader(http),
            store=SnapshotStore(database),
            batch_size=settings.batch_size,
            retention_days=settings.retention_days,
        )
        return await coordinator.run()


async def run_notifications(
    database: Database,
    target_date: date | None = None,
    dry_run: bool = False,
    settings: Settings | None = None,
    config: NotificationConfig | None = None,
) -> NotificationRunResult:
    """
    Run the change notification phase.

    Args:
        database: Connected Database instance (caller manages lifecycle).
        target_date: Change date to report (default: yesterday, local time).
        dry_run: Log notifications instead of emailing them.
        settings: Settings (default: from env).
        config: Notification configuration (default: from env).

    Returns:
        NotificationRunResult. Without SMTP settings on a real run nothing
        is read or sent and the result carries a ``channel:`` error.
    """
    settings = settings or get_settings()

    try:
        channel = build_channel(settings, dry_run)
    except ConfigurationError as e:
        logger.error("Cannot send notifications", error=str(e))
        result = NotificationRunResult(date=target_date or previous_day())
        result.errors.append(f"channel: {e}")
        return result

    service = ChangeNotificationService(
        reconciler=ChangeReconciler(ChangeRepository(database)),
        subscriptions=SubscriptionRepository(database),
        dispatcher=NotificationDispatcher(channel, config),
    )
    return await service.run(target_date)


async def init_schema(database: Database) -> None:
    """Create every table the job reads or writes."""
    await SnapshotStore(database).create_tables()
    await ChangeRepository(database).create_tables()
    await SubscriptionRepository(database).create_tables()
