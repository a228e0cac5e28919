"""Change notification service: the optional second phase of a sync.

Runs independently of ingestion, reading the same store:
1. Reconcile the change tables for the target date (default: yesterday)
2. Look up subscriptions following any changed company
3. Dispatch one notification per (subscriber, change kind)

Store failures are captured in the result rather than raised, matching
how the ingestion coordinator reports its cycles.
"""

import time
from datetime import date

import structlog

from sponsor_sync.alerts.dispatcher import NotificationDispatcher
from sponsor_sync.alerts.reconciler import ChangeReconciler, previous_day
from sponsor_sync.alerts.repository import SubscriptionRepository
from sponsor_sync.alerts.schemas import NotificationRunResult
from sponsor_sync.errors import StoreError

logger = structlog.get_logger(__name__)


class ChangeNotificationService:
    """Orchestrates reconcile → subscription lookup → dispatch.

    Usage:
        service = ChangeNotificationService(reconciler, subscriptions, dispatcher)
        result = await service.run()
    """

    def __init__(
        self,
        reconciler: ChangeReconciler,
        subscriptions: SubscriptionRepository,
        dispatcher: NotificationDispatcher,
    ) -> None:
        self._reconciler = reconciler
        self._subscriptions = subscriptions
        self._dispatcher = dispatcher

    async def run(self, target_date: date | None = None) -> NotificationRunResult:
        """Notify subscribers about changes recorded on ``target_date``."""
        target_date = target_date or previous_day()
        result = NotificationRunResult(date=target_date)
        start_time = time.monotonic()

        try:
            changes = await self._reconciler.reconcile(target_date)
        except StoreError as e:
            logger.error("Failed to read change records", date=str(target_date), error=str(e))
            result.errors.append(f"reconcile: {e}")
            result.elapsed_seconds = time.monotonic() - start_time
            return result

        result.companies_changed = len(changes.companies)
        if changes.is_empty:
            logger.info("No register changes", date=str(target_date))
            result.elapsed_seconds = time.monotonic() - start_time
            return result

        try:
            subscriptions = await self._subscriptions.get_for_companies(changes.companies)
        except StoreError as e:
            logger.error("Failed to load subscriptions", error=str(e))
            result.errors.append(f"subscriptions: {e}")
            result.elapsed_seconds = time.monotonic() - start_time
            return result

        result.subscriptions_matched = len(subscriptions)

        deliveries = await self._dispatcher.dispatch(changes, subscriptions)
        result.notifications_sent = sum(1 for d in deliveries if d.success)
        result.notifications_failed = len(deliveries) - result.notifications_sent

        result.elapsed_seconds = time.monotonic() - start_time
        logger.info(
            "Notification run complete",
            date=str(target_date),
            companies_changed=result.companies_changed,
            subscriptions_matched=result.subscriptions_matched,
            sent=result.notifications_sent,
            failed=result.notifications_failed,
        )
        return result
