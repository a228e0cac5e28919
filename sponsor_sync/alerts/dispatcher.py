"""Notification dispatcher fanning change notifications out to subscribers.

Each (subscriber, change kind) pair gets its own send. Sends run
concurrently, bounded by a semaphore, and each one's failure is caught
and logged on its own: one bad address or a flaky relay never stops
the other notifications, and ``dispatch`` itself does not raise.

Pattern: Orchestrator, delegates delivery to a stateless channel.
"""

import asyncio
import logging
from collections.abc import Iterable

from sponsor_sync.alerts.channels import NotificationChannel
from sponsor_sync.alerts.config import NotificationConfig
from sponsor_sync.alerts.schemas import ChangeSet, DeliveryResult, Notification, Subscription
from sponsor_sync.alerts.templates import build_notification

logger = logging.getLogger(__name__)


def plan_notifications(
    changes: ChangeSet,
    subscriptions: Iterable[Subscription],
    recipient_name: str = "Subscriber",
) -> list[Notification]:
    """
    Work out every notification owed for a change set.

    A subscription whose company is in the union gets one notification
    per change set it appears in, so up to three.
    """
    companies = changes.companies
    notifications: list[Notification] = []

    for subscription in subscriptions:
        if subscription.company_name not in companies:
            continue
        for kind in changes.kinds_for(subscription.company_name):
            notifications.append(build_notification(subscription, kind, recipient_name))

    return notifications


class NotificationDispatcher:
    """Sends change notifications through one channel.

    Usage:
        dispatcher = NotificationDispatcher(EmailChannel(...))
        results = await dispatcher.dispatch(changes, subscriptions)
    """

    def __init__(
        self,
        channel: NotificationChannel,
        config: NotificationConfig | None = None,
    ) -> None:
        self._channel = channel
        self._config = config or NotificationConfig()

    @property
    def channel(self) -> NotificationChannel:
        return self._channel

    async def dispatch(
        self,
        changes: ChangeSet,
        subscriptions: Iterable[Subscription],
    ) -> list[DeliveryResult]:
        """Send every notification owed for ``changes``.

        Args:
            changes: Change sets for one date.
            subscriptions: Candidate subscriptions (non-matching ones are ignored).

        Returns:
            One DeliveryResult per notification attempted, in plan order.
        """
        notifications = plan_notifications(
            changes, subscriptions, self._config.recipient_name,
        )
        if not notifications:
            logger.info("No notifications to send for %s", changes.date)
            return []

        semaphore = asyncio.Semaphore(self._config.max_concurrency)
        results = await asyncio.gather(
            *(self._send_one(semaphore, n) for n in notifications)
        )
        self._record_delivery(results)
        return list(results)

    async def _send_one(
        self,
        semaphore: asyncio.Semaphore,
        notification: Notification,
    ) -> DeliveryResult:
        """Send one notification, capturing any failure in the result."""
        async with semaphore:
            try:
                success = await self._channel.send(notification)
            except Exception as e:
                logger.warning(
                    "Channel %s raised sending %s to %s: %s",
                    self._channel.name, notification.kind.value,
                    notification.recipient, e,
                )
                return DeliveryResult(notification=notification, success=False, error=str(e))

        if not success:
            logger.warning(
                "Channel %s failed to deliver %s notification to %s",
                self._channel.name, notification.kind.value, notification.recipient,
            )
            return DeliveryResult(notification=notification, success=False, error="delivery failed")

        return DeliveryResult(notification=notification, success=True)

    def _record_delivery(self, results: Iterable[DeliveryResult]) -> None:
        """Log an overall delivery summary."""
        results = list(results)
        failed = [r for r in results if not r.success]

        if failed and len(failed) == len(results):
            logger.error("All %d notifications failed on %s", len(results), self._channel.name)
        elif failed:
            logger.warning(
                "Partial delivery on %s: ok=%d failed=%d",
                self._channel.name, len(results) - len(failed), len(failed),
            )
        else:
            logger.info("Delivered %d notifications via %s", len(results), self._channel.name)
