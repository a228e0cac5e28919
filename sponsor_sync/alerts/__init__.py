"""Register change notifications.

Components:
- ChangeKind / ChangeSet / Subscription: change and follower records
- ChangeRepository / SubscriptionRepository: read-only table access
- ChangeReconciler: collects one date's changes into a ChangeSet
- NotificationChannel / EmailChannel / LogChannel: delivery channels
- NotificationConfig / NotificationDispatcher: fan-out to subscribers
- ChangeNotificationService: reconcile → lookup → dispatch
"""

from sponsor_sync.alerts.channels import EmailChannel, LogChannel, NotificationChannel
from sponsor_sync.alerts.config import NotificationConfig
from sponsor_sync.alerts.dispatcher import NotificationDispatcher, plan_notifications
from sponsor_sync.alerts.reconciler import ChangeReconciler, previous_day
from sponsor_sync.alerts.repository import ChangeRepository, SubscriptionRepository
from sponsor_sync.alerts.schemas import (
    ChangeKind,
    ChangeSet,
    DeliveryResult,
    Notification,
    NotificationContent,
    NotificationRunResult,
    Subscription,
)
from sponsor_sync.alerts.service import ChangeNotificationService

__all__ = [
    "ChangeKind",
    "ChangeNotificationService",
    "ChangeReconciler",
    "ChangeRepository",
    "ChangeSet",
    "DeliveryResult",
    "EmailChannel",
    "LogChannel",
    "Notification",
    "NotificationChannel",
    "NotificationConfig",
    "NotificationContent",
    "NotificationDispatcher",
    "NotificationRunResult",
    "Subscription",
    "SubscriptionRepository",
    "plan_notifications",
    "previous_day",
]
