"""Schema definitions for register change notifications.

Change records come from three tables (additions, updates, removals),
each holding a company name and the date the change was detected.
Subscriptions pair a subscriber email with the company they follow.
"""

import enum
from dataclasses import dataclass, field
from datetime import date


class ChangeKind(str, enum.Enum):
    """Kind of register change a subscriber can be told about."""

    ADDITION = "addition"
    UPDATE = "update"
    REMOVAL = "removal"


@dataclass(frozen=True)
class Subscription:
    """A subscriber following one company.

    Attributes:
        email: Where notifications go.
        company_name: Register name of the followed company.
    """

    email: str
    company_name: str


@dataclass(frozen=True)
class ChangeSet:
    """Company names changed on one date, per change kind.

    The three sets are read independently and may overlap; a company
    present in both ``additions`` and ``removals`` stays in both.
    """

    date: date
    additions: frozenset[str] = frozenset()
    updates: frozenset[str] = frozenset()
    removals: frozenset[str] = frozenset()

    @property
    def companies(self) -> frozenset[str]:
        """Union of all three sets: candidates for subscription lookup."""
        return self.additions | self.updates | self.removals

    def names_for(self, kind: ChangeKind) -> frozenset[str]:
        return {
            ChangeKind.ADDITION: self.additions,
            ChangeKind.UPDATE: self.updates,
            ChangeKind.REMOVAL: self.removals,
        }[kind]

    def kinds_for(self, company_name: str) -> list[ChangeKind]:
        """Every kind under which ``company_name`` changed, in enum order."""
        return [kind for kind in ChangeKind if company_name in self.names_for(kind)]

    @property
    def is_empty(self) -> bool:
        return not self.companies


@dataclass(frozen=True)
class NotificationContent:
    """Structured message body handed to a channel for rendering."""

    intro: str
    outro: str
    recipient_name: str = "Subscriber"


@dataclass(frozen=True)
class Notification:
    """One message to one subscriber about one kind of change."""

    recipient: str
    subject: str
    content: NotificationContent
    kind: ChangeKind
    company_name: str


@dataclass
class DeliveryResult:
    """Outcome of sending one notification."""

    notification: Notification
    success: bool
    error: str | None = None


@dataclass
class NotificationRunResult:
    """Summary of a notification phase run."""

    date: date
    companies_changed: int = 0
    subscriptions_matched: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0
    errors: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0
