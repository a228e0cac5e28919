"""Change reconciler: collects the register changes recorded for one date."""

import logging
from datetime import date, datetime, timedelta

from sponsor_sync.alerts.repository import ChangeRepository
from sponsor_sync.alerts.schemas import ChangeKind, ChangeSet
from sponsor_sync.storage.snapshot_store import as_date

logger = logging.getLogger(__name__)


def previous_day(today: date | None = None) -> date:
    """Yesterday in the local calendar (the notification phase's default date)."""
    today = today or datetime.now().date()
    return today - timedelta(days=1)


class ChangeReconciler:
    """
    Reads the three change partitions for a date into a ChangeSet.

    The partitions are read independently; a name found in more than one
    of them is kept in each.
    """

    def __init__(self, repository: ChangeRepository) -> None:
        self._repo = repository

    async def reconcile(self, change_date: date | str) -> ChangeSet:
        change_date = as_date(change_date)

        additions = await self._repo.get_names(ChangeKind.ADDITION, change_date)
        updates = await self._repo.get_names(ChangeKind.UPDATE, change_date)
        removals = await self._repo.get_names(ChangeKind.REMOVAL, change_date)

        changes = ChangeSet(
            date=change_date,
            additions=frozenset(additions),
            updates=frozenset(updates),
            removals=frozenset(removals),
        )
        logger.info(
            "Changes for %s: %d added, %d updated, %d removed",
            change_date, len(additions), len(updates), len(removals),
        )
        return changes
