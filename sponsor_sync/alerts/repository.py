"""Read-only repositories for change records and subscriptions.

The change tables are filled by an upstream diff process; this package
only reads them. Follows the asyncpg repository pattern used by
``SnapshotStore``.
"""

import logging
from collections.abc import Iterable
from datetime import date

from sponsor_sync.alerts.schemas import ChangeKind, Subscription
from sponsor_sync.storage.database import Database
from sponsor_sync.storage.snapshot_store import as_date, store_errors

logger = logging.getLogger(__name__)

CHANGE_TABLES: dict[ChangeKind, str] = {
    ChangeKind.ADDITION: "register_additions",
    ChangeKind.UPDATE: "register_updates",
    ChangeKind.REMOVAL: "register_removals",
}

SUBSCRIPTION_TABLE = "followed_companies"


def _change_table_sql(table: str) -> str:
    return f"""
        CREATE TABLE IF NOT EXISTS {table} (
            id BIGSERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            change_date DATE NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_{table}_change_date ON {table} (change_date);
    """


CREATE_SUBSCRIPTION_TABLE_SQL = f"""
    CREATE TABLE IF NOT EXISTS {SUBSCRIPTION_TABLE} (
        id BIGSERIAL PRIMARY KEY,
        email TEXT NOT NULL,
        company_name TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE INDEX IF NOT EXISTS idx_{SUBSCRIPTION_TABLE}_company_name
        ON {SUBSCRIPTION_TABLE} (company_name);
"""


class ChangeRepository:
    """Reads the additions / updates / removals tables."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the three change tables if missing."""
        async with store_errors("create_change_tables"):
            for table in CHANGE_TABLES.values():
                await self._db.execute(_change_table_sql(table))

    async def get_names(self, kind: ChangeKind, change_date: date | str) -> set[str]:
        """Company names recorded under ``kind`` on ``change_date``."""
        sql = f"SELECT name FROM {CHANGE_TABLES[kind]} WHERE change_date = $1"
        async with store_errors(f"get_{kind.value}_names"):
            rows = await self._db.fetch(sql, as_date(change_date))
        return {row["name"] for row in rows}


class SubscriptionRepository:
    """Reads subscriber follow records."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the subscription table if missing."""
        async with store_errors("create_subscription_table"):
            await self._db.execute(CREATE_SUBSCRIPTION_TABLE_SQL)

    async def get_for_companies(self, company_names: Iterable[str]) -> list[Subscription]:
        """Subscriptions following any of ``company_names``.

        Returns an empty list without querying when no names are given.
        """
        names = sorted(set(company_names))
        if not names:
            return []

        sql = f"""
            SELECT email, company_name FROM {SUBSCRIPTION_TABLE}
            WHERE company_name = ANY($1::text[])
            ORDER BY company_name, email
        """
        async with store_errors("get_subscriptions"):
            rows = await self._db.fetch(sql, names)
        return [Subscription(email=r["email"], company_name=r["company_name"]) for r in rows]
