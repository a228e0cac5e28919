"""
Date-partitioned store for register snapshots.

Rows live in the ``register_rows`` table as JSONB documents keyed by
``snapshot_date``. There is no uniqueness constraint on row content:
the same line appearing twice in a CSV is stored twice. Whether a
snapshot is ingested at most once is decided by the caller through
``exists()`` before inserting.
"""

import json
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import date

import asyncpg

from sponsor_sync.errors import StoreError
from sponsor_sync.ingestion.schemas import RegisterRow
from sponsor_sync.storage.database import Database

logger = logging.getLogger(__name__)

SNAPSHOT_TABLE = "register_rows"

CREATE_SNAPSHOT_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {SNAPSHOT_TABLE} (
    id BIGSERIAL PRIMARY KEY,
    snapshot_date DATE NOT NULL,
    data JSONB NOT NULL,
    inserted_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_{SNAPSHOT_TABLE}_snapshot_date
    ON {SNAPSHOT_TABLE} (snapshot_date);
"""


def as_date(value: date | str) -> date:
    """Accept either a ``date`` or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Not an ISO date: {value!r}") from e


@asynccontextmanager
async def store_errors(operation: str) -> AsyncIterator[None]:
    """Translate driver and connection failures into ``StoreError``."""
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        logger.error(f"Store operation {operation} failed: {e}")
        raise StoreError(f"{operation} failed: {e}") from e


class SnapshotStore:
    """
    Bulk store for register snapshots.

    Usage:
        store = SnapshotStore(db)
        if not await store.exists("2024-06-01"):
            await store.insert_batch(rows)
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the snapshot table and its date index if missing."""
        async with store_errors("create_tables"):
            await self._db.execute(CREATE_SNAPSHOT_TABLE_SQL)

    async def exists(self, snapshot_date: date | str) -> bool:
        """True iff at least one row with ``snapshot_date`` is stored."""
        sql = f"SELECT EXISTS (SELECT 1 FROM {SNAPSHOT_TABLE} WHERE snapshot_date = $1)"
        async with store_errors("exists"):
            return bool(await self._db.fetchval(sql, as_date(snapshot_date)))

    async def count(self, snapshot_date: date | str) -> int:
        """Number of rows stored for ``snapshot_date``."""
        sql = f"SELECT COUNT(*) FROM {SNAPSHOT_TABLE} WHERE snapshot_date = $1"
        async with store_errors("count"):
            count = await self._db.fetchval(sql, as_date(snapshot_date))
        return count or 0

    async def insert_batch(self, rows: Sequence[RegisterRow]) -> int:
        """
        Append one batch of rows in a single transaction.

        Batches are independent of each other: callers may run several
        concurrently, and a failed batch does not undo the others.

        Args:
            rows: Rows to append (callers chunk to bound payload size)

        Returns:
            Number of rows written
        """
        if not rows:
            return 0

        sql = f"""
            INSERT INTO {SNAPSHOT_TABLE} (snapshot_date, data)
            VALUES ($1, $2::jsonb)
        """
        batch_data = [
            (as_date(row.date), json.dumps(row.to_document()))
            for row in rows
        ]

        async with store_errors("insert_batch"):
            async with self._db.transaction() as conn:
                await conn.executemany(sql, batch_data)

        logger.info(f"Inserted batch of {len(rows)} rows")
        return len(rows)

    async def retire_older_than(self, cutoff: date | str) -> int:
        """
        Delete every row dated strictly before ``cutoff``.

        Idempotent: returns 0 when there is nothing to delete.

        Returns:
            Number of rows removed
        """
        sql = f"""
            WITH deleted AS (
                DELETE FROM {SNAPSHOT_TABLE}
                WHERE snapshot_date < $1
                RETURNING 1
            )
            SELECT COUNT(*) FROM deleted
        """
        async with store_errors("retire_older_than"):
            removed = await self._db.fetchval(sql, as_date(cutoff))

        removed = removed or 0
        logger.info(f"Retired {removed} rows dated before {as_date(cutoff).isoformat()}")
        return removed

    async def list_dates(self) -> list[tuple[date, int]]:
        """Stored snapshot dates with their row counts, newest first."""
        sql = f"""
            SELECT snapshot_date, COUNT(*) AS row_count
            FROM {SNAPSHOT_TABLE}
            GROUP BY snapshot_date
            ORDER BY snapshot_date DESC
        """
        async with store_errors("list_dates"):
            records = await self._db.fetch(sql)
        return [(r["snapshot_date"], r["row_count"]) for r in records]
