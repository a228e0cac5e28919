"""
Ingestion coordinator: one locate → load → check → retire → insert cycle.

Runs once per external trigger (cron, ``sponsor-sync ingest``):

1. LOCATING: find the current CSV URL on the publication page
2. LOADING: stream and parse the CSV, stamping rows with the URL date
3. CHECK_DUPLICATE: stop early (successfully) if that date is stored
4. RETIRING: delete snapshots older than ``date - retention_days``
5. INSERTING: write all rows as concurrent fixed-size batches
6. DONE

Any stage failure ends the cycle in FAILED. Nothing is retried or rolled
back in-process; the next trigger starts over. A cycle that failed while
INSERTING leaves a partial snapshot behind, and the next cycle will see
that date as present and skip it.
"""

import asyncio
import enum
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TypeVar

import structlog

from sponsor_sync.errors import SponsorSyncError
from sponsor_sync.ingestion.loader import SnapshotLoader, extract_snapshot_date
from sponsor_sync.ingestion.locator import SourceLocator
from sponsor_sync.ingestion.schemas import RegisterRow
from sponsor_sync.observability.logging import bind_context, cycle_context
from sponsor_sync.storage.snapshot_store import SnapshotStore

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 1000
DEFAULT_RETENTION_DAYS = 10

T = TypeVar("T")


class IngestionState(str, enum.Enum):
    """Stages of one ingestion cycle."""

    LOCATING = "locating"
    LOADING = "loading"
    CHECK_DUPLICATE = "check_duplicate"
    RETIRING = "retiring"
    INSERTING = "inserting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class IngestionResult:
    """Summary of one ingestion cycle."""

    state: IngestionState = IngestionState.LOCATING
    failed_state: IngestionState | None = None
    source_url: str | None = None
    snapshot_date: str | None = None
    rows_loaded: int = 0
    batches_inserted: int = 0
    rows_inserted: int = 0
    rows_retired: int = 0
    skipped: bool = False
    error: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state == IngestionState.DONE


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    """Split ``items`` into consecutive slices of at most ``size``."""
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]


def retention_cutoff(snapshot_date: date | str, retention_days: int) -> date:
    """Oldest date that survives retirement for a snapshot dated ``snapshot_date``."""
    if isinstance(snapshot_date, str):
        snapshot_date = date.fromisoformat(snapshot_date)
    return snapshot_date - timedelta(days=retention_days)


class IngestionCoordinator:
    """
    Drives one ingestion cycle across locator, loader and store.

    Not safe to run concurrently with another cycle against the same
    store: the duplicate check and the insert are not atomic.

    Usage:
        coordinator = IngestionCoordinator(locator, loader, store)
        result = await coordinator.run()
    """

    def __init__(
        self,
        locator: SourceLocator,
        loader: SnapshotLoader,
        store: SnapshotStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._locator = locator
        self._loader = loader
        self._store = store
        self._batch_size = batch_size
        self._retention_days = retention_days

    async def run(self) -> IngestionResult:
        """
        Run one cycle.

        Failures from the error taxonomy are logged and reported through
        the result (``state == FAILED``); they are not raised.
        """
        result = IngestionResult()
        start_time = time.monotonic()

        with cycle_context(cycle="ingest"):
            logger.info("Ingestion cycle started")
            try:
                await self._run_stages(result)
            except SponsorSyncError as e:
                result.failed_state = result.state
                result.state = IngestionState.FAILED
                result.error = f"{type(e).__name__}: {e}"
                logger.error(
                    "Ingestion cycle failed",
                    stage=result.failed_state.value,
                    error=result.error,
                )
            finally:
                result.elapsed_seconds = time.monotonic() - start_time

        return result

    async def _run_stages(self, result: IngestionResult) -> None:
        result.state = IngestionState.LOCATING
        url = await self._locator.locate()
        result.source_url = url
        logger.info("Located register", url=url)

        result.state = IngestionState.LOADING
        rows = await self._loader.load(url)
        result.rows_loaded = len(rows)

        result.state = IngestionState.CHECK_DUPLICATE
        snapshot_date = extract_snapshot_date(url)
        result.snapshot_date = snapshot_date
        bind_context(snapshot_date=snapshot_date)

        if await self._store.exists(snapshot_date):
            result.skipped = True
            result.state = IngestionState.DONE
            logger.info("Snapshot already stored, nothing to do")
            return

        result.state = IngestionState.RETIRING
        cutoff = retention_cutoff(snapshot_date, self._retention_days)
        result.rows_retired = await self._store.retire_older_than(cutoff)
        logger.info(
            "Retired old snapshots",
            cutoff=cutoff.isoformat(),
            rows_retired=result.rows_retired,
        )

        result.state = IngestionState.INSERTING
        await self._insert_all(rows, result)

        result.state = IngestionState.DONE
        logger.info(
            "Ingestion cycle complete",
            rows_inserted=result.rows_inserted,
            batches=result.batches_inserted,
        )

    async def _insert_all(self, rows: list[RegisterRow], result: IngestionResult) -> None:
        """
        Insert every batch concurrently.

        Waits for all batches to settle, then raises the first failure.
        Batches that succeeded stay in the store.
        """
        batches = chunked(rows, self._batch_size)
        outcomes = await asyncio.gather(
            *(self._store.insert_batch(batch) for batch in batches),
            return_exceptions=True,
        )

        failures = [o for o in outcomes if isinstance(o, BaseException)]
        inserted = [o for o in outcomes if not isinstance(o, BaseException)]
        result.batches_inserted = len(inserted)
        result.rows_inserted = sum(inserted)

        if failures:
            logger.error(
                "Batch insertion incomplete, snapshot left partial",
                batches_failed=len(failures),
                batches_inserted=result.batches_inserted,
            )
            raise failures[0]
