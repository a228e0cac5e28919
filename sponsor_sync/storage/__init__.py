"""Storage layer for register snapshots."""

from sponsor_sync.storage.database import Database
from sponsor_sync.storage.snapshot_store import SnapshotStore

__all__ = ["Database", "SnapshotStore"]
