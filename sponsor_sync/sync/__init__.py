"""Ingestion cycle orchestration."""

from sponsor_sync.sync.coordinator import (
    IngestionCoordinator,
    IngestionResult,
    IngestionState,
)

__all__ = ["IngestionCoordinator", "IngestionResult", "IngestionState"]
