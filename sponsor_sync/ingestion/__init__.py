"""Register ingestion: locate the published CSV and parse it into rows."""

from sponsor_sync.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig
from sponsor_sync.ingestion.loader import SnapshotLoader, extract_snapshot_date
from sponsor_sync.ingestion.locator import SourceLocator
from sponsor_sync.ingestion.schemas import RegisterRow

__all__ = [
    "HTTPClient",
    "HTTPClientError",
    "RegisterRow",
    "RetryConfig",
    "SnapshotLoader",
    "SourceLocator",
    "extract_snapshot_date",
]
