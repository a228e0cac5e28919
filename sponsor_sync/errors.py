"""
Error taxonomy for the sponsor register sync job.

Every failure a cycle can hit maps onto one of these. The ingestion
coordinator catches ``SponsorSyncError`` at stage boundaries and records
the failing stage; anything else is a bug and propagates.
"""


class SponsorSyncError(Exception):
    """Base exception for sync failures."""


class FetchError(SponsorSyncError):
    """Network or HTTP failure reaching the listing page or the CSV."""


class NotFoundError(SponsorSyncError):
    """The listing page carried no CSV attachment link."""


class MalformedUrlError(SponsorSyncError):
    """The CSV URL has no usable ``YYYY-MM-DD`` date token."""


class ParseError(SponsorSyncError):
    """The CSV body could not be parsed into rows."""


class StoreError(SponsorSyncError):
    """A persistent store operation failed."""


class ConfigurationError(SponsorSyncError):
    """Required settings are missing for the requested operation."""
