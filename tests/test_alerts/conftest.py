"""Shared fixtures for notification tests."""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from sponsor_sync.alerts.channels import LogChannel
from sponsor_sync.alerts.schemas import ChangeKind, ChangeSet, Subscription


@pytest.fixture
def change_date() -> date:
    return date(2024, 6, 1)


@pytest.fixture
def acme_added(change_date) -> ChangeSet:
    return ChangeSet(date=change_date, additions=frozenset({"Acme Ltd"}))


@pytest.fixture
def acme_follower() -> Subscription:
    return Subscription(email="jo@example.com", company_name="Acme Ltd")


@pytest.fixture
def log_channel() -> LogChannel:
    return LogChannel()


@pytest.fixture
def mock_change_repo():
    """ChangeRepository returning names from a {kind: set} mapping."""
    names: dict[ChangeKind, set[str]] = {kind: set() for kind in ChangeKind}
    repo = AsyncMock()

    async def get_names(kind, change_date):
        return set(names[kind])

    repo.get_names = AsyncMock(side_effect=get_names)
    repo.names = names
    return repo
