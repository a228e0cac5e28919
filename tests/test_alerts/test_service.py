"""Tests for ChangeNotificationService."""

from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest

from sponsor_sync.alerts.channels import LogChannel
from sponsor_sync.alerts.dispatcher import NotificationDispatcher
from sponsor_sync.alerts.reconciler import ChangeReconciler
from sponsor_sync.alerts.schemas import ChangeKind, Subscription
from sponsor_sync.alerts.service import ChangeNotificationService
from sponsor_sync.errors import StoreError


@pytest.fixture
def subscriptions_repo():
    repo = AsyncMock()
    repo.get_for_companies.return_value = []
    return repo


def _service(change_repo, subscriptions_repo, channel):
    return ChangeNotificationService(
        reconciler=ChangeReconciler(change_repo),
        subscriptions=subscriptions_repo,
        dispatcher=NotificationDispatcher(channel),
    )


class TestChangeNotificationService:
    @pytest.mark.asyncio
    async def test_single_addition_single_follower(
        self, mock_change_repo, subscriptions_repo, acme_follower, change_date,
    ):
        mock_change_repo.names[ChangeKind.ADDITION] = {"Acme Ltd"}
        subscriptions_repo.get_for_companies.return_value = [acme_follower]
        channel = LogChannel()

        result = await _service(mock_change_repo, subscriptions_repo, channel).run(change_date)

        assert result.date == change_date
        assert result.companies_changed == 1
        assert result.subscriptions_matched == 1
        assert result.notifications_sent == 1
        assert result.notifications_failed == 0
        assert result.errors == []
        assert len(channel.sent) == 1
        assert channel.sent[0].subject == "Addition Email"
        subscriptions_repo.get_for_companies.assert_awaited_once_with(frozenset({"Acme Ltd"}))

    @pytest.mark.asyncio
    async def test_no_changes_skips_subscription_lookup(
        self, mock_change_repo, subscriptions_repo, change_date,
    ):
        result = await _service(mock_change_repo, subscriptions_repo, LogChannel()).run(change_date)

        assert result.companies_changed == 0
        assert result.notifications_sent == 0
        subscriptions_repo.get_for_companies.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_defaults_to_yesterday(self, mock_change_repo, subscriptions_repo):
        result = await _service(mock_change_repo, subscriptions_repo, LogChannel()).run()

        assert result.date == date.today() - timedelta(days=1)

    @pytest.mark.asyncio
    async def test_reconcile_failure_is_captured(
        self, mock_change_repo, subscriptions_repo, change_date,
    ):
        mock_change_repo.get_names.side_effect = StoreError("db down")

        result = await _service(mock_change_repo, subscriptions_repo, LogChannel()).run(change_date)

        assert result.errors == ["reconcile: db down"]
        assert result.notifications_sent == 0

    @pytest.mark.asyncio
    async def test_subscription_failure_is_captured(
        self, mock_change_repo, subscriptions_repo, change_date,
    ):
        mock_change_repo.names[ChangeKind.REMOVAL] = {"Acme Ltd"}
        subscriptions_repo.get_for_companies.side_effect = StoreError("timeout")

        result = await _service(mock_change_repo, subscriptions_repo, LogChannel()).run(change_date)

        assert result.companies_changed == 1
        assert result.errors == ["subscriptions: timeout"]

    @pytest.mark.asyncio
    async def test_counts_failed_deliveries(
        self, mock_change_repo, subscriptions_repo, change_date,
    ):
        mock_change_repo.names[ChangeKind.UPDATE] = {"Acme Ltd"}
        subscriptions_repo.get_for_companies.return_value = [
            Subscription(email="a@example.com", company_name="Acme Ltd"),
            Subscription(email="b@example.com", company_name="Acme Ltd"),
        ]
        channel = AsyncMock()
        channel.name = "mock"
        channel.send.side_effect = [True, False]

        result = await _service(mock_change_repo, subscriptions_repo, channel).run(change_date)

        assert result.notifications_sent == 1
        assert result.notifications_failed == 1
        assert result.errors == []
