"""Tests for notification channels."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from sponsor_sync.alerts.channels import EmailChannel, LogChannel
from sponsor_sync.alerts.schemas import ChangeKind, Subscription
from sponsor_sync.alerts.templates import build_notification


@pytest.fixture
def notification():
    subscription = Subscription(email="jo@example.com", company_name="Acme Ltd")
    return build_notification(subscription, ChangeKind.UPDATE)


@pytest.fixture
def email_channel():
    return EmailChannel(
        host="smtp.example.com",
        port=2525,
        username="mailer",
        password="secret",
        sender="alerts@example.com",
        product_name="Sponsor Checker",
        product_link="https://checker.example.com/",
    )


def _mock_smtp():
    """Patch smtplib.SMTP and return (patcher target, connection mock)."""
    smtp_cls = MagicMock()
    conn = MagicMock()
    smtp_cls.return_value.__enter__.return_value = conn
    return smtp_cls, conn


class TestEmailChannel:
    def test_name(self, email_channel):
        assert email_channel.name == "email"

    def test_build_message_headers(self, email_channel, notification):
        message = email_channel.build_message(notification)

        assert message["From"] == "alerts@example.com"
        assert message["To"] == "jo@example.com"
        assert message["Subject"] == "Updation Email"

    def test_build_message_has_plain_and_html_parts(self, email_channel, notification):
        message = email_channel.build_message(notification)

        plain = message.get_body(preferencelist=("plain",)).get_content()
        rich = message.get_body(preferencelist=("html",)).get_content()

        assert plain.startswith("Hi Subscriber,")
        assert "Acme Ltd" in plain
        assert "<strong>" not in plain
        assert "<strong>Acme Ltd</strong>" in rich
        assert 'href="https://checker.example.com/"' in rich

    @pytest.mark.asyncio
    async def test_send_success(self, email_channel, notification):
        smtp_cls, conn = _mock_smtp()

        with patch("sponsor_sync.alerts.channels.smtplib.SMTP", smtp_cls):
            assert await email_channel.send(notification) is True

        smtp_cls.assert_called_once_with("smtp.example.com", 2525, timeout=30.0)
        conn.starttls.assert_called_once()
        conn.login.assert_called_once_with("mailer", "secret")
        sent = conn.send_message.call_args.args[0]
        assert sent["To"] == "jo@example.com"

    @pytest.mark.asyncio
    async def test_send_without_tls_or_credentials(self, notification):
        channel = EmailChannel(host="localhost", port=25, use_tls=False)
        smtp_cls, conn = _mock_smtp()

        with patch("sponsor_sync.alerts.channels.smtplib.SMTP", smtp_cls):
            assert await channel.send(notification) is True

        conn.starttls.assert_not_called()
        conn.login.assert_not_called()
        conn.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_smtp_error_returns_false(self, email_channel, notification):
        smtp_cls, conn = _mock_smtp()
        conn.send_message.side_effect = smtplib.SMTPRecipientsRefused({})

        with patch("sponsor_sync.alerts.channels.smtplib.SMTP", smtp_cls):
            assert await email_channel.send(notification) is False

    @pytest.mark.asyncio
    async def test_connection_error_returns_false(self, email_channel, notification):
        smtp_cls = MagicMock(side_effect=ConnectionRefusedError("refused"))

        with patch("sponsor_sync.alerts.channels.smtplib.SMTP", smtp_cls):
            assert await email_channel.send(notification) is False


class TestLogChannel:
    @pytest.mark.asyncio
    async def test_records_and_succeeds(self, notification):
        channel = LogChannel()

        assert await channel.send(notification) is True
        assert channel.sent == [notification]
        assert channel.name == "log"
