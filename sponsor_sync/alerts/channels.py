"""Notification channel implementations for change delivery.

Provides an ABC for notification channels plus an SMTP email channel
and a log-only channel for dry runs. Channels report failure by
returning False; they never raise for delivery problems.
"""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

from sponsor_sync.alerts.schemas import Notification
from sponsor_sync.alerts.templates import render_html, render_plaintext

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """Abstract base for notification delivery channels."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this channel (e.g. 'email', 'log')."""

    @abstractmethod
    async def send(self, notification: Notification) -> bool:
        """Deliver a notification through this channel.

        Args:
            notification: Notification to deliver.

        Returns:
            True if delivery succeeded, False otherwise.
        """


class EmailChannel(NotificationChannel):
    """Delivers notifications as multipart (plain + HTML) email over SMTP.

    Opens a new SMTP connection per message in a worker thread, so
    concurrent sends do not block the event loop or share a connection.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        sender: str = "notification@breezeconsult.org",
        use_tls: bool = True,
        product_name: str = "UK Sponsor License Checker",
        product_link: str = "https://www.google.com/",
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._sender = sender
        self._use_tls = use_tls
        self._product_name = product_name
        self._product_link = product_link
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "email"

    def build_message(self, notification: Notification) -> EmailMessage:
        """Render a notification into an email message."""
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = notification.recipient
        message["Subject"] = notification.subject
        message.set_content(render_plaintext(notification.content, self._product_name))
        message.add_alternative(
            render_html(notification.content, self._product_name, self._product_link),
            subtype="html",
        )
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
            if self._use_tls:
                smtp.starttls()
            if self._username and self._password:
                smtp.login(self._username, self._password)
            smtp.send_message(message)

    async def send(self, notification: Notification) -> bool:
        message = self.build_message(notification)
        try:
            await asyncio.to_thread(self._deliver, message)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(
                "Email to %s (%s) failed: %s",
                notification.recipient, notification.subject, e,
            )
            return False


class LogChannel(NotificationChannel):
    """Logs what would be sent instead of sending it (dry runs)."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    @property
    def name(self) -> str:
        return "log"

    async def send(self, notification: Notification) -> bool:
        self.sent.append(notification)
        logger.info(
            "Would send %r to %s about %s",
            notification.subject, notification.recipient, notification.company_name,
        )
        return True
