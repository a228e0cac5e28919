"""Message templates for register change notifications.

Builds the per-kind subject and intro line, and renders structured
content into the plain-text and HTML bodies of an email.
"""

import html
import re

from sponsor_sync.alerts.schemas import ChangeKind, Notification, NotificationContent, Subscription

SUBJECTS: dict[ChangeKind, str] = {
    ChangeKind.ADDITION: "Addition Email",
    ChangeKind.UPDATE: "Updation Email",
    ChangeKind.REMOVAL: "Removal Email",
}

INTROS: dict[ChangeKind, str] = {
    ChangeKind.ADDITION: "The company <strong>{company}</strong> has been added.",
    ChangeKind.UPDATE: "The details of the company <strong>{company}</strong> have been updated.",
    ChangeKind.REMOVAL: "The company <strong>{company}</strong> has been removed.",
}

OUTRO = "If you have any questions, feel free to reach out to us."

_TAG_RE = re.compile(r"<[^>]+>")


def build_content(
    kind: ChangeKind,
    company_name: str,
    recipient_name: str = "Subscriber",
) -> NotificationContent:
    """Intro/outro for one change kind. The company name is HTML-escaped."""
    intro = INTROS[kind].format(company=html.escape(company_name))
    return NotificationContent(intro=intro, outro=OUTRO, recipient_name=recipient_name)


def build_notification(
    subscription: Subscription,
    kind: ChangeKind,
    recipient_name: str = "Subscriber",
) -> Notification:
    """Notification telling ``subscription.email`` about one change."""
    return Notification(
        recipient=subscription.email,
        subject=SUBJECTS[kind],
        content=build_content(kind, subscription.company_name, recipient_name),
        kind=kind,
        company_name=subscription.company_name,
    )


def render_plaintext(content: NotificationContent, product_name: str) -> str:
    """Plain-text body for mail clients without HTML support."""
    intro = html.unescape(_TAG_RE.sub("", content.intro))
    return (
        f"Hi {content.recipient_name},\n\n"
        f"{intro}\n\n"
        f"{content.outro}\n\n"
        f"{product_name}\n"
    )


def render_html(content: NotificationContent, product_name: str, product_link: str) -> str:
    """HTML body. ``content.intro`` is trusted markup built by ``build_content``."""
    return (
        "<!DOCTYPE html>\n"
        "<html><body style=\"font-family: Helvetica, Arial, sans-serif;\">\n"
        f"<p><a href=\"{html.escape(product_link, quote=True)}\">{html.escape(product_name)}</a></p>\n"
        f"<h1>Hi {html.escape(content.recipient_name)},</h1>\n"
        f"<p>{content.intro}</p>\n"
        f"<p>{html.escape(content.outro)}</p>\n"
        "</body></html>\n"
    )
