"""Mailbox subscription endpoints and the welcome e-mail."""

from __future__ import annotations

import html
import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Callable
from urllib.parse import quote

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import MailboxConfig
from .models import Mailbox
from .pagination import _required_text
from .resp import fail, success

log = logging.getLogger(__name__)

EMAIL_SUBJECT = "Welcome to DistriAI"
UNSUBSCRIBE_URL = "https://www.example.com/mailbox/unsubscribe/"
SSL_PORT = 465

_EMAIL_TEMPLATE = """\
<div style="font-family: Arial, Helvetica, sans-serif; font-size: 14px; color: #333333;">
  <h2>Welcome to DistriAI!</h2>
  <p>Thanks for subscribing to DistriAI. DistriAI aims to establish a fair, efficient,
  and transparent AI computing power network to meet the growing demand for computing
  power and reduce its usage costs.</p>
  <p>If you have any questions, please contact us. We welcome your suggestions and feedback.</p>
  <p>Thanks for your support</p>
  <p style="font-size: 12px; color: #999999;">DistriAI Team<br />System email, please do not reply.</p>
  <p style="font-size: 12px; color: #999999;">If you do not wish to receive this type of email,
  <a href="{unsubscribe_url}">unsubscribe</a></p>
</div>
"""

Mailer = Callable[[str, str], None]


def render_email(mailbox: str) -> str:
    """Return the HTML welcome e-mail, with an unsubscribe link for the mailbox."""
    link = UNSUBSCRIBE_URL + quote(mailbox, safe="@")
    return _EMAIL_TEMPLATE.format(unsubscribe_url=html.escape(link, quote=True))


def send_email(mailbox_config: MailboxConfig, to: str, text: str) -> None:
    """Send an HTML e-mail through the configured SMTP server."""
    message = EmailMessage()
    message["From"] = mailbox_config.username
    message["To"] = to
    message["Subject"] = EMAIL_SUBJECT
    message.set_content(text, subtype="html")

    use_ssl = mailbox_config.port == SSL_PORT
    smtp_class = smtplib.SMTP_SSL if use_ssl else smtplib.SMTP
    client = smtp_class(mailbox_config.host, mailbox_config.port, timeout=10)
    try:
        client.ehlo()
        if not use_ssl and client.has_extn("starttls"):
            client.starttls()
            client.ehlo()
        if mailbox_config.username and client.has_extn("auth"):
            client.login(mailbox_config.username, mailbox_config.password)
        client.send_message(message)
    finally:
        client.quit()


def _count(session: Session, mailbox: str) -> int:
    return session.scalar(
        select(func.count()).select_from(Mailbox).where(Mailbox.mail_box == mailbox)
    ) or 0


def subscribe(session: Session, body: Any, mailer: Mailer) -> dict[str, Any]:
    """Record a subscription and send the welcome e-mail through ``mailer``."""
    address = _required_text(body, "mailbox")
    if address is None:
        return fail("Parameter missing")

    try:
        if _count(session, address) > 0:
            return fail("Mailbox already subscribed")
        session.add(Mailbox(mail_box=address))
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("Database error: %s", exc)
        return fail("Database error")

    try:
        mailer(address, render_email(address))
    except OSError as exc:
        log.error("Send email error: %s", exc)
        return fail("Send email Fail")
    return success("")


def unsubscribe(session: Session, body: Any) -> dict[str, Any]:
    """Remove a subscription."""
    address = _required_text(body, "mailbox")
    if address is None:
        return fail("Parameter missing")

    try:
        if _count(session, address) == 0:
            return fail("Mailbox is not subscribed")
        session.execute(delete(Mailbox).where(Mailbox.mail_box == address))
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("Database error: %s", exc)
        return fail("Database error")
    return success("")