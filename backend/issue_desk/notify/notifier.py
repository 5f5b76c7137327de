"""
Outbound customer email for issue transitions.

Sending is best effort. `notify_after_commit` runs only after the transition
is committed, swallows and logs every failure, and stamps the originating
thread message as emailed only when the send succeeded.
"""
from __future__ import annotations

import os
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional, Protocol

import structlog
from dotenv import load_dotenv

from issue_desk.issues import repo
from issue_desk.issues.errors import DEPENDENCY_FAILURE
from issue_desk.notify.templates import Recipient, format_notification
from issue_desk.tools.order_lookup import get_order_item

load_dotenv()

log = structlog.get_logger(__name__)


class Notifier(Protocol):
    def send(
        self,
        kind: str,
        recipient: Recipient,
        issue_id: str,
        product_name: str,
        body: str,
        can_appeal: Optional[bool] = None,
    ) -> bool:
        ...


@dataclass
class SmtpConfig:
    smtp_host: str
    smtp_port: int
    username: str
    password: str
    use_tls: bool = True
    from_email: Optional[str] = None
    timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "SmtpConfig":
        return cls(
            smtp_host=os.getenv("SMTP_HOST", ""),
            smtp_port=int(os.getenv("SMTP_PORT", "587")),
            username=os.getenv("SMTP_USERNAME", ""),
            password=os.getenv("SMTP_PASSWORD", ""),
            use_tls=os.getenv("SMTP_USE_TLS", "true").lower() == "true",
            from_email=os.getenv("FROM_EMAIL"),
        )


class SmtpNotifier:
    def __init__(self, config: SmtpConfig):
        self.config = config

    def send(
        self,
        kind: str,
        recipient: Recipient,
        issue_id: str,
        product_name: str,
        body: str,
        can_appeal: Optional[bool] = None,
    ) -> bool:
        note = format_notification(kind, recipient, issue_id, product_name, body, can_appeal)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = note.subject
        msg["From"] = self.config.from_email or self.config.username
        msg["To"] = note.to
        msg.attach(MIMEText(note.body_text, "plain"))

        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=self.config.timeout) as server:
            if self.config.use_tls:
                server.starttls()
            if self.config.username and self.config.password:
                server.login(self.config.username, self.config.password)
            server.sendmail(msg["From"], [note.to], msg.as_string())

        log.info("notification_sent", issue_id=issue_id, kind=kind)
        return True


class NullNotifier:
    """Used when no SMTP host is configured. Nothing leaves the process."""

    def send(
        self,
        kind: str,
        recipient: Recipient,
        issue_id: str,
        product_name: str,
        body: str,
        can_appeal: Optional[bool] = None,
    ) -> bool:
        log.info("notification_skipped", issue_id=issue_id, kind=kind, reason="smtp_not_configured")
        return False


def get_notifier() -> Notifier:
    config = SmtpConfig.from_env()
    if not config.smtp_host:
        return NullNotifier()
    return SmtpNotifier(config)


def _recipient_for(issue: Dict[str, Any]) -> tuple[Optional[Recipient], str]:
    item = get_order_item(issue["order_item_id"]) or {}
    order = item.get("order") or {}
    product_name = item.get("product_name") or "Custom Product"
    email = order.get("customer_email")
    if not email:
        return None, product_name
    return Recipient(email=email, name=order.get("customer_name") or "Valued Customer"), product_name


def notify_after_commit(
    notifier: Optional[Notifier],
    kind: str,
    issue: Dict[str, Any],
    message_id: int,
    body: str,
    can_appeal: Optional[bool] = None,
) -> bool:
    """Returns whether the email went out. Never raises."""
    if notifier is None:
        return False

    issue_id = issue["issue_id"]
    try:
        recipient, product_name = _recipient_for(issue)
        if recipient is None:
            log.warning("notification_no_recipient", issue_id=issue_id, kind=kind)
            return False
        sent = notifier.send(kind, recipient, issue_id, product_name, body, can_appeal)
    except Exception:
        log.exception("notification_failed", issue_id=issue_id, kind=kind, code=DEPENDENCY_FAILURE)
        return False

    if not sent:
        return False

    try:
        repo.mark_message_email_sent(message_id)
    except Exception:
        log.exception("notification_stamp_failed", issue_id=issue_id, kind=kind, message_id=message_id)
    return True
