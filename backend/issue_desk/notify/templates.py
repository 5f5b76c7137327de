from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

APP_URL = os.getenv("APP_URL", "http://localhost:3000")
APP_NAME = os.getenv("APP_NAME", "Order Issue Desk")


@dataclass(frozen=True)
class Recipient:
    email: str
    name: str = "Valued Customer"


@dataclass(frozen=True)
class Notification:
    to: str
    subject: str
    body_text: str


def _short_id(issue_id: str) -> str:
    return issue_id.split("-")[0].upper()


def format_notification(
    kind: str,
    recipient: Recipient,
    issue_id: str,
    product_name: str,
    body: str,
    can_appeal: Optional[bool] = None,
) -> Notification:
    """
    Plain-text customer email for one workflow transition.

    `body` is the admin's message (or the default text) exactly as stored in
    the issue thread.
    """
    issue_url = f"{APP_URL}/account/issues/{issue_id}"

    if kind in ("approved_reprint", "approved_refund"):
        remedy = "a free replacement" if kind == "approved_reprint" else "a refund"
        next_steps = (
            "Your replacement order will be created and processed shortly."
            if kind == "approved_reprint"
            else "Your refund will be processed within 24 hours."
        )
        subject = f"Good news: Your issue has been approved - {APP_NAME}"
        lines = [
            "Your Issue Has Been Approved!",
            "",
            f"Hi {recipient.name},",
            "",
            f"Great news! We've reviewed your issue with {product_name} and approved it for {remedy}.",
            "",
            f"Note: {body}",
            "",
            f"What happens next? {next_steps}",
        ]
    elif kind == "info_requested":
        subject = f"We need a little more information - {APP_NAME}"
        lines = [
            "More Information Needed",
            "",
            f"Hi {recipient.name},",
            "",
            f"We're looking into your issue with {product_name} and need a few more details before we can decide.",
            "",
            body,
            "",
            "Reply from your issue page and we'll pick it straight back up.",
        ]
    elif kind == "rejected":
        subject = f"Update on your issue report - {APP_NAME}"
        appeal = (
            "If you believe this decision was made in error, you can appeal by providing additional information."
            if can_appeal
            else "This decision is final."
        )
        lines = [
            "Issue Update",
            "",
            f"Hi {recipient.name},",
            "",
            f"We've reviewed your issue with {product_name}, and unfortunately we're unable to approve "
            "a replacement or refund at this time.",
            "",
            f"Reason: {body}",
            "",
            appeal,
        ]
    elif kind == "admin_message":
        subject = f"New message about your issue - {APP_NAME}"
        lines = [
            "New Message From Our Team",
            "",
            f"Hi {recipient.name},",
            "",
            f"We've added a message to your issue with {product_name}:",
            "",
            body,
            "",
            "You can reply from your issue page.",
        ]
    elif kind == "concluded":
        subject = f"Your issue has been concluded - {APP_NAME}"
        lines = [
            "Issue Concluded",
            "",
            f"Hi {recipient.name},",
            "",
            f"Your issue regarding {product_name} is now concluded.",
            "",
            f"Note from our team: {body}",
            "",
            "This matter is closed and no further action is required. "
            "You can still view the full conversation history for your records.",
        ]
    else:
        raise ValueError(f"Unknown notification kind: {kind}")

    lines += ["", f"View details: {issue_url}", f"Issue ID: #{_short_id(issue_id)}", "", "---", APP_NAME]
    return Notification(to=recipient.email, subject=subject, body_text="\n".join(lines))
