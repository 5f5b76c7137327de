"""Thread actions on an existing issue, customer and admin, plus the read projection."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog

from issue_desk.issues import repo
from issue_desk.issues.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from issue_desk.issues.intake import clean_image_urls
from issue_desk.issues.status import IssueStatus
from issue_desk.notify.notifier import Notifier, notify_after_commit

log = structlog.get_logger(__name__)


def _owned_issue(issue_id: str, customer_id: str) -> Dict[str, Any]:
    issue = repo.get_issue(issue_id)
    if not issue:
        raise NotFoundError("Issue not found")
    if issue["customer_id"] != customer_id:
        raise ForbiddenError("Access denied")
    return issue


def get_issue_with_messages(issue_id: str, customer_id: Optional[str] = None) -> Dict[str, Any]:
    if customer_id is None:
        issue = repo.get_issue(issue_id)
        if not issue:
            raise NotFoundError("Issue not found")
    else:
        issue = _owned_issue(issue_id, customer_id)
    return {"issue": issue, "messages": repo.get_messages(issue_id)}


def send_customer_message(
    issue_id: str,
    customer_id: str,
    content: str,
    image_urls: Optional[List[Any]] = None,
) -> Dict[str, Any]:
    text = (content or "").strip()
    if not text:
        raise ValidationError("Message content is required")

    issue = _owned_issue(issue_id, customer_id)
    if issue["concluded"]:
        raise InvalidStateError("This issue has been concluded and no longer accepts messages")

    result = repo.add_customer_message(issue_id, customer_id, text, clean_image_urls(image_urls))
    log.info(
        "customer_message_added",
        issue_id=issue_id,
        message_id=result["message_id"],
        returned_to_review=result["returned_to_review"],
    )
    return {"issue": repo.get_issue(issue_id), **result}


def send_admin_message(
    issue_id: str,
    admin_id: str,
    content: str,
    image_urls: Optional[List[Any]] = None,
    notifier: Optional[Notifier] = None,
) -> Dict[str, Any]:
    """Plain admin reply on the thread. The status is left as it is."""
    text = (content or "").strip()
    if not text:
        raise ValidationError("Message content is required")

    issue = repo.get_issue(issue_id)
    if not issue:
        raise NotFoundError("Issue not found")
    if issue["concluded"]:
        raise InvalidStateError("This issue has been concluded and no longer accepts messages")

    message_id = repo.add_admin_message(issue_id, admin_id, text, clean_image_urls(image_urls))
    log.info("admin_message_added", issue_id=issue_id, message_id=message_id, admin_id=admin_id)

    email_sent = notify_after_commit(notifier, "admin_message", issue, message_id, text)
    return {"issue": repo.get_issue(issue_id), "message_id": message_id, "email_sent": email_sent}


def appeal_issue(
    issue_id: str,
    customer_id: str,
    reason: str,
    image_urls: Optional[List[Any]] = None,
) -> Dict[str, Any]:
    """A non-final rejection can be contested once; the admin decides whether the next rejection is final."""
    text = (reason or "").strip()
    if not text:
        raise ValidationError("Please provide a reason for your appeal")

    issue = _owned_issue(issue_id, customer_id)
    if issue["concluded"]:
        raise InvalidStateError("This issue has been concluded and cannot be appealed")
    if issue["status"] != IssueStatus.REJECTED.value:
        raise InvalidStateError("Only rejected issues can be appealed")
    if issue["rejection_final"]:
        raise InvalidStateError("This rejection is final and cannot be appealed")

    message_id = repo.apply_appeal(issue_id, customer_id, f"Appeal: {text}", clean_image_urls(image_urls))
    log.info("issue_appealed", issue_id=issue_id, message_id=message_id)
    return {"issue": repo.get_issue(issue_id), "message_id": message_id}
