from __future__ import annotations

from typing import Any, Dict, Optional

import structlog

from issue_desk.issues import repo
from issue_desk.issues.errors import InvalidStateError, NotFoundError
from issue_desk.notify.notifier import Notifier, notify_after_commit

log = structlog.get_logger(__name__)

DEFAULT_CONCLUDED_REASON = "Manually concluded by admin"
DEFAULT_CONCLUDED_MESSAGE = "This issue has been concluded. No further action is required."
REOPENED_MESSAGE = "This issue has been reopened for further review."


def conclude_issue(
    issue_id: str,
    admin_id: str,
    reason: Optional[str] = None,
    notify_customer: bool = False,
    notifier: Optional[Notifier] = None,
) -> Dict[str, Any]:
    """
    Locks the issue against further customer and admin actions. The status
    is left exactly as it was.
    """
    issue = repo.get_issue(issue_id)
    if not issue:
        raise NotFoundError("Issue not found")
    if issue["concluded"]:
        raise InvalidStateError("Issue is already concluded")

    text = (reason or "").strip()
    content = text or DEFAULT_CONCLUDED_MESSAGE
    message_id = repo.set_concluded(issue_id, admin_id, text or DEFAULT_CONCLUDED_REASON, content)

    updated = repo.get_issue(issue_id)
    log.info("issue_concluded", issue_id=issue_id, admin_id=admin_id, status=updated["status"])

    email_sent = False
    if notify_customer:
        email_sent = notify_after_commit(notifier, "concluded", updated, message_id, content)
    return {"issue": updated, "message_id": message_id, "email_sent": email_sent}


def reopen_issue(issue_id: str, admin_id: str) -> Dict[str, Any]:
    """Releases the lock. The last real status stays in place."""
    issue = repo.get_issue(issue_id)
    if not issue:
        raise NotFoundError("Issue not found")
    if not issue["concluded"]:
        raise InvalidStateError("Issue is not concluded")

    message_id = repo.clear_concluded(issue_id, admin_id, REOPENED_MESSAGE)

    updated = repo.get_issue(issue_id)
    log.info("issue_reopened", issue_id=issue_id, admin_id=admin_id, status=updated["status"])
    return {"issue": updated, "message_id": message_id}
