from __future__ import annotations

from typing import Any, Dict, Optional

import structlog

from issue_desk.issues import repo
from issue_desk.issues.errors import InvalidStateError, NotFoundError, StaleStateError, ValidationError
from issue_desk.issues.status import TRANSITIONS, ReviewAction, can_review
from issue_desk.notify.notifier import Notifier, notify_after_commit

log = structlog.get_logger(__name__)

FINAL_REJECTION_CONCLUDED_REASON = "Rejected (final)"

ACTION_SUMMARIES = {
    ReviewAction.APPROVE_REPRINT: "Issue approved for reprint. Ready for processing.",
    ReviewAction.APPROVE_REFUND: "Issue approved for refund. Ready for processing.",
    ReviewAction.REQUEST_INFO: "Information requested from customer.",
    ReviewAction.REJECT: "Issue rejected. Customer may appeal.",
}


def _parse_action(action: Any) -> ReviewAction:
    try:
        return ReviewAction(action)
    except ValueError:
        raise ValidationError(
            "Invalid action. Must be APPROVE_REPRINT, APPROVE_REFUND, REQUEST_INFO, or REJECT"
        ) from None


def review_issue(
    issue_id: str,
    action: str,
    admin_id: str,
    message: Optional[str] = None,
    is_final_rejection: bool = False,
    notifier: Optional[Notifier] = None,
) -> Dict[str, Any]:
    """
    Applies one admin review action.

    Returns {"issue", "message_id", "summary", "email_sent"}. The state
    change and its admin message are committed together; the email is
    attempted afterwards and cannot undo them.
    """
    review_action = _parse_action(action)
    transition = TRANSITIONS[review_action]

    issue = repo.get_issue(issue_id)
    if not issue:
        raise NotFoundError("Issue not found")
    if issue["concluded"]:
        raise InvalidStateError("This issue has been concluded and cannot be reviewed")
    if not can_review(issue["status"]):
        raise InvalidStateError(
            f"This issue cannot be reviewed in its current status: {issue['status']}"
        )

    text = (message or "").strip()
    if transition.requires_message and not text:
        raise ValidationError(transition.missing_message_error)
    content = text or transition.default_message

    is_reject = review_action == ReviewAction.REJECT
    final = is_reject and bool(is_final_rejection)
    try:
        message_id = repo.apply_review(
            issue_id,
            admin_id,
            new_status=transition.new_status,
            resolved_type=transition.resolved_type.value if transition.resolved_type else None,
            content=content,
            rejection_reason=content if is_reject else None,
            rejection_final=final if is_reject else None,
            conclude_reason=FINAL_REJECTION_CONCLUDED_REASON if final else None,
        )
    except StaleStateError:
        log.warning("issue_review_stale", issue_id=issue_id, action=review_action.value, admin_id=admin_id)
        raise

    updated = repo.get_issue(issue_id)
    log.info(
        "issue_reviewed",
        issue_id=issue_id,
        action=review_action.value,
        status=updated["status"],
        admin_id=admin_id,
        final=final,
    )

    email_sent = notify_after_commit(
        notifier,
        transition.notification_kind,
        updated,
        message_id,
        content,
        can_appeal=not final if is_reject else None,
    )

    summary = "Issue rejected (final)." if final else ACTION_SUMMARIES[review_action]
    return {"issue": updated, "message_id": message_id, "summary": summary, "email_sent": email_sent}
