"""
Issue status machine.

AWAITING_REVIEW -> [APPROVED_REPRINT | APPROVED_REFUND | INFO_REQUESTED | REJECTED]
INFO_REQUESTED  -> AWAITING_REVIEW (customer reply) or straight to a review outcome
REJECTED        -> AWAITING_REVIEW (customer appeal, only while rejection is not final)

`concluded` is a separate lock on top of the status; nothing here reads it.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class IssueStatus(str, Enum):
    AWAITING_REVIEW = "AWAITING_REVIEW"
    INFO_REQUESTED = "INFO_REQUESTED"
    APPROVED_REPRINT = "APPROVED_REPRINT"
    APPROVED_REFUND = "APPROVED_REFUND"
    REJECTED = "REJECTED"


class ResolutionType(str, Enum):
    REPRINT = "REPRINT"
    FULL_REFUND = "FULL_REFUND"
    PARTIAL_REFUND = "PARTIAL_REFUND"


class CarrierFault(str, Enum):
    UNKNOWN = "UNKNOWN"
    CARRIER_FAULT = "CARRIER_FAULT"
    NOT_CARRIER_FAULT = "NOT_CARRIER_FAULT"


class IssueReason(str, Enum):
    DAMAGED_IN_TRANSIT = "DAMAGED_IN_TRANSIT"
    QUALITY_ISSUE = "QUALITY_ISSUE"
    WRONG_ITEM = "WRONG_ITEM"
    PRINTING_ERROR = "PRINTING_ERROR"
    NEVER_ARRIVED = "NEVER_ARRIVED"
    OTHER = "OTHER"


class MessageSender(str, Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class ReviewAction(str, Enum):
    APPROVE_REPRINT = "APPROVE_REPRINT"
    APPROVE_REFUND = "APPROVE_REFUND"
    REQUEST_INFO = "REQUEST_INFO"
    REJECT = "REJECT"


# Statuses an admin may review from
REVIEWABLE_STATUSES = frozenset({IssueStatus.AWAITING_REVIEW, IssueStatus.INFO_REQUESTED})

# Statuses that count as an open report for the one-report-per-item rule
PENDING_STATUSES = frozenset({IssueStatus.AWAITING_REVIEW, IssueStatus.INFO_REQUESTED})

# Order statuses that allow a report
FULFILLED_ORDER_STATUSES = frozenset({"shipped", "delivered"})


@dataclass(frozen=True)
class Transition:
    new_status: IssueStatus
    resolved_type: Optional[ResolutionType]
    requires_message: bool
    default_message: Optional[str]
    missing_message_error: Optional[str]
    notification_kind: str


TRANSITIONS: Dict[ReviewAction, Transition] = {
    ReviewAction.APPROVE_REPRINT: Transition(
        new_status=IssueStatus.APPROVED_REPRINT,
        resolved_type=ResolutionType.REPRINT,
        requires_message=False,
        default_message="Your issue has been approved for a free reprint. We will process this shortly.",
        missing_message_error=None,
        notification_kind="approved_reprint",
    ),
    ReviewAction.APPROVE_REFUND: Transition(
        new_status=IssueStatus.APPROVED_REFUND,
        resolved_type=ResolutionType.FULL_REFUND,
        requires_message=False,
        default_message="Your issue has been approved for a refund. We will process this shortly.",
        missing_message_error=None,
        notification_kind="approved_refund",
    ),
    ReviewAction.REQUEST_INFO: Transition(
        new_status=IssueStatus.INFO_REQUESTED,
        resolved_type=None,
        requires_message=True,
        default_message=None,
        missing_message_error="A message is required when requesting more information",
        notification_kind="info_requested",
    ),
    ReviewAction.REJECT: Transition(
        new_status=IssueStatus.REJECTED,
        resolved_type=None,
        requires_message=True,
        default_message=None,
        missing_message_error="A reason is required when rejecting an issue",
        notification_kind="rejected",
    ),
}

_missing = set(ReviewAction) - set(TRANSITIONS)
if _missing:
    raise RuntimeError(f"No transition defined for review actions: {sorted(a.value for a in _missing)}")


def can_review(status: str) -> bool:
    return status in REVIEWABLE_STATUSES
