from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from dotenv import load_dotenv

from issue_desk.issues import repo
from issue_desk.issues.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    OrderNotFulfilledError,
    ValidationError,
)
from issue_desk.issues.status import FULFILLED_ORDER_STATUSES, CarrierFault, IssueReason
from issue_desk.tools.order_lookup import fulfilled_at, get_order_item

load_dotenv()

log = structlog.get_logger(__name__)

ISSUE_REPORTING_WINDOW_DAYS = int(os.getenv("ISSUE_REPORTING_WINDOW_DAYS", "30"))

REASON_LABELS = {
    IssueReason.DAMAGED_IN_TRANSIT: "Damaged in transit",
    IssueReason.QUALITY_ISSUE: "Quality issue",
    IssueReason.WRONG_ITEM: "Wrong item",
    IssueReason.PRINTING_ERROR: "Printing error",
    IssueReason.NEVER_ARRIVED: "Never arrived",
    IssueReason.OTHER: "Other",
}


def _parse_dt(dt: str | None) -> datetime | None:
    if not dt:
        return None
    parsed = datetime.fromisoformat(dt)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def clean_image_urls(image_urls: Optional[List[Any]]) -> List[str]:
    if not isinstance(image_urls, list):
        return []
    return [u for u in image_urls if isinstance(u, str) and u.strip()]


def _opening_message(reason: IssueReason, notes: Optional[str]) -> str:
    text = f"Reason: {REASON_LABELS[reason]}"
    if notes and notes.strip():
        text += f"\n\n{notes.strip()}"
    return text


def _check_reporting_window(order: Dict[str, Any]) -> None:
    if ISSUE_REPORTING_WINDOW_DAYS <= 0:
        return
    since = _parse_dt(fulfilled_at(order))
    if since is None:
        return
    days = (datetime.now(timezone.utc) - since).days
    if days > ISSUE_REPORTING_WINDOW_DAYS:
        raise OrderNotFulfilledError(
            f"Issues must be reported within {ISSUE_REPORTING_WINDOW_DAYS} days of delivery"
        )


def report_issue(
    order_item_id: str,
    customer_id: str,
    reason: str,
    notes: Optional[str] = None,
    image_urls: Optional[List[Any]] = None,
    order_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Opens a new issue on a shipped or delivered order item.

    Checks run in a fixed order so the customer always sees the most specific
    reason: missing item, not their order, wrong order, not yet fulfilled,
    outside the reporting window, already reported.
    """
    if not order_item_id:
        raise ValidationError("An order item reference is required")
    if not reason:
        raise ValidationError("Please select a reason for your issue")
    try:
        issue_reason = IssueReason(reason)
    except ValueError:
        raise ValidationError("Invalid reason selected") from None

    item = get_order_item(order_item_id)
    if not item:
        raise NotFoundError("Order item not found")

    order = item["order"]
    if order.get("customer_id") != customer_id:
        raise ForbiddenError("You can only report issues for your own orders")

    if order_id is not None and order.get("order_id") != order_id:
        raise ValidationError("Order item does not belong to this order")

    if order.get("status") not in FULFILLED_ORDER_STATUSES:
        raise OrderNotFulfilledError(
            "You can only report issues for orders that have been shipped or delivered"
        )

    _check_reporting_window(order)

    if repo.find_open_issue(order_item_id):
        raise ConflictError(repo.PENDING_REPORT_EXISTS)

    carrier_fault = (
        CarrierFault.CARRIER_FAULT
        if issue_reason == IssueReason.DAMAGED_IN_TRANSIT
        else CarrierFault.UNKNOWN
    )
    issue_id = repo.create_issue(
        {
            "order_item_id": order_item_id,
            "order_id": order["order_id"],
            "customer_id": customer_id,
            "reason": issue_reason.value,
            "initial_notes": notes.strip() if notes and notes.strip() else None,
            "image_urls": clean_image_urls(image_urls),
            "carrier_fault": carrier_fault.value,
        },
        first_message=_opening_message(issue_reason, notes),
    )

    log.info(
        "issue_reported",
        issue_id=issue_id,
        order_item_id=order_item_id,
        reason=issue_reason.value,
        carrier_fault=carrier_fault.value,
    )
    return repo.get_issue(issue_id)
