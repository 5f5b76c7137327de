from fastapi import APIRouter, Depends

from issue_desk.api.schemas import (
    AppealRequest,
    CustomerMessageRequest,
    IssueDetail,
    IssueEnvelope,
    ReportIssueRequest,
    ReportIssueResponse,
)
from issue_desk.issues.intake import report_issue
from issue_desk.issues.thread import appeal_issue, get_issue_with_messages, send_customer_message
from issue_desk.security.basic_auth import require_customer

router = APIRouter(tags=["issues"])


@router.post("/orders/{order_id}/items/{item_id}/issue", response_model=ReportIssueResponse)
def report_item_issue(order_id: str, item_id: str, req: ReportIssueRequest, customer_id: str = Depends(require_customer)):
    issue = report_issue(
        order_item_id=item_id,
        customer_id=customer_id,
        reason=req.reason,
        notes=req.notes,
        image_urls=req.image_urls,
        order_id=order_id,
    )
    return ReportIssueResponse(
        issue_id=issue["issue_id"],
        status=issue["status"],
        carrier_fault=issue["carrier_fault"],
        message="Your issue has been reported. Our team will review it and respond within 1-2 business days.",
    )


@router.get("/issues/{issue_id}", response_model=IssueDetail)
def issue_detail(issue_id: str, customer_id: str = Depends(require_customer)):
    return get_issue_with_messages(issue_id, customer_id=customer_id)


@router.post("/issues/{issue_id}/messages", response_model=IssueEnvelope)
def post_message(issue_id: str, req: CustomerMessageRequest, customer_id: str = Depends(require_customer)):
    out = send_customer_message(issue_id, customer_id, req.content, req.image_urls)
    return IssueEnvelope(issue=out["issue"], message="Message sent successfully")


@router.post("/issues/{issue_id}/appeal", response_model=IssueEnvelope)
def post_appeal(issue_id: str, req: AppealRequest, customer_id: str = Depends(require_customer)):
    out = appeal_issue(issue_id, customer_id, req.reason, req.image_urls)
    return IssueEnvelope(
        issue=out["issue"],
        message="Your appeal has been submitted. Our team will review it and respond within 1-2 business days.",
    )
