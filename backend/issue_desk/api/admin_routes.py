from typing import Optional

from fastapi import APIRouter, Depends, Query

from issue_desk.api.schemas import (
    AdminMessageRequest,
    CarrierFaultRequest,
    ConcludeRequest,
    IssueDetail,
    IssueEnvelope,
    IssueList,
    IssueStats,
    ReviewRequest,
)
from issue_desk.issues import repo
from issue_desk.issues.carrier import set_carrier_fault
from issue_desk.issues.conclusion import conclude_issue, reopen_issue
from issue_desk.issues.review import review_issue
from issue_desk.issues.thread import get_issue_with_messages, send_admin_message
from issue_desk.notify.notifier import Notifier, get_notifier
from issue_desk.security.basic_auth import require_admin_basic_auth

router = APIRouter(prefix="/admin/issues", tags=["admin"])


@router.get("", response_model=IssueList, dependencies=[Depends(require_admin_basic_auth)])
def issues_list(
    status: Optional[str] = None,
    carrier_fault: Optional[str] = None,
    concluded: Optional[bool] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    return {
        "data": repo.list_issues(
            status=status, carrier_fault=carrier_fault, concluded=concluded, limit=limit, offset=offset
        )
    }


@router.get("/stats", response_model=IssueStats, dependencies=[Depends(require_admin_basic_auth)])
def issues_stats():
    return repo.issue_stats()


@router.get("/{issue_id}", response_model=IssueDetail, dependencies=[Depends(require_admin_basic_auth)])
def admin_issue_detail(issue_id: str):
    return get_issue_with_messages(issue_id)


@router.post("/{issue_id}/review", response_model=IssueEnvelope)
def review(
    issue_id: str,
    req: ReviewRequest,
    admin_id: str = Depends(require_admin_basic_auth),
    notifier: Notifier = Depends(get_notifier),
):
    out = review_issue(
        issue_id,
        req.action,
        admin_id,
        message=req.message,
        is_final_rejection=req.is_final_rejection,
        notifier=notifier,
    )
    return IssueEnvelope(issue=out["issue"], message=out["summary"])


@router.post("/{issue_id}/messages", response_model=IssueEnvelope)
def post_admin_message(
    issue_id: str,
    req: AdminMessageRequest,
    admin_id: str = Depends(require_admin_basic_auth),
    notifier: Notifier = Depends(get_notifier),
):
    out = send_admin_message(issue_id, admin_id, req.content, req.image_urls, notifier=notifier)
    return IssueEnvelope(issue=out["issue"], message="Message sent successfully")


@router.post("/{issue_id}/conclude", response_model=IssueEnvelope)
def conclude(
    issue_id: str,
    req: Optional[ConcludeRequest] = None,
    admin_id: str = Depends(require_admin_basic_auth),
    notifier: Notifier = Depends(get_notifier),
):
    req = req or ConcludeRequest()
    out = conclude_issue(
        issue_id,
        admin_id,
        reason=req.reason,
        notify_customer=req.notify_customer,
        notifier=notifier,
    )
    return IssueEnvelope(issue=out["issue"], message="Issue concluded successfully")


@router.delete("/{issue_id}/conclude", response_model=IssueEnvelope)
def reopen(issue_id: str, admin_id: str = Depends(require_admin_basic_auth)):
    out = reopen_issue(issue_id, admin_id)
    return IssueEnvelope(issue=out["issue"], message="Issue reopened successfully")


@router.put("/{issue_id}/carrier-fault", response_model=IssueEnvelope, dependencies=[Depends(require_admin_basic_auth)])
def carrier_fault(issue_id: str, req: CarrierFaultRequest):
    return IssueEnvelope(issue=set_carrier_fault(issue_id, req.value))
