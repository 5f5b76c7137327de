from __future__ import annotations

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field


IssueStatusName = Literal[
    "AWAITING_REVIEW",
    "INFO_REQUESTED",
    "APPROVED_REPRINT",
    "APPROVED_REFUND",
    "REJECTED",
]

CarrierFaultName = Literal["UNKNOWN", "CARRIER_FAULT", "NOT_CARRIER_FAULT"]


class ReportIssueRequest(BaseModel):
    # checked against IssueReason by the intake service
    reason: Optional[str] = Field(None, examples=["QUALITY_ISSUE", "DAMAGED_IN_TRANSIT", "PRINTING_ERROR"])
    notes: Optional[str] = Field(None, examples=["The colours on the print are badly faded."])
    image_urls: List[str] = []


class ReportIssueResponse(BaseModel):
    issue_id: str
    status: IssueStatusName
    carrier_fault: CarrierFaultName
    message: str


class CustomerMessageRequest(BaseModel):
    content: Optional[str] = Field(None, examples=["Here is a photo of the corner damage."])
    image_urls: List[str] = []


class AdminMessageRequest(BaseModel):
    content: Optional[str] = Field(None, examples=["Thanks, the photo helps. We'll decide by tomorrow."])
    image_urls: List[str] = []


class AppealRequest(BaseModel):
    reason: Optional[str] = Field(None, examples=["The fading is visible in the photo I attached."])
    image_urls: List[str] = []


class ReviewRequest(BaseModel):
    action: Optional[str] = Field(None, examples=["APPROVE_REPRINT", "APPROVE_REFUND", "REQUEST_INFO", "REJECT"])
    message: Optional[str] = Field(None, examples=["Please send a photo of the print in daylight."])
    is_final_rejection: bool = False


class ConcludeRequest(BaseModel):
    reason: Optional[str] = Field(None, examples=["Refund processed."])
    notify_customer: bool = False


class CarrierFaultRequest(BaseModel):
    value: Optional[str] = Field(None, examples=["CARRIER_FAULT"])


class Issue(BaseModel):
    issue_id: str
    order_item_id: str
    order_id: str
    customer_id: str
    reason: str
    initial_notes: Optional[str] = None
    image_urls: List[str] = []
    status: IssueStatusName
    resolved_type: Optional[Literal["REPRINT", "FULL_REFUND", "PARTIAL_REFUND"]] = None
    carrier_fault: CarrierFaultName
    rejection_reason: Optional[str] = None
    rejection_final: bool = False
    concluded: bool = False
    concluded_at: Optional[str] = None
    concluded_by: Optional[str] = None
    concluded_reason: Optional[str] = None
    reviewed_at: Optional[str] = None
    created_at: str


class IssueMessage(BaseModel):
    id: int
    issue_id: str
    sender: Literal["CUSTOMER", "ADMIN", "SYSTEM"]
    sender_id: Optional[str] = None
    content: str
    image_urls: List[str] = []
    email_sent: bool = False
    email_sent_at: Optional[str] = None
    created_at: str


class IssueDetail(BaseModel):
    issue: Issue
    messages: List[IssueMessage]


class IssueEnvelope(BaseModel):
    issue: Issue
    message: Optional[str] = None


class IssueList(BaseModel):
    data: List[Issue]


class IssueStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    pending: int
    concluded: int
    carrier_fault: int
