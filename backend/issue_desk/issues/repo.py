import json
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from issue_desk.issues.db import get_conn
from issue_desk.issues.errors import ConflictError, StaleStateError
from issue_desk.issues.status import (
    PENDING_STATUSES,
    REVIEWABLE_STATUSES,
    CarrierFault,
    IssueStatus,
    MessageSender,
)

PENDING_REPORT_EXISTS = "This item already has a pending report. Please view the existing issue instead."


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _placeholders(values: Iterable[Any]) -> str:
    return ", ".join("?" for _ in values)


def _issue_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    d = dict(row)
    d["image_urls"] = json.loads(d.pop("image_urls_json") or "[]")
    d["rejection_final"] = bool(d["rejection_final"])
    d["concluded"] = bool(d["concluded"])
    return d


def _message_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    d = dict(row)
    d["image_urls"] = json.loads(d.pop("image_urls_json") or "[]")
    d["email_sent"] = bool(d["email_sent"])
    return d


def _insert_message(
    conn: sqlite3.Connection,
    issue_id: str,
    sender: MessageSender,
    sender_id: Optional[str],
    content: str,
    image_urls: Optional[List[str]] = None,
) -> int:
    cursor = conn.execute(
        """
        INSERT INTO issue_messages (issue_id, sender, sender_id, content, image_urls_json, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (issue_id, sender.value, sender_id, content, json.dumps(image_urls or []), _now_iso()),
    )
    return cursor.lastrowid


def _is_open_item_clash(exc: sqlite3.IntegrityError) -> bool:
    return "issues.order_item_id" in str(exc)


def _is_concluded(conn: sqlite3.Connection, issue_id: str) -> bool:
    row = conn.execute("SELECT concluded FROM issues WHERE issue_id = ?", (issue_id,)).fetchone()
    return row is None or bool(row["concluded"])


def create_issue(payload: Dict[str, Any], first_message: str) -> str:
    """
    Inserts the issue and its opening customer message in one transaction.
    The partial unique index on open issues turns a concurrent duplicate
    report into ConflictError.
    """
    issue_id = str(uuid.uuid4())
    image_urls = payload.get("image_urls") or []
    try:
        with get_conn() as conn:
            _insert_issue(conn, issue_id, payload, image_urls)
            _insert_message(
                conn, issue_id, MessageSender.CUSTOMER, payload["customer_id"], first_message, image_urls
            )
    except sqlite3.IntegrityError as exc:
        if _is_open_item_clash(exc):
            raise ConflictError(PENDING_REPORT_EXISTS) from None
        raise
    return issue_id


def _insert_issue(
    conn: sqlite3.Connection, issue_id: str, payload: Dict[str, Any], image_urls: List[str]
) -> None:
    conn.execute(
        """
        INSERT INTO issues (
          issue_id, order_item_id, order_id, customer_id, reason,
          initial_notes, image_urls_json, status, carrier_fault, created_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            issue_id,
            payload["order_item_id"],
            payload["order_id"],
            payload["customer_id"],
            payload["reason"],
            payload.get("initial_notes"),
            json.dumps(image_urls),
            IssueStatus.AWAITING_REVIEW.value,
            payload.get("carrier_fault") or CarrierFault.UNKNOWN.value,
            _now_iso(),
        ),
    )


def get_issue(issue_id: str) -> Optional[Dict[str, Any]]:
    with get_conn() as conn:
        row = conn.execute("SELECT * FROM issues WHERE issue_id = ?", (issue_id,)).fetchone()
        return _issue_from_row(row) if row else None


def get_messages(issue_id: str) -> List[Dict[str, Any]]:
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM issue_messages WHERE issue_id = ? ORDER BY id ASC",
            (issue_id,),
        ).fetchall()
    return [_message_from_row(r) for r in rows]


def find_open_issue(order_item_id: str) -> Optional[Dict[str, Any]]:
    pending = [s.value for s in PENDING_STATUSES]
    with get_conn() as conn:
        row = conn.execute(
            f"""
            SELECT * FROM issues
            WHERE order_item_id = ? AND concluded = 0 AND status IN ({_placeholders(pending)})
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (order_item_id, *pending),
        ).fetchone()
        return _issue_from_row(row) if row else None


def list_issues(
    status: Optional[str] = None,
    carrier_fault: Optional[str] = None,
    concluded: Optional[bool] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    clauses = []
    params: List[Any] = []
    if status:
        clauses.append("status = ?")
        params.append(status)
    if carrier_fault:
        clauses.append("carrier_fault = ?")
        params.append(carrier_fault)
    if concluded is not None:
        clauses.append("concluded = ?")
        params.append(1 if concluded else 0)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    with get_conn() as conn:
        rows = conn.execute(
            f"SELECT * FROM issues {where} ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
    return [_issue_from_row(r) for r in rows]


def issue_stats() -> Dict[str, Any]:
    pending = [s.value for s in PENDING_STATUSES]
    with get_conn() as conn:
        by_status = {
            r["status"]: r["n"]
            for r in conn.execute("SELECT status, COUNT(*) AS n FROM issues GROUP BY status").fetchall()
        }
        pending_count = conn.execute(
            f"SELECT COUNT(*) FROM issues WHERE concluded = 0 AND status IN ({_placeholders(pending)})",
            pending,
        ).fetchone()[0]
        concluded_count = conn.execute("SELECT COUNT(*) FROM issues WHERE concluded = 1").fetchone()[0]
        carrier_fault_count = conn.execute(
            "SELECT COUNT(*) FROM issues WHERE carrier_fault = ?",
            (CarrierFault.CARRIER_FAULT.value,),
        ).fetchone()[0]
    return {
        "total": sum(by_status.values()),
        "by_status": {s.value: by_status.get(s.value, 0) for s in IssueStatus},
        "pending": pending_count,
        "concluded": concluded_count,
        "carrier_fault": carrier_fault_count,
    }


def apply_review(
    issue_id: str,
    admin_id: str,
    *,
    new_status: IssueStatus,
    resolved_type: Optional[str],
    content: str,
    rejection_reason: Optional[str] = None,
    rejection_final: Optional[bool] = None,
    conclude_reason: Optional[str] = None,
) -> int:
    """
    Compare-and-swap review transition. The update only lands while the issue
    is still reviewable and not concluded; otherwise nothing is written and
    StaleStateError is raised. Returns the id of the admin message.
    """
    now = _now_iso()
    updates: Dict[str, Any] = {"status": new_status.value, "reviewed_at": now}
    if resolved_type is not None:
        updates["resolved_type"] = resolved_type
    if rejection_reason is not None:
        updates["rejection_reason"] = rejection_reason
    if rejection_final is not None:
        updates["rejection_final"] = 1 if rejection_final else 0
    if conclude_reason is not None:
        updates.update(
            concluded=1, concluded_at=now, concluded_by=admin_id, concluded_reason=conclude_reason
        )

    reviewable = [s.value for s in REVIEWABLE_STATUSES]
    set_sql = ", ".join(f"{col} = ?" for col in updates)
    with get_conn() as conn:
        cursor = conn.execute(
            f"""
            UPDATE issues SET {set_sql}
            WHERE issue_id = ? AND concluded = 0 AND status IN ({_placeholders(reviewable)})
            """,
            (*updates.values(), issue_id, *reviewable),
        )
        if cursor.rowcount != 1:
            raise StaleStateError("This issue was changed by someone else. Refresh and try again.")
        return _insert_message(conn, issue_id, MessageSender.ADMIN, admin_id, content)


def set_concluded(issue_id: str, admin_id: str, reason: str, content: str) -> int:
    with get_conn() as conn:
        cursor = conn.execute(
            """
            UPDATE issues
            SET concluded = 1, concluded_at = ?, concluded_by = ?, concluded_reason = ?
            WHERE issue_id = ? AND concluded = 0
            """,
            (_now_iso(), admin_id, reason, issue_id),
        )
        if cursor.rowcount != 1:
            raise StaleStateError("This issue was concluded by someone else. Refresh and try again.")
        return _insert_message(conn, issue_id, MessageSender.ADMIN, admin_id, content)


def clear_concluded(issue_id: str, admin_id: str, content: str) -> int:
    try:
        with get_conn() as conn:
            cursor = conn.execute(
                """
                UPDATE issues
                SET concluded = 0, concluded_at = NULL, concluded_by = NULL, concluded_reason = NULL
                WHERE issue_id = ? AND concluded = 1
                """,
                (issue_id,),
            )
            if cursor.rowcount != 1:
                raise StaleStateError("This issue was reopened by someone else. Refresh and try again.")
            return _insert_message(conn, issue_id, MessageSender.ADMIN, admin_id, content)
    except sqlite3.IntegrityError as exc:
        if _is_open_item_clash(exc):
            raise ConflictError(
                "Another report for this item is already open. Conclude it before reopening this one."
            ) from None
        raise


def set_carrier_fault(issue_id: str, value: str) -> bool:
    with get_conn() as conn:
        cursor = conn.execute(
            "UPDATE issues SET carrier_fault = ? WHERE issue_id = ?",
            (value, issue_id),
        )
        return cursor.rowcount == 1


def add_customer_message(
    issue_id: str,
    customer_id: str,
    content: str,
    image_urls: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Appends a customer message. An issue waiting on the customer goes back to
    AWAITING_REVIEW in the same transaction. Raises StaleStateError if the
    issue was concluded after the caller's precondition read.
    """
    with get_conn() as conn:
        cursor = conn.execute(
            """
            UPDATE issues SET status = ?
            WHERE issue_id = ? AND concluded = 0 AND status = ?
            """,
            (IssueStatus.AWAITING_REVIEW.value, issue_id, IssueStatus.INFO_REQUESTED.value),
        )
        if _is_concluded(conn, issue_id):
            raise StaleStateError("This issue was concluded before your message was saved. Refresh and try again.")
        message_id = _insert_message(
            conn, issue_id, MessageSender.CUSTOMER, customer_id, content, image_urls
        )
    return {"message_id": message_id, "returned_to_review": cursor.rowcount == 1}


def add_admin_message(
    issue_id: str,
    admin_id: str,
    content: str,
    image_urls: Optional[List[str]] = None,
) -> int:
    """Appends an admin message without touching the status."""
    with get_conn() as conn:
        # write lock before the concluded read
        conn.execute("BEGIN IMMEDIATE")
        if _is_concluded(conn, issue_id):
            raise StaleStateError("This issue was concluded before your message was saved. Refresh and try again.")
        return _insert_message(conn, issue_id, MessageSender.ADMIN, admin_id, content, image_urls)


def apply_appeal(
    issue_id: str,
    customer_id: str,
    content: str,
    image_urls: Optional[List[str]] = None,
) -> int:
    try:
        with get_conn() as conn:
            cursor = conn.execute(
                """
                UPDATE issues SET status = ?, reviewed_at = NULL
                WHERE issue_id = ? AND concluded = 0 AND rejection_final = 0 AND status = ?
                """,
                (IssueStatus.AWAITING_REVIEW.value, issue_id, IssueStatus.REJECTED.value),
            )
            if cursor.rowcount != 1:
                raise StaleStateError(
                    "This issue was changed before your appeal was saved. Refresh and try again."
                )
            return _insert_message(conn, issue_id, MessageSender.CUSTOMER, customer_id, content, image_urls)
    except sqlite3.IntegrityError as exc:
        if _is_open_item_clash(exc):
            raise ConflictError(
                "A newer report for this item is already open. Please continue on that issue instead."
            ) from None
        raise


def mark_message_email_sent(message_id: int) -> None:
    with get_conn() as conn:
        conn.execute(
            "UPDATE issue_messages SET email_sent = 1, email_sent_at = ? WHERE id = ?",
            (_now_iso(), message_id),
        )
