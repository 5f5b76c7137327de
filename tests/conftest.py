"""
Shared fixtures.

Every test gets its own SQLite file and its own orders.json under tmp_path.
DB_PATH is pointed at a scratch directory before any issue_desk import so
that importing the FastAPI app never touches a real database.
"""
import json
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

os.environ.setdefault("DB_PATH", str(Path(tempfile.mkdtemp()) / "import.db"))

import pytest

from issue_desk.issues import db
from issue_desk.issues import intake
from issue_desk.tools import order_lookup

CUSTOMER = "cust-1"
OTHER_CUSTOMER = "cust-2"
ADMIN = "admin-ana"


def _iso_days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


def _orders():
    return [
        {
            "order_id": "ORD-1",
            "customer_id": CUSTOMER,
            "customer_email": "maya@example.com",
            "customer_name": "Maya",
            "status": "delivered",
            "shipped_at": _iso_days_ago(5),
            "delivered_at": _iso_days_ago(2),
            "items": [
                {"order_item_id": "OI1", "product_name": "A3 Matte Canvas Print", "qty": 1},
                {"order_item_id": "OI2", "product_name": "A2 Gloss Poster", "qty": 2},
            ],
        },
        {
            "order_id": "ORD-2",
            "customer_id": CUSTOMER,
            "customer_email": "maya@example.com",
            "customer_name": "Maya",
            "status": "processing",
            "shipped_at": None,
            "delivered_at": None,
            "items": [{"order_item_id": "OI3", "product_name": "Custom T-Shirt", "qty": 1}],
        },
        {
            "order_id": "ORD-3",
            "customer_id": CUSTOMER,
            "customer_email": "maya@example.com",
            "customer_name": "Maya",
            "status": "delivered",
            "shipped_at": _iso_days_ago(64),
            "delivered_at": _iso_days_ago(60),
            "items": [{"order_item_id": "OI4", "product_name": "Photo Book", "qty": 1}],
        },
        {
            "order_id": "ORD-4",
            "customer_id": OTHER_CUSTOMER,
            "customer_email": None,
            "customer_name": "Tom",
            "status": "shipped",
            "shipped_at": _iso_days_ago(1),
            "delivered_at": None,
            "items": [{"order_item_id": "OI5", "product_name": "11oz Photo Mug", "qty": 1}],
        },
    ]


@pytest.fixture(autouse=True)
def store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Fresh database and order data for each test."""
    orders_path = tmp_path / "orders.json"
    orders_path.write_text(json.dumps(_orders()), encoding="utf-8")

    monkeypatch.setattr(db, "DB_PATH", tmp_path / "issues.db")
    monkeypatch.setattr(order_lookup, "ORDERS_PATH", orders_path)
    monkeypatch.setattr(intake, "ISSUE_REPORTING_WINDOW_DAYS", 30)
    db.init_db()
    return tmp_path


class RecordingNotifier:
    """Notifier double: records every send and returns `result` (or raises `error`)."""

    def __init__(self, result: bool = True, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = []

    def send(self, kind, recipient, issue_id, product_name, body, can_appeal=None):
        self.calls.append(
            {
                "kind": kind,
                "recipient": recipient,
                "issue_id": issue_id,
                "product_name": product_name,
                "body": body,
                "can_appeal": can_appeal,
            }
        )
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def reported_issue():
    """An AWAITING_REVIEW issue on OI1 reported by its owner."""
    return intake.report_issue("OI1", CUSTOMER, "QUALITY_ISSUE", notes="faded print")
