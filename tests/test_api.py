"""HTTP tests against the FastAPI app."""

import pytest
from fastapi.testclient import TestClient

from conftest import CUSTOMER, OTHER_CUSTOMER, RecordingNotifier
from issue_desk.main import app
from issue_desk.notify.notifier import get_notifier
from issue_desk.security import basic_auth

ADMIN_AUTH = ("ana", "s3cret")
AS_CUSTOMER = {"X-Customer-Id": CUSTOMER}
AS_OTHER = {"X-Customer-Id": OTHER_CUSTOMER}


@pytest.fixture
def sent() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(monkeypatch, sent):
    monkeypatch.setattr(basic_auth, "ADMIN_BASIC_USER", ADMIN_AUTH[0])
    monkeypatch.setattr(basic_auth, "ADMIN_BASIC_PASS", ADMIN_AUTH[1])
    app.dependency_overrides[get_notifier] = lambda: sent
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _report(client, item="OI1", order="ORD-1", reason="QUALITY_ISSUE", headers=AS_CUSTOMER):
    return client.post(
        f"/orders/{order}/items/{item}/issue",
        json={"reason": reason, "notes": "colours washed out", "image_urls": ["https://cdn/1.jpg"]},
        headers=headers,
    )


def _review(client, issue_id, action, message=None, final=False):
    return client.post(
        f"/admin/issues/{issue_id}/review",
        json={"action": action, "message": message, "is_final_rejection": final},
        auth=ADMIN_AUTH,
    )


def _thread(client, issue_id):
    return client.get(f"/issues/{issue_id}", headers=AS_CUSTOMER).json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestLifecycle:
    def test_report_request_info_refund_conclude_then_review_is_refused(self, client, sent):
        r = _report(client)
        assert r.status_code == 200
        issue_id = r.json()["issue_id"]
        assert r.json()["status"] == "AWAITING_REVIEW"
        assert len(_thread(client, issue_id)["messages"]) == 1

        r = _review(client, issue_id, "REQUEST_INFO", "Can you send a daylight photo?")
        assert r.status_code == 200
        assert r.json()["issue"]["status"] == "INFO_REQUESTED"
        assert r.json()["message"] == "Information requested from customer."
        assert len(_thread(client, issue_id)["messages"]) == 2

        r = _review(client, issue_id, "APPROVE_REFUND")
        assert r.status_code == 200
        assert r.json()["issue"]["status"] == "APPROVED_REFUND"
        assert r.json()["issue"]["resolved_type"] == "FULL_REFUND"
        assert len(_thread(client, issue_id)["messages"]) == 3

        r = client.post(f"/admin/issues/{issue_id}/conclude", json={"reason": "Refund issued"}, auth=ADMIN_AUTH)
        assert r.status_code == 200
        assert r.json()["issue"]["concluded"] is True
        assert r.json()["issue"]["status"] == "APPROVED_REFUND"
        assert len(_thread(client, issue_id)["messages"]) == 4

        r = _review(client, issue_id, "REJECT", "too late")
        assert r.status_code == 409
        assert r.json()["code"] == "INVALID_STATE"
        assert len(_thread(client, issue_id)["messages"]) == 4

        assert [c["kind"] for c in sent.calls] == ["info_requested", "approved_refund"]

    def test_customer_reply_and_appeal(self, client):
        issue_id = _report(client).json()["issue_id"]
        _review(client, issue_id, "REQUEST_INFO", "photo?")

        r = client.post(f"/issues/{issue_id}/messages", json={"content": "attached"}, headers=AS_CUSTOMER)
        assert r.status_code == 200
        assert r.json()["issue"]["status"] == "AWAITING_REVIEW"

        _review(client, issue_id, "REJECT", "looks fine to us")
        r = client.post(f"/issues/{issue_id}/appeal", json={"reason": "see corner"}, headers=AS_CUSTOMER)
        assert r.status_code == 200
        assert r.json()["issue"]["status"] == "AWAITING_REVIEW"

        r = _review(client, issue_id, "REJECT", "still fine", final=True)
        assert r.json()["message"] == "Issue rejected (final)."
        assert r.json()["issue"]["concluded"] is True

        r = client.post(f"/issues/{issue_id}/appeal", json={"reason": "again"}, headers=AS_CUSTOMER)
        assert r.status_code == 409
        assert r.json()["code"] == "INVALID_STATE"

    def test_reopen_and_carrier_fault(self, client):
        issue_id = _report(client).json()["issue_id"]
        client.post(f"/admin/issues/{issue_id}/conclude", auth=ADMIN_AUTH)

        r = client.post(f"/admin/issues/{issue_id}/conclude", auth=ADMIN_AUTH)
        assert r.status_code == 409

        r = client.delete(f"/admin/issues/{issue_id}/conclude", auth=ADMIN_AUTH)
        assert r.status_code == 200
        assert r.json()["issue"]["concluded"] is False

        r = client.put(f"/admin/issues/{issue_id}/carrier-fault", json={"value": "CARRIER_FAULT"}, auth=ADMIN_AUTH)
        assert r.status_code == 200
        assert r.json()["issue"]["carrier_fault"] == "CARRIER_FAULT"

        r = client.put(f"/admin/issues/{issue_id}/carrier-fault", json={"value": "PROBABLY"}, auth=ADMIN_AUTH)
        assert r.status_code == 400
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_admin_message_route(self, client, sent):
        issue_id = _report(client).json()["issue_id"]

        r = client.post(
            f"/admin/issues/{issue_id}/messages", json={"content": "We're on it."}, auth=ADMIN_AUTH
        )
        assert r.status_code == 200
        assert r.json()["issue"]["status"] == "AWAITING_REVIEW"

        thread = _thread(client, issue_id)["messages"]
        assert thread[-1]["sender"] == "ADMIN"
        assert thread[-1]["sender_id"] == "ana"
        assert thread[-1]["content"] == "We're on it."
        assert sent.calls[-1]["kind"] == "admin_message"

        r = client.post(f"/admin/issues/{issue_id}/messages", json={}, auth=ADMIN_AUTH)
        assert r.status_code == 400

        client.post(f"/admin/issues/{issue_id}/conclude", auth=ADMIN_AUTH)
        r = client.post(f"/admin/issues/{issue_id}/messages", json={"content": "late"}, auth=ADMIN_AUTH)
        assert r.status_code == 409
        assert r.json()["code"] == "INVALID_STATE"

    def test_admin_message_needs_credentials(self, client):
        issue_id = _report(client).json()["issue_id"]
        r = client.post(f"/admin/issues/{issue_id}/messages", json={"content": "hi"})
        assert r.status_code == 401


class TestErrorMapping:
    def test_invalid_reason_is_400(self, client):
        r = _report(client, reason="BROKEN")
        assert r.status_code == 400
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_missing_reason_is_400(self, client):
        r = client.post("/orders/ORD-1/items/OI1/issue", json={}, headers=AS_CUSTOMER)
        assert r.status_code == 400

    def test_unfulfilled_order_is_400_invalid_state(self, client):
        r = _report(client, item="OI3", order="ORD-2")
        assert r.status_code == 400
        assert r.json()["code"] == "INVALID_STATE"

    def test_foreign_item_is_403(self, client):
        r = _report(client, headers=AS_OTHER)
        assert r.status_code == 403
        assert r.json()["code"] == "FORBIDDEN"

    def test_unknown_item_is_404(self, client):
        r = _report(client, item="OI-nope")
        assert r.status_code == 404
        assert r.json()["code"] == "NOT_FOUND"

    def test_duplicate_report_is_409_conflict(self, client):
        _report(client)
        r = _report(client)
        assert r.status_code == 409
        assert r.json()["code"] == "CONFLICT"

    def test_missing_review_message_is_400(self, client):
        issue_id = _report(client).json()["issue_id"]
        r = _review(client, issue_id, "REJECT")
        assert r.status_code == 400
        assert "reason is required" in r.json()["detail"]

    def test_unknown_action_is_400(self, client):
        issue_id = _report(client).json()["issue_id"]
        assert _review(client, issue_id, "ESCALATE").status_code == 400

    def test_review_of_missing_issue_is_404(self, client):
        assert _review(client, "nope", "APPROVE_REPRINT").status_code == 404

    def test_customer_cannot_read_someone_elses_issue(self, client):
        issue_id = _report(client).json()["issue_id"]
        r = client.get(f"/issues/{issue_id}", headers=AS_OTHER)
        assert r.status_code == 403


class TestAuth:
    def test_customer_routes_need_identity(self, client):
        r = client.post("/orders/ORD-1/items/OI1/issue", json={"reason": "OTHER"})
        assert r.status_code == 401

    def test_admin_routes_need_credentials(self, client):
        assert client.get("/admin/issues").status_code == 401
        assert client.get("/admin/issues", auth=("ana", "wrong")).status_code == 401

    def test_admin_routes_fail_closed_without_configuration(self, client, monkeypatch):
        monkeypatch.setattr(basic_auth, "ADMIN_BASIC_PASS", "")
        assert client.get("/admin/issues", auth=ADMIN_AUTH).status_code == 500

    def test_review_records_the_basic_auth_user(self, client):
        issue_id = _report(client).json()["issue_id"]
        _review(client, issue_id, "APPROVE_REPRINT")

        detail = client.get(f"/admin/issues/{issue_id}", auth=ADMIN_AUTH).json()
        assert detail["messages"][-1]["sender_id"] == "ana"


class TestAdminListing:
    def test_list_filters_and_stats(self, client):
        first = _report(client).json()["issue_id"]
        _report(client, item="OI2", reason="DAMAGED_IN_TRANSIT")
        _review(client, first, "APPROVE_REPRINT")

        all_issues = client.get("/admin/issues", auth=ADMIN_AUTH).json()["data"]
        assert len(all_issues) == 2

        approved = client.get("/admin/issues", params={"status": "APPROVED_REPRINT"}, auth=ADMIN_AUTH).json()
        assert [i["issue_id"] for i in approved["data"]] == [first]

        carrier = client.get("/admin/issues", params={"carrier_fault": "CARRIER_FAULT"}, auth=ADMIN_AUTH).json()
        assert [i["order_item_id"] for i in carrier["data"]] == ["OI2"]

        stats = client.get("/admin/issues/stats", auth=ADMIN_AUTH).json()
        assert stats["total"] == 2
        assert stats["pending"] == 1
        assert stats["concluded"] == 0
        assert stats["carrier_fault"] == 1
        assert stats["by_status"]["APPROVED_REPRINT"] == 1
        assert stats["by_status"]["REJECTED"] == 0
