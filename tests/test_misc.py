import logging
from concurrent.futures import Future

import pytest
from sqlalchemy.exc import OperationalError

from db.models.quotation import QuotationStatus
from db.models.request import RequestStatus
from utils import mailer


def test_health(client):
    resp = client.get("/api/health")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["status"] == "ok"
    assert body["database"] == "connected"
    assert body["version"] == "1.0.0"
    assert resp.headers["X-Request-ID"]


def test_health_reports_degraded_database(client, monkeypatch):
    from configs import db

    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(db.session, "execute", broken)
    resp = client.get("/api/health")
    assert resp.status_code == 503
    assert resp.get_json()["status"] == "degraded"


def test_request_id_is_propagated(client):
    resp = client.get("/api", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"
    assert resp.get_json()["endpoints"]["supplier"] == "/api/supplier"


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/nowhere")
    body = resp.get_json()
    assert resp.status_code == 404
    assert body["success"] is False
    assert body["code"] == "not_found"


def test_invalid_json_body_is_rejected(admin_client):
    resp = admin_client.post(
        "/api/admin/requests", data="[1, 2]", content_type="application/json"
    )
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Request body must be a JSON object."


def test_bad_pagination_arguments(admin_client):
    resp = admin_client.get("/api/admin/requests?page=0&limit=1000")
    errors = resp.get_json()["errors"]
    assert resp.status_code == 400
    assert set(errors) == {"page", "limit"}


def test_back_office_requires_admin_session(client, admin_client, supplier_a):
    resp = client.get("/manage/")
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "not_authenticated"

    assert admin_client.get("/manage/").status_code == 200
    assert admin_client.get("/manage/admin_request/").status_code == 200


def test_admin_dashboard(admin_client, create_request, supplier_a, pending_supplier):
    create_request([supplier_a[0]])
    body = admin_client.get("/api/admin/dashboard").get_json()
    assert body["stats"]["total_requests"] == 1
    assert body["stats"]["active_requests"] == 1
    assert body["stats"]["total_suppliers"] == 2
    assert body["stats"]["approved_suppliers"] == 1
    assert body["stats"]["pending_approvals"] == 1
    assert [s["company_name"] for s in body["pending_items"]["supplier_approvals"]] == [
        "Gamma Pending"
    ]
    assert body["recent_requests"][0]["invited_suppliers"] == 1


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (RequestStatus.DRAFT, RequestStatus.ACTIVE, True),
        (RequestStatus.ACTIVE, RequestStatus.CLOSED, True),
        (RequestStatus.CLOSED, RequestStatus.ACTIVE, False),
        (RequestStatus.CANCELLED, RequestStatus.CLOSED, False),
    ],
)
def test_request_status_transitions(current, target, allowed):
    assert current.can_transition_to(target) is allowed


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (QuotationStatus.SUBMITTED, QuotationStatus.SUBMITTED, True),
        (QuotationStatus.SUBMITTED, QuotationStatus.ACCEPTED, True),
        (QuotationStatus.ACCEPTED, QuotationStatus.REJECTED, False),
        (QuotationStatus.REJECTED, QuotationStatus.SUBMITTED, False),
    ],
)
def test_quotation_status_transitions(current, target, allowed):
    assert current.can_transition_to(target) is allowed


def test_failed_background_email_batch_is_logged(caplog):
    future = Future()
    future.set_exception(RuntimeError("no application context"))
    with caplog.at_level(logging.ERROR, logger="utils.mailer"):
        mailer._log_failure(future)
    assert "Email batch failed" in caplog.text

    done = Future()
    done.set_result(None)
    caplog.clear()
    mailer._log_failure(done)
    assert caplog.records == []
