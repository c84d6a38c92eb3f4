import pytest

from configs import db
from conftest import quote_body
from dao import quotation as quotation_dao
from db.models.audit_log import AuditLog
from db.models.notification import Notification, NotificationType
from db.models.quotation import Quotation, QuotationStatus
from db.models.request import Request, RequestStatus
from db.models.supplier import Supplier
from db.models.user import User

ITEMS = [
    {"material_name": "Steel sheet 3mm", "quantity": 10, "unit": "KG"},
    {"material_name": "Screw M8x50", "quantity": 5, "unit": "ADET"},
    {"material_name": "Welding machine", "quantity": 1, "unit": "ADET"},
]


@pytest.fixture
def bids(client, create_request, supplier_a, supplier_b):
    """Request with A quoting 1500 and B quoting 1800."""
    a_id, a_headers = supplier_a
    b_id, b_headers = supplier_b
    created = create_request([a_id, b_id], items=ITEMS)
    request_id = created["request"]["id"]
    i1, i2, i3 = [it["id"] for it in created["items"]]
    url = f"/api/supplier/requests/{request_id}/quote"
    qa = client.post(url, json=quote_body({i1: 80, i2: 40, i3: 500}), headers=a_headers)
    qb = client.post(url, json=quote_body({i1: 100, i2: 100, i3: 300}), headers=b_headers)
    assert qa.status_code == 200 and qb.status_code == 200
    return {
        "request_id": request_id,
        "a": (a_id, qa.get_json()["quotation"]["id"]),
        "b": (b_id, qb.get_json()["quotation"]["id"]),
    }


def _statuses(request_id):
    return {
        q.supplier_id: q.status
        for q in Quotation.query.filter_by(request_id=request_id).order_by(Quotation.id)
    }


def test_select_winner_closes_request(app, admin_client, bids):
    a_id, qa = bids["a"]
    b_id, _ = bids["b"]
    request_id = bids["request_id"]

    resp = admin_client.post(
        f"/api/admin/quotations/{qa}/select-winner", json={"notes": "Best price"}
    )
    body = resp.get_json()
    assert resp.status_code == 200, body
    assert body["quotation"]["status"] == "accepted"
    assert body["request"]["status"] == "closed"
    assert body["request"]["winner_supplier_id"] == a_id

    with app.app_context():
        assert _statuses(request_id) == {
            a_id: QuotationStatus.ACCEPTED,
            b_id: QuotationStatus.REJECTED,
        }
        req = db.session.get(Request, request_id)
        assert req.status == RequestStatus.CLOSED
        assert req.winner_supplier_id == a_id
        assert req.notes == "Best price"
        assert db.session.get(Supplier, a_id).successful_quotations == 1
        assert db.session.get(Supplier, b_id).successful_quotations == 0

        for supplier_id in (a_id, b_id):
            user_id = db.session.get(Supplier, supplier_id).user_id
            inbox = Notification.query.filter_by(user_id=user_id, type=NotificationType.QUOTATION)
            assert inbox.count() == 1
        assert AuditLog.query.filter_by(action="quotation_selected", record_id=qa).count() == 1


def test_second_award_on_closed_request_is_refused(app, admin_client, bids):
    a_id, qa = bids["a"]
    b_id, qb = bids["b"]
    request_id = bids["request_id"]
    assert admin_client.post(f"/api/admin/quotations/{qa}/select-winner").status_code == 200

    resp = admin_client.post(f"/api/admin/quotations/{qb}/select-winner")
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "conflict"

    with app.app_context():
        accepted = Quotation.query.filter_by(
            request_id=request_id, status=QuotationStatus.ACCEPTED
        ).all()
        assert [q.id for q in accepted] == [qa]
        assert db.session.get(Request, request_id).winner_supplier_id == a_id
        assert db.session.get(Supplier, a_id).successful_quotations == 1
        assert db.session.get(Supplier, b_id).successful_quotations == 0


def test_quotes_after_award_are_refused(client, admin_client, bids, supplier_b):
    _, qa = bids["a"]
    _, b_headers = supplier_b
    admin_client.post(f"/api/admin/quotations/{qa}/select-winner")
    resp = client.post(
        f"/api/supplier/requests/{bids['request_id']}/quote",
        json=quote_body({1: 10}),
        headers=b_headers,
    )
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "conflict"


def test_unknown_quotation(admin_client):
    resp = admin_client.post("/api/admin/quotations/4242/select-winner")
    assert resp.status_code == 404


def test_award_is_all_or_nothing(app, bids, monkeypatch):
    a_id, qa = bids["a"]
    b_id, _ = bids["b"]
    request_id = bids["request_id"]

    def boom(req, winner, notes):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(quotation_dao, "_close_request", boom)
    with app.app_context():
        admin_id = User.query.filter_by(username="admin").one().id
        with pytest.raises(RuntimeError):
            quotation_dao.select_winner(qa, None, admin_id)

    with app.app_context():
        assert _statuses(request_id) == {
            a_id: QuotationStatus.SUBMITTED,
            b_id: QuotationStatus.SUBMITTED,
        }
        req = db.session.get(Request, request_id)
        assert req.status == RequestStatus.ACTIVE
        assert req.winner_supplier_id is None
        assert db.session.get(Supplier, a_id).successful_quotations == 0
        assert AuditLog.query.filter_by(action="quotation_selected").count() == 0


def test_award_failure_over_http_is_a_500_envelope(app, admin_client, bids, monkeypatch):
    _, qa = bids["a"]

    def boom(req, winner, notes):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(quotation_dao, "_close_request", boom)
    resp = admin_client.post(f"/api/admin/quotations/{qa}/select-winner")
    body = resp.get_json()
    assert resp.status_code == 500
    assert body["success"] is False
    assert body["code"] == "internal_error"

    with app.app_context():
        assert db.session.get(Request, bids["request_id"]).status == RequestStatus.ACTIVE


def test_at_most_one_accepted_quotation(app, admin_client, bids):
    _, qa = bids["a"]
    _, qb = bids["b"]
    request_id = bids["request_id"]

    with app.app_context():
        assert Quotation.query.filter_by(status=QuotationStatus.ACCEPTED).count() == 0

    for quotation_id in (qb, qa, qb):
        admin_client.post(f"/api/admin/quotations/{quotation_id}/select-winner")
        with app.app_context():
            accepted = Quotation.query.filter_by(
                request_id=request_id, status=QuotationStatus.ACCEPTED
            ).count()
            closed = db.session.get(Request, request_id).status == RequestStatus.CLOSED
            assert accepted == 1
            assert closed
