import pytest

from conftest import quote_body
from dao.base import transition
from db.models.audit_log import AuditLog
from db.models.request import InvitationStatus, RequestSupplier
from utils.errors import ConflictError


@pytest.fixture
def invited(create_request, supplier_a):
    a_id, headers = supplier_a
    created = create_request([a_id])
    return created["request"]["id"], created["items"][0]["id"], a_id, headers


def _status(app, request_id, supplier_id):
    with app.app_context():
        return RequestSupplier.query.filter_by(
            request_id=request_id, supplier_id=supplier_id
        ).one().status


def test_invitation_moves_forward_only(app, client, invited):
    request_id, item_id, a_id, headers = invited
    url = f"/api/supplier/requests/{request_id}"

    first = client.get(url, headers=headers).get_json()
    # the response reflects the state before this view
    assert first["invitation"]["status"] == "invited"
    assert first["quotation"] is None
    assert _status(app, request_id, a_id) == InvitationStatus.VIEWED

    client.post(f"{url}/quote", json=quote_body({item_id: 10}), headers=headers)
    assert _status(app, request_id, a_id) == InvitationStatus.QUOTED

    again = client.get(url, headers=headers).get_json()
    assert again["invitation"]["status"] == "quoted"
    assert again["quotation"]["total_amount"] == 100.0
    assert len(again["quotation_items"]) == 1
    assert _status(app, request_id, a_id) == InvitationStatus.QUOTED


def test_quote_without_viewing_first(app, client, invited):
    request_id, item_id, a_id, headers = invited
    resp = client.post(
        f"/api/supplier/requests/{request_id}/quote",
        json=quote_body({item_id: 10}),
        headers=headers,
    )
    assert resp.status_code == 200
    assert _status(app, request_id, a_id) == InvitationStatus.QUOTED


def test_decline_open_invitation(app, client, invited):
    request_id, item_id, a_id, headers = invited
    resp = client.post(
        f"/api/supplier/requests/{request_id}/decline",
        json={"notes": "Out of stock"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.get_json()["invitation"]["status"] == "declined"
    assert _status(app, request_id, a_id) == InvitationStatus.DECLINED
    with app.app_context():
        assert AuditLog.query.filter_by(action="invitation_declined").count() == 1

    # declined is terminal
    quote = client.post(
        f"/api/supplier/requests/{request_id}/quote",
        json=quote_body({item_id: 10}),
        headers=headers,
    )
    assert quote.status_code == 400
    assert quote.get_json()["code"] == "conflict"
    assert _status(app, request_id, a_id) == InvitationStatus.DECLINED


def test_cannot_decline_after_quoting(app, client, invited):
    request_id, item_id, a_id, headers = invited
    client.post(
        f"/api/supplier/requests/{request_id}/quote",
        json=quote_body({item_id: 10}),
        headers=headers,
    )
    resp = client.post(f"/api/supplier/requests/{request_id}/decline", headers=headers)
    assert resp.status_code == 400
    assert _status(app, request_id, a_id) == InvitationStatus.QUOTED


def test_decline_requires_invitation(client, invited, supplier_b):
    request_id, _, _, _ = invited
    _, b_headers = supplier_b
    resp = client.post(f"/api/supplier/requests/{request_id}/decline", headers=b_headers)
    assert resp.status_code == 403


def test_listing_filters(client, create_request, invited):
    request_id, item_id, a_id, headers = invited
    other = create_request([a_id], title="Untouched request title")
    client.post(
        f"/api/supplier/requests/{request_id}/quote",
        json=quote_body({item_id: 10}),
        headers=headers,
    )

    quoted = client.get("/api/supplier/requests?status=quoted", headers=headers).get_json()
    assert [r["id"] for r in quoted["data"]] == [request_id]
    assert quoted["data"][0]["quotation_status"] == "submitted"

    unquoted = client.get("/api/supplier/requests?status=unquoted", headers=headers).get_json()
    assert [r["id"] for r in unquoted["data"]] == [other["request"]["id"]]

    bad = client.get("/api/supplier/requests?status=whatever", headers=headers)
    assert bad.status_code == 400


def test_supplier_dashboard(client, invited):
    request_id, item_id, _, headers = invited
    client.post(
        f"/api/supplier/requests/{request_id}/quote",
        json=quote_body({item_id: 10}),
        headers=headers,
    )
    body = client.get("/api/supplier/dashboard", headers=headers).get_json()
    assert body["stats"]["submitted_quotations"] == 1
    assert body["stats"]["active_requests"] == 0
    assert body["stats"]["total_value"] == 100.0
    assert body["performance"]["response_rate"]["rate"] == 100.0


def test_notifications_inbox(client, invited, supplier_b):
    _, _, _, headers = invited
    inbox = client.get("/api/supplier/notifications", headers=headers).get_json()
    assert inbox["unread_count"] == 1
    note = inbox["data"][0]
    assert note["type"] == "request"

    resp = client.put(f"/api/supplier/notifications/{note['id']}/read", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["notification"]["is_read"] is True
    unread = client.get("/api/supplier/notifications?unread_only=true", headers=headers).get_json()
    assert unread["data"] == []
    assert unread["unread_count"] == 0

    _, b_headers = supplier_b
    foreign = client.put(f"/api/supplier/notifications/{note['id']}/read", headers=b_headers)
    assert foreign.status_code == 404


def test_profile_update(client, supplier_a):
    _, headers = supplier_a
    resp = client.put(
        "/api/supplier/profile",
        json={"company_name": "Alpha Metal A.S.", "tax_number": "1234567890", "city": "Izmir"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.get_json()["supplier"]["company_name"] == "Alpha Metal A.S."

    bad = client.put("/api/supplier/profile", json={"company_name": "Alpha", "tax_number": "12"}, headers=headers)
    assert bad.status_code == 400
    assert "tax_number" in bad.get_json()["errors"]


def test_transitions_are_guarded():
    inv = RequestSupplier(status=InvitationStatus.QUOTED)
    with pytest.raises(ConflictError):
        transition(inv, InvitationStatus.VIEWED, "Invitation")
    assert transition(inv, InvitationStatus.QUOTED).status == InvitationStatus.QUOTED
