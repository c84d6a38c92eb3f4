from configs import db
from conftest import request_payload
from dao import audit as audit_dao
from db.models.audit_log import AuditLog
from db.models.category import Category
from db.models.notification import Notification, NotificationType
from db.models.request import Request, RequestItem, RequestSupplier


def test_create_request_invites_every_supplier(app, admin_client, supplier_a, supplier_b):
    a_id, _ = supplier_a
    b_id, _ = supplier_b
    resp = admin_client.post("/api/admin/requests", json=request_payload([a_id, b_id]))
    body = resp.get_json()
    assert resp.status_code == 201, body

    req = body["request"]
    assert req["status"] == "active"
    assert req["total_items"] == 2
    assert req["total_suppliers"] == 2
    assert req["request_no"].startswith("REQ-")
    assert [it["item_no"] for it in body["items"]] == [1, 2]
    assert {inv["supplier_id"] for inv in body["invitations"]} == {a_id, b_id}
    assert {inv["status"] for inv in body["invitations"]} == {"invited"}

    with app.app_context():
        assert RequestSupplier.query.filter_by(request_id=req["id"]).count() == 2
        assert Notification.query.filter_by(type=NotificationType.REQUEST).count() == 2
        assert AuditLog.query.filter_by(action="request_created", record_id=req["id"]).count() == 1


def test_duplicate_supplier_ids_are_invited_once(admin_client, supplier_a):
    a_id, _ = supplier_a
    resp = admin_client.post("/api/admin/requests", json=request_payload([a_id, a_id, str(a_id)]))
    assert resp.status_code == 201
    assert resp.get_json()["request"]["total_suppliers"] == 1


def test_create_request_validation(app, admin_client, supplier_a):
    a_id, _ = supplier_a
    payload = request_payload(
        [a_id],
        items=[{"material_name": "", "quantity": 0, "unit": "KG"}],
        title="abc",
    )
    resp = admin_client.post("/api/admin/requests", json=payload)
    body = resp.get_json()
    assert resp.status_code == 400
    assert body["code"] == "validation_error"
    assert "title" in body["errors"]
    assert "items[0].material_name" in body["errors"]
    assert "items[0].quantity" in body["errors"]

    resp = admin_client.post(
        "/api/admin/requests", json={"title": "Empty request", "items": [], "supplier_ids": []}
    )
    errors = resp.get_json()["errors"]
    assert resp.status_code == 400
    assert {"items", "supplier_ids"} <= set(errors)

    with app.app_context():
        assert Request.query.count() == 0


def test_unapproved_or_unknown_supplier_is_rejected(app, admin_client, supplier_a, pending_supplier):
    a_id, _ = supplier_a
    pending_id, _ = pending_supplier
    resp = admin_client.post("/api/admin/requests", json=request_payload([a_id, pending_id, 9999]))
    body = resp.get_json()
    assert resp.status_code == 400
    assert body["errors"]["supplier_ids"] == [pending_id, 9999]
    with app.app_context():
        assert Request.query.count() == 0
        assert RequestSupplier.query.count() == 0


def test_list_and_detail_with_counts(admin_client, create_request, supplier_a, supplier_b):
    a_id, _ = supplier_a
    b_id, _ = supplier_b
    first = create_request([a_id], title="First request title")
    create_request([a_id, b_id], title="Second request title", priority="low")

    resp = admin_client.get("/api/admin/requests")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["pagination"]["total"] == 2
    assert body["data"][0]["title"] == "Second request title"
    assert body["data"][0]["invited_suppliers"] == 2
    assert body["data"][0]["received_quotations"] == 0

    low = admin_client.get("/api/admin/requests?priority=low").get_json()
    assert [r["title"] for r in low["data"]] == ["Second request title"]

    found = admin_client.get("/api/admin/requests?search=First").get_json()
    assert [r["id"] for r in found["data"]] == [first["request"]["id"]]

    bad = admin_client.get("/api/admin/requests?status=bogus")
    assert bad.status_code == 400

    detail = admin_client.get(f"/api/admin/requests/{first['request']['id']}")
    assert detail.status_code == 200
    assert detail.get_json()["request"]["invited_suppliers"] == 1
    assert admin_client.get("/api/admin/requests/4242").status_code == 404


def test_supplier_sees_only_invited_requests(client, create_request, supplier_a, supplier_b):
    a_id, a_headers = supplier_a
    b_id, b_headers = supplier_b
    created = create_request([a_id])
    request_id = created["request"]["id"]

    rows = client.get("/api/supplier/requests", headers=a_headers).get_json()["data"]
    assert [r["id"] for r in rows] == [request_id]
    assert rows[0]["invitation_status"] == "invited"
    assert rows[0]["quotation_id"] is None

    assert client.get("/api/supplier/requests", headers=b_headers).get_json()["data"] == []
    resp = client.get(f"/api/supplier/requests/{request_id}", headers=b_headers)
    assert resp.status_code == 403


def test_categories_are_public(app, client):
    with app.app_context():
        db.session.add_all(
            [
                Category(name="Metal"),
                Category(name="Chemicals"),
                Category(name="Retired", is_active=False),
            ]
        )
        db.session.commit()
    resp = client.get("/api/requests/categories")
    assert resp.status_code == 200
    names = [c["name"] for c in resp.get_json()["data"]]
    assert names == ["Chemicals", "Metal"]


def test_supplier_approval_flow(app, admin_client, client, pending_supplier):
    pending_id, headers = pending_supplier
    listing = admin_client.get("/api/admin/suppliers?status=pending").get_json()
    assert [s["id"] for s in listing["data"]] == [pending_id]

    missing = admin_client.post(f"/api/admin/suppliers/{pending_id}/approve", json={})
    assert missing.status_code == 400

    resp = admin_client.post(
        f"/api/admin/suppliers/{pending_id}/approve", json={"approved": True, "notes": "ok"}
    )
    assert resp.status_code == 200
    assert resp.get_json()["supplier"]["is_approved"] is True
    assert client.get("/api/supplier/requests", headers=headers).status_code == 200

    with app.app_context():
        assert AuditLog.query.filter_by(action="supplier_approved").count() == 1
        assert Notification.query.filter_by(type=NotificationType.APPROVAL).count() == 1

    detail = admin_client.get(f"/api/admin/suppliers/{pending_id}").get_json()
    assert detail["supplier"]["company_name"] == "Gamma Pending"
    assert detail["quotations"] == []


def test_quantity_beyond_column_range_is_rejected(app, admin_client, supplier_a):
    a_id, _ = supplier_a
    payload = request_payload(
        [a_id], items=[{"material_name": "Copper wire", "quantity": "1e40", "unit": "M"}]
    )
    resp = admin_client.post("/api/admin/requests", json=payload)
    body = resp.get_json()
    assert resp.status_code == 400, body
    assert "items[0].quantity" in body["errors"]

    with app.app_context():
        assert Request.query.count() == 0


def test_failed_create_leaves_nothing_behind(app, admin_client, supplier_a, supplier_b, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(audit_dao, "record", boom)
    resp = admin_client.post(
        "/api/admin/requests", json=request_payload([supplier_a[0], supplier_b[0]])
    )
    assert resp.status_code == 500
    assert resp.get_json()["code"] == "internal_error"

    with app.app_context():
        assert Request.query.count() == 0
        assert RequestItem.query.count() == 0
        assert RequestSupplier.query.count() == 0
        assert Notification.query.count() == 0
