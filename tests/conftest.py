import pytest

from app import create_app
from config import TestingConfig
from configs import db
from dao.user import hash_password
from db.models.supplier import Supplier
from db.models.user import User, UserRole
from utils.tokens import issue_token

ADMIN_PASSWORD = "Admin123"
SUPPLIER_PASSWORD = "Supplier123"


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    app = create_app(Config)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_admin(app):
    def _make(username="admin", email=None):
        with app.app_context():
            user = User(
                username=username,
                email=email or f"{username}@rfq.test",
                password_hash=hash_password(ADMIN_PASSWORD),
                role=UserRole.ADMIN,
            )
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture
def make_supplier(app):
    """Creates a supplier account; returns ``(supplier_id, bearer_headers)``."""

    def _make(username, approved=True, company=None):
        with app.app_context():
            user = User(
                username=username,
                email=f"{username}@supplier.test",
                password_hash=hash_password(SUPPLIER_PASSWORD),
                role=UserRole.SUPPLIER,
            )
            db.session.add(user)
            db.session.flush()
            supplier = Supplier(
                user_id=user.id,
                company_name=company or f"{username.title()} Ltd.",
                is_approved=approved,
            )
            db.session.add(supplier)
            db.session.commit()
            token = issue_token(user)
            return supplier.id, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def admin_client(app, make_admin):
    make_admin()
    c = app.test_client()
    resp = c.post("/api/auth/login", json={"username": "admin", "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return c


@pytest.fixture
def supplier_a(make_supplier):
    return make_supplier("supplier_a", company="Alpha Metal")


@pytest.fixture
def supplier_b(make_supplier):
    return make_supplier("supplier_b", company="Beta Kimya")


@pytest.fixture
def pending_supplier(make_supplier):
    return make_supplier("pending_c", approved=False, company="Gamma Pending")


def request_payload(supplier_ids, items=None, **overrides):
    body = {
        "title": "Steel sheets for line 3",
        "description": "Quarterly replenishment",
        "priority": "high",
        "items": items
        or [
            {"material_name": "Steel sheet 3mm", "quantity": 10, "unit": "KG", "category": "Metal"},
            {"material_name": "Screw M8x50", "quantity": 5, "unit": "ADET", "category": "Fasteners"},
        ],
        "supplier_ids": supplier_ids,
    }
    body.update(overrides)
    return body


@pytest.fixture
def create_request(admin_client):
    """Posts a request through the admin API and returns its JSON body."""

    def _create(supplier_ids, items=None, **overrides):
        resp = admin_client.post(
            "/api/admin/requests", json=request_payload(supplier_ids, items, **overrides)
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _create


def quote_body(items, **overrides):
    """``items`` maps request item ids to unit prices."""
    body = {
        "delivery_time": 14,
        "payment_terms": "30 days",
        "items": [{"request_item_id": rid, "unit_price": price} for rid, price in items.items()],
    }
    body.update(overrides)
    return body
