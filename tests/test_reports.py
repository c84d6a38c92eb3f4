from io import BytesIO

import pytest
from openpyxl import load_workbook

from conftest import quote_body
from db.models.audit_log import AuditLog


@pytest.fixture
def awarded(client, admin_client, create_request, supplier_a, supplier_b):
    a_id, a_headers = supplier_a
    b_id, b_headers = supplier_b
    created = create_request([a_id, b_id])
    request_id = created["request"]["id"]
    i1, i2 = [it["id"] for it in created["items"]]
    url = f"/api/supplier/requests/{request_id}/quote"
    qa = client.post(url, json=quote_body({i1: 80, i2: 40}), headers=a_headers).get_json()
    client.post(url, json=quote_body({i1: 90, i2: 60}), headers=b_headers)
    admin_client.post(f"/api/admin/quotations/{qa['quotation']['id']}/select-winner")
    return request_id, a_id


def test_dashboard_report(admin_client, awarded):
    resp = admin_client.get("/api/reports/dashboard")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["period"] == "all time"

    report = body["report"]
    assert report["summary"]["total_requests"] == 1
    assert report["summary"]["total_quotations"] == 2
    assert report["summary"]["total_suppliers"] == 2
    assert report["top_suppliers"][0]["company_name"] == "Alpha Metal"
    assert report["top_suppliers"][0]["win_rate"] == 100.0
    assert report["process_metrics"]["completion_rate"]["rate"] == 100.0
    assert report["process_metrics"]["supplier_participation"]["responses"] == 2
    assert sum(m["request_count"] for m in report["monthly_stats"]) == 1
    assert {c["category"] for c in report["category_stats"]} == {"Metal", "Fasteners"}


def test_dashboard_period_validation(admin_client):
    resp = admin_client.get("/api/reports/dashboard?start_date=yesterday")
    assert resp.status_code == 400
    assert "start_date" in resp.get_json()["errors"]

    resp = admin_client.get("/api/reports/dashboard?start_date=2026-02-01&end_date=2026-01-01")
    assert resp.status_code == 400

    future = admin_client.get("/api/reports/dashboard?start_date=2099-01-01").get_json()
    assert future["report"]["summary"]["total_requests"] == 0
    assert future["period"].startswith("2099-01-01")


def test_comparison_pdf(app, admin_client, awarded):
    request_id, _ = awarded
    resp = admin_client.get(f"/api/reports/quotation-comparison/{request_id}")
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.data.startswith(b"%PDF")
    with app.app_context():
        assert AuditLog.query.filter_by(action="comparison_report_generated").count() == 1
    assert admin_client.get("/api/reports/quotation-comparison/4242").status_code == 404


def test_comparison_pdf_without_quotations(admin_client, create_request, supplier_a):
    created = create_request([supplier_a[0]])
    resp = admin_client.get(f"/api/reports/quotation-comparison/{created['request']['id']}")
    assert resp.status_code == 200
    assert resp.data.startswith(b"%PDF")


def test_supplier_performance_pdf(app, admin_client, awarded):
    _, a_id = awarded
    resp = admin_client.get(f"/api/reports/supplier-performance/{a_id}")
    assert resp.status_code == 200
    assert resp.data.startswith(b"%PDF")
    assert "Alpha_Metal" in resp.headers["Content-Disposition"]
    with app.app_context():
        assert AuditLog.query.filter_by(action="supplier_report_generated").count() == 1
    assert admin_client.get("/api/reports/supplier-performance/4242").status_code == 404


@pytest.mark.parametrize(
    "kind, first_header, rows",
    [("requests", "Request No", 1), ("quotations", "Quotation No", 2), ("suppliers", "Company", 2)],
)
def test_excel_exports(app, admin_client, awarded, kind, first_header, rows):
    resp = admin_client.get(f"/api/reports/excel/{kind}")
    assert resp.status_code == 200
    assert f"{kind}_report_" in resp.headers["Content-Disposition"]

    ws = load_workbook(BytesIO(resp.data)).active
    assert ws.cell(row=1, column=1).value == first_header
    assert ws.max_row == rows + 1
    with app.app_context():
        assert AuditLog.query.filter_by(action=f"excel_report_{kind}_exported").count() == 1


def test_unknown_excel_report(app, admin_client):
    resp = admin_client.get("/api/reports/excel/invoices")
    assert resp.status_code == 400
    assert resp.get_json()["message"].startswith("Unknown report type")
    with app.app_context():
        assert AuditLog.query.filter(AuditLog.action.like("excel_report_%")).count() == 0


def test_reports_are_admin_only(client, supplier_a):
    _, headers = supplier_a
    assert client.get("/api/reports/dashboard", headers=headers).status_code == 401
