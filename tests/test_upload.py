import os
from io import BytesIO

from openpyxl import Workbook, load_workbook

from db.models.audit_log import AuditLog
from db.models.file import RelatedType, UploadedFile


def _workbook(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


def _stored_files(app, subdir):
    folder = os.path.join(app.config["UPLOAD_FOLDER"], subdir)
    return os.listdir(folder) if os.path.isdir(folder) else []


def test_excel_import_parses_rows(app, admin_client):
    data = _workbook(
        [
            ["MALZEME_KODU", "MALZEME_ADI", "MIKTAR", "BIRIM", "ACIKLAMA", "KATEGORI", "ONCELIK"],
            ["MAL001", "Steel sheet 3mm", 100, "KG", "Galvanised", "Metal", "high"],
            [None, "Screw M8x50", "12,5", None, None, None, "whenever"],
            [None, None, None, None, None, None, None],
            ["MAL003", "No quantity", 0, "KG", None, None, None],
            ["MAL004", "", 5, "KG", None, None, None],
        ]
    )
    resp = admin_client.post(
        "/api/upload/excel",
        data={"excelFile": (data, "materials.xlsx")},
        content_type="multipart/form-data",
    )
    body = resp.get_json()
    assert resp.status_code == 200, body
    assert body["summary"]["total_rows"] == 5
    assert body["summary"]["valid_items"] == 2
    assert body["summary"]["headers"][1] == "MALZEME_ADI"

    first, second = body["data"]
    assert first["material_code"] == "MAL001"
    assert first["quantity"] == 100.0
    assert first["priority"] == "high"
    assert first["row_number"] == 2
    assert second["material_code"].startswith("AUTO_")
    assert second["quantity"] == 12.5
    assert second["unit"] == "ADET"
    assert second["category"] == "Genel"
    assert second["priority"] == "normal"

    assert body["file"]["original_name"] == "materials.xlsx"
    assert len(_stored_files(app, "excel")) == 1
    with app.app_context():
        record = UploadedFile.query.one()
        assert record.related_type == RelatedType.EXCEL_IMPORT
        assert AuditLog.query.filter_by(action="excel_imported").count() == 1


def test_excel_without_valid_rows_is_discarded(app, admin_client):
    data = _workbook([["MALZEME_ADI", "MIKTAR"], ["", 3], ["Bolt", -1]])
    resp = admin_client.post(
        "/api/upload/excel",
        data={"excelFile": (data, "empty.xlsx")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert _stored_files(app, "excel") == []
    with app.app_context():
        assert UploadedFile.query.count() == 0


def test_excel_rejects_other_files(app, admin_client):
    resp = admin_client.post(
        "/api/upload/excel",
        data={"excelFile": (BytesIO(b"a,b\n1,2\n"), "list.csv")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400

    resp = admin_client.post(
        "/api/upload/excel",
        data={"excelFile": (BytesIO(b"not a zip"), "broken.xlsx")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert _stored_files(app, "excel") == []

    missing = admin_client.post("/api/upload/excel", data={}, content_type="multipart/form-data")
    assert missing.status_code == 400


def test_excel_import_is_admin_only(client, supplier_a):
    _, headers = supplier_a
    resp = client.post(
        "/api/upload/excel",
        data={"excelFile": (_workbook([["MALZEME_ADI"], ["x"]]), "a.xlsx")},
        content_type="multipart/form-data",
        headers=headers,
    )
    assert resp.status_code == 401


def test_excel_template(app, admin_client):
    resp = admin_client.get("/api/upload/excel-template")
    assert resp.status_code == 200
    assert resp.mimetype.endswith("spreadsheetml.sheet")
    assert "attachment" in resp.headers["Content-Disposition"]

    wb = load_workbook(BytesIO(resp.data))
    assert wb.sheetnames == ["Malzeme_Listesi", "Kullanim_Kilavuzu"]
    header = [c.value for c in wb["Malzeme_Listesi"][1]]
    assert header[:4] == ["MALZEME_KODU", "MALZEME_ADI", "MIKTAR", "BIRIM"]
    assert wb["Malzeme_Listesi"].max_row == 6
    with app.app_context():
        assert AuditLog.query.filter_by(action="excel_template_downloaded").count() == 1


def test_attachment_upload_list_and_delete(app, client, supplier_a, supplier_b):
    _, a_headers = supplier_a
    _, b_headers = supplier_b
    resp = client.post(
        "/api/upload/file",
        data={
            "file": (BytesIO(b"%PDF-1.4 datasheet"), "product datasheet.pdf"),
            "related_type": "request",
            "related_id": "7",
            "description": "Datasheet",
        },
        content_type="multipart/form-data",
        headers=a_headers,
    )
    assert resp.status_code == 201, resp.get_json()
    record = resp.get_json()["file"]
    assert record["related_type"] == "request"
    assert record["related_id"] == 7
    assert record["filename"].startswith("product_datasheet-")
    assert os.path.exists(record["file_path"])

    mine = client.get("/api/upload/files", headers=a_headers).get_json()
    assert [f["id"] for f in mine["data"]] == [record["id"]]
    assert client.get("/api/upload/files", headers=b_headers).get_json()["data"] == []

    foreign = client.delete(f"/api/upload/files/{record['id']}", headers=b_headers)
    assert foreign.status_code == 403

    resp = client.delete(f"/api/upload/files/{record['id']}", headers=a_headers)
    assert resp.status_code == 200
    assert not os.path.exists(record["file_path"])
    again = client.delete(f"/api/upload/files/{record['id']}", headers=a_headers)
    assert again.status_code == 404

    with app.app_context():
        assert UploadedFile.query.count() == 0
        assert AuditLog.query.filter_by(action="file_deleted").count() == 1


def test_attachment_validation(client, supplier_a):
    _, headers = supplier_a
    bad_type = client.post(
        "/api/upload/file",
        data={"file": (BytesIO(b"MZ"), "tool.exe")},
        content_type="multipart/form-data",
        headers=headers,
    )
    assert bad_type.status_code == 400

    bad_related = client.post(
        "/api/upload/file",
        data={"file": (BytesIO(b"x"), "a.pdf"), "related_type": "invoice"},
        content_type="multipart/form-data",
        headers=headers,
    )
    assert bad_related.status_code == 400
    assert "related_type" in bad_related.get_json()["errors"]

    assert client.get("/api/upload/files?uploaded_by=abc", headers=headers).status_code == 400


def test_admin_sees_every_file(admin_client, client, supplier_a):
    _, headers = supplier_a
    client.post(
        "/api/upload/file",
        data={"file": (BytesIO(b"x"), "a.pdf")},
        content_type="multipart/form-data",
        headers=headers,
    )
    listing = admin_client.get("/api/upload/files").get_json()
    assert listing["pagination"]["total"] == 1
    assert listing["data"][0]["uploaded_by_name"] == "supplier_a"


def test_oversized_upload_is_rejected(app, client, supplier_a):
    _, headers = supplier_a
    app.config["MAX_CONTENT_LENGTH"] = 1024
    resp = client.post(
        "/api/upload/file",
        data={"file": (BytesIO(b"x" * 4096), "big.pdf")},
        content_type="multipart/form-data",
        headers=headers,
    )
    assert resp.status_code == 413
    assert resp.get_json()["success"] is False
