# routes/upload.py
from flask import Blueprint, g, jsonify, request, send_file
from dao import file as file_dao
from dao import report as report_dao
from db.models.user import UserRole
from utils import excel
from utils.auth import principal_required, roles_required, session_required
from utils.dates import utcnow
from utils.errors import ValidationError
from utils.pagination import get_page_args, paginated

upload_bp = Blueprint("upload_api", __name__, url_prefix="/api/upload")


@upload_bp.route("/excel", methods=["POST"])
@session_required
@roles_required(UserRole.ADMIN)
def excel_upload():
    record, items, summary = file_dao.import_excel(request.files.get("excelFile"), g.user)
    return jsonify(
        {
            "success": True,
            "message": f"{len(items)} items imported.",
            "data": items,
            "file": {
                "id": record.id,
                "filename": record.filename,
                "original_name": record.original_name,
                "size": record.file_size,
            },
            "summary": summary,
        }
    )


@upload_bp.route("/excel-template")
@session_required
@roles_required(UserRole.ADMIN)
def excel_template():
    buf = excel.template_workbook()
    report_dao.record_export("excel_template_downloaded", g.user.id)
    return send_file(
        buf,
        mimetype=excel.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"material_template_{utcnow():%Y-%m-%d}.xlsx",
    )


@upload_bp.route("/file", methods=["POST"])
@principal_required
def file_upload():
    record = file_dao.save_attachment(request.files.get("file"), g.user, request.form)
    return jsonify({"success": True, "message": "File uploaded.", "file": record.to_dict()}), 201


@upload_bp.route("/files")
@principal_required
def files_list():
    page, limit = get_page_args(default_limit=20)
    uploaded_by = request.args.get("uploaded_by")
    if uploaded_by:
        try:
            uploaded_by = int(uploaded_by)
        except ValueError:
            raise ValidationError(errors={"uploaded_by": "uploaded_by must be an integer."})
    p = file_dao.list_files(
        g.user,
        page,
        limit,
        related_type=request.args.get("related_type"),
        uploaded_by=uploaded_by,
    )
    return jsonify({"success": True, **paginated(p)})


@upload_bp.route("/files/<int:file_id>", methods=["DELETE"])
@principal_required
def files_delete(file_id: int):
    file_dao.delete_file(file_id, g.user)
    return jsonify({"success": True, "message": "File deleted."})
