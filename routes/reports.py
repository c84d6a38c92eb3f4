# routes/reports.py
import re
from flask import Blueprint, g, jsonify, request, send_file
from dao import report as report_dao
from db.models.user import UserRole
from utils import excel, pdf
from utils.auth import authenticate_session, require_role
from utils.dates import isoformat, utcnow

reports_bp = Blueprint("reports_api", __name__, url_prefix="/api/reports")

PDF_MIMETYPE = "application/pdf"


@reports_bp.before_request
def _admin_only():
    require_role(authenticate_session(), UserRole.ADMIN)


def _period():
    return report_dao.parse_range(request.args.get("start_date"), request.args.get("end_date"))


@reports_bp.route("/dashboard")
def dashboard():
    period = _period()
    return jsonify(
        {
            "success": True,
            "report": report_dao.dashboard_report(period),
            "generated_at": isoformat(utcnow()),
            "period": period.label,
        }
    )


@reports_bp.route("/quotation-comparison/<int:request_id>")
def quotation_comparison(request_id: int):
    data = report_dao.comparison_data(request_id)
    buf = pdf.comparison_report(data)
    report_dao.record_export("comparison_report_generated", g.user.id, "requests", request_id)
    return send_file(
        buf,
        mimetype=PDF_MIMETYPE,
        as_attachment=True,
        download_name=f"quotation_comparison_{data['request'].request_no}.pdf",
    )


@reports_bp.route("/supplier-performance/<int:supplier_id>")
def supplier_performance(supplier_id: int):
    data = report_dao.supplier_performance_data(supplier_id)
    buf = pdf.supplier_performance_report(data)
    report_dao.record_export("supplier_report_generated", g.user.id, "suppliers", supplier_id)
    slug = re.sub(r"[^A-Za-z0-9]", "_", data["supplier"].company_name)
    return send_file(
        buf,
        mimetype=PDF_MIMETYPE,
        as_attachment=True,
        download_name=f"supplier_performance_{slug}.pdf",
    )


@reports_bp.route("/excel/<report_type>")
def excel_export(report_type: str):
    kind = report_dao.ReportKind.parse(report_type)
    definition = kind.definition
    buf = excel.export_workbook("Report", definition.headers, definition.rows(_period()))
    report_dao.record_export(f"excel_report_{kind.value}_exported", g.user.id)
    return send_file(
        buf,
        mimetype=excel.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"{definition.filename}_{utcnow():%Y-%m-%d}.xlsx",
    )
