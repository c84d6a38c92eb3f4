# routes/admin.py
from flask import Blueprint, g, jsonify, request
from dao import dashboard as dashboard_dao
from dao import quotation as quotation_dao
from dao import request as request_dao
from dao import supplier as supplier_dao
from db.models.request import Priority, RequestStatus
from db.models.user import UserRole
from utils import mailer
from utils.auth import authenticate_session, require_role
from utils.pagination import get_page_args, paginated
from utils.validation import Validator, enum_arg, json_body

admin_bp = Blueprint("admin_api", __name__, url_prefix="/api/admin")


@admin_bp.before_request
def _admin_only():
    require_role(authenticate_session(), UserRole.ADMIN)


# ---------------- dashboard ----------------
@admin_bp.route("/dashboard")
def dashboard():
    return jsonify({"success": True, **dashboard_dao.admin_dashboard()})


# ---------------- suppliers ----------------
@admin_bp.route("/suppliers")
def suppliers_list():
    page, limit = get_page_args()
    p = supplier_dao.list_suppliers(
        page,
        limit,
        status=request.args.get("status"),
        search=request.args.get("search"),
        category=request.args.get("category"),
    )
    body = paginated(p, [s.to_dict(with_user=True) for s in p.items])
    return jsonify({"success": True, **body})


@admin_bp.route("/suppliers/<int:supplier_id>")
def suppliers_detail(supplier_id: int):
    return jsonify({"success": True, **supplier_dao.supplier_detail(supplier_id)})


@admin_bp.route("/suppliers/<int:supplier_id>/approve", methods=["POST"])
def suppliers_approve(supplier_id: int):
    v = Validator(json_body())
    approved = v.boolean("approved", required=True)
    notes = v.text("notes", max_len=1000)
    v.check()

    s = supplier_dao.set_approval(supplier_id, approved, notes, g.user.id)
    if s.user:
        mailer.dispatch([mailer.approval_message(s.user.email, s, approved)])
    return jsonify(
        {
            "success": True,
            "message": "Supplier approved." if approved else "Supplier rejected.",
            "supplier": s.to_dict(),
        }
    )


# ---------------- requests ----------------
@admin_bp.route("/requests")
def requests_list():
    page, limit = get_page_args()
    p = request_dao.list_requests(
        page,
        limit,
        status=enum_arg("status", RequestStatus),
        priority=enum_arg("priority", Priority),
        search=request.args.get("search"),
    )
    body = paginated(p, request_dao.with_counts(p.items))
    return jsonify({"success": True, **body})


@admin_bp.route("/requests", methods=["POST"])
def requests_create():
    r = request_dao.create_request(json_body(), g.user.id)
    return (
        jsonify(
            {
                "success": True,
                "message": "Request created and suppliers invited.",
                "request": r.to_dict(),
                "items": [it.to_dict() for it in r.items],
                "invitations": [inv.to_dict() for inv in r.invitations],
            }
        ),
        201,
    )


@admin_bp.route("/requests/<int:request_id>")
def requests_detail(request_id: int):
    r = request_dao.get_request_or_404(request_id)
    return jsonify(
        {
            "success": True,
            "request": request_dao.with_counts([r])[0],
            "items": [it.to_dict() for it in r.items],
            "invitations": [inv.to_dict() for inv in r.invitations],
        }
    )


# ---------------- quotations ----------------
@admin_bp.route("/quotations/compare/<int:request_id>")
def quotations_compare(request_id: int):
    return jsonify({"success": True, **quotation_dao.compare(request_id)})


@admin_bp.route("/quotations/<int:quotation_id>/select-winner", methods=["POST"])
def quotations_select_winner(quotation_id: int):
    v = Validator(json_body())
    notes = v.text("notes", max_len=1000)
    v.check()

    winner = quotation_dao.select_winner(quotation_id, notes, g.user.id)
    return jsonify(
        {
            "success": True,
            "message": "Winner selected and the request closed.",
            "quotation": winner.to_dict(),
            "request": winner.request.to_dict(),
        }
    )
