# routes/supplier.py
from flask import Blueprint, g, jsonify, request
from dao import notification as notification_dao
from dao import quotation as quotation_dao
from dao import request as request_dao
from dao import supplier as supplier_dao
from db.models.request import Priority
from db.models.user import UserRole
from utils.auth import approved_supplier_required, authenticate_any, require_role
from utils.errors import AuthorizationError
from utils.pagination import get_page_args, paginated
from utils.validation import Validator, bool_arg, enum_arg, json_body

supplier_bp = Blueprint("supplier_api", __name__, url_prefix="/api/supplier")


@supplier_bp.before_request
def _supplier_only():
    user = authenticate_any()
    require_role(user, UserRole.SUPPLIER)
    if user.supplier is None:
        raise AuthorizationError("No supplier profile is linked to this account.")
    g.supplier = user.supplier


# ---------------- dashboard ----------------
@supplier_bp.route("/dashboard")
def dashboard():
    return jsonify({"success": True, **supplier_dao.supplier_dashboard(g.supplier)})


# ---------------- requests ----------------
@supplier_bp.route("/requests")
@approved_supplier_required
def requests_list():
    page, limit = get_page_args()
    p = request_dao.list_invitations(
        g.supplier.id,
        page,
        limit,
        status=(request.args.get("status") or "").strip().lower() or None,
        priority=enum_arg("priority", Priority),
    )
    body = paginated(p, request_dao.invitation_rows(p.items, g.supplier.id))
    return jsonify({"success": True, **body})


@supplier_bp.route("/requests/<int:request_id>")
@approved_supplier_required
def requests_detail(request_id: int):
    detail = request_dao.supplier_request_detail(request_id, g.supplier.id)
    return jsonify({"success": True, **detail})


@supplier_bp.route("/requests/<int:request_id>/quote", methods=["POST"])
@approved_supplier_required
def requests_quote(request_id: int):
    q = quotation_dao.submit_quotation(request_id, g.supplier, json_body())
    return jsonify(
        {
            "success": True,
            "message": "Quotation submitted.",
            "quotation": q.to_dict(with_items=True),
        }
    )


@supplier_bp.route("/requests/<int:request_id>/decline", methods=["POST"])
@approved_supplier_required
def requests_decline(request_id: int):
    v = Validator(json_body())
    notes = v.text("notes", max_len=1000)
    v.check()
    invitation = request_dao.decline_invitation(request_id, g.supplier, notes)
    return jsonify(
        {"success": True, "message": "Invitation declined.", "invitation": invitation.to_dict()}
    )


# ---------------- quotations ----------------
@supplier_bp.route("/quotations")
def quotations_list():
    page, limit = get_page_args()
    p = quotation_dao.list_for_supplier(
        g.supplier.id, page, limit, status=quotation_dao.parse_status(request.args.get("status"))
    )
    body = paginated(p, [quotation_dao.supplier_row(q) for q in p.items])
    return jsonify({"success": True, **body})


@supplier_bp.route("/quotations/<int:quotation_id>")
def quotations_detail(quotation_id: int):
    return jsonify({"success": True, **quotation_dao.supplier_detail(quotation_id, g.supplier.id)})


# ---------------- profile ----------------
@supplier_bp.route("/profile", methods=["PUT"])
def profile_update():
    s = supplier_dao.update_profile(g.supplier, json_body(), g.user.id)
    return jsonify({"success": True, "message": "Profile updated.", "supplier": s.to_dict()})


# ---------------- notifications ----------------
@supplier_bp.route("/notifications")
def notifications_list():
    page, limit = get_page_args(default_limit=20)
    p = notification_dao.list_for_user(g.user.id, bool_arg("unread_only"), page, limit)
    body = paginated(p)
    body["unread_count"] = notification_dao.unread_count(g.user.id)
    return jsonify({"success": True, **body})


@supplier_bp.route("/notifications/<int:notification_id>/read", methods=["PUT"])
def notifications_read(notification_id: int):
    n = notification_dao.mark_read(notification_id, g.user.id)
    return jsonify({"success": True, "notification": n.to_dict()})
