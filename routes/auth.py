# routes/auth.py
from flask import Blueprint, g, jsonify, request, session
from flask_login import current_user, login_user, logout_user
from dao import user as user_dao
from db.models.user import UserRole
from utils import mailer
from utils.auth import (
    authenticate_token,
    principal_required,
    roles_required,
    session_required,
    token_required,
)
from utils.errors import AuthenticationError
from utils.tokens import issue_token
from utils.validation import Validator, json_body

auth_bp = Blueprint("auth_api", __name__, url_prefix="/api/auth")


# ---------------- helpers ----------------
def _user_payload(user):
    data = user.to_dict()
    if user.role == UserRole.SUPPLIER and user.supplier:
        data["supplier_id"] = user.supplier.id
        data["company_name"] = user.supplier.company_name
        data["is_approved"] = user.supplier.is_approved
    return data


def _known_principal():
    """Session or bearer user when one can be established, otherwise None."""
    if current_user.is_authenticated:
        return current_user._get_current_object()
    if request.headers.get("Authorization"):
        try:
            return authenticate_token()
        except AuthenticationError:
            return None
    return None


# ---------------- routes ----------------
@auth_bp.route("/login", methods=["POST"])
def login():
    v = Validator(json_body())
    username = v.text("username", required=True, message="Username is required.")
    password = v.data.get("password")
    if not isinstance(password, str) or not password:
        v.error("password", "Password is required.")
    v.check()

    user = user_dao.verify_login(username, password)
    body = {"success": True, "message": "Login successful.", "user": _user_payload(user)}
    if user.is_admin:
        session.clear()
        login_user(user, remember=bool(v.data.get("rememberMe")))
    else:
        body["token"] = issue_token(user)
    return jsonify(body)


@auth_bp.route("/register", methods=["POST"])
def register():
    user = user_dao.register_supplier(json_body())
    return (
        jsonify(
            {
                "success": True,
                "message": "Registration received. Your account is waiting for approval.",
                "user": _user_payload(user),
            }
        ),
        201,
    )


@auth_bp.route("/logout", methods=["POST"])
def logout():
    user = _known_principal()
    logout_user()
    session.clear()
    if user is not None:
        user_dao.record_logout(user.id)
    return jsonify({"success": True, "message": "Logged out."})


@auth_bp.route("/profile")
@principal_required
def profile():
    user = g.user
    data = user.to_dict()
    if user.supplier:
        data["supplier"] = user.supplier.to_dict()
    return jsonify({"success": True, "user": data})


@auth_bp.route("/refresh-token", methods=["POST"])
@token_required
def refresh_token():
    return jsonify({"success": True, "token": issue_token(g.user)})


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    v = Validator(json_body())
    email = v.text("email", required=True, message="Email is required.")
    v.check()

    result = user_dao.request_password_reset(email)
    if result is not None:
        user, token = result
        mailer.dispatch([mailer.password_reset_message(user.email, token)])
    # same answer whether or not the address exists
    return jsonify(
        {
            "success": True,
            "message": "If the address is registered, a reset link has been sent.",
        }
    )


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    user_dao.reset_password(json_body())
    return jsonify({"success": True, "message": "Your password has been updated."})


@auth_bp.route("/verify")
@session_required
def verify():
    return jsonify({"success": True, "user": _user_payload(g.user)})


@auth_bp.route("/stats")
@session_required
@roles_required(UserRole.ADMIN)
def stats():
    return jsonify({"success": True, "stats": user_dao.auth_stats()})
