import logging
import secrets
from datetime import timedelta
from typing import Optional
from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash
from configs import db
from dao import audit as audit_dao, notification as notification_dao
from dao.base import atomic, commit
from db.models.audit_log import AuditLog
from db.models.notification import NotificationType
from db.models.supplier import Supplier
from db.models.user import User, UserRole
from utils.dates import utcnow
from utils.errors import AuthenticationError, ValidationError
from utils.validation import (
    EMAIL_RE,
    PASSWORD_RE,
    PHONE_RE,
    USERNAME_RE,
    Validator,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password."
PASSWORD_RULE = "Password needs a lowercase letter, an uppercase letter and a digit."


def get_user(user_id: int) -> Optional[User]:
    return db.session.get(User, user_id)


def get_active_user(user_id) -> Optional[User]:
    try:
        user = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None
    if user is None or not user.is_active:
        return None
    return user


def hash_password(password: str) -> str:
    return generate_password_hash(
        password, method=current_app.config["PASSWORD_HASH_METHOD"]
    )


def _check_password_rules(v: Validator, field: str):
    password = v.data.get(field)
    if not isinstance(password, str) or len(password) < 6:
        v.error(field, "Password must be at least 6 characters.")
    elif not PASSWORD_RE.match(password):
        v.error(field, PASSWORD_RULE)
    return password


# -------- login / logout --------
def verify_login(username: str, password: str) -> User:
    """Checks the credentials of an active user and audits every attempt."""
    user = User.query.filter_by(username=username, is_active=True).first()
    if user is None:
        audit_dao.record("failed_login_attempt", new_values={"username": username})
        commit()
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not check_password_hash(user.password_hash, password):
        audit_dao.record("failed_password_attempt", user_id=user.id)
        commit()
        raise AuthenticationError(INVALID_CREDENTIALS)

    user.last_login = utcnow()
    audit_dao.record("successful_login", user_id=user.id)
    commit()
    return user


def record_logout(user_id: int):
    audit_dao.record("logout", user_id=user_id)
    commit()


# -------- registration --------
def _normalize_registration(data: dict) -> dict:
    v = Validator(data)
    out = {
        "username": v.text(
            "username",
            required=True,
            min_len=3,
            max_len=50,
            pattern=USERNAME_RE,
            message="Username must be 3-50 letters, digits or underscores.",
        ),
        "email": v.text(
            "email",
            required=True,
            max_len=255,
            pattern=EMAIL_RE,
            message="A valid email address is required.",
        ),
        "password": _check_password_rules(v, "password"),
        "company_name": v.text("company_name", required=True, min_len=2, max_len=200),
        "contact_person": v.text("contact_person", max_len=100),
        "phone": v.text(
            "phone", pattern=PHONE_RE, message="A valid phone number is required."
        ),
        "address": v.text("address", max_len=500),
        "city": v.text("city", max_len=50),
        "categories": v.text("categories", max_len=300),
    }
    v.check()
    out["email"] = out["email"].lower()
    return out


def register_supplier(data: dict) -> User:
    """User + pending Supplier + admin notifications in one transaction."""
    fields = _normalize_registration(data)

    taken = User.query.filter(
        (User.username == fields["username"]) | (User.email == fields["email"])
    ).first()
    if taken:
        raise ValidationError("This username or email is already in use.")

    with atomic():
        user = User(
            username=fields["username"],
            email=fields["email"],
            password_hash=hash_password(fields["password"]),
            role=UserRole.SUPPLIER,
            is_active=True,
            email_verified=False,
        )
        db.session.add(user)
        db.session.flush()

        supplier = Supplier(
            user_id=user.id,
            company_name=fields["company_name"],
            contact_person=fields["contact_person"],
            phone=fields["phone"],
            address=fields["address"],
            city=fields["city"],
            categories=fields["categories"],
            is_approved=False,
        )
        db.session.add(supplier)
        db.session.flush()

        notification_dao.notify_admins(
            NotificationType.APPROVAL,
            "New supplier registration",
            f"{supplier.company_name} is waiting for approval.",
            {"supplier_id": supplier.id, "company_name": supplier.company_name},
        )
        audit_dao.record(
            "supplier_registration",
            user_id=user.id,
            table_name="suppliers",
            record_id=supplier.id,
            new_values={"company_name": supplier.company_name},
        )

    logger.info("Supplier registered: %s (%s)", user.username, supplier.company_name)
    return user


# -------- password reset --------
def request_password_reset(email: str):
    """Returns ``(user, token)`` for an active user, otherwise None."""
    user = User.query.filter_by(email=(email or "").strip().lower(), is_active=True).first()
    if user is None:
        return None
    token = secrets.token_hex(32)
    user.password_reset_token = token
    user.password_reset_expires = utcnow() + timedelta(
        minutes=current_app.config["PASSWORD_RESET_MINUTES"]
    )
    audit_dao.record("password_reset_request", user_id=user.id)
    commit()
    return user, token


def reset_password(data: dict) -> User:
    v = Validator(data)
    token = v.text("token", required=True, max_len=64)
    password = _check_password_rules(v, "new_password")
    v.check()

    user = User.query.filter_by(password_reset_token=token, is_active=True).first()
    if (
        user is None
        or user.password_reset_expires is None
        or user.password_reset_expires < utcnow()
    ):
        raise ValidationError("The reset token is invalid or has expired.")

    user.password_hash = hash_password(password)
    user.password_reset_token = None
    user.password_reset_expires = None
    audit_dao.record("password_reset", user_id=user.id)
    commit()
    return user


# -------- stats --------
def auth_stats() -> dict:
    day_ago = utcnow() - timedelta(days=1)
    return {
        "total_users": User.query.count(),
        "active_users": User.query.filter_by(is_active=True).count(),
        "total_suppliers": Supplier.query.count(),
        "approved_suppliers": Supplier.query.filter_by(is_approved=True).count(),
        "pending_approvals": Supplier.query.filter_by(is_approved=False).count(),
        "recent_logins": User.query.filter(User.last_login > day_ago).count(),
        "failed_attempts": AuditLog.query.filter(
            AuditLog.action.like("%failed%"), AuditLog.created_at > day_ago
        ).count(),
    }
