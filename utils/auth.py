# utils/auth.py
"""
Authentication and authorization for the JSON API.

Administrators authenticate with a Flask-Login session, suppliers with a
bearer token. Either way the authenticated ``User`` ends up in ``g.user``.
"""

from functools import wraps

from flask import g, request, session
from flask_login import current_user, logout_user

from configs import db
from db.models.user import User, UserRole
from utils.errors import AuthenticationError, AuthorizationError, InvalidTokenError
from utils.tokens import bearer_from_header, decode_token


def authenticate_session() -> User:
    if not current_user.is_authenticated:
        if session.get("_user_id"):
            # session points at a missing or deactivated user
            logout_user()
            session.clear()
            raise AuthenticationError("Invalid session.")
        raise AuthenticationError("Login required.")
    g.user = current_user._get_current_object()
    return g.user


def authenticate_token() -> User:
    token = bearer_from_header(request.headers.get("Authorization"))
    if not token:
        raise AuthenticationError("Bearer token required.")
    claims = decode_token(token)
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError) as exc:
        raise InvalidTokenError() from exc
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        raise InvalidTokenError()
    g.user = user
    return user


def authenticate_any() -> User:
    """Bearer token when an Authorization header is sent, otherwise the session."""
    if request.headers.get("Authorization"):
        return authenticate_token()
    return authenticate_session()


def current_principal():
    return g.get("user")


def require_role(user: User, *roles: UserRole):
    if not user.has_role(*roles):
        names = "/".join(r.value for r in roles)
        raise AuthorizationError(f"{names} role required.")


def require_approved_supplier(user: User):
    require_role(user, UserRole.SUPPLIER)
    if user.supplier is None or not user.supplier.is_approved:
        raise AuthorizationError("Approved supplier account required.")
    return user.supplier


def session_required(fn):
    @wraps(fn)
    def inner(*a, **kw):
        authenticate_session()
        return fn(*a, **kw)

    return inner


def token_required(fn):
    @wraps(fn)
    def inner(*a, **kw):
        authenticate_token()
        return fn(*a, **kw)

    return inner


def principal_required(fn):
    @wraps(fn)
    def inner(*a, **kw):
        authenticate_any()
        return fn(*a, **kw)

    return inner


def roles_required(*roles):
    """Role gate; runs after one of the authentication decorators."""

    def deco(fn):
        @wraps(fn)
        def inner(*a, **kw):
            user = current_principal()
            if user is None:
                raise AuthenticationError()
            require_role(user, *roles)
            return fn(*a, **kw)

        return inner

    return deco


def approved_supplier_required(fn):
    @wraps(fn)
    def inner(*a, **kw):
        user = current_principal()
        if user is None:
            raise AuthenticationError()
        g.supplier = require_approved_supplier(user)
        return fn(*a, **kw)

    return inner
