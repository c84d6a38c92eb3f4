"""
Error taxonomy and the JSON error envelope.

Every failure leaves the API as ``{"success": false, "message": ..., "code": ...}``
with an optional ``errors`` mapping of field-level details.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from configs import db

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR_MESSAGE = "An unexpected error occurred."


class AppError(Exception):
    status_code = 500
    code = "internal_error"
    default_message = GENERIC_SERVER_ERROR_MESSAGE

    def __init__(self, message: str | None = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(AppError, ValueError):
    status_code = 400
    code = "validation_error"
    default_message = "Validation failed."


class AuthenticationError(AppError):
    status_code = 401
    code = "not_authenticated"
    default_message = "Authentication required."


class InvalidTokenError(AuthenticationError):
    code = "invalid_token"
    default_message = "Invalid token."


class TokenExpiredError(AuthenticationError):
    code = "token_expired"
    default_message = "Token has expired."


class AuthorizationError(AppError):
    status_code = 403
    code = "permission_denied"
    default_message = "You do not have permission to perform this action."


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class ConflictError(AppError):
    status_code = 400
    code = "conflict"
    default_message = "The operation conflicts with the current state."


class InternalError(AppError):
    pass


def build_error_envelope(*, code: str, message: str, errors: Any = None) -> dict:
    payload = {"success": False, "message": message, "code": code}
    if errors:
        payload["errors"] = errors
    return payload


def error_response(*, code: str, message: str, errors: Any = None, status_code: int = 400):
    return jsonify(build_error_envelope(code=code, message=message, errors=errors)), status_code


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        if exc.status_code >= 500:
            logger.exception("Application error: %s", exc.message)
            db.session.rollback()
        return error_response(
            code=exc.code,
            message=exc.message,
            errors=exc.errors,
            status_code=exc.status_code,
        )

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):
        code = (exc.name or "http_error").lower().replace(" ", "_")
        return error_response(
            code=code,
            message=exc.description or exc.name,
            status_code=exc.code or 500,
        )

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        logger.exception("Unhandled exception")
        db.session.rollback()
        payload = build_error_envelope(
            code="internal_error", message=GENERIC_SERVER_ERROR_MESSAGE
        )
        if current_app.config.get("EXPOSE_ERROR_DETAIL"):
            payload["error"] = str(exc)
        return jsonify(payload), 500
