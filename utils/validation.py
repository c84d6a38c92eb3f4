"""
Request-body validation helpers.

A ``Validator`` wraps one JSON payload, collects per-field messages and raises
a single ``ValidationError`` carrying all of them.
"""

import re
from decimal import Decimal, InvalidOperation

from flask import request

from utils.dates import parse_datetime
from utils.errors import ValidationError

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\+?[0-9\s\-()]{10,20}$")
TAX_NUMBER_RE = re.compile(r"^[0-9]{10,11}$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")

# quantities and money columns are Numeric(18, 3) / Numeric(18, 2)
MAX_AMOUNT = Decimal("1000000000000000")


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class Validator:
    def __init__(self, data: dict):
        self.data = data or {}
        self.errors = {}

    def error(self, field: str, message: str):
        self.errors.setdefault(field, message)

    def text(
        self,
        field,
        *,
        required=False,
        min_len=None,
        max_len=None,
        pattern=None,
        message=None,
        value=None,
    ):
        raw = self.data.get(field) if value is None else value
        if _blank(raw):
            if required:
                self.error(field, message or f"{field} is required.")
            return None
        text = str(raw).strip()
        if min_len is not None and len(text) < min_len:
            self.error(field, message or f"{field} must be at least {min_len} characters.")
        elif max_len is not None and len(text) > max_len:
            self.error(field, message or f"{field} must be at most {max_len} characters.")
        elif pattern is not None and not pattern.match(text):
            self.error(field, message or f"{field} is not valid.")
        return text

    def integer(self, field, *, required=False, min_value=None, max_value=None, value=None):
        raw = self.data.get(field) if value is None else value
        if _blank(raw):
            if required:
                self.error(field, f"{field} is required.")
            return None
        try:
            if isinstance(raw, bool) or float(raw) != int(float(raw)):
                raise ValueError
            number = int(float(raw))
        except (TypeError, ValueError, OverflowError):
            self.error(field, f"{field} must be an integer.")
            return None
        if min_value is not None and number < min_value:
            self.error(field, f"{field} must be at least {min_value}.")
        elif max_value is not None and number > max_value:
            self.error(field, f"{field} must be at most {max_value}.")
        return number

    def decimal(self, field, *, required=False, positive=False, max_value=None, value=None):
        raw = self.data.get(field) if value is None else value
        if _blank(raw):
            if required:
                self.error(field, f"{field} is required.")
            return None
        try:
            if isinstance(raw, bool):
                raise InvalidOperation
            number = Decimal(str(raw).strip())
            if not number.is_finite():
                raise InvalidOperation
        except (InvalidOperation, ValueError):
            self.error(field, f"{field} must be a number.")
            return None
        if positive and number <= 0:
            self.error(field, f"{field} must be greater than 0.")
        elif max_value is not None and number >= max_value:
            self.error(field, f"{field} must be less than {max_value}.")
        return number

    def choice(self, field, enum_cls, *, default=None):
        raw = self.data.get(field)
        if _blank(raw):
            return default
        try:
            return enum_cls(str(raw).strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in enum_cls)
            self.error(field, f"{field} must be one of: {allowed}.")
            return default

    def datetime(self, field):
        raw = self.data.get(field)
        if _blank(raw):
            return None
        try:
            return parse_datetime(raw)
        except (TypeError, ValueError):
            self.error(field, f"{field} must be an ISO-8601 date.")
            return None

    def boolean(self, field, *, required=False):
        raw = self.data.get(field)
        if isinstance(raw, bool):
            return raw
        if required:
            self.error(field, f"{field} must be true or false.")
        return None

    def items(self, field, *, message=None):
        raw = self.data.get(field)
        if not isinstance(raw, list) or not raw:
            self.error(field, message or f"{field} must be a non-empty list.")
            return []
        return raw

    def check(self, message: str = "Validation failed."):
        if self.errors:
            raise ValidationError(message, errors=self.errors)
        return self


def enum_arg(name: str, enum_cls):
    """Optional enum value from the query string."""
    raw = request.args.get(name)
    if _blank(raw):
        return None
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(errors={name: f"{name} must be one of: {allowed}."})


def bool_arg(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")
