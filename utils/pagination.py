from flask import request

from utils.errors import ValidationError

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def get_page_args(default_limit: int = DEFAULT_LIMIT):
    """Reads ``page`` and ``limit`` from the query string."""
    errors = {}
    page = request.args.get("page", 1)
    limit = request.args.get("limit", default_limit)
    try:
        page = int(page)
        if page < 1:
            raise ValueError
    except (TypeError, ValueError):
        errors["page"] = "Page must be a positive integer."
    try:
        limit = int(limit)
        if not 1 <= limit <= MAX_LIMIT:
            raise ValueError
    except (TypeError, ValueError):
        errors["limit"] = f"Limit must be between 1 and {MAX_LIMIT}."
    if errors:
        raise ValidationError(errors=errors)
    return page, limit


def paginated(pagination, data=None) -> dict:
    """Envelope body for a Flask-SQLAlchemy ``Pagination``."""
    if data is None:
        data = [item.to_dict() for item in pagination.items]
    return {
        "data": data,
        "pagination": {
            "page": pagination.page,
            "limit": pagination.per_page,
            "total": pagination.total,
            "total_pages": pagination.pages,
            "has_next": pagination.has_next,
            "has_prev": pagination.has_prev,
        },
    }
