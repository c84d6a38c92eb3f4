# routes/requests.py
from flask import Blueprint, jsonify
from dao import request as request_dao

requests_bp = Blueprint("requests_api", __name__, url_prefix="/api/requests")


@requests_bp.route("/categories")
def categories():
    return jsonify(
        {"success": True, "data": [c.to_dict() for c in request_dao.list_categories()]}
    )
