# index.py
import logging
import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from configs import db
from utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

main_bp = Blueprint("main", __name__)

_started = time.monotonic()

ENDPOINTS = {
    "auth": "/api/auth",
    "admin": "/api/admin",
    "supplier": "/api/supplier",
    "requests": "/api/requests",
    "upload": "/api/upload",
    "reports": "/api/reports",
    "health": "/api/health",
    "back_office": "/manage",
}


@main_bp.route("/api/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        db.session.rollback()
        database = "unreachable"
    healthy = database == "connected"
    return (
        jsonify(
            {
                "success": healthy,
                "status": "ok" if healthy else "degraded",
                "database": database,
                "uptime_seconds": round(time.monotonic() - _started, 1),
                "version": current_app.config["VERSION"],
                "timestamp": isoformat(utcnow()),
            }
        ),
        200 if healthy else 503,
    )


@main_bp.route("/api")
def api_index():
    return jsonify(
        {
            "success": True,
            "name": current_app.config["APP_NAME"],
            "version": current_app.config["VERSION"],
            "endpoints": ENDPOINTS,
        }
    )
