"""
Structured JSON logging and per-request access lines.

``configure_logging`` installs a dictConfig with the JSON formatter;
``init_request_logging`` assigns or propagates ``X-Request-ID`` and emits one
``request_completed`` record per request on the ``api.request`` logger.
"""

from __future__ import annotations

import json
import logging
import logging.config
import time
import uuid
from datetime import datetime, timezone

from flask import g, request

_EXTRA_KEYS = (
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "remote_addr",
    "user_id",
)


class JsonFormatter(logging.Formatter):
    """Simple JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in _EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": JsonFormatter}},
            "handlers": {
                "console": {"class": "logging.StreamHandler", "formatter": "json"}
            },
            "root": {"handlers": ["console"], "level": level},
            "loggers": {
                "api.request": {"level": "INFO"},
                "werkzeug": {"level": "WARNING"},
            },
        }
    )


def init_request_logging(app) -> None:
    access_logger = logging.getLogger("api.request")

    @app.before_request
    def _start_request():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _log_request(response):
        started = g.pop("request_started", None)
        duration_ms = (
            round((time.perf_counter() - started) * 1000, 2) if started else None
        )
        user = g.get("user")
        access_logger.info(
            "request_completed",
            extra={
                "request_id": g.get("request_id"),
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.remote_addr,
                "user_id": str(user.id) if user is not None else None,
            },
        )
        if g.get("request_id"):
            response.headers["X-Request-ID"] = g.request_id
        return response
