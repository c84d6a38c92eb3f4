import json
from typing import List, Optional
from flask import g, has_request_context, request
from configs import db
from db.models.audit_log import AuditLog


def _json_safe(value):
    if value is None:
        return None
    return json.loads(json.dumps(value, default=str))


def record(
    action: str,
    *,
    user_id: Optional[int] = None,
    table_name: Optional[str] = None,
    record_id: Optional[int] = None,
    old_values=None,
    new_values=None,
) -> AuditLog:
    """Adds an audit row to the current transaction; the caller commits."""
    entry = AuditLog(
        user_id=user_id,
        action=action,
        table_name=table_name,
        record_id=record_id,
        old_values=_json_safe(old_values),
        new_values=_json_safe(new_values),
    )
    if has_request_context():
        entry.ip_address = request.remote_addr
        entry.user_agent = (request.user_agent.string or "")[:500] or None
        entry.request_id = g.get("request_id")
    db.session.add(entry)
    return entry


def list_for_user(user_id: int, limit: int = 20) -> List[AuditLog]:
    return (
        AuditLog.query.filter_by(user_id=user_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )
