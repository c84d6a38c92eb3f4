from typing import List, Optional
from configs import db
from dao.base import commit
from db.models.notification import Notification, NotificationType
from db.models.user import User, UserRole
from utils.errors import NotFoundError


def notify(
    user_id: int,
    type_: NotificationType,
    title: str,
    message: str,
    data: Optional[dict] = None,
) -> Notification:
    """Adds an inbox message to the current transaction; the caller commits."""
    n = Notification(
        user_id=user_id, type=type_, title=title, message=message, data=data
    )
    db.session.add(n)
    return n


def active_admins() -> List[User]:
    return User.query.filter_by(role=UserRole.ADMIN, is_active=True).all()


def notify_admins(
    type_: NotificationType, title: str, message: str, data: Optional[dict] = None
) -> List[Notification]:
    return [notify(a.id, type_, title, message, data) for a in active_admins()]


def list_for_user(user_id: int, unread_only: bool, page: int, limit: int):
    q = Notification.query.filter_by(user_id=user_id)
    if unread_only:
        q = q.filter_by(is_read=False)
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )


def unread_count(user_id: int) -> int:
    return Notification.query.filter_by(user_id=user_id, is_read=False).count()


def mark_read(notification_id: int, user_id: int) -> Notification:
    n = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
    if n is None:
        raise NotFoundError("Notification not found.")
    n.is_read = True
    commit()
    return n
