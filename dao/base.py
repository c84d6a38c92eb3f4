from contextlib import contextmanager
from sqlalchemy.exc import SQLAlchemyError
from configs import db
from utils.errors import ConflictError


def commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


@contextmanager
def atomic():
    """One workflow transaction: commit on success, roll back on any exception."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def transition(entity, target, label: str = None):
    """Move ``entity.status`` to ``target`` or raise ConflictError."""
    current = entity.status
    if not current.can_transition_to(target):
        name = label or type(entity).__name__
        raise ConflictError(
            f"{name} cannot move from '{current.value}' to '{target.value}'."
        )
    entity.status = target
    return entity
