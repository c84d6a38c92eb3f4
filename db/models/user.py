# db/models/user.py
import enum
from configs import db
from flask_login import UserMixin
from utils.dates import utcnow, isoformat


class UserRole(enum.Enum):
    ADMIN = "admin"
    SUPPLIER = "supplier"


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(UserRole), default=UserRole.SUPPLIER, nullable=False)
    # deactivated, never deleted
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    email_verified = db.Column(db.Boolean, default=False, nullable=False)
    last_login = db.Column(db.DateTime)
    password_reset_token = db.Column(db.String(64), index=True)
    password_reset_expires = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    supplier = db.relationship(
        "Supplier",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def get_id(self):
        return str(self.id)

    def has_role(self, *roles: UserRole):
        """True when the user holds one of the given roles."""
        return self.role in roles

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "last_login": isoformat(self.last_login),
            "created_at": isoformat(self.created_at),
        }
