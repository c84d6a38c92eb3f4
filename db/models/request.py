from configs import db
from utils.dates import utcnow, isoformat
import enum


class Priority(enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class RequestStatus(enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"

    def can_transition_to(self, target: "RequestStatus") -> bool:
        return target in _REQUEST_TRANSITIONS[self]


_REQUEST_TRANSITIONS = {
    RequestStatus.DRAFT: {RequestStatus.ACTIVE, RequestStatus.CANCELLED},
    RequestStatus.ACTIVE: {RequestStatus.CLOSED, RequestStatus.CANCELLED},
    RequestStatus.CLOSED: set(),
    RequestStatus.CANCELLED: set(),
}


class InvitationStatus(enum.Enum):
    INVITED = "invited"
    VIEWED = "viewed"
    QUOTED = "quoted"
    DECLINED = "declined"

    def can_transition_to(self, target: "InvitationStatus") -> bool:
        return target in _INVITATION_TRANSITIONS[self]


# forward only; QUOTED -> QUOTED is a resubmission
_INVITATION_TRANSITIONS = {
    InvitationStatus.INVITED: {
        InvitationStatus.VIEWED,
        InvitationStatus.QUOTED,
        InvitationStatus.DECLINED,
    },
    InvitationStatus.VIEWED: {InvitationStatus.QUOTED, InvitationStatus.DECLINED},
    InvitationStatus.QUOTED: {InvitationStatus.QUOTED},
    InvitationStatus.DECLINED: set(),
}


class Request(db.Model):
    __tablename__ = "requests"
    __table_args__ = (
        db.CheckConstraint(
            "(status = 'CLOSED' AND winner_supplier_id IS NOT NULL)"
            " OR (status <> 'CLOSED' AND winner_supplier_id IS NULL)",
            name="ck_request_winner_iff_closed",
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    request_no = db.Column(db.String(32), unique=True, nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    deadline = db.Column(db.DateTime)
    status = db.Column(
        db.Enum(RequestStatus), default=RequestStatus.ACTIVE, nullable=False, index=True
    )
    priority = db.Column(db.Enum(Priority), default=Priority.NORMAL, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    total_items = db.Column(db.Integer, default=0, nullable=False)
    total_suppliers = db.Column(db.Integer, default=0, nullable=False)
    winner_supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    creator = db.relationship("User")
    winner_supplier = db.relationship("Supplier")

    items = db.relationship(
        "RequestItem",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="RequestItem.item_no",
        passive_deletes=True,
    )
    invitations = db.relationship(
        "RequestSupplier",
        back_populates="request",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    quotations = db.relationship(
        "Quotation",
        back_populates="request",
        cascade="all, delete-orphan",
        lazy="select",
        passive_deletes=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "request_no": self.request_no,
            "title": self.title,
            "description": self.description,
            "deadline": isoformat(self.deadline),
            "status": self.status.value,
            "priority": self.priority.value,
            "created_by": self.created_by,
            "created_by_name": self.creator.username if self.creator else None,
            "total_items": self.total_items,
            "total_suppliers": self.total_suppliers,
            "winner_supplier_id": self.winner_supplier_id,
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class RequestItem(db.Model):
    __tablename__ = "request_items"
    __table_args__ = (
        db.UniqueConstraint("request_id", "item_no", name="uq_request_item_no"),
        db.CheckConstraint("quantity > 0", name="ck_request_item_quantity"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    request_id = db.Column(
        db.Integer, db.ForeignKey("requests.id", ondelete="CASCADE"), nullable=False
    )
    item_no = db.Column(db.Integer, nullable=False)  # 1-based, input order
    material_code = db.Column(db.String(50))
    material_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(18, 3), nullable=False)
    unit = db.Column(db.String(20), nullable=False)
    specifications = db.Column(db.Text)
    category = db.Column(db.String(100))
    priority = db.Column(db.Enum(Priority), default=Priority.NORMAL, nullable=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    request = db.relationship("Request", back_populates="items")

    def to_dict(self):
        return {
            "id": self.id,
            "request_id": self.request_id,
            "item_no": self.item_no,
            "material_code": self.material_code,
            "material_name": self.material_name,
            "quantity": float(self.quantity),
            "unit": self.unit,
            "specifications": self.specifications,
            "category": self.category,
            "priority": self.priority.value,
            "notes": self.notes,
        }


class RequestSupplier(db.Model):
    """Invitation of one supplier to one request."""

    __tablename__ = "request_suppliers"
    __table_args__ = (
        db.UniqueConstraint("request_id", "supplier_id", name="uq_request_supplier"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    request_id = db.Column(
        db.Integer, db.ForeignKey("requests.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)
    invitation_sent = db.Column(db.Boolean, default=False, nullable=False)
    invitation_date = db.Column(db.DateTime)
    response_received = db.Column(db.Boolean, default=False, nullable=False)
    response_date = db.Column(db.DateTime)
    status = db.Column(
        db.Enum(InvitationStatus), default=InvitationStatus.INVITED, nullable=False
    )
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    request = db.relationship("Request", back_populates="invitations")
    supplier = db.relationship("Supplier")

    def to_dict(self):
        return {
            "id": self.id,
            "request_id": self.request_id,
            "supplier_id": self.supplier_id,
            "company_name": self.supplier.company_name if self.supplier else None,
            "invitation_sent": self.invitation_sent,
            "invitation_date": isoformat(self.invitation_date),
            "response_received": self.response_received,
            "response_date": isoformat(self.response_date),
            "status": self.status.value,
        }
