from datetime import timedelta
from configs import db
from utils.dates import utcnow, isoformat
import enum


class QuotationStatus(enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"

    def can_transition_to(self, target: "QuotationStatus") -> bool:
        return target in _QUOTATION_TRANSITIONS[self]


# SUBMITTED -> SUBMITTED is a resubmission; ACCEPTED/REJECTED are terminal
_QUOTATION_TRANSITIONS = {
    QuotationStatus.DRAFT: {QuotationStatus.SUBMITTED, QuotationStatus.REJECTED},
    QuotationStatus.SUBMITTED: {
        QuotationStatus.SUBMITTED,
        QuotationStatus.ACCEPTED,
        QuotationStatus.REJECTED,
        QuotationStatus.EXPIRED,
    },
    QuotationStatus.ACCEPTED: set(),
    QuotationStatus.REJECTED: set(),
    QuotationStatus.EXPIRED: set(),
}


class Quotation(db.Model):
    __tablename__ = "quotations"
    __table_args__ = (
        db.UniqueConstraint("request_id", "supplier_id", name="uq_quotation_request_supplier"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    quotation_no = db.Column(db.String(32), unique=True, nullable=False)
    request_id = db.Column(
        db.Integer, db.ForeignKey("requests.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)
    total_amount = db.Column(db.Numeric(18, 2), default=0, nullable=False)
    currency = db.Column(db.String(3), default="TRY", nullable=False)
    delivery_time = db.Column(db.Integer)  # days
    delivery_location = db.Column(db.String(255))
    validity_days = db.Column(db.Integer, default=30, nullable=False)
    payment_terms = db.Column(db.String(500))
    status = db.Column(
        db.Enum(QuotationStatus),
        default=QuotationStatus.DRAFT,
        nullable=False,
        index=True,
    )
    submission_date = db.Column(db.DateTime)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    request = db.relationship("Request", back_populates="quotations")
    supplier = db.relationship("Supplier")
    items = db.relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        lazy="select",
        passive_deletes=True,
    )

    @property
    def expires_at(self):
        if not self.submission_date:
            return None
        return self.submission_date + timedelta(days=self.validity_days or 0)

    @property
    def is_expired(self) -> bool:
        """Validity elapsed; computed on read, the row status is left alone."""
        if self.status != QuotationStatus.SUBMITTED or self.expires_at is None:
            return False
        return self.expires_at < utcnow()

    def to_dict(self, with_items: bool = False):
        out = {
            "id": self.id,
            "quotation_no": self.quotation_no,
            "request_id": self.request_id,
            "supplier_id": self.supplier_id,
            "company_name": self.supplier.company_name if self.supplier else None,
            "total_amount": float(self.total_amount or 0),
            "currency": self.currency,
            "delivery_time": self.delivery_time,
            "delivery_location": self.delivery_location,
            "validity_days": self.validity_days,
            "payment_terms": self.payment_terms,
            "status": self.status.value,
            "submission_date": isoformat(self.submission_date),
            "expires_at": isoformat(self.expires_at),
            "is_expired": self.is_expired,
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if with_items:
            out["items"] = [it.to_dict() for it in self.items]
        return out


class QuotationItem(db.Model):
    __tablename__ = "quotation_items"
    __table_args__ = (
        db.UniqueConstraint(
            "quotation_id", "request_item_id", name="uq_quotation_item_request_item"
        ),
        db.CheckConstraint("unit_price > 0", name="ck_quotation_item_unit_price"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    quotation_id = db.Column(
        db.Integer,
        db.ForeignKey("quotations.id", ondelete="CASCADE"),
        nullable=False,
    )
    request_item_id = db.Column(
        db.Integer, db.ForeignKey("request_items.id"), nullable=False
    )
    unit_price = db.Column(db.Numeric(18, 2), nullable=False)
    total_price = db.Column(db.Numeric(18, 2), nullable=False)
    delivery_time = db.Column(db.Integer)
    brand = db.Column(db.String(100))
    model = db.Column(db.String(100))
    origin_country = db.Column(db.String(50))
    warranty_period = db.Column(db.String(50))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    quotation = db.relationship("Quotation", back_populates="items")
    request_item = db.relationship("RequestItem")

    def to_dict(self):
        ri = self.request_item
        return {
            "id": self.id,
            "request_item_id": self.request_item_id,
            "material_name": ri.material_name if ri else None,
            "quantity": float(ri.quantity) if ri else None,
            "unit": ri.unit if ri else None,
            "unit_price": float(self.unit_price),
            "total_price": float(self.total_price),
            "delivery_time": self.delivery_time,
            "brand": self.brand,
            "model": self.model,
            "origin_country": self.origin_country,
            "warranty_period": self.warranty_period,
            "notes": self.notes,
        }
