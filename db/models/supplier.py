from configs import db
from utils.dates import utcnow, isoformat


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.CheckConstraint(
            "successful_quotations <= total_quotations",
            name="ck_supplier_successful_le_total",
        ),
        db.CheckConstraint("rating >= 0 AND rating <= 5", name="ck_supplier_rating"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    company_name = db.Column(db.String(200), nullable=False)
    tax_number = db.Column(db.String(20))
    contact_person = db.Column(db.String(100))
    phone = db.Column(db.String(30))
    address = db.Column(db.String(500))
    city = db.Column(db.String(50))
    country = db.Column(db.String(50), default="Türkiye")
    categories = db.Column(db.String(300))  # free-text tags

    rating = db.Column(db.Float, default=0.0, nullable=False)
    total_quotations = db.Column(db.Integer, default=0, nullable=False)
    successful_quotations = db.Column(db.Integer, default=0, nullable=False)

    is_approved = db.Column(db.Boolean, default=False, nullable=False)
    approval_date = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", back_populates="supplier")

    @property
    def success_rate(self) -> float:
        if not self.total_quotations:
            return 0.0
        return round(self.successful_quotations * 100.0 / self.total_quotations, 1)

    def to_dict(self, with_user: bool = False):
        out = {
            "id": self.id,
            "user_id": self.user_id,
            "company_name": self.company_name,
            "tax_number": self.tax_number,
            "contact_person": self.contact_person,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "categories": self.categories,
            "rating": self.rating,
            "total_quotations": self.total_quotations,
            "successful_quotations": self.successful_quotations,
            "success_rate": self.success_rate,
            "is_approved": self.is_approved,
            "approval_date": isoformat(self.approval_date),
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
        }
        if with_user and self.user is not None:
            out["username"] = self.user.username
            out["email"] = self.user.email
            out["last_login"] = isoformat(self.user.last_login)
        return out
