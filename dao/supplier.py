import logging
from typing import Optional, List
from sqlalchemy import func, or_
from configs import db
from dao import audit as audit_dao, notification as notification_dao
from dao.base import atomic, commit
from db.models.notification import NotificationType
from db.models.quotation import Quotation, QuotationStatus
from db.models.request import InvitationStatus, Request, RequestStatus, RequestSupplier
from db.models.supplier import Supplier
from db.models.user import User
from utils.dates import isoformat, utcnow
from utils.errors import NotFoundError, ValidationError
from utils.validation import PHONE_RE, TAX_NUMBER_RE, Validator

logger = logging.getLogger(__name__)


def get_supplier(supplier_id: int) -> Optional[Supplier]:
    return db.session.get(Supplier, supplier_id)


def get_supplier_or_404(supplier_id: int) -> Supplier:
    s = get_supplier(supplier_id)
    if s is None:
        raise NotFoundError("Supplier not found.")
    return s


def list_suppliers(
    page: int,
    limit: int,
    status: Optional[str] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
):
    q = Supplier.query.join(User, Supplier.user_id == User.id)
    if status:
        if status not in ("approved", "pending"):
            raise ValidationError(errors={"status": "status must be approved or pending."})
        q = q.filter(Supplier.is_approved.is_(status == "approved"))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                Supplier.company_name.ilike(like),
                Supplier.contact_person.ilike(like),
                User.email.ilike(like),
            )
        )
    if category:
        q = q.filter(Supplier.categories.ilike(f"%{category.strip()}%"))
    return q.order_by(Supplier.created_at.desc(), Supplier.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )


def supplier_detail(supplier_id: int) -> dict:
    s = get_supplier_or_404(supplier_id)
    recent = (
        db.session.query(Quotation, Request.title)
        .join(Request, Quotation.request_id == Request.id)
        .filter(Quotation.supplier_id == s.id)
        .order_by(Quotation.submission_date.desc(), Quotation.id.desc())
        .limit(10)
        .all()
    )
    quotations = []
    for quotation, title in recent:
        quotations.append(
            {
                "id": quotation.id,
                "quotation_no": quotation.quotation_no,
                "total_amount": float(quotation.total_amount or 0),
                "currency": quotation.currency,
                "status": quotation.status.value,
                "submission_date": isoformat(quotation.submission_date),
                "request_title": title,
            }
        )
    return {
        "supplier": s.to_dict(with_user=True),
        "quotations": quotations,
        "activities": [a.to_dict() for a in audit_dao.list_for_user(s.user_id, 20)],
    }


def set_approval(supplier_id: int, approved: bool, notes: Optional[str], actor_id: int) -> Supplier:
    s = get_supplier_or_404(supplier_id)
    with atomic():
        s.is_approved = approved
        s.approval_date = utcnow()
        s.notes = notes
        if approved:
            title = "Your application was approved"
            message = "Your supplier account is approved. You can now take part in requests."
        else:
            title = "Your application was rejected"
            message = f"Your supplier application was rejected. Reason: {notes or 'not specified'}"
        notification_dao.notify(s.user_id, NotificationType.APPROVAL, title, message)
        audit_dao.record(
            "supplier_approved" if approved else "supplier_rejected",
            user_id=actor_id,
            table_name="suppliers",
            record_id=s.id,
            new_values={"approved": approved, "notes": notes},
        )
    logger.info("Supplier %s %s", s.id, "approved" if approved else "rejected")
    return s


def update_profile(supplier: Supplier, data: dict, actor_id: int) -> Supplier:
    v = Validator(data)
    fields = {
        "company_name": v.text("company_name", required=True, min_len=2, max_len=200),
        "tax_number": v.text(
            "tax_number", pattern=TAX_NUMBER_RE, message="Tax number must be 10-11 digits."
        ),
        "contact_person": v.text("contact_person", max_len=100),
        "phone": v.text("phone", pattern=PHONE_RE, message="A valid phone number is required."),
        "address": v.text("address", max_len=500),
        "city": v.text("city", max_len=50),
        "categories": v.text("categories", max_len=300),
    }
    v.check()

    for k, val in fields.items():
        setattr(supplier, k, val)
    audit_dao.record(
        "profile_updated",
        user_id=actor_id,
        table_name="suppliers",
        record_id=supplier.id,
        new_values={k: fields[k] for k in ("company_name", "phone", "city")},
    )
    commit()
    return supplier


def _rate(part: int, whole: int) -> float:
    return round(part * 100.0 / whole, 1) if whole else 0.0


def supplier_dashboard(supplier: Supplier) -> dict:
    now = utcnow()
    sid = supplier.id

    open_invites = (
        RequestSupplier.query.join(Request, RequestSupplier.request_id == Request.id)
        .filter(
            RequestSupplier.supplier_id == sid,
            Request.status == RequestStatus.ACTIVE,
            RequestSupplier.status.in_([InvitationStatus.INVITED, InvitationStatus.VIEWED]),
        )
    )
    total_value = (
        db.session.query(func.coalesce(func.sum(Quotation.total_amount), 0))
        .filter(
            Quotation.supplier_id == sid,
            Quotation.status.in_([QuotationStatus.SUBMITTED, QuotationStatus.ACCEPTED]),
        )
        .scalar()
    )
    deadlines = (
        db.session.query(Request)
        .join(RequestSupplier, RequestSupplier.request_id == Request.id)
        .filter(
            RequestSupplier.supplier_id == sid,
            Request.status == RequestStatus.ACTIVE,
            RequestSupplier.status.in_([InvitationStatus.INVITED, InvitationStatus.VIEWED]),
            Request.deadline.isnot(None),
            Request.deadline > now,
        )
        .order_by(Request.deadline.asc())
        .limit(5)
        .all()
    )

    invited = RequestSupplier.query.filter_by(supplier_id=sid).count()
    responded = RequestSupplier.query.filter(
        RequestSupplier.supplier_id == sid,
        RequestSupplier.status != InvitationStatus.INVITED,
    ).count()
    total_q = Quotation.query.filter_by(supplier_id=sid).count()
    won = Quotation.query.filter_by(supplier_id=sid, status=QuotationStatus.ACCEPTED).count()

    return {
        "stats": {
            "active_requests": open_invites.count(),
            "submitted_quotations": Quotation.query.filter_by(
                supplier_id=sid, status=QuotationStatus.SUBMITTED
            ).count(),
            "won_quotations": won,
            "total_value": float(total_value or 0),
        },
        "upcoming_deadlines": [
            {
                "id": r.id,
                "title": r.title,
                "deadline": isoformat(r.deadline),
                "priority": r.priority.value,
                "days_left": (r.deadline - now).days,
            }
            for r in deadlines
        ],
        "performance": {
            "response_rate": {
                "invited": invited,
                "responded": responded,
                "rate": _rate(responded, invited),
            },
            "win_rate": {
                "total_quotations": total_q,
                "won_quotations": won,
                "rate": _rate(won, total_q),
            },
        },
    }


def top_suppliers(limit: int = 5) -> List[Supplier]:
    return (
        Supplier.query.filter_by(is_approved=True)
        .order_by(Supplier.rating.desc(), Supplier.successful_quotations.desc())
        .limit(limit)
        .all()
    )


def pending_approvals(limit: int = 10) -> List[Supplier]:
    return (
        Supplier.query.filter_by(is_approved=False)
        .order_by(Supplier.created_at.asc())
        .limit(limit)
        .all()
    )

