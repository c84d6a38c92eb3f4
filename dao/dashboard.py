from sqlalchemy import func
from configs import db
from dao import quotation as quotation_dao
from dao import request as request_dao
from dao import supplier as supplier_dao
from db.models.quotation import Quotation, QuotationStatus
from db.models.request import Request, RequestStatus
from db.models.supplier import Supplier
from utils.dates import isoformat


def admin_dashboard() -> dict:
    total_value = (
        db.session.query(func.coalesce(func.sum(Quotation.total_amount), 0))
        .filter(Quotation.status == QuotationStatus.SUBMITTED)
        .scalar()
    )
    recent = (
        Request.query.order_by(Request.created_at.desc(), Request.id.desc()).limit(10).all()
    )
    top = [s for s in supplier_dao.top_suppliers(limit=20) if s.total_quotations > 0]
    top.sort(key=lambda s: (s.rating, s.success_rate), reverse=True)

    return {
        "stats": {
            "total_requests": Request.query.count(),
            "active_requests": Request.query.filter_by(status=RequestStatus.ACTIVE).count(),
            "total_quotations": Quotation.query.count(),
            "pending_quotations": Quotation.query.filter_by(status=QuotationStatus.DRAFT).count(),
            "total_suppliers": Supplier.query.count(),
            "approved_suppliers": Supplier.query.filter_by(is_approved=True).count(),
            "pending_approvals": Supplier.query.filter_by(is_approved=False).count(),
            "total_value": float(total_value or 0),
        },
        "top_suppliers": [
            {
                "id": s.id,
                "company_name": s.company_name,
                "rating": s.rating,
                "total_quotations": s.total_quotations,
                "successful_quotations": s.successful_quotations,
                "success_rate": s.success_rate,
            }
            for s in top[:5]
        ],
        "recent_requests": request_dao.with_counts(recent),
        "pending_items": {
            "supplier_approvals": [
                {
                    "id": s.id,
                    "company_name": s.company_name,
                    "contact_person": s.contact_person,
                    "email": s.user.email if s.user else None,
                    "created_at": isoformat(s.created_at),
                }
                for s in supplier_dao.pending_approvals(limit=50)
            ],
            "expiring_quotations": quotation_dao.expiring_within(days=7),
        },
    }
