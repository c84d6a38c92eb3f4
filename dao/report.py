"""
Reporting queries: the admin analytics dashboard, the data behind the PDF
documents and the spreadsheet exports.
"""

import enum
from collections import OrderedDict
from datetime import timedelta
from typing import Callable, List, NamedTuple, Optional
from sqlalchemy import and_, distinct, func
from configs import db
from dao import audit as audit_dao
from dao import request as request_dao
from dao import supplier as supplier_dao
from dao.base import commit
from db.models.quotation import Quotation, QuotationItem, QuotationStatus
from db.models.request import InvitationStatus, Request, RequestItem, RequestStatus, RequestSupplier
from db.models.supplier import Supplier
from utils.dates import isoformat, parse_datetime, utcnow
from utils.errors import ValidationError

ALL_TIME = "all time"


class DateRange(NamedTuple):
    start: Optional[object] = None
    end: Optional[object] = None

    def apply(self, query, column):
        if self.start:
            query = query.filter(column >= self.start)
        if self.end:
            query = query.filter(column <= self.end)
        return query

    @property
    def label(self) -> str:
        if not (self.start or self.end):
            return ALL_TIME
        return f"{isoformat(self.start) or '...'} - {isoformat(self.end) or '...'}"


def parse_range(start_raw, end_raw) -> DateRange:
    errors = {}
    bounds = []
    for field, raw in (("start_date", start_raw), ("end_date", end_raw)):
        try:
            bounds.append(parse_datetime(raw) if raw else None)
        except (TypeError, ValueError):
            errors[field] = f"{field} must be an ISO-8601 date."
            bounds.append(None)
    if errors:
        raise ValidationError(errors=errors)
    if bounds[0] and bounds[1] and bounds[0] > bounds[1]:
        raise ValidationError(errors={"end_date": "end_date must not be before start_date."})
    return DateRange(*bounds)


def _rate(part, whole) -> float:
    return round(part * 100.0 / whole, 1) if whole else 0.0


def _avg_days(pairs) -> float:
    spans = [(end - start).total_seconds() / 86400 for start, end in pairs if start and end]
    return round(sum(spans) / len(spans), 1) if spans else 0.0


def _month(value) -> Optional[str]:
    return value.strftime("%Y-%m") if value else None


def record_export(action: str, actor_id: int, table_name=None, record_id=None):
    audit_dao.record(action, user_id=actor_id, table_name=table_name, record_id=record_id)
    commit()


# -------- dashboard --------
def _monthly_stats(period: DateRange) -> List[dict]:
    since = utcnow() - timedelta(days=365)
    months = OrderedDict()
    requests = period.apply(
        db.session.query(Request.created_at).filter(Request.created_at >= since),
        Request.created_at,
    )
    for (created_at,) in requests.order_by(Request.created_at.desc()):
        months.setdefault(_month(created_at), {"request_count": 0, "quotation_count": 0})
        months[_month(created_at)]["request_count"] += 1
    submitted = db.session.query(Quotation.submission_date).filter(
        Quotation.submission_date >= since
    )
    for (submitted_at,) in submitted:
        if _month(submitted_at) in months:
            months[_month(submitted_at)]["quotation_count"] += 1
    return [{"month": m, **counts} for m, counts in list(months.items())[:12]]


def _category_stats() -> List[dict]:
    item_count = func.count(RequestItem.id)
    rows = (
        db.session.query(
            RequestItem.category,
            item_count,
            func.count(distinct(RequestItem.request_id)),
            func.coalesce(func.avg(QuotationItem.unit_price), 0),
        )
        .outerjoin(QuotationItem, QuotationItem.request_item_id == RequestItem.id)
        .filter(RequestItem.category.isnot(None), RequestItem.category != "")
        .group_by(RequestItem.category)
        .order_by(item_count.desc())
        .all()
    )
    return [
        {
            "category": category,
            "item_count": items,
            "request_count": requests,
            "avg_price": round(float(avg or 0), 2),
        }
        for category, items, requests, avg in rows
    ]


def _top_suppliers(limit: int = 10) -> List[dict]:
    value = func.coalesce(func.sum(Quotation.total_amount), 0)
    rows = (
        db.session.query(Supplier, value)
        .outerjoin(
            Quotation,
            and_(
                Quotation.supplier_id == Supplier.id,
                Quotation.status.in_([QuotationStatus.SUBMITTED, QuotationStatus.ACCEPTED]),
            ),
        )
        .filter(Supplier.is_approved.is_(True))
        .group_by(Supplier.id)
        .order_by(Supplier.rating.desc(), Supplier.successful_quotations.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": s.id,
            "company_name": s.company_name,
            "rating": s.rating,
            "total_quotations": s.total_quotations,
            "successful_quotations": s.successful_quotations,
            "win_rate": s.success_rate,
            "total_value": float(total or 0),
        }
        for s, total in rows
    ]


def _process_metrics() -> dict:
    quarter_ago = utcnow() - timedelta(days=90)
    pairs = (
        db.session.query(RequestSupplier.invitation_date, Quotation.submission_date)
        .join(
            Quotation,
            and_(
                Quotation.request_id == RequestSupplier.request_id,
                Quotation.supplier_id == RequestSupplier.supplier_id,
            ),
        )
        .all()
    )

    recent = Request.query.filter(Request.created_at >= quarter_ago)
    total_requests = recent.count()
    completed = recent.filter(Request.status == RequestStatus.CLOSED).count()

    invitations = RequestSupplier.query.filter(RequestSupplier.invitation_date >= quarter_ago)
    total_invitations = invitations.count()
    responses = invitations.filter(RequestSupplier.status != InvitationStatus.INVITED).count()

    return {
        "avg_response_days": _avg_days(pairs),
        "completion_rate": {
            "total_requests": total_requests,
            "completed_requests": completed,
            "rate": _rate(completed, total_requests),
        },
        "supplier_participation": {
            "total_invitations": total_invitations,
            "responses": responses,
            "rate": _rate(responses, total_invitations),
        },
    }


def dashboard_report(period: DateRange) -> dict:
    total_value = period.apply(
        db.session.query(func.coalesce(func.sum(Quotation.total_amount), 0)).filter(
            Quotation.status == QuotationStatus.SUBMITTED
        ),
        Quotation.created_at,
    ).scalar()
    return {
        "summary": {
            "total_requests": period.apply(Request.query, Request.created_at).count(),
            "total_quotations": period.apply(Quotation.query, Quotation.created_at).count(),
            "total_suppliers": Supplier.query.filter_by(is_approved=True).count(),
            "total_value": float(total_value or 0),
        },
        "monthly_stats": _monthly_stats(period),
        "category_stats": _category_stats(),
        "top_suppliers": _top_suppliers(),
        "process_metrics": _process_metrics(),
    }


# -------- PDF data --------
def comparison_data(request_id: int) -> dict:
    req = request_dao.get_request_or_404(request_id)
    quotations = (
        Quotation.query.filter_by(request_id=req.id, status=QuotationStatus.SUBMITTED)
        .order_by(Quotation.total_amount.asc(), Quotation.id.asc())
        .all()
    )
    summary = None
    if quotations:
        totals = [float(q.total_amount) for q in quotations]
        low, high = min(totals), max(totals)
        summary = {
            "min": low,
            "max": high,
            "avg": round(sum(totals) / len(totals), 2),
            "spread_pct": round((high - low) * 100.0 / low, 1) if low else 0.0,
            "suppliers": len(quotations),
        }
    return {"request": req, "quotations": quotations, "summary": summary}


def supplier_performance_data(supplier_id: int) -> dict:
    s = supplier_dao.get_supplier_or_404(supplier_id)
    recent = (
        Quotation.query.filter_by(supplier_id=s.id)
        .order_by(Quotation.submission_date.desc(), Quotation.id.desc())
        .limit(20)
        .all()
    )

    since = utcnow() - timedelta(days=365)
    months = OrderedDict()
    dated = (
        Quotation.query.filter(Quotation.supplier_id == s.id, Quotation.submission_date >= since)
        .order_by(Quotation.submission_date.desc())
    )
    for q in dated:
        m = months.setdefault(_month(q.submission_date), {"quotations": 0, "won": 0, "amounts": []})
        m["quotations"] += 1
        m["won"] += q.status == QuotationStatus.ACCEPTED
        m["amounts"].append(float(q.total_amount or 0))
    monthly = [
        {
            "month": month,
            "quotation_count": m["quotations"],
            "won_count": m["won"],
            "win_rate": _rate(m["won"], m["quotations"]),
            "avg_amount": round(sum(m["amounts"]) / len(m["amounts"]), 2),
        }
        for month, m in months.items()
    ]

    now = utcnow()
    invitations = RequestSupplier.query.filter_by(supplier_id=s.id).all()
    responses = sum(1 for inv in invitations if inv.status != InvitationStatus.INVITED)
    return {
        "supplier": s,
        "quotations": recent,
        "monthly_stats": monthly,
        "response": {
            "total_invitations": len(invitations),
            "responses": responses,
            "rate": _rate(responses, len(invitations)),
            "avg_days": _avg_days(
                (inv.invitation_date, inv.response_date or now) for inv in invitations
            ),
        },
    }


# -------- spreadsheet exports --------
def _request_rows(period: DateRange):
    requests = period.apply(Request.query, Request.created_at).order_by(
        Request.created_at.desc(), Request.id.desc()
    ).all()
    counts = request_dao.request_counts([r.id for r in requests])
    for r in requests:
        yield [
            r.request_no,
            r.title,
            r.status.value,
            r.priority.value,
            r.created_at,
            r.deadline,
            r.creator.username if r.creator else None,
            counts[r.id]["invited_suppliers"],
            counts[r.id]["received_quotations"],
        ]


def _quotation_rows(period: DateRange):
    quotations = period.apply(Quotation.query, Quotation.submission_date).order_by(
        Quotation.submission_date.desc(), Quotation.id.desc()
    )
    for q in quotations:
        yield [
            q.quotation_no,
            q.request.request_no,
            q.request.title,
            q.supplier.company_name,
            float(q.total_amount or 0),
            q.currency,
            q.status.value,
            q.submission_date,
            q.delivery_time,
        ]


def _supplier_rows(period: DateRange):
    suppliers = period.apply(Supplier.query, Supplier.created_at).order_by(
        Supplier.created_at.desc(), Supplier.id.desc()
    )
    for s in suppliers:
        yield [
            s.company_name,
            s.contact_person,
            s.phone,
            s.city,
            s.categories,
            s.rating,
            s.total_quotations,
            s.successful_quotations,
            "yes" if s.is_approved else "no",
            s.created_at,
        ]


class ReportDefinition(NamedTuple):
    rows: Callable
    headers: List[str]
    filename: str


class ReportKind(enum.Enum):
    REQUESTS = "requests"
    QUOTATIONS = "quotations"
    SUPPLIERS = "suppliers"

    @classmethod
    def parse(cls, value: str) -> "ReportKind":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            allowed = ", ".join(k.value for k in cls)
            raise ValidationError(f"Unknown report type. Allowed: {allowed}.")

    @property
    def definition(self) -> ReportDefinition:
        return _DEFINITIONS[self]


_DEFINITIONS = {
    ReportKind.REQUESTS: ReportDefinition(
        rows=_request_rows,
        headers=[
            "Request No",
            "Title",
            "Status",
            "Priority",
            "Created",
            "Deadline",
            "Created By",
            "Invited Suppliers",
            "Received Quotations",
        ],
        filename="requests_report",
    ),
    ReportKind.QUOTATIONS: ReportDefinition(
        rows=_quotation_rows,
        headers=[
            "Quotation No",
            "Request No",
            "Request Title",
            "Supplier",
            "Amount",
            "Currency",
            "Status",
            "Submitted",
            "Delivery Time",
        ],
        filename="quotations_report",
    ),
    ReportKind.SUPPLIERS: ReportDefinition(
        rows=_supplier_rows,
        headers=[
            "Company",
            "Contact Person",
            "Phone",
            "City",
            "Categories",
            "Rating",
            "Total Quotations",
            "Won",
            "Approved",
            "Registered",
        ],
        filename="suppliers_report",
    ),
}
