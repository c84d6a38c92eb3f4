import logging
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional
from configs import db
from dao import audit as audit_dao, notification as notification_dao
from dao import request as request_dao
from dao.base import atomic, transition
from db.models.notification import NotificationType
from db.models.quotation import Quotation, QuotationItem, QuotationStatus
from db.models.request import InvitationStatus, Request, RequestStatus
from db.models.supplier import Supplier
from utils import mailer
from utils.dates import isoformat, utcnow
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.validation import MAX_AMOUNT, Validator

logger = logging.getLogger(__name__)


def _dec(x) -> Decimal:
    return Decimal(str(x or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def get_quotation(quotation_id: int) -> Optional[Quotation]:
    return db.session.get(Quotation, quotation_id)


def get_own_quotation(quotation_id: int, supplier_id: int) -> Quotation:
    q = Quotation.query.filter_by(id=quotation_id, supplier_id=supplier_id).first()
    if q is None:
        raise NotFoundError("Quotation not found.")
    return q


# -------- submit / update --------
def _normalize_header(data: dict):
    v = Validator(data)
    header = {
        "delivery_time": v.integer("delivery_time", min_value=1, max_value=365),
        "delivery_location": v.text("delivery_location", max_len=255),
        "payment_terms": v.text("payment_terms", max_len=500),
        "validity_days": v.integer("validity_days", min_value=1),
        "currency": v.text("currency", min_len=3, max_len=3),
        "notes": v.text("notes"),
    }
    raw_items = v.items("items", message="Price at least one item.")
    v.check()
    return header, raw_items


def _normalize_items(raw_items: List[Dict], req: Request) -> List[Dict]:
    """Each line must reference an item of this request once, with unit_price > 0.

    ``total_price`` is always recomputed as unit_price x requested quantity.
    """
    by_id = {it.id: it for it in req.items}
    v = Validator({})
    seen = set()
    out: List[Dict] = []
    for idx, raw in enumerate(raw_items):
        key = f"items[{idx}]"
        if not isinstance(raw, dict):
            v.error(key, f"Line {idx + 1}: must be an object.")
            continue
        line = Validator(raw)
        item_id = line.integer("request_item_id", required=True, min_value=1)
        unit_price = line.decimal(
            "unit_price", required=True, positive=True, max_value=MAX_AMOUNT
        )
        extra = {
            "delivery_time": line.integer("delivery_time", min_value=1, max_value=365),
            "brand": line.text("brand", max_len=100),
            "model": line.text("model", max_len=100),
            "origin_country": line.text("origin_country", max_len=50),
            "warranty_period": line.text("warranty_period", max_len=50),
            "notes": line.text("notes"),
        }
        if item_id is not None and "request_item_id" not in line.errors:
            if item_id not in by_id:
                line.error("request_item_id", f"Line {idx + 1}: item does not belong to this request.")
            elif item_id in seen:
                line.error("request_item_id", f"Line {idx + 1}: item is priced twice.")
            seen.add(item_id)
        if not line.errors and unit_price * by_id[item_id].quantity >= MAX_AMOUNT:
            line.error("unit_price", f"Line {idx + 1}: line total is too large.")
        for field, message in line.errors.items():
            v.error(f"{key}.{field}", message)
        if line.errors:
            continue
        price = _dec(unit_price)
        out.append(
            {
                "request_item_id": item_id,
                "unit_price": price,
                "total_price": _dec(price * by_id[item_id].quantity),
                **extra,
            }
        )
    if out and sum(ln["total_price"] for ln in out) >= MAX_AMOUNT:
        v.error("items", "Quotation total is too large.")
    v.check()
    return out


def submit_quotation(request_id: int, supplier: Supplier, data: dict) -> Quotation:
    """Creates or replaces the supplier's single quotation for a request."""
    header, raw_items = _normalize_header(data)

    with atomic():
        req = request_dao.lock_request(request_id)
        if req is None:
            raise NotFoundError("Request not found.")
        invitation = request_dao.require_invitation(request_id, supplier.id)
        if req.status != RequestStatus.ACTIVE:
            raise ConflictError("This request is no longer active.")
        lines = _normalize_items(raw_items, req)

        quotation = (
            Quotation.query.filter_by(request_id=req.id, supplier_id=supplier.id)
            .with_for_update()
            .first()
        )
        created = quotation is None
        if created:
            quotation = Quotation(
                quotation_no=request_dao.new_number("QUO"),
                request_id=req.id,
                supplier_id=supplier.id,
                status=QuotationStatus.DRAFT,
            )
            db.session.add(quotation)
        else:
            # replace the whole item set
            quotation.items.clear()
        db.session.flush()

        quotation.delivery_time = header["delivery_time"]
        quotation.delivery_location = header["delivery_location"]
        quotation.payment_terms = header["payment_terms"]
        quotation.notes = header["notes"]
        quotation.validity_days = header["validity_days"] or 30
        if header["currency"]:
            quotation.currency = header["currency"].upper()
        elif not quotation.currency:
            quotation.currency = "TRY"

        transition(quotation, QuotationStatus.SUBMITTED, "Quotation")
        now = utcnow()
        quotation.submission_date = now
        total = Decimal("0.00")
        for ln in lines:
            quotation.items.append(QuotationItem(**ln))
            total += ln["total_price"]
        quotation.total_amount = total

        transition(invitation, InvitationStatus.QUOTED, "Invitation")
        invitation.response_received = True
        invitation.response_date = now

        if created:
            supplier.total_quotations = Supplier.total_quotations + 1

        verb = "submitted" if created else "updated"
        notification_dao.notify_admins(
            NotificationType.QUOTATION,
            f"Quotation {verb}",
            f'{supplier.company_name} {verb} a quotation for "{req.title}".',
            {
                "request_id": req.id,
                "quotation_id": quotation.id,
                "supplier_id": supplier.id,
                "total_amount": float(total),
            },
        )
        audit_dao.record(
            "quotation_created" if created else "quotation_updated",
            user_id=supplier.user_id,
            table_name="quotations",
            record_id=quotation.id,
            new_values={"request_id": req.id, "total_amount": float(total), "items": len(lines)},
        )

    logger.info(
        "Quotation %s %s for request %s (total %s)",
        quotation.quotation_no,
        verb,
        req.request_no,
        total,
    )
    admin_emails = [a.email for a in notification_dao.active_admins()]
    mailer.dispatch(
        mailer.quotation_received_messages(admin_emails, quotation, supplier.company_name)
    )
    return quotation


# -------- comparison & award --------
def compare(request_id: int) -> dict:
    """Submitted quotations of a request, cheapest first, with their items."""
    req = request_dao.get_request_or_404(request_id)
    quotations = (
        Quotation.query.filter_by(request_id=req.id, status=QuotationStatus.SUBMITTED)
        .order_by(Quotation.total_amount.asc(), Quotation.id.asc())
        .all()
    )
    out = []
    for q in quotations:
        out.append(
            {
                "id": q.id,
                "quotation_no": q.quotation_no,
                "supplier_id": q.supplier_id,
                "company_name": q.supplier.company_name,
                "rating": q.supplier.rating,
                "total_amount": float(q.total_amount),
                "currency": q.currency,
                "delivery_time": q.delivery_time,
                "payment_terms": q.payment_terms,
                "validity_days": q.validity_days,
                "submission_date": isoformat(q.submission_date),
                "expires_at": isoformat(q.expires_at),
                "is_expired": q.is_expired,
                "items": [
                    {
                        "request_item_id": it.request_item_id,
                        "unit_price": float(it.unit_price),
                        "total_price": float(it.total_price),
                        "delivery_time": it.delivery_time,
                        "brand": it.brand,
                        "model": it.model,
                    }
                    for it in sorted(q.items, key=lambda i: i.request_item_id)
                ],
            }
        )
    return {
        "request": req.to_dict(),
        "items": [it.to_dict() for it in req.items],
        "quotations": out,
    }


def _reject_siblings(req: Request, winner: Quotation) -> List[Quotation]:
    siblings = (
        Quotation.query.filter(Quotation.request_id == req.id, Quotation.id != winner.id)
        .with_for_update()
        .all()
    )
    for q in siblings:
        transition(q, QuotationStatus.REJECTED, "Quotation")
    db.session.flush()
    return siblings


def _close_request(req: Request, winner: Quotation, notes: Optional[str]):
    transition(req, RequestStatus.CLOSED, "Request")
    req.winner_supplier_id = winner.supplier_id
    if notes is not None:
        req.notes = notes
    db.session.flush()


def select_winner(quotation_id: int, notes: Optional[str], actor_id: int) -> Quotation:
    """Accepts one quotation, rejects its siblings and closes the request atomically."""
    found = get_quotation(quotation_id)
    if found is None:
        raise NotFoundError("Quotation not found.")
    request_id = found.request_id

    with atomic():
        # request row first, same lock order as submit_quotation
        req = request_dao.lock_request(request_id)
        winner = (
            Quotation.query.filter_by(id=quotation_id)
            .populate_existing()
            .with_for_update()
            .one()
        )
        if req.status != RequestStatus.ACTIVE:
            raise ConflictError("A winner can only be selected on an active request.")
        if winner.status != QuotationStatus.SUBMITTED:
            raise ConflictError("Only a submitted quotation can be selected.")

        transition(winner, QuotationStatus.ACCEPTED, "Quotation")
        losers = _reject_siblings(req, winner)
        _close_request(req, winner, notes)

        winner.supplier.successful_quotations = Supplier.successful_quotations + 1

        for q in [winner] + losers:
            is_winner = q.id == winner.id
            notification_dao.notify(
                q.supplier.user_id,
                NotificationType.QUOTATION,
                "Your quotation was accepted" if is_winner else "Request result",
                (
                    f'Your quotation for "{req.title}" was accepted.'
                    if is_winner
                    else f'Another quotation was accepted for "{req.title}".'
                ),
                {"request_id": req.id, "quotation_id": q.id},
            )
        company = winner.supplier.company_name
        audit_dao.record(
            "quotation_selected",
            user_id=actor_id,
            table_name="quotations",
            record_id=winner.id,
            new_values={"winner_company": company, "notes": notes},
        )

    logger.info(
        "Quotation %s selected for request %s (%s)",
        winner.quotation_no,
        req.request_no,
        company,
    )
    mailer.dispatch(
        [mailer.award_message(q.supplier.user.email, q, q.id == winner.id) for q in [winner] + losers]
    )
    return winner


# -------- listings --------
def list_for_supplier(supplier_id: int, page: int, limit: int, status: Optional[QuotationStatus] = None):
    q = Quotation.query.filter_by(supplier_id=supplier_id)
    if status:
        q = q.filter(Quotation.status == status)
    return q.order_by(Quotation.created_at.desc(), Quotation.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )


def supplier_row(q: Quotation) -> Dict:
    return {
        **q.to_dict(),
        "request_title": q.request.title,
        "request_no": q.request.request_no,
        "total_items": len(q.items),
    }


def supplier_detail(quotation_id: int, supplier_id: int) -> Dict:
    q = get_own_quotation(quotation_id, supplier_id)
    items = sorted(q.items, key=lambda i: i.request_item.item_no)
    return {
        "quotation": {
            **q.to_dict(),
            "request_title": q.request.title,
            "request_no": q.request.request_no,
            "description": q.request.description,
        },
        "items": [
            {**it.to_dict(), "specifications": it.request_item.specifications}
            for it in items
        ],
    }


def expiring_within(days: int = 7) -> List[Dict]:
    """Submitted quotations whose validity ends within ``days`` (already expired included)."""
    horizon = utcnow() + timedelta(days=days)
    rows = []
    for q in Quotation.query.filter(
        Quotation.status == QuotationStatus.SUBMITTED,
        Quotation.submission_date.isnot(None),
    ):
        if q.expires_at <= horizon:
            rows.append(
                {
                    "id": q.id,
                    "quotation_no": q.quotation_no,
                    "title": q.request.title,
                    "company_name": q.supplier.company_name,
                    "expires_at": isoformat(q.expires_at),
                    "is_expired": q.is_expired,
                }
            )
    rows.sort(key=lambda r: r["expires_at"])
    return rows


def parse_status(value: Optional[str]) -> Optional[QuotationStatus]:
    if not value:
        return None
    try:
        return QuotationStatus(value.strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in QuotationStatus)
        raise ValidationError(errors={"status": f"status must be one of: {allowed}."})
