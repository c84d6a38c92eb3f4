import logging
import uuid
from typing import Dict, List, Optional
from sqlalchemy import func, or_
from configs import db
from dao import audit as audit_dao, notification as notification_dao
from dao.base import atomic, commit, transition
from db.models.category import Category
from db.models.notification import NotificationType
from db.models.quotation import Quotation, QuotationStatus
from db.models.request import (
    InvitationStatus,
    Priority,
    Request,
    RequestItem,
    RequestStatus,
    RequestSupplier,
)
from db.models.supplier import Supplier
from utils import mailer
from utils.dates import isoformat, utcnow
from utils.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from utils.validation import MAX_AMOUNT, Validator

logger = logging.getLogger(__name__)

OPEN_INVITATION = (InvitationStatus.INVITED, InvitationStatus.VIEWED)


def new_number(prefix: str) -> str:
    """``<prefix>-<yyyymmdd>-<8 hex>``; the random part keeps it collision-free."""
    return f"{prefix}-{utcnow():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def get_request(request_id: int) -> Optional[Request]:
    return db.session.get(Request, request_id)


def get_request_or_404(request_id: int) -> Request:
    r = get_request(request_id)
    if r is None:
        raise NotFoundError("Request not found.")
    return r


def lock_request(request_id: int) -> Optional[Request]:
    """Re-reads the request row under ``SELECT ... FOR UPDATE``."""
    return (
        Request.query.filter_by(id=request_id)
        .populate_existing()
        .with_for_update()
        .first()
    )


def list_categories() -> List[Category]:
    return Category.query.filter_by(is_active=True).order_by(Category.name.asc()).all()


# -------- helpers --------
def _normalize_items(v: Validator, items: List[Dict]) -> List[Dict]:
    """Per-line checks: material name, quantity > 0 and unit are required."""
    out: List[Dict] = []
    for idx, raw in enumerate(items):
        key = f"items[{idx}]"
        if not isinstance(raw, dict):
            v.error(key, f"Line {idx + 1}: must be an object.")
            continue
        line = Validator(raw)
        item = {
            "material_code": line.text("material_code", max_len=50),
            "material_name": line.text(
                "material_name",
                required=True,
                max_len=255,
                message=f"Line {idx + 1}: material name is required.",
            ),
            "quantity": line.decimal(
                "quantity", required=True, positive=True, max_value=MAX_AMOUNT
            ),
            "unit": line.text(
                "unit",
                required=True,
                max_len=20,
                message=f"Line {idx + 1}: unit is required.",
            ),
            "specifications": line.text("specifications"),
            "category": line.text("category", max_len=100),
            "priority": line.choice("priority", Priority, default=Priority.NORMAL),
            "notes": line.text("notes"),
        }
        for field, message in line.errors.items():
            v.error(f"{key}.{field}", message)
        out.append(item)
    return out


def _normalize_supplier_ids(v: Validator, raw_ids: List) -> List[int]:
    ids: List[int] = []
    for idx, raw in enumerate(raw_ids):
        try:
            if isinstance(raw, bool):
                raise ValueError
            sid = int(raw)
        except (TypeError, ValueError):
            v.error(f"supplier_ids[{idx}]", "Supplier id must be an integer.")
            continue
        if sid not in ids:
            ids.append(sid)
    return ids


def _approved_suppliers(ids: List[int]) -> List[Supplier]:
    found = Supplier.query.filter(Supplier.id.in_(ids), Supplier.is_approved.is_(True)).all()
    by_id = {s.id: s for s in found}
    missing = [sid for sid in ids if sid not in by_id]
    if missing:
        raise ValidationError(
            "Every invited supplier must exist and be approved.",
            errors={"supplier_ids": missing},
        )
    return [by_id[sid] for sid in ids]


# -------- admin side --------
def create_request(data: dict, actor_id: int) -> Request:
    v = Validator(data)
    title = v.text("title", required=True, min_len=5, max_len=200)
    description = v.text("description", max_len=1000)
    deadline = v.datetime("deadline")
    priority = v.choice("priority", Priority, default=Priority.NORMAL)
    notes = v.text("notes")
    items = _normalize_items(v, v.items("items", message="Add at least one item."))
    supplier_ids = _normalize_supplier_ids(
        v, v.items("supplier_ids", message="Invite at least one supplier.")
    )
    v.check()
    suppliers = _approved_suppliers(supplier_ids)

    now = utcnow()
    with atomic():
        r = Request(
            request_no=new_number("REQ"),
            title=title,
            description=description,
            deadline=deadline,
            priority=priority,
            status=RequestStatus.ACTIVE,
            created_by=actor_id,
            total_items=len(items),
            total_suppliers=len(suppliers),
            notes=notes,
        )
        db.session.add(r)
        db.session.flush()

        for item_no, it in enumerate(items, 1):
            db.session.add(RequestItem(request_id=r.id, item_no=item_no, **it))

        for s in suppliers:
            db.session.add(
                RequestSupplier(
                    request_id=r.id,
                    supplier_id=s.id,
                    status=InvitationStatus.INVITED,
                    invitation_sent=True,
                    invitation_date=now,
                )
            )
            notification_dao.notify(
                s.user_id,
                NotificationType.REQUEST,
                "New request for quotation",
                f'You are invited to quote on "{r.title}".',
                {"request_id": r.id, "request_no": r.request_no},
            )

        audit_dao.record(
            "request_created",
            user_id=actor_id,
            table_name="requests",
            record_id=r.id,
            new_values={
                "title": r.title,
                "total_items": len(items),
                "total_suppliers": len(suppliers),
            },
        )

    logger.info(
        "Request %s created with %d items, %d suppliers",
        r.request_no,
        r.total_items,
        r.total_suppliers,
    )
    mailer.dispatch(mailer.new_request_messages([s.user.email for s in suppliers], r))
    return r


def request_counts(request_ids: List[int]) -> Dict[int, Dict[str, int]]:
    counts = {rid: {"invited_suppliers": 0, "received_quotations": 0} for rid in request_ids}
    if not request_ids:
        return counts
    invited = (
        db.session.query(RequestSupplier.request_id, func.count(RequestSupplier.id))
        .filter(RequestSupplier.request_id.in_(request_ids))
        .group_by(RequestSupplier.request_id)
    )
    for rid, n in invited:
        counts[rid]["invited_suppliers"] = n
    received = (
        db.session.query(Quotation.request_id, func.count(Quotation.id))
        .filter(
            Quotation.request_id.in_(request_ids),
            Quotation.status == QuotationStatus.SUBMITTED,
        )
        .group_by(Quotation.request_id)
    )
    for rid, n in received:
        counts[rid]["received_quotations"] = n
    return counts


def with_counts(requests: List[Request]) -> List[Dict]:
    counts = request_counts([r.id for r in requests])
    return [{**r.to_dict(), **counts[r.id]} for r in requests]


def list_requests(
    page: int,
    limit: int,
    status: Optional[RequestStatus] = None,
    priority: Optional[Priority] = None,
    search: Optional[str] = None,
):
    q = Request.query
    if status:
        q = q.filter(Request.status == status)
    if priority:
        q = q.filter(Request.priority == priority)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Request.title.ilike(like), Request.description.ilike(like)))
    return q.order_by(Request.created_at.desc(), Request.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )


# -------- supplier side --------
def get_invitation(request_id: int, supplier_id: int) -> Optional[RequestSupplier]:
    return RequestSupplier.query.filter_by(
        request_id=request_id, supplier_id=supplier_id
    ).first()


def require_invitation(request_id: int, supplier_id: int) -> RequestSupplier:
    invitation = get_invitation(request_id, supplier_id)
    if invitation is None:
        raise AuthorizationError("You are not invited to this request.")
    return invitation


def list_invitations(
    supplier_id: int,
    page: int,
    limit: int,
    status: Optional[str] = None,
    priority: Optional[Priority] = None,
):
    q = RequestSupplier.query.join(Request, RequestSupplier.request_id == Request.id).filter(
        RequestSupplier.supplier_id == supplier_id
    )
    if status == "active":
        q = q.filter(Request.status == RequestStatus.ACTIVE)
    elif status == "quoted":
        q = q.filter(RequestSupplier.status == InvitationStatus.QUOTED)
    elif status == "unquoted":
        q = q.filter(RequestSupplier.status.in_(OPEN_INVITATION))
    elif status:
        raise ValidationError(errors={"status": "status must be active, quoted or unquoted."})
    if priority:
        q = q.filter(Request.priority == priority)
    return q.order_by(Request.created_at.desc(), Request.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )


def invitation_rows(invitations: List[RequestSupplier], supplier_id: int) -> List[Dict]:
    now = utcnow()
    request_ids = [inv.request_id for inv in invitations]
    own = {}
    if request_ids:
        for q in Quotation.query.filter(
            Quotation.supplier_id == supplier_id, Quotation.request_id.in_(request_ids)
        ):
            own[q.request_id] = q
    rows = []
    for inv in invitations:
        r = inv.request
        q = own.get(r.id)
        rows.append(
            {
                "id": r.id,
                "request_no": r.request_no,
                "title": r.title,
                "description": r.description,
                "deadline": isoformat(r.deadline),
                "priority": r.priority.value,
                "status": r.status.value,
                "created_at": isoformat(r.created_at),
                "total_items": r.total_items,
                "invitation_status": inv.status.value,
                "invitation_date": isoformat(inv.invitation_date),
                "quotation_id": q.id if q else None,
                "quotation_status": q.status.value if q else None,
                "submission_date": isoformat(q.submission_date) if q else None,
                "days_left": (r.deadline - now).days if r.deadline else None,
            }
        )
    return rows


def mark_viewed(invitation: RequestSupplier) -> RequestSupplier:
    """First view moves ``invited`` to ``viewed``; any later view is a no-op."""
    if invitation.status == InvitationStatus.INVITED:
        transition(invitation, InvitationStatus.VIEWED, "Invitation")
        invitation.response_date = utcnow()
        commit()
    return invitation


def supplier_request_detail(request_id: int, supplier_id: int) -> dict:
    invitation = require_invitation(request_id, supplier_id)
    r = invitation.request
    quotation = Quotation.query.filter_by(request_id=request_id, supplier_id=supplier_id).first()
    detail = {
        "request": r.to_dict(),
        "items": [it.to_dict() for it in r.items],
        "invitation": invitation.to_dict(),
        "quotation": quotation.to_dict() if quotation else None,
        "quotation_items": (
            [it.to_dict() for it in sorted(quotation.items, key=lambda i: i.request_item_id)]
            if quotation
            else []
        ),
    }
    mark_viewed(invitation)
    return detail


def decline_invitation(request_id: int, supplier, notes: Optional[str] = None) -> RequestSupplier:
    with atomic():
        r = lock_request(request_id)
        if r is None:
            raise NotFoundError("Request not found.")
        invitation = require_invitation(request_id, supplier.id)
        if r.status != RequestStatus.ACTIVE:
            raise ConflictError("This request is no longer active.")
        transition(invitation, InvitationStatus.DECLINED, "Invitation")
        invitation.response_received = True
        invitation.response_date = utcnow()
        invitation.notes = notes
        notification_dao.notify_admins(
            NotificationType.REQUEST,
            "Invitation declined",
            f'{supplier.company_name} declined "{r.title}".',
            {"request_id": r.id, "supplier_id": supplier.id},
        )
        audit_dao.record(
            "invitation_declined",
            user_id=supplier.user_id,
            table_name="request_suppliers",
            record_id=invitation.id,
            new_values={"request_id": r.id, "notes": notes},
        )
    logger.info("Supplier %s declined request %s", supplier.id, request_id)
    return invitation
