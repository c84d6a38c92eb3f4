"""PDF documents rendered with reportlab's platypus layer."""

from io import BytesIO
from xml.sax.saxutils import escape

from flask import current_app
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from utils.dates import utcnow

NOT_SET = "not specified"

_styles = getSampleStyleSheet()
_TABLE_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]
)


def _p(text, style="Normal"):
    return Paragraph(escape(str(text)), _styles[style])


def _date(value, fmt="%d.%m.%Y"):
    return value.strftime(fmt) if value else NOT_SET


def _money(amount, currency="TRY"):
    return f"{float(amount or 0):,.2f} {currency}"


def _table(rows):
    t = Table(rows, repeatRows=1)
    t.setStyle(_TABLE_STYLE)
    return t


def _header(title):
    return [
        _p(current_app.config.get("APP_NAME", ""), "Title"),
        _p(title, "Heading2"),
        Spacer(1, 0.4 * cm),
    ]


def _footer(canvas, doc):
    canvas.saveState()
    canvas.setFont("Helvetica", 7)
    canvas.drawString(doc.leftMargin, 1 * cm, f"Generated {utcnow():%d.%m.%Y %H:%M} UTC")
    canvas.drawRightString(A4[0] - doc.rightMargin, 1 * cm, f"Page {doc.page}")
    canvas.restoreState()


def _build(story, title) -> BytesIO:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=1.8 * cm,
        rightMargin=1.8 * cm,
        topMargin=1.8 * cm,
        bottomMargin=1.8 * cm,
        title=title,
    )
    doc.build(story, onFirstPage=_footer, onLaterPages=_footer)
    buf.seek(0)
    return buf


def comparison_report(data) -> BytesIO:
    """Request details, its items and the submitted quotations, cheapest first."""
    req = data["request"]
    story = _header("Quotation Comparison Report")

    story.append(_p("Request", "Heading3"))
    for label, value in (
        ("Request No", req.request_no),
        ("Title", req.title),
        ("Description", req.description or NOT_SET),
        ("Priority", req.priority.value.upper()),
        ("Deadline", _date(req.deadline)),
        ("Created By", req.creator.username if req.creator else NOT_SET),
        ("Created", _date(req.created_at, "%d.%m.%Y %H:%M")),
    ):
        story.append(_p(f"{label}: {value}"))
    story.append(Spacer(1, 0.4 * cm))

    story.append(_p("Items", "Heading3"))
    rows = [["#", "Material", "Quantity", "Unit", "Specifications"]]
    for it in req.items:
        rows.append(
            [it.item_no, _p(it.material_name), f"{it.quantity:g}", it.unit, _p(it.specifications or "")]
        )
    story.append(_table(rows))
    story.append(Spacer(1, 0.4 * cm))

    story.append(_p("Received Quotations", "Heading3"))
    quotations = data["quotations"]
    if not quotations:
        story.append(_p("No quotations submitted yet."))
    for idx, q in enumerate(quotations, 1):
        s = q.supplier
        story.append(_p(f"{idx}. {s.company_name}", "Heading4"))
        for label, value in (
            ("Quotation No", q.quotation_no),
            ("Total", _money(q.total_amount, q.currency)),
            ("Delivery", f"{q.delivery_time} days" if q.delivery_time else NOT_SET),
            ("Payment Terms", q.payment_terms or NOT_SET),
            ("Validity", f"{q.validity_days} days"),
            ("Rating", f"{s.rating}/5.0"),
            ("Contact", f"{s.contact_person or NOT_SET} {s.phone or ''}".strip()),
            ("Submitted", _date(q.submission_date, "%d.%m.%Y %H:%M")),
        ):
            story.append(_p(f"{label}: {value}"))
        if q.notes:
            story.append(_p(f"Notes: {q.notes}"))

    summary = data["summary"]
    if summary:
        story.append(Spacer(1, 0.4 * cm))
        story.append(_p("Summary", "Heading3"))
        story.append(
            _table(
                [
                    ["Lowest", "Highest", "Average", "Spread", "Suppliers"],
                    [
                        _money(summary["min"]),
                        _money(summary["max"]),
                        _money(summary["avg"]),
                        f"%{summary['spread_pct']}",
                        summary["suppliers"],
                    ],
                ]
            )
        )
    return _build(story, f"Quotation comparison {req.request_no}")


def supplier_performance_report(data) -> BytesIO:
    s = data["supplier"]
    response = data["response"]
    story = _header("Supplier Performance Report")

    story.append(_p("Supplier", "Heading3"))
    for label, value in (
        ("Company", s.company_name),
        ("Tax Number", s.tax_number or NOT_SET),
        ("Contact", s.contact_person or NOT_SET),
        ("Phone", s.phone or NOT_SET),
        ("Email", s.user.email if s.user else NOT_SET),
        ("City", s.city or NOT_SET),
        ("Categories", s.categories or NOT_SET),
        ("Rating", f"{s.rating}/5.0"),
        ("Registered", _date(s.created_at)),
    ):
        story.append(_p(f"{label}: {value}"))
    story.append(Spacer(1, 0.4 * cm))

    story.append(_p("Performance", "Heading3"))
    story.append(
        _table(
            [
                ["Quotations", "Won", "Success Rate", "Response Rate", "Avg Response"],
                [
                    s.total_quotations,
                    s.successful_quotations,
                    f"%{s.success_rate}",
                    f"%{response['rate']}",
                    f"{response['avg_days']} days",
                ],
            ]
        )
    )
    story.append(Spacer(1, 0.4 * cm))

    story.append(_p("Recent Quotations", "Heading3"))
    rows = [["Request", "Title", "Amount", "Status", "Date"]]
    for q in data["quotations"][:10]:
        rows.append(
            [
                q.request.request_no,
                _p(q.request.title),
                _money(q.total_amount, q.currency),
                q.status.value,
                _date(q.submission_date),
            ]
        )
    story.append(_table(rows))

    if data["monthly_stats"]:
        story.append(PageBreak())
        story.append(_p("Monthly Trend", "Heading3"))
        rows = [["Month", "Quotations", "Won", "Win Rate", "Avg Amount"]]
        for m in data["monthly_stats"]:
            rows.append(
                [
                    m["month"],
                    m["quotation_count"],
                    m["won_count"],
                    f"%{m['win_rate']}",
                    _money(m["avg_amount"]),
                ]
            )
        story.append(_table(rows))
    return _build(story, f"Supplier performance {s.company_name}")
