"""
Outbound email through Flask-Mail.

Emails are best-effort: callers hand messages to ``dispatch`` after their
transaction has committed, failures are logged and never raised. With
``MAIL_ASYNC`` on, sending happens on a small worker pool inside a fresh
application context.
"""

import atexit
import logging
from concurrent.futures import ThreadPoolExecutor
from html import escape

from flask import current_app
from flask_mail import Message

from configs import mail

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="mail")
atexit.register(_executor.shutdown)


def render(title: str, lines, action_url=None, action_text=None) -> str:
    app_name = escape(current_app.config.get("APP_NAME", ""))
    body = "".join(f"<p>{escape(str(line))}</p>" for line in lines)
    button = ""
    if action_url:
        button = f'<p><a href="{escape(action_url)}">{escape(action_text or action_url)}</a></p>'
    return (
        f"<html><body><h2>{app_name}</h2><h3>{escape(title)}</h3>"
        f"{body}{button}</body></html>"
    )


def send_email(to: str, subject: str, html: str) -> bool:
    try:
        mail.send(Message(subject=subject, recipients=[to], html=html))
    except Exception:
        logger.exception("Email to %s failed: %s", to, subject)
        return False
    logger.info("Email sent to %s: %s", to, subject)
    return True


def _send_all(app, messages):
    with app.app_context():
        for to, subject, html in messages:
            send_email(to, subject, html)


def _log_failure(future):
    exc = future.exception()
    if exc is not None:
        logger.error("Email batch failed", exc_info=(type(exc), exc, exc.__traceback__))


def dispatch(messages) -> None:
    """Send ``(to, subject, html)`` tuples; call only after commit."""
    messages = [m for m in messages if m and m[0]]
    if not messages:
        return
    app = current_app._get_current_object()
    if app.config.get("MAIL_ASYNC"):
        future = _executor.submit(_send_all, app, messages)
        future.add_done_callback(_log_failure)
    else:
        _send_all(app, messages)


# ---- message builders ----


def _frontend(path: str) -> str:
    return current_app.config["FRONTEND_URL"].rstrip("/") + path


def new_request_messages(emails, req):
    subject = f"New request for quotation: {req.title}"
    lines = [
        f"Request no: {req.request_no}",
        f"Priority: {req.priority.value}",
        f"Items: {req.total_items}",
    ]
    if req.deadline:
        lines.append(f"Deadline: {req.deadline:%d.%m.%Y %H:%M}")
    html = render(subject, lines, _frontend(f"/supplier/requests/{req.id}"), "Submit quotation")
    return [(email, subject, html) for email in emails]


def quotation_received_messages(emails, quotation, company_name):
    subject = f"Quotation received: {company_name}"
    lines = [
        f"Request: {quotation.request.title} ({quotation.request.request_no})",
        f"Quotation no: {quotation.quotation_no}",
        f"Total: {float(quotation.total_amount):,.2f} {quotation.currency}",
    ]
    html = render(
        subject,
        lines,
        _frontend(f"/admin/quotations/compare/{quotation.request_id}"),
        "Compare quotations",
    )
    return [(email, subject, html) for email in emails]


def approval_message(email, supplier, approved: bool):
    if approved:
        subject = "Your supplier account has been approved"
        lines = [f"{supplier.company_name} can now receive requests and submit quotations."]
        url, text = _frontend("/login"), "Sign in"
    else:
        subject = "About your supplier application"
        lines = [f"The application of {supplier.company_name} was not approved."]
        if supplier.notes:
            lines.append(f"Notes: {supplier.notes}")
        url, text = None, None
    return email, subject, render(subject, lines, url, text)


def award_message(email, quotation, is_winner: bool):
    req = quotation.request
    if is_winner:
        subject = f"Your quotation was accepted: {req.title}"
        lines = [f"Quotation {quotation.quotation_no} has been selected for {req.request_no}."]
    else:
        subject = f"Result of request {req.request_no}"
        lines = [f"Another quotation was selected for {req.title}. Thank you for taking part."]
    html = render(subject, lines, _frontend(f"/supplier/quotations/{quotation.id}"), "View quotation")
    return email, subject, html


def password_reset_message(email, token: str):
    subject = "Password reset"
    minutes = current_app.config["PASSWORD_RESET_MINUTES"]
    lines = [f"The link below is valid for {minutes} minutes."]
    html = render(subject, lines, _frontend(f"/reset-password?token={token}"), "Reset password")
    return email, subject, html
