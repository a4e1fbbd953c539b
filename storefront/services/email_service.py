"""
Notification email service.

Sends transactional email through the transport named by MAIL_TRANSPORT:
  - "smtp":   any SMTP relay with STARTTLS (smtplib)
  - "resend": Resend's hosted HTTP API (requests)

Every send is a single synchronous attempt. Nothing is queued or retried;
callers get a bool and decide whether to log it. Exceptions from the
transport never escape this module.

Usage:
    from storefront.services.email_service import send_email

    ok = send_email(
        to="buyer@example.com",
        subject="Your purchase",
        template="emails/purchase_invoice.html",
        context={"product_title": "Ebook"},
    )
"""

import logging
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import requests
from flask import current_app, render_template

logger = logging.getLogger(__name__)


def format_rupiah(amount):
    """Format an integer rupiah amount the Indonesian way: 50000 -> 'Rp 50.000'."""
    return "Rp " + f"{int(amount or 0):,}".replace(",", ".")


def _from_header(app):
    from_name = app.config.get("MAIL_FROM_NAME", "Storefront")
    from_email = app.config.get("MAIL_FROM_ADDRESS") or app.config.get("MAIL_USERNAME", "")
    return f"{from_name} <{from_email}>"


def _send_smtp(app, msg):
    """Deliver a built MIME message over SMTP. Returns True on success."""
    host = app.config.get("MAIL_SMTP_HOST", "smtp.gmail.com")
    port = app.config.get("MAIL_SMTP_PORT", 587)
    username = app.config.get("MAIL_USERNAME")
    password = app.config.get("MAIL_PASSWORD")

    if not username or not password:
        logger.warning("Email not sent — MAIL_USERNAME or MAIL_PASSWORD not configured.")
        return False

    try:
        with smtplib.SMTP(host, port, timeout=30) as server:
            server.ehlo()
            server.starttls()
            server.ehlo()
            server.login(username, password)
            server.send_message(msg)
        logger.info(f"Email sent to {msg['To']} — {msg['Subject']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {msg['To']}: {e}")
        return False


def _send_resend(app, to, subject, html=None, text=None, reply_to=None):
    """Deliver through the Resend HTTP API. Returns True on success."""
    api_key = app.config.get("RESEND_API_KEY")
    if not api_key:
        logger.error("Email not sent — RESEND_API_KEY not configured.")
        return False

    body = {
        "from": _from_header(app),
        "to": [to] if isinstance(to, str) else list(to),
        "subject": subject,
    }
    if html is not None:
        body["html"] = html
    if text is not None:
        body["text"] = text
    if reply_to:
        body["reply_to"] = reply_to

    try:
        resp = requests.post(
            app.config.get("RESEND_API_URL", "https://api.resend.com/emails"),
            json=body,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=30,
        )
        resp.raise_for_status()
        logger.info(f"Email sent to {to} via Resend — {subject}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to} via Resend: {e}")
        return False


def _deliver(to, subject, html=None, text=None, reply_to=None):
    app = current_app._get_current_object()
    transport = app.config.get("MAIL_TRANSPORT", "smtp")

    if transport == "resend":
        return _send_resend(app, to, subject, html=html, text=text, reply_to=reply_to)
    if transport != "smtp":
        logger.error(f"Email not sent — unknown MAIL_TRANSPORT {transport!r}")
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = _from_header(app)
    msg["To"] = to if isinstance(to, str) else ", ".join(to)

    if reply_to:
        msg["Reply-To"] = reply_to

    # Plain part first: clients show the last alternative they can render.
    if text is not None:
        msg.attach(MIMEText(text, "plain"))
    if html is not None:
        msg.attach(MIMEText(html, "html"))

    return _send_smtp(app, msg)


def send_email(to, subject, template, context=None, reply_to=None):
    """
    Send a templated HTML email. Returns True if the transport accepted it.

    Args:
        to:        Recipient email address (str or list).
        subject:   Email subject line.
        template:  Path to Jinja2 HTML template (relative to templates/).
        context:   Dict of variables to pass to the template.
        reply_to:  Optional reply-to address.
    """
    try:
        html_body = render_template(template, **(context or {}))
    except Exception as e:
        logger.error(f"Failed to render email template {template}: {e}")
        return False
    return _deliver(to, subject, html=html_body, reply_to=reply_to)


def send_text_email(to, subject, template, context=None):
    """Same as send_email but renders a plain-text template."""
    try:
        text_body = render_template(template, **(context or {}))
    except Exception as e:
        logger.error(f"Failed to render email template {template}: {e}")
        return False
    return _deliver(to, subject, text=text_body)


# ──────────────────────────────────────────────
# Purchase notifications
# ──────────────────────────────────────────────

def send_purchase_invoice(transaction, download_url):
    """Email the buyer their invoice and download link."""
    product = transaction.product
    support_email = (
        current_app.config.get("MAIL_FROM_ADDRESS")
        or current_app.config.get("MAIL_USERNAME")
        or ""
    )
    return send_email(
        to=transaction.buyer_email,
        subject=f"Your Purchase: {product.title}",
        template="emails/purchase_invoice.html",
        context={
            "buyer_name": transaction.buyer_name or transaction.buyer_email,
            "buyer_email": transaction.buyer_email,
            "product_title": product.title,
            "amount": format_rupiah(transaction.price),
            "download_url": download_url,
            "link_ttl_days": current_app.config.get("DOWNLOAD_LINK_TTL_DAYS", 7),
            "support_email": support_email,
        },
    )


def send_sale_alert(transaction):
    """Email the shop owner a plain summary of a completed sale."""
    return send_text_email(
        to=current_app.config["MAIL_ADMIN_ADDRESS"],
        subject=f"New Sale: {transaction.product.title}",
        template="emails/sale_alert.txt",
        context={
            "product_title": transaction.product.title,
            "buyer_email": transaction.buyer_email,
            "buyer_name": transaction.buyer_name,
            "amount": format_rupiah(transaction.price),
            "payment_method": transaction.payment_method,
            "transaction_id": transaction.id,
            "sold_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
        },
    )
