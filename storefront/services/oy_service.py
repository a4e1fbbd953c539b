"""OY! Indonesia service — payment gateway API calls and callback verification.

Responsible for:
- Creating hosted payment links (payment-checkout/create-v2)
- Checking payment status for a partner transaction id
- Verifying callback authenticity (HMAC-SHA256 over the raw body)

All HTTP failures are raised as UpstreamError so callers never have to
know about requests' exception hierarchy.
"""

import hashlib
import hmac
import logging

import requests
from flask import current_app

from storefront.errors import UpstreamError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-OY-Signature"

# OY! wraps every response in {"status": {"code": ..., "message": ...}}.
# "000" is success; anything else is an API-level failure.
SUCCESS_CODE = "000"


def _headers():
    api_key = current_app.config["OY_API_KEY"]
    return {
        "Content-Type": "application/json",
        "X-Oy-Username": current_app.config.get("OY_USERNAME") or api_key,
        "X-Api-Key": api_key,
    }


def _url(path):
    return f"{current_app.config['OY_BASE_URL'].rstrip('/')}{path}"


def _check_status_block(data, action):
    """Raise UpstreamError if OY! reported an API-level failure."""
    status = data.get("status")
    if isinstance(status, dict) and status.get("code") not in (None, SUCCESS_CODE):
        message = status.get("message") or "unknown error"
        logger.error(f"OY! {action} rejected: {status.get('code')} {message}")
        raise UpstreamError(f"Payment gateway rejected the request: {message}")


def create_payment(amount, buyer_email, callback_url, description, partner_tx_id):
    """Create an OY! payment link.

    Args:
        amount:         Integer amount in rupiah.
        buyer_email:    Buyer's email (also used as sender_name).
        callback_url:   Where OY! should POST the payment result.
        description:    Human-readable purchase description.
        partner_tx_id:  Our transaction id, echoed back in callbacks.

    Returns:
        dict: {"payment_url": str, "reference_id": str}

    Raises UpstreamError on transport errors, non-2xx responses, API-level
    failures, or a response missing the payment link.
    """
    body = {
        "partner_tx_id": partner_tx_id,
        "description": description,
        "notes": description,
        "sender_name": buyer_email,
        "amount": amount,
        "email": buyer_email,
        "phone_number": "",
        "is_open": False,
        "step": "input-amount",
        "include_admin_fee": False,
        "list_disabled_payment_methods": "",
        "list_enabled_banks": "",
        "expiration": current_app.config.get("OY_LINK_EXPIRATION_MINUTES", 24 * 60),
        "callback_url": callback_url,
    }

    try:
        resp = requests.post(
            _url("/api/payment-checkout/create-v2"),
            json=body,
            headers=_headers(),
            timeout=current_app.config.get("OY_TIMEOUT_SECONDS", 30),
        )
        resp.raise_for_status()
        data = resp.json()
    except requests.exceptions.Timeout:
        logger.error(f"OY! create payment timed out for {partner_tx_id}")
        raise UpstreamError("Payment gateway timed out")
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error(f"OY! create payment failed for {partner_tx_id}: {e}")
        raise UpstreamError("Failed to create payment")

    _check_status_block(data, "create payment")

    payment_url = data.get("payment_link_url") or data.get("url")
    reference_id = data.get("payment_link_id") or data.get("invoice_id")
    if not payment_url or not reference_id:
        logger.error(f"OY! create payment returned no link for {partner_tx_id}: {data}")
        raise UpstreamError("Payment gateway returned no payment link")

    logger.info(f"OY! payment link {reference_id} created for {partner_tx_id}")
    return {"payment_url": payment_url, "reference_id": reference_id}


def check_payment_status(partner_tx_id):
    """Ask OY! for the current status of a payment.

    Returns the raw status payload (same shape as a callback body).
    Raises UpstreamError on any failure.
    """
    try:
        resp = requests.get(
            _url("/api/payment-checkout/status"),
            params={"partner_tx_id": partner_tx_id, "send_callback": "false"},
            headers=_headers(),
            timeout=current_app.config.get("OY_TIMEOUT_SECONDS", 30),
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error(f"OY! status check failed for {partner_tx_id}: {e}")
        raise UpstreamError("Failed to check payment status")

    if not isinstance(data, dict):
        raise UpstreamError("Payment gateway returned an unexpected status payload")

    _check_status_block(data, "status check")

    # Newer responses nest the transaction under "data".
    inner = data.get("data")
    if isinstance(inner, dict):
        return inner
    return data


def compute_signature(raw_body, secret):
    """Hex HMAC-SHA256 of the raw request body."""
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_callback(raw_body, signature):
    """Check a callback's X-OY-Signature against OY_CALLBACK_SECRET.

    Fails closed: a missing secret or a missing or malformed signature
    never verifies.
    """
    secret = current_app.config.get("OY_CALLBACK_SECRET")
    if not secret:
        logger.error("OY_CALLBACK_SECRET is not configured; rejecting callback")
        return False
    if not signature:
        return False
    expected = compute_signature(raw_body, secret)
    # Header values may carry arbitrary latin-1 text; compare as bytes.
    received = signature.strip().lower().encode("utf-8", "replace")
    return hmac.compare_digest(expected.encode("ascii"), received)
