"""Callback service — reconciles OY! payment notifications.

Responsible for:
- Logging every inbound payload to callback_logs before anything else
- Rejecting callbacks whose signature does not verify
- Locating the transaction by partner_tx_id / tx_ref_number
- Classifying the gateway status as PAID or FAILED
- Settling PENDING transactions exactly once (conditional update)
- Sending the buyer invoice and the admin sale alert on PAID

A duplicate delivery for a settled transaction is acknowledged without
touching state or sending email.
"""

import json
import logging

from flask import current_app

from storefront.errors import AuthenticationError, NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.callback_log import CallbackLog
from storefront.models.transaction import Transaction
from storefront.services import email_service, ledger_service, oy_service

logger = logging.getLogger(__name__)

# Matched case-insensitively against payload["status"] / ["settlement_status"].
SUCCESS_STATUSES = frozenset({"success", "complete"})

# Reported by the status-check endpoint while the buyer has not paid yet.
IN_PROGRESS_STATUSES = frozenset({
    "created",
    "waiting_payment",
    "payment_in_progress",
    "processing",
    "pending",
})


def _parse_body(raw_body):
    """Return the decoded JSON object, or None if the body is not one."""
    try:
        payload = json.loads(raw_body) if raw_body else None
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def extract_reference(payload):
    """Pull the transaction-identifying token out of a callback payload."""
    for key in ("partner_tx_id", "tx_ref_number"):
        value = payload.get(key)
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            value = str(value).strip()
            if value:
                return value
    return None


def _gateway_status(payload):
    status = payload.get("status") or payload.get("settlement_status")
    return status.strip().lower() if isinstance(status, str) else None


def classify_status(payload):
    """PAID if the gateway reported a recognised success token, else FAILED."""
    if _gateway_status(payload) in SUCCESS_STATUSES:
        return Transaction.STATUS_PAID
    return Transaction.STATUS_FAILED


def _download_url(transaction):
    app_base_url = current_app.config["APP_BASE_URL"].rstrip("/")
    return f"{app_base_url}/download/{transaction.download_token}"


def _send_purchase_emails(transaction):
    """Buyer invoice + admin alert. Failures are logged and never raised."""
    try:
        if email_service.send_purchase_invoice(transaction, _download_url(transaction)):
            logger.info(f"Invoice email sent to {transaction.buyer_email} for {transaction.id}")
        else:
            logger.error(f"Failed to send invoice email for {transaction.id}")
    except Exception as e:
        logger.error(f"Invoice email for {transaction.id} raised: {e}")

    try:
        if email_service.send_sale_alert(transaction):
            logger.info(f"Sale alert sent for {transaction.id}")
        else:
            logger.error(f"Failed to send sale alert for {transaction.id}")
    except Exception as e:
        logger.error(f"Sale alert for {transaction.id} raised: {e}")


def apply_payment_result(transaction, payload, in_progress_statuses=()):
    """Drive a located transaction to its terminal status.

    Returns (status, message) where message is "processed", "pending" or
    "already_processed".
    """
    if transaction.is_settled:
        logger.info(
            f"Transaction {transaction.id} already {transaction.status}, skipping"
        )
        return transaction.status, "already_processed"

    if _gateway_status(payload) in in_progress_statuses:
        logger.info(f"Transaction {transaction.id} still in progress at the gateway")
        return transaction.status, "pending"

    new_status = classify_status(payload)
    payment_method = payload.get("payment_method")
    if not isinstance(payment_method, str) or not payment_method:
        payment_method = None

    won = ledger_service.settle_transaction(
        transaction,
        new_status,
        payment_method,
        payload,
        download_ttl_days=current_app.config.get("DOWNLOAD_LINK_TTL_DAYS", 7),
    )
    if not won:
        # Another delivery settled it between our read and our write.
        logger.info(
            f"Transaction {transaction.id} settled concurrently as {transaction.status}"
        )
        return transaction.status, "already_processed"

    logger.info(f"Transaction {transaction.id} PENDING -> {new_status}")

    if new_status == Transaction.STATUS_PAID:
        _send_purchase_emails(transaction)

    return new_status, "processed"


def handle_callback(raw_body, signature):
    """Process one OY! callback delivery.

    Args:
        raw_body:   Request body exactly as received (bytes or str).
        signature:  Value of the X-OY-Signature header, or None.

    Returns (status, message) — see apply_payment_result.

    Raises AuthenticationError, ValidationError or NotFoundError. Every
    failure happens after the payload has been logged.
    """
    if isinstance(raw_body, bytes):
        # Invalid UTF-8 is kept as escapes so the stored body is not lossy.
        body_text = raw_body.decode("utf-8", "backslashreplace")
    else:
        body_text = raw_body or ""

    payload = _parse_body(body_text)
    verified = oy_service.verify_callback(raw_body, signature)

    ledger_service.record_callback(body_text, payload, verified)

    if not verified:
        logger.warning("OY! callback rejected: invalid signature")
        raise AuthenticationError("Invalid signature")

    if payload is None:
        raise ValidationError("Callback body must be a JSON object")

    reference = extract_reference(payload)
    if not reference:
        logger.error("OY! callback without partner_tx_id / tx_ref_number")
        raise ValidationError("Missing transaction ID")

    transaction = ledger_service.find_transaction(reference)
    if transaction is None:
        logger.error(f"OY! callback for unknown transaction {reference}")
        raise NotFoundError("Transaction not found")

    return apply_payment_result(transaction, payload)


def sync_transaction(transaction_id):
    """Poll OY! for a transaction's status and reconcile it like a callback.

    Used by admins when a callback never arrived. The polled payload is
    logged with source "status_check".
    """
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")

    if transaction.is_settled:
        return transaction, transaction.status, "already_processed"

    payload = oy_service.check_payment_status(transaction.id)
    ledger_service.record_callback(
        json.dumps(payload, sort_keys=True),
        payload,
        signature_valid=True,  # fetched by us over an authenticated channel
        source=CallbackLog.SOURCE_STATUS_CHECK,
    )

    status, message = apply_payment_result(
        transaction, payload, in_progress_statuses=IN_PROGRESS_STATUSES
    )
    return transaction, status, message
