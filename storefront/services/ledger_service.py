"""Ledger service — every write to transactions and callback_logs.

Responsible for:
- Creating PENDING transactions with the product price captured
- Recording the gateway reference id (once)
- Finding a transaction by our id or the gateway's reference
- The PENDING -> terminal transition as a single conditional UPDATE
- Appending raw callback payloads to the audit log

Each function commits its own unit of work. Storage failures roll back
and surface as InternalError.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from storefront.errors import InternalError
from storefront.extensions import db
from storefront.models.callback_log import CallbackLog
from storefront.models.transaction import Transaction

logger = logging.getLogger(__name__)


def commit_or_raise(action):
    """Commit the session; on failure roll back and raise InternalError."""
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database error while {action}: {e}", exc_info=True)
        raise InternalError(f"Storage failure while {action}")


def create_pending_transaction(product, buyer_email, buyer_name=None):
    """Insert a PENDING transaction priced at the product's current price."""
    transaction = Transaction(
        product_id=product.id,
        buyer_email=buyer_email,
        buyer_name=buyer_name,
        price=product.price,
        status=Transaction.STATUS_PENDING,
    )
    db.session.add(transaction)
    commit_or_raise("creating transaction")
    logger.info(
        f"Transaction {transaction.id} created for product {product.id} "
        f"({transaction.price}) by {buyer_email}"
    )
    return transaction


def set_gateway_reference(transaction, reference_id):
    """Store the gateway's payment-link id. Written at most once."""
    if transaction.gateway_reference_id:
        logger.warning(
            f"Transaction {transaction.id} already has gateway reference "
            f"{transaction.gateway_reference_id}; ignoring {reference_id}"
        )
        return transaction
    transaction.gateway_reference_id = reference_id
    commit_or_raise("storing gateway reference")
    return transaction


def find_transaction(reference):
    """Look up a transaction by our id OR the stored gateway reference id.

    Oldest match wins if a reference somehow matches more than one row.
    """
    return (
        Transaction.query
        .filter(or_(
            Transaction.id == reference,
            Transaction.gateway_reference_id == reference,
        ))
        .order_by(Transaction.created_at.asc())
        .first()
    )


def settle_transaction(transaction, status, payment_method, payload, download_ttl_days=7):
    """Move a PENDING transaction to PAID or FAILED exactly once.

    Issued as UPDATE ... WHERE id = :id AND status = 'PENDING', so two
    concurrent deliveries cannot both win. A PAID transition also mints the
    buyer's download token in the same write.

    Returns True if this call performed the transition, False if the row
    was no longer PENDING.
    """
    values = {
        Transaction.status: status,
        Transaction.payment_method: payment_method,
        Transaction.callback_payload: payload,
        Transaction.updated_at: datetime.now(timezone.utc),
    }
    if status == Transaction.STATUS_PAID:
        values[Transaction.download_token] = secrets.token_urlsafe(32)
        values[Transaction.download_expires_at] = (
            datetime.now(timezone.utc) + timedelta(days=download_ttl_days)
        )

    try:
        updated = (
            Transaction.query
            .filter(
                Transaction.id == transaction.id,
                Transaction.status == Transaction.STATUS_PENDING,
            )
            .update(values, synchronize_session=False)
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database error settling {transaction.id}: {e}", exc_info=True)
        raise InternalError("Storage failure while settling transaction")

    commit_or_raise("settling transaction")
    # The bulk UPDATE bypassed the identity map; reload the row.
    db.session.refresh(transaction)
    return updated == 1


def record_callback(raw_body, payload, signature_valid, source=CallbackLog.SOURCE_CALLBACK):
    """Append one inbound gateway payload to the audit log."""
    entry = CallbackLog(
        source=source,
        payload=payload,
        raw_body=raw_body or "",
        signature_valid=bool(signature_valid),
    )
    db.session.add(entry)
    commit_or_raise("recording callback")
    return entry
