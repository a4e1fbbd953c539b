"""Checkout service — turns a purchase request into an OY! payment link.

Flow:
1. Validate buyer email and product id
2. Load the product (must exist and be active)
3. Insert a PENDING transaction at the product's current price
4. Ask OY! for a payment link, passing our transaction id as partner_tx_id
5. Store the returned payment-link id on the transaction

Steps 3 and 5 are separate commits around the gateway call. If the
gateway call fails the transaction stays PENDING with no reference id and
the error goes back to the buyer; nothing is rolled back.
"""

import logging
import re

from flask import current_app

from storefront.errors import ValidationError
from storefront.services import ledger_service, oy_service, product_service

logger = logging.getLogger(__name__)

# Simple email regex: not exhaustive, just a sanity check
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _clean_request(product_id, buyer_email, buyer_name):
    errors = {}

    if not isinstance(product_id, str) or not product_id.strip():
        errors["productId"] = "Product ID is required."

    if not isinstance(buyer_email, str) or not EMAIL_RE.match(buyer_email.strip()):
        errors["buyerEmail"] = "A valid email is required."
    elif len(buyer_email.strip()) > 255:
        errors["buyerEmail"] = "Email is too long."

    if buyer_name is not None:
        if not isinstance(buyer_name, str):
            errors["buyerName"] = "Name must be a string."
        elif len(buyer_name.strip()) > 255:
            errors["buyerName"] = "Name is too long."

    if errors:
        raise ValidationError("Validation error", details=errors)

    buyer_name = buyer_name.strip() if buyer_name else None
    return product_id.strip(), buyer_email.strip().lower(), buyer_name or None


def create_checkout(product_id, buyer_email, buyer_name=None):
    """Start a purchase.

    Returns:
        dict: {"transaction_id", "payment_url", "invoice_id"}

    Raises:
        ValidationError: malformed email / missing product id
        NotFoundError:   unknown or inactive product (no transaction created)
        UpstreamError:   OY! call failed (transaction left PENDING)
        InternalError:   database failure
    """
    product_id, buyer_email, buyer_name = _clean_request(
        product_id, buyer_email, buyer_name
    )

    product = product_service.get_purchasable_product(product_id)

    transaction = ledger_service.create_pending_transaction(
        product, buyer_email, buyer_name
    )

    app_base_url = current_app.config["APP_BASE_URL"].rstrip("/")
    try:
        payment = oy_service.create_payment(
            amount=transaction.price,
            buyer_email=buyer_email,
            callback_url=f"{app_base_url}/api/payments/oy/callback",
            description=f"Purchase: {product.title}",
            partner_tx_id=transaction.id,
        )
    except Exception:
        logger.warning(
            f"Checkout for transaction {transaction.id} failed at the gateway; "
            f"left PENDING without a reference"
        )
        raise

    ledger_service.set_gateway_reference(transaction, payment["reference_id"])

    return {
        "transaction_id": transaction.id,
        "payment_url": payment["payment_url"],
        "invoice_id": payment["reference_id"],
    }
