"""Checkout blueprint — /api/checkout

Public endpoint a buyer hits from the product page. CSRF-exempt (no
session involved); rate limited per client address.
"""

from flask import Blueprint, jsonify, request

from storefront.errors import ValidationError
from storefront.extensions import limiter
from storefront.services import checkout_service

checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


@checkout_bp.route("", methods=["POST"])
@limiter.limit("10 per minute")
def create_checkout():
    """Create a PENDING transaction and an OY! payment link.

    Body: {productId, buyerEmail, buyerName?}
    Returns: {transactionId, paymentUrl, invoiceId}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    result = checkout_service.create_checkout(
        product_id=data.get("productId"),
        buyer_email=data.get("buyerEmail"),
        buyer_name=data.get("buyerName"),
    )

    return jsonify({
        "transactionId": result["transaction_id"],
        "paymentUrl": result["payment_url"],
        "invoiceId": result["invoice_id"],
    }), 200
