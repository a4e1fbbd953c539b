"""Payments blueprint — /api/payments/oy/callback

Receives OY! payment notifications. CSRF-exempt.
Raw body is required for signature verification.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request

from storefront.services.callback_service import handle_callback
from storefront.services.oy_service import SIGNATURE_HEADER

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.route("/oy/callback", methods=["POST"])
def oy_callback():
    """Receive and reconcile an OY! payment callback.

    1. Get raw body (required for signature verification)
    2. Log it, verify X-OY-Signature, settle the transaction
    3. Return 200 with the resulting status

    Errors raised by the service (401/400/404/500) are rendered by the
    app-level StorefrontError handler, so OY! retries the delivery.
    """
    # Bytes as received: the signature covers these exact bytes.
    raw_body = request.get_data()
    signature = request.headers.get(SIGNATURE_HEADER)

    logger.info(f"OY! callback received ({len(raw_body)} bytes)")

    status, message = handle_callback(raw_body, signature)

    return jsonify({"status": status, "message": message}), 200


@payments_bp.route("/oy/callback", methods=["GET"])
def oy_callback_probe():
    """Liveness probe so the callback URL can be checked from a browser."""
    return jsonify({
        "message": "OY! callback endpoint is active",
        "time": datetime.now(timezone.utc).isoformat(),
    })
