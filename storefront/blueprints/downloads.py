"""Downloads blueprint — /download/<token>

The link in the buyer's invoice email. Redirects to the product file
while the token is valid and the transaction is PAID.
"""

import logging

from flask import Blueprint, abort, redirect

from storefront.models.transaction import Transaction

logger = logging.getLogger(__name__)

downloads_bp = Blueprint("downloads", __name__)


@downloads_bp.route("/download/<token>", methods=["GET"])
def download(token):
    transaction = Transaction.query.filter_by(download_token=token).first()

    if transaction is None or transaction.status != Transaction.STATUS_PAID:
        abort(404, description="Download not found")

    if transaction.download_expired:
        abort(410, description="This download link has expired")

    logger.info(f"Download of product {transaction.product_id} for {transaction.id}")
    return redirect(transaction.product.file_url)
