"""Transactions blueprint — /api/transactions (admin only)

Route Map:
  GET  /api/transactions            — all transactions, newest first
  GET  /api/transactions/<id>       — one transaction with its product
  POST /api/transactions/<id>/sync  — poll OY! and reconcile
"""

from flask import Blueprint, abort, jsonify
from sqlalchemy.orm import joinedload

from storefront.decorators import admin_required
from storefront.extensions import db
from storefront.models.transaction import Transaction
from storefront.services import callback_service

transactions_bp = Blueprint(
    "transactions", __name__, url_prefix="/api/transactions"
)


@transactions_bp.route("", methods=["GET"])
@admin_required
def list_transactions():
    transactions = (
        Transaction.query
        .options(joinedload(Transaction.product))
        .order_by(Transaction.created_at.desc())
        .all()
    )
    return jsonify([t.to_dict() for t in transactions])


@transactions_bp.route("/<transaction_id>", methods=["GET"])
@admin_required
def get_transaction(transaction_id):
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        abort(404, description="Transaction not found")
    return jsonify(transaction.to_dict())


@transactions_bp.route("/<transaction_id>/sync", methods=["POST"])
@admin_required
def sync_transaction(transaction_id):
    """Ask OY! for the payment status when a callback never arrived."""
    transaction, status, message = callback_service.sync_transaction(transaction_id)
    return jsonify({
        "status": status,
        "message": message,
        "transaction": transaction.to_dict(),
    })
